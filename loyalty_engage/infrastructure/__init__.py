"""Infrastructure layer module.

Configuration, logging, persistence and the Loyalty Engage HTTP client.
"""
