"""Loyalty Engage connector.

Synchronizes storefront carts, orders and customers with the Loyalty
Engage API.
"""

__version__ = "0.1.0"
