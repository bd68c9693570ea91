"""Customer loyalty rules.

Predicates over a customer's loyalty profile, used by the storefront to
gate promotions on tier, points or coins.
"""

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar

from loyalty_engage.domain.value_objects import LoyaltyProfile


class RuleOperator(str, Enum):
    """Comparison operators supported by loyalty rules."""

    EQ = "="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="

    @property
    def is_negative(self) -> bool:
        """Whether the operator matches when the value is absent."""
        return self is RuleOperator.NEQ


_COMPARATORS: dict[RuleOperator, Callable[[Any, Any], bool]] = {
    RuleOperator.EQ: operator.eq,
    RuleOperator.NEQ: operator.ne,
    RuleOperator.GT: operator.gt,
    RuleOperator.GTE: operator.ge,
    RuleOperator.LT: operator.lt,
    RuleOperator.LTE: operator.le,
}

STRING_OPERATORS = frozenset({RuleOperator.EQ, RuleOperator.NEQ})


@dataclass(frozen=True)
class CustomerRule(ABC):
    """Base class for rules comparing one profile field to a threshold."""

    name: ClassVar[str]
    allowed_operators: ClassVar[frozenset[RuleOperator]] = frozenset(RuleOperator)

    operator: RuleOperator = RuleOperator.EQ

    def __post_init__(self) -> None:
        op = RuleOperator(self.operator)
        if op not in self.allowed_operators:
            raise ValueError(f"Operator '{op.value}' is not supported by {self.name}")
        object.__setattr__(self, "operator", op)

    @abstractmethod
    def _actual(self, profile: LoyaltyProfile) -> Any:
        """Profile value the rule compares, None when unknown."""

    @abstractmethod
    def _expected(self) -> Any:
        """Threshold the profile value is compared against."""

    def match(self, profile: LoyaltyProfile | None) -> bool:
        """Evaluate the rule for a customer.

        Args:
            profile: The customer's loyalty profile, None for guests.

        Returns:
            True if the rule matches. A missing value matches only
            negative operators; a missing customer never matches.
        """
        if profile is None:
            return False

        actual = self._actual(profile)
        if actual is None:
            return self.operator.is_negative

        return _COMPARATORS[self.operator](actual, self._expected())


@dataclass(frozen=True)
class CustomerTierRule(CustomerRule):
    """Matches on the customer's current tier name."""

    name = "loyaltyEngageCustomerTier"
    allowed_operators = STRING_OPERATORS

    tier: str | None = None

    def _actual(self, profile: LoyaltyProfile) -> Any:
        return profile.current_tier

    def _expected(self) -> Any:
        return self.tier or ""


@dataclass(frozen=True)
class CustomerPointsRule(CustomerRule):
    """Matches on the customer's points balance."""

    name = "loyaltyEngageCustomerPoints"

    points: int | None = None

    def _actual(self, profile: LoyaltyProfile) -> Any:
        return None if profile.points is None else float(profile.points)

    def _expected(self) -> Any:
        return float(self.points or 0)


@dataclass(frozen=True)
class CustomerCoinsRule(CustomerRule):
    """Matches on the customer's available coins."""

    name = "loyaltyEngageCustomerCoins"

    coins: int | None = None

    def _actual(self, profile: LoyaltyProfile) -> Any:
        return None if profile.available_coins is None else float(profile.available_coins)

    def _expected(self) -> Any:
        return float(self.coins or 0)


RULES: dict[str, type[CustomerRule]] = {
    "tier": CustomerTierRule,
    "points": CustomerPointsRule,
    "coins": CustomerCoinsRule,
}


def build_rule(kind: str, op: str, value: Any) -> CustomerRule:
    """Build a rule from its kind name.

    Args:
        kind: One of "tier", "points", "coins".
        op: Operator symbol.
        value: Threshold to compare against.

    Returns:
        Configured rule instance.

    Raises:
        ValueError: For unknown kinds or operators.
    """
    rule_cls = RULES.get(kind)
    if rule_cls is None:
        raise ValueError(f"Unknown rule kind '{kind}'")
    if rule_cls is CustomerTierRule:
        return CustomerTierRule(operator=RuleOperator(op), tier=value)
    if rule_cls is CustomerPointsRule:
        return CustomerPointsRule(operator=RuleOperator(op), points=value)
    return CustomerCoinsRule(operator=RuleOperator(op), coins=value)
