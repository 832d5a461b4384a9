"""
Regional subscription pricing.

Curated plan prices per currency. These are business prices already
denominated in each currency, not exchange-rate conversions of the USD plan.

Lookup order (first match wins):
1. emerging_market - codes in EMERGING_MARKET_CURRENCIES use the NGN plans
2. regional - codes with their own table entry
3. default - everything else uses the USD plans
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from bodyverse.pricing.formatting import normalize_currency_code


class BillingPeriod(str, Enum):
    """Subscription billing periods and their length in months."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def months(self) -> int:
        return PERIOD_MONTHS[self]


PERIOD_MONTHS = {
    BillingPeriod.MONTHLY: 1,
    BillingPeriod.QUARTERLY: 3,
    BillingPeriod.YEARLY: 12,
}


class PricingRule(str, Enum):
    """Which step of the lookup order produced a plan table."""

    EMERGING_MARKET = "emerging_market"
    REGIONAL = "regional"
    DEFAULT = "default"


@dataclass(frozen=True)
class PlanPrices:
    """Prices of the three subscription plans, in one currency."""

    monthly: float
    quarterly: float
    yearly: float

    def price_for(self, period: BillingPeriod) -> float:
        return getattr(self, BillingPeriod(period).value)

    def to_dict(self) -> Dict[str, float]:
        return {
            "monthly": self.monthly,
            "quarterly": self.quarterly,
            "yearly": self.yearly,
        }


@dataclass(frozen=True)
class PricingDecision:
    """
    Result of a regional price lookup.

    Attributes:
        plans: Plan prices to display.
        rule: Lookup step that matched.
        table_key: Regional table entry the plans came from.
    """

    plans: PlanPrices
    rule: PricingRule
    table_key: str


DEFAULT_PRICING_CURRENCY = "USD"
EMERGING_MARKET_PRICING_CURRENCY = "NGN"

EMERGING_MARKET_CURRENCIES = frozenset({"NGN", "ZAR", "KES", "GHS", "TZS", "UGX"})

REGIONAL_PRICING: Dict[str, PlanPrices] = {
    "NGN": PlanPrices(monthly=6.99, quarterly=18.99, yearly=59.99),
    "USD": PlanPrices(monthly=12.99, quarterly=34.99, yearly=129.99),
    "GBP": PlanPrices(monthly=9.99, quarterly=26.99, yearly=99.99),
    "EUR": PlanPrices(monthly=11.99, quarterly=31.99, yearly=119.99),
    "ZAR": PlanPrices(monthly=6.99, quarterly=18.99, yearly=59.99),
    "KES": PlanPrices(monthly=6.99, quarterly=18.99, yearly=59.99),
    "GHS": PlanPrices(monthly=6.99, quarterly=18.99, yearly=59.99),
}


def _emerging_market_rule(code: str) -> Optional[str]:
    if code in EMERGING_MARKET_CURRENCIES:
        return EMERGING_MARKET_PRICING_CURRENCY
    return None


def _regional_rule(code: str) -> Optional[str]:
    if code in REGIONAL_PRICING:
        return code
    return None


def _default_rule(code: str) -> Optional[str]:
    return DEFAULT_PRICING_CURRENCY


# Ordered lookup policy: each rule maps a currency code to a table key or None.
PRICING_POLICY: Tuple[Tuple[PricingRule, Callable[[str], Optional[str]]], ...] = (
    (PricingRule.EMERGING_MARKET, _emerging_market_rule),
    (PricingRule.REGIONAL, _regional_rule),
    (PricingRule.DEFAULT, _default_rule),
)


def resolve_pricing(currency_code: str) -> PricingDecision:
    """
    Walk the pricing policy for a currency code.

    Args:
        currency_code: ISO currency code (case-insensitive).

    Returns:
        PricingDecision: Plans, matched rule and table key. Always defined.
    """
    code = normalize_currency_code(currency_code)
    for rule, match in PRICING_POLICY:
        table_key = match(code)
        if table_key is not None:
            return PricingDecision(
                plans=REGIONAL_PRICING[table_key],
                rule=rule,
                table_key=table_key,
            )
    # The default rule always matches; kept for type checkers.
    return PricingDecision(
        plans=REGIONAL_PRICING[DEFAULT_PRICING_CURRENCY],
        rule=PricingRule.DEFAULT,
        table_key=DEFAULT_PRICING_CURRENCY,
    )


def pricing_for(currency_code: str) -> PlanPrices:
    """Get the plan prices shown to users paying in ``currency_code``."""
    return resolve_pricing(currency_code).plans


def monthly_equivalent(plans: PlanPrices, period: BillingPeriod) -> float:
    """
    Per-month price of a billing period.

    Quarterly is divided by 3, yearly by 12, monthly is returned as-is.
    """
    period = BillingPeriod(period)
    return plans.price_for(period) / period.months
