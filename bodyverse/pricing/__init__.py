"""
Pricing module.

Handles USD exchange rate retrieval with an in-memory cache, currency
conversion, regional subscription prices and price display formatting.
"""

from bodyverse.pricing.formatting import format_price, supported_currencies, symbol_for
from bodyverse.pricing.fx_provider import (
    CACHE_DURATION_SECONDS,
    ExchangeRateCache,
    convert_currency,
    fetch_exchange_rates,
)
from bodyverse.pricing.regional_pricing import (
    BillingPeriod,
    PlanPrices,
    monthly_equivalent,
    pricing_for,
    resolve_pricing,
)

__all__ = [
    "CACHE_DURATION_SECONDS",
    "BillingPeriod",
    "ExchangeRateCache",
    "PlanPrices",
    "convert_currency",
    "fetch_exchange_rates",
    "format_price",
    "monthly_equivalent",
    "pricing_for",
    "resolve_pricing",
    "supported_currencies",
    "symbol_for",
]
