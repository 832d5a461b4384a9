"""
Pricing resolver for the BodyVerse paywall.

Ties together location lookup, the exchange rate cache and the regional
price table, and returns plain data ready for display:
- Localized plan tables and quotes
- Currency conversion of USD base prices
- Display symbols and formatted prices
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bodyverse.geo.location import LocationResolver, LocationResult
from bodyverse.pricing.formatting import (
    format_price,
    normalize_currency_code,
    supported_currencies,
    symbol_for,
)
from bodyverse.pricing.fx_provider import (
    ExchangeRateCache,
    convert_currency,
    convert_with_rates,
)
from bodyverse.pricing.regional_pricing import (
    BillingPeriod,
    PlanPrices,
    PricingDecision,
    monthly_equivalent,
    resolve_pricing,
)
from bodyverse.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class LocalizedPricing:
    """Plan table for one currency, with display strings."""

    currency: str
    symbol: str
    decision: PricingDecision
    location: Optional[LocationResult] = None

    @property
    def plans(self) -> PlanPrices:
        return self.decision.plans

    def to_dict(self) -> Dict[str, Any]:
        plans = self.plans
        result = {
            "currency": self.currency,
            "symbol": self.symbol,
            "rule": self.decision.rule.value,
            "prices": plans.to_dict(),
            "formatted": {
                period.value: format_price(plans.price_for(period), self.currency)
                for period in BillingPeriod
            },
            "monthly_equivalent": {
                period.value: format_price(monthly_equivalent(plans, period), self.currency)
                for period in BillingPeriod
            },
        }
        if self.location is not None:
            result["location"] = self.location.to_dict()
        return result


@dataclass
class PlanQuote:
    """A single plan selection, as handed to the payment step."""

    currency: str
    period: BillingPeriod
    amount: float
    formatted: str
    monthly_equivalent: float
    formatted_monthly_equivalent: str
    rule: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "period": self.period.value,
            "amount": self.amount,
            "formatted": self.formatted,
            "monthly_equivalent": self.monthly_equivalent,
            "formatted_monthly_equivalent": self.formatted_monthly_equivalent,
            "rule": self.rule,
        }


@dataclass
class ConversionResult:
    """Result of converting an amount for display."""

    amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    rate: Optional[float]
    formatted: str

    @property
    def converted(self) -> bool:
        """False when the amount was passed through for lack of a rate."""
        return self.rate is not None


class PricingResolver:
    """
    Resolves localized subscription prices.

    Attributes:
        config: Application configuration.
        location_resolver: IP geolocation lookup.
        rate_cache: Exchange rate cache, owned by the caller.
    """

    def __init__(
        self,
        config: AppConfig,
        rate_cache: Optional[ExchangeRateCache] = None,
        location_resolver: Optional[LocationResolver] = None,
    ) -> None:
        self.config = config
        self.rate_cache = rate_cache or ExchangeRateCache.from_config(config)
        self.location_resolver = location_resolver or LocationResolver(config)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def resolve_location(self, ip: Optional[str] = None) -> LocationResult:
        return self.location_resolver.resolve_location(ip)

    def get_rates(self) -> Dict[str, float]:
        return self.rate_cache.get_rates()

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        return convert_currency(amount, from_currency, to_currency, self.rate_cache)

    def pricing_for(self, currency: str) -> PlanPrices:
        return resolve_pricing(currency).plans

    def symbol_for(self, currency: str) -> str:
        return symbol_for(currency)

    def format_price(self, amount: float, currency: str) -> str:
        return format_price(amount, currency)

    def supported_currencies(self) -> List[Dict[str, str]]:
        return supported_currencies()

    # ------------------------------------------------------------------
    # Composite views
    # ------------------------------------------------------------------

    def localized_pricing(
        self,
        currency: str,
        location: Optional[LocationResult] = None,
    ) -> LocalizedPricing:
        """
        Plan table for a currency.

        Prices come from the regional table; amounts are displayed with the
        requested currency's symbol.
        """
        code = normalize_currency_code(currency)
        return LocalizedPricing(
            currency=code,
            symbol=symbol_for(code),
            decision=resolve_pricing(code),
            location=location,
        )

    def localized_pricing_for_location(self, ip: Optional[str] = None) -> LocalizedPricing:
        """Resolve the caller's location, then return its plan table."""
        location = self.resolve_location(ip)
        logger.info(
            f"Localized pricing for {location.country_code}: {location.currency_code}",
            extra=location.to_dict(),
        )
        return self.localized_pricing(location.currency_code, location=location)

    def quote(self, currency: str, period: BillingPeriod = BillingPeriod.YEARLY) -> PlanQuote:
        """
        Price of one plan in one currency.

        Args:
            currency: Currency code the user pays in.
            period: Billing period (monthly, quarterly, yearly).

        Returns:
            PlanQuote with raw and formatted amounts.
        """
        code = normalize_currency_code(currency)
        period = BillingPeriod(period)
        decision = resolve_pricing(code)
        amount = decision.plans.price_for(period)
        per_month = monthly_equivalent(decision.plans, period)
        return PlanQuote(
            currency=code,
            period=period,
            amount=amount,
            formatted=format_price(amount, code),
            monthly_equivalent=per_month,
            formatted_monthly_equivalent=format_price(per_month, code),
            rule=decision.rule.value,
        )

    def convert_base_price(
        self,
        amount: float,
        to_currency: str,
        from_currency: Optional[str] = None,
    ) -> ConversionResult:
        """
        Convert a base price (USD by default) and format it in the target currency.

        When no rate is available the amount is passed through and formatted
        in its original currency, so the display never shows a wrong symbol.
        """
        source = normalize_currency_code(from_currency or self.config.rates.base_currency)
        target = normalize_currency_code(to_currency)

        if source == target:
            converted, rate = amount, 1.0
        else:
            converted, rate = convert_with_rates(amount, source, target, self.get_rates())

        display_currency = target if rate is not None else source
        return ConversionResult(
            amount=amount,
            from_currency=source,
            to_currency=target,
            converted_amount=converted,
            rate=rate,
            formatted=format_price(converted, display_currency),
        )
