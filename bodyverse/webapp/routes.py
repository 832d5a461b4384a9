"""
FastAPI routes for the BodyVerse pricing API.

Handles:
- Localized plan tables (by currency or by caller location)
- Plan quotes for the payment step
- Exchange rates and conversion
- Currency symbols and price formatting
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Query, Request

from bodyverse.pricing.formatting import format_price, symbol_for
from bodyverse.pricing.regional_pricing import EMERGING_MARKET_CURRENCIES
from bodyverse.services.health_service import HealthService
from bodyverse.services.pricing_resolver import PricingResolver
from bodyverse.utils.config_loader import AppConfig, load_config, load_env
from bodyverse.webapp.helpers import get_client_ip, parse_amount, parse_currency_code, parse_period
from bodyverse.webapp.schemas import (
    ConversionResponse,
    CurrenciesResponse,
    FormattedPriceResponse,
    LocalizedPricingResponse,
    LocationResponse,
    PlanQuoteResponse,
    RatesRefreshResponse,
    RatesResponse,
)


logger = logging.getLogger(__name__)


# ============================================================================
# Dependency Injection
# ============================================================================

@lru_cache()
def get_app_config() -> AppConfig:
    """
    Get application config (cached).

    Clear cache with get_app_config.cache_clear() if config changes.
    """
    load_env()
    return load_config()


@lru_cache()
def get_pricing_resolver() -> PricingResolver:
    """
    Process-wide pricing resolver.

    Owns the single exchange rate cache shared by all requests.
    """
    return PricingResolver(get_app_config())


def get_health_service(
    resolver: PricingResolver = Depends(get_pricing_resolver),
) -> HealthService:
    return HealthService(resolver)


router = APIRouter(prefix="/api")


# ============================================================================
# Pricing
# ============================================================================

@router.get("/pricing", response_model=LocalizedPricingResponse)
def get_pricing(
    currency: str = Query(..., description="ISO currency code, e.g. NGN"),
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Plan table for a currency."""
    code = parse_currency_code(currency)
    return resolver.localized_pricing(code).to_dict()


@router.get("/pricing/local", response_model=LocalizedPricingResponse)
def get_local_pricing(
    request: Request,
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Plan table for the caller's location."""
    return resolver.localized_pricing_for_location(get_client_ip(request)).to_dict()


@router.get("/pricing/quote", response_model=PlanQuoteResponse)
def get_quote(
    currency: str = Query(..., description="ISO currency code"),
    period: str = Query("yearly", description="monthly, quarterly or yearly"),
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Price of one plan, for the payment step."""
    code = parse_currency_code(currency)
    billing_period = parse_period(period)
    return resolver.quote(code, billing_period).to_dict()


# ============================================================================
# Location
# ============================================================================

@router.get("/location", response_model=LocationResponse)
def get_location(
    request: Request,
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Country and currency of the caller (US/USD when unknown)."""
    return resolver.resolve_location(get_client_ip(request)).to_dict()


# ============================================================================
# Exchange rates
# ============================================================================

@router.get("/rates", response_model=RatesResponse)
def get_rates(
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Cached USD exchange rate table."""
    rates = resolver.get_rates()
    return {
        "base": resolver.config.rates.base_currency,
        "rates": rates,
        "cache": resolver.rate_cache.status(),
    }


@router.post("/rates/refresh", response_model=RatesRefreshResponse)
def refresh_rates(
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Refetch rates now, keeping the previous table if the fetch fails."""
    rates = resolver.rate_cache.refresh()
    error = resolver.rate_cache.last_error
    if error:
        logger.warning(f"Manual rate refresh failed: {error}")
    return {
        "success": error is None,
        "currency_count": len(rates),
        "cache": resolver.rate_cache.status(),
        "error": error,
    }


@router.get("/convert", response_model=ConversionResponse)
def convert(
    amount: float = Query(..., description="Amount in from_currency"),
    from_currency: str = Query("USD"),
    to_currency: str = Query(...),
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Convert an amount; unknown currencies pass the amount through."""
    amount = parse_amount(amount)
    source = parse_currency_code(from_currency, field="from_currency")
    target = parse_currency_code(to_currency, field="to_currency")
    result = resolver.convert_base_price(amount, target, from_currency=source)
    return {
        "amount": result.amount,
        "from_currency": result.from_currency,
        "to_currency": result.to_currency,
        "converted_amount": result.converted_amount,
        "rate": result.rate,
        "converted": result.converted,
        "formatted": result.formatted,
    }


# ============================================================================
# Display
# ============================================================================

@router.get("/currencies", response_model=CurrenciesResponse)
async def get_currencies(
    resolver: PricingResolver = Depends(get_pricing_resolver),
):
    """Supported display currencies and the emerging-market set."""
    return {
        "currencies": resolver.supported_currencies(),
        "emerging_markets": sorted(EMERGING_MARKET_CURRENCIES),
    }


@router.get("/format", response_model=FormattedPriceResponse)
async def format_amount(
    amount: float = Query(...),
    currency: str = Query(...),
):
    """Format an amount with its currency symbol."""
    amount = parse_amount(amount)
    code = parse_currency_code(currency)
    return {
        "amount": amount,
        "currency": code,
        "symbol": symbol_for(code),
        "formatted": format_price(amount, code),
    }
