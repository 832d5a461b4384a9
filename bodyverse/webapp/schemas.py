"""
Pydantic models for API responses in the web application.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LocationResponse(BaseModel):
    """Resolved country and currency."""

    country_code: str = "US"
    currency_code: str = "USD"


class PlanPricesModel(BaseModel):
    """Prices of the three subscription plans."""

    monthly: float = Field(..., ge=0)
    quarterly: float = Field(..., ge=0)
    yearly: float = Field(..., ge=0)


class LocalizedPricingResponse(BaseModel):
    """Plan table for one currency, with display strings."""

    currency: str
    symbol: str
    rule: str = Field(..., description="emerging_market, regional or default")
    prices: PlanPricesModel
    formatted: Dict[str, str]
    monthly_equivalent: Dict[str, str]
    location: Optional[LocationResponse] = None


class PlanQuoteResponse(BaseModel):
    """Price of one plan, as handed to the payment step."""

    currency: str
    period: str
    amount: float
    formatted: str
    monthly_equivalent: float
    formatted_monthly_equivalent: str
    rule: str


class RateCacheStatus(BaseModel):
    """State of the exchange rate cache."""

    state: str = Field(..., description="fresh, stale or empty")
    age_seconds: Optional[float] = None
    currency_count: int = 0
    fetched_at: Optional[str] = None
    last_error: Optional[str] = None


class RatesResponse(BaseModel):
    """Cached exchange rate table (USD base)."""

    base: str = "USD"
    rates: Dict[str, float] = Field(default_factory=dict)
    cache: RateCacheStatus


class RatesRefreshResponse(BaseModel):
    """Result of a forced rate refresh."""

    success: bool
    currency_count: int
    cache: RateCacheStatus
    error: Optional[str] = None


class ConversionResponse(BaseModel):
    """Result of a currency conversion."""

    amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    rate: Optional[float] = None
    converted: bool
    formatted: str


class CurrencyInfo(BaseModel):
    """A supported display currency."""

    code: str
    symbol: str


class CurrenciesResponse(BaseModel):
    """Supported display currencies."""

    currencies: List[CurrencyInfo]
    emerging_markets: List[str]


class FormattedPriceResponse(BaseModel):
    """A single formatted price."""

    amount: float
    currency: str
    symbol: str
    formatted: str
