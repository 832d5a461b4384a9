"""
Mock responses for exchange rate API calls.

Use with the `responses` library to mock HTTP requests in tests.
"""

from typing import Any, Dict, Optional

import responses

RATES_BASE_URL = "https://api.exchangerate-api.com/v4/latest"
USD_RATES_URL = f"{RATES_BASE_URL}/USD"

SAMPLE_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "NGN": 1550.0,
    "ZAR": 18.5,
    "KES": 129.0,
    "GHS": 15.2,
}


def mock_rates_body(rates: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    """Build a rate API response body."""
    return {
        "provider": "https://www.exchangerate-api.com",
        "base": "USD",
        "date": "2026-10-19",
        "time_last_updated": 1792368000,
        "rates": dict(SAMPLE_RATES if rates is None else rates),
    }


def add_rates_response(rates: Optional[Dict[str, float]] = None, status: int = 200) -> None:
    """
    Register a mock USD rate table.

    Call this within a @responses.activate block.
    """
    responses.add(
        responses.GET,
        USD_RATES_URL,
        json=mock_rates_body(rates),
        status=status,
    )


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
