"""
FX rate provider module.

Fetches USD-based exchange rate tables from a public rate API and keeps the
latest table in an explicitly owned in-memory cache:

- Fresh entries (younger than CACHE_DURATION_SECONDS) are served without I/O
- Expired entries trigger one refetch shared by concurrent callers
- Failed refetches fall back to the stale table, or an empty one
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from bodyverse.pricing.formatting import normalize_currency_code
from bodyverse.utils.config_loader import AppConfig


logger = logging.getLogger(__name__)

CACHE_DURATION_SECONDS = 60 * 60  # 1 hour

RateFetcher = Callable[[], Tuple[Optional[Dict[str, float]], str]]


class FXProviderError(Exception):
    """Exception raised for FX rate retrieval errors."""
    pass


def is_usable_rate(value: Optional[float]) -> bool:
    """A rate can be divided by and multiplied with: finite and positive."""
    return value is not None and math.isfinite(value) and value > 0


def parse_rates_payload(data: Any) -> Dict[str, float]:
    """
    Extract the rate table from a rate API response body.

    Args:
        data: Decoded JSON body, expected to hold a ``rates`` mapping.

    Returns:
        Dict of currency code to multiplier.

    Raises:
        FXProviderError: If the body has no usable ``rates`` mapping.
    """
    if not isinstance(data, dict):
        raise FXProviderError("Response body is not a JSON object")

    raw_rates = data.get("rates")
    if not isinstance(raw_rates, dict) or not raw_rates:
        raise FXProviderError("Response has no 'rates' mapping")

    rates: Dict[str, float] = {}
    for code, value in raw_rates.items():
        # bool is an int subclass; a true/false rate is still malformed
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FXProviderError(f"Non-numeric rate for {code!r}: {value!r}")
        if not is_usable_rate(value):
            logger.warning(f"Dropping unusable rate for {code!r}: {value!r}")
            continue
        rates[normalize_currency_code(code)] = float(value)

    if not rates:
        raise FXProviderError("Response has no usable rates")
    return rates


def fetch_exchange_rates(
    config: AppConfig,
    base_currency: Optional[str] = None,
) -> Tuple[Optional[Dict[str, float]], str]:
    """
    Fetch a full exchange rate table from the rate API.

    Args:
        config: Application configuration with rate API settings.
        base_currency: Base currency override (default from config, USD).

    Returns:
        Tuple of (rates, source):
            - (dict, "api") if successful
            - (None, error_message) if failed
    """
    base = normalize_currency_code(base_currency or config.rates.base_currency)
    url = f"{config.rates.base_url}/{base}"
    timeout = config.rates.timeout_seconds

    logger.info(f"Fetching exchange rates: {url}")

    try:
        response = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        response.raise_for_status()
        rates = parse_rates_payload(response.json())
        logger.info(
            f"Fetched {len(rates)} exchange rates (base {base})",
            extra={"currency_count": len(rates), "base_currency": base},
        )
        return rates, "api"

    except requests.exceptions.Timeout:
        error_msg = f"Exchange rate request timed out after {timeout}s"
        logger.warning(error_msg)
        return None, error_msg

    except requests.exceptions.ConnectionError as e:
        error_msg = f"Connection error fetching exchange rates: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except requests.exceptions.HTTPError as e:
        error_msg = f"HTTP error from exchange rate API: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except FXProviderError as e:
        error_msg = f"Failed to parse exchange rates: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except ValueError as e:
        # requests raises a ValueError subclass for undecodable JSON
        error_msg = f"Failed to parse exchange rate response: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except requests.exceptions.RequestException as e:
        error_msg = f"Unexpected error fetching exchange rates: {e}"
        logger.warning(error_msg)
        return None, error_msg


@dataclass(frozen=True)
class CacheEntry:
    """A fetched rate table and the time it was fetched."""

    rates: Dict[str, float]
    fetched_at: float  # monotonic clock, for age
    fetched_at_wall: float  # epoch seconds, for display

    def age(self, now: float) -> float:
        return now - self.fetched_at


class ExchangeRateCache:
    """
    In-memory cache of the latest USD exchange rate table.

    Attributes:
        ttl_seconds: How long a fetched table stays fresh.
        last_error: Message from the most recent failed fetch, if any.
    """

    def __init__(
        self,
        fetcher: RateFetcher,
        ttl_seconds: float = CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the cache.

        Args:
            fetcher: Callable returning ``(rates or None, source_or_error)``.
            ttl_seconds: Freshness window of a fetched table.
            clock: Monotonic time source for freshness, in seconds.
            wall_clock: Epoch time source for the reported fetch time.
        """
        self._fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._entry: Optional[CacheEntry] = None
        self._lock = threading.Lock()
        self._completed_fetches = 0
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs) -> "ExchangeRateCache":
        """Build a cache that fetches from the configured rate API."""
        return cls(partial(fetch_exchange_rates, config), **kwargs)

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def get_rates(self) -> Dict[str, float]:
        """
        Get the current exchange rate table.

        Returns:
            Dict of currency code to multiplier relative to USD. May be stale
            after a failed refresh, or empty if no fetch ever succeeded.
        """
        entry = self._entry
        if entry is not None and entry.age(self._clock()) < self.ttl_seconds:
            logger.debug("Exchange rate cache hit")
            return dict(entry.rates)

        fetches_seen = self._completed_fetches
        with self._lock:
            # A fetch finished while we waited for the lock; share its outcome
            if self._completed_fetches != fetches_seen:
                return dict(self._entry.rates) if self._entry else {}
            return self._refresh()

    def _refresh(self) -> Dict[str, float]:
        try:
            return self._fetch_and_store()
        finally:
            self._completed_fetches += 1

    def _fetch_and_store(self) -> Dict[str, float]:
        rates, source = self._fetcher()
        if rates is not None:
            self._entry = CacheEntry(
                rates=dict(rates),
                fetched_at=self._clock(),
                fetched_at_wall=self._wall_clock(),
            )
            self.last_error = None
            return dict(rates)

        self.last_error = source
        if self._entry is not None:
            logger.warning(
                f"Rate refresh failed ({source}), serving stale rates",
                extra={"rate_cache_state": "stale"},
            )
            return dict(self._entry.rates)

        logger.warning(
            f"Rate refresh failed ({source}), no cached rates available",
            extra={"rate_cache_state": "empty"},
        )
        return {}

    def refresh(self) -> Dict[str, float]:
        """Force a refetch, ignoring freshness. Same fallbacks as get_rates()."""
        with self._lock:
            return self._refresh()

    def clear(self) -> None:
        """Drop the cached table."""
        with self._lock:
            self._entry = None
            self.last_error = None

    def status(self) -> Dict[str, Any]:
        """
        Describe the cache state.

        Returns:
            dict: ``state`` (fresh/stale/empty), entry age, currency count,
            fetch time and last error.
        """
        entry = self._entry
        if entry is None:
            return {
                "state": "empty",
                "age_seconds": None,
                "currency_count": 0,
                "fetched_at": None,
                "last_error": self.last_error,
            }

        age = entry.age(self._clock())
        return {
            "state": "fresh" if age < self.ttl_seconds else "stale",
            "age_seconds": round(age, 1),
            "currency_count": len(entry.rates),
            "fetched_at": datetime.fromtimestamp(entry.fetched_at_wall, tz=timezone.utc).isoformat(),
            "last_error": self.last_error,
        }


def convert_with_rates(
    amount: float,
    from_currency: str,
    to_currency: str,
    rates: Dict[str, float],
) -> Tuple[float, Optional[float]]:
    """
    Convert an amount using a USD-based rate table.

    Args:
        amount: Amount in ``from_currency``.
        from_currency: Source currency code.
        to_currency: Target currency code.
        rates: Currency code to multiplier relative to USD.

    Returns:
        Tuple of (converted_amount, effective_rate). When either currency is
        missing from the table the amount comes back unchanged and the rate
        is None.
    """
    source = normalize_currency_code(from_currency)
    target = normalize_currency_code(to_currency)
    if source == target:
        return amount, 1.0

    from_rate = rates.get(source)
    to_rate = rates.get(target)
    if not is_usable_rate(from_rate) or not is_usable_rate(to_rate):
        logger.debug(f"No rate for {source}->{target}, leaving amount unchanged")
        return amount, None

    return amount / from_rate * to_rate, to_rate / from_rate


def convert_currency(
    amount: float,
    from_currency: str,
    to_currency: str,
    rate_cache: ExchangeRateCache,
) -> float:
    """
    Convert an amount between currencies via the rate cache.

    Identical currencies return the amount without touching the cache.
    Unknown currencies return the amount unchanged.
    """
    if normalize_currency_code(from_currency) == normalize_currency_code(to_currency):
        return amount

    converted, _ = convert_with_rates(amount, from_currency, to_currency, rate_cache.get_rates())
    return converted
