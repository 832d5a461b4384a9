"""
IP geolocation lookup.

Resolves a caller's country and local currency through the ipstack API.
Every failure resolves to the US/USD default; nothing is raised to callers.
"""

import ipaddress
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from bodyverse.pricing.formatting import normalize_currency_code
from bodyverse.utils.config_loader import AppConfig, get_geolocation_api_key

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY_CODE = "US"
DEFAULT_CURRENCY_CODE = "USD"


@dataclass(frozen=True)
class LocationResult:
    """Country and currency resolved for a user."""

    country_code: str = DEFAULT_COUNTRY_CODE
    currency_code: str = DEFAULT_CURRENCY_CODE

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


DEFAULT_LOCATION = LocationResult()


class GeolocationError(Exception):
    """Raised when a geolocation response cannot be used."""
    pass


def parse_location_payload(data: Any) -> LocationResult:
    """
    Build a LocationResult from an ipstack response body.

    Missing fields fall back individually to the US/USD default.

    Raises:
        GeolocationError: If the body is not an object or reports an API error.
    """
    if not isinstance(data, dict):
        raise GeolocationError("Response body is not a JSON object")

    # ipstack reports errors (bad key, quota) with HTTP 200
    if data.get("success") is False:
        error = data.get("error")
        info = "unknown error"
        if isinstance(error, dict):
            info = error.get("info") or error.get("type") or info
        raise GeolocationError(f"ipstack error: {info}")

    country_code = data.get("country_code") or DEFAULT_COUNTRY_CODE
    currency = data.get("currency")
    currency_code = currency.get("code") if isinstance(currency, dict) else None

    return LocationResult(
        country_code=str(country_code).upper(),
        currency_code=normalize_currency_code(currency_code) or DEFAULT_CURRENCY_CODE,
    )


class LocationResolver:
    """
    Resolve user location through the ipstack API.

    Attributes:
        config: Application configuration.
        api_key: Access key; when missing, lookups return the default.
    """

    def __init__(self, config: AppConfig, api_key: Optional[str] = None) -> None:
        self.config = config
        self.api_key = api_key if api_key is not None else get_geolocation_api_key(config)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_url(self, ip: Optional[str] = None) -> str:
        """
        Lookup URL for an explicit IP, or for the requester (``/check``).

        Raises:
            GeolocationError: If ``ip`` is not an IPv4 or IPv6 address.
        """
        if not ip or not ip.strip():
            return f"{self.config.geolocation.base_url}/check"
        try:
            address = ipaddress.ip_address(ip.strip())
        except ValueError:
            raise GeolocationError(f"Invalid IP address: {ip!r}")
        return f"{self.config.geolocation.base_url}/{address}"

    def fetch_location(self, ip: Optional[str] = None) -> Tuple[Optional[LocationResult], str]:
        """
        Call the geolocation API once.

        Returns:
            Tuple of (location, source):
                - (LocationResult, "ipstack") if successful
                - (None, error_message) if failed or not configured
        """
        if not self.api_key:
            return None, "No geolocation API key configured"

        timeout = self.config.geolocation.timeout_seconds

        try:
            url = self.build_url(ip)
            response = requests.get(
                url,
                params={"access_key": self.api_key},
                timeout=timeout,
            )
            response.raise_for_status()
            location = parse_location_payload(response.json())
            return location, "ipstack"

        except requests.exceptions.Timeout:
            return None, f"Geolocation request timed out after {timeout}s"

        except requests.exceptions.ConnectionError as e:
            return None, f"Connection error fetching location: {e}"

        except requests.exceptions.HTTPError as e:
            return None, f"HTTP error from geolocation API: {e}"

        except GeolocationError as e:
            return None, str(e)

        except ValueError as e:
            return None, f"Failed to parse geolocation response: {e}"

        except requests.exceptions.RequestException as e:
            return None, f"Unexpected error fetching location: {e}"

    def resolve_location(self, ip: Optional[str] = None) -> LocationResult:
        """
        Resolve the user's country and currency.

        Args:
            ip: Optional client IP; defaults to the requesting host.

        Returns:
            LocationResult: Resolved location, or US/USD on any failure.
        """
        if not self.api_key:
            logger.debug("No geolocation API key configured, using default location")
            return DEFAULT_LOCATION

        location, source = self.fetch_location(ip)
        if location is None:
            logger.warning(f"Location lookup failed ({source}), using default location")
            return DEFAULT_LOCATION

        logger.debug(
            f"Resolved location: {location.country_code}/{location.currency_code}",
            extra=location.to_dict(),
        )
        return location
