"""
Helper functions for the web application routes.

Input validation and client address handling.
"""

import ipaddress
import math
import re
from typing import Optional

from fastapi import Request

from bodyverse.pricing.formatting import normalize_currency_code
from bodyverse.pricing.regional_pricing import BillingPeriod
from bodyverse.webapp.exceptions import InvalidCurrencyError, InvalidPeriodError, ValidationError

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")


def parse_currency_code(value: Optional[str], field: str = "currency") -> str:
    """
    Validate and normalize a currency code from a request.

    Raises:
        InvalidCurrencyError: If the value is not three letters.
    """
    code = normalize_currency_code(value)
    if not CURRENCY_CODE_RE.match(code):
        raise InvalidCurrencyError(value, field=field)
    return code


def parse_amount(value: float, field: str = "amount") -> float:
    """
    Reject amounts that cannot be shown as a price (NaN, infinity).

    Raises:
        ValidationError: If the value is not a finite number.
    """
    if not math.isfinite(value):
        raise ValidationError(
            f"Invalid {field}: expected a finite number",
            details={"field": field, "value": str(value)},
        )
    return value


def parse_period(value: Optional[str]) -> BillingPeriod:
    """
    Validate a billing period name (case-insensitive).

    Raises:
        InvalidPeriodError: If the value is not monthly, quarterly or yearly.
    """
    try:
        return BillingPeriod((value or "").strip().lower())
    except ValueError:
        raise InvalidPeriodError(value, allowed=[p.value for p in BillingPeriod])


def get_client_ip(request: Request) -> Optional[str]:
    """
    Public IP of the caller, or None when it cannot be geolocated.

    Honours X-Forwarded-For (first hop). Private, loopback and unparseable
    addresses return None so the lookup falls back to the requester check.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
    elif request.client:
        candidate = request.client.host
    else:
        return None

    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return None

    if address.is_private or address.is_loopback or address.is_unspecified:
        return None
    return str(address)
