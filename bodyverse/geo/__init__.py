"""
Geolocation module.

Resolves a user's country and currency from their IP address.
"""

from bodyverse.geo.location import DEFAULT_LOCATION, LocationResolver, LocationResult

__all__ = [
    "DEFAULT_LOCATION",
    "LocationResolver",
    "LocationResult",
]
