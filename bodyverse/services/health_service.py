"""
Health check service for monitoring application status.

Reports on the pricing subsystem's components without calling upstream APIs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bodyverse import __version__
from bodyverse.pricing.formatting import CURRENCY_SYMBOLS
from bodyverse.pricing.regional_pricing import EMERGING_MARKET_CURRENCIES, REGIONAL_PRICING
from bodyverse.services.pricing_resolver import PricingResolver

logger = logging.getLogger(__name__)


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: str  # "ok", "degraded", "error"
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
        }
        if self.message:
            result["message"] = self.message
        if self.details:
            result.update(self.details)
        return result


@dataclass
class HealthReport:
    """Complete health report for the application."""

    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: str
    version: str
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "version": self.version,
            "components": {
                name: comp.to_dict()
                for name, comp in self.components.items()
            },
        }


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthService:
    """Service for checking application health."""

    def __init__(self, resolver: PricingResolver):
        self.resolver = resolver

    def get_full_health(self) -> HealthReport:
        """
        Get complete health report for all components.

        Returns:
            HealthReport with status of all components.
        """
        components = {
            "exchange_rates": self._check_exchange_rates(),
            "geolocation": self._check_geolocation(),
            "pricing_table": self._check_pricing_table(),
        }

        statuses = [c.status for c in components.values()]
        if all(s == "ok" for s in statuses):
            overall_status = "healthy"
        elif any(s == "error" for s in statuses):
            overall_status = "unhealthy"
        else:
            overall_status = "degraded"

        return HealthReport(
            status=overall_status,
            timestamp=_utc_timestamp(),
            version=__version__,
            components=components,
        )

    def get_simple_health(self) -> dict:
        """Get simple health check (for load balancers)."""
        return {
            "status": "ok",
            "timestamp": _utc_timestamp(),
        }

    def _check_exchange_rates(self) -> ComponentHealth:
        """Report the rate cache state; never triggers a fetch."""
        status = self.resolver.rate_cache.status()
        state = status["state"]

        if state == "fresh":
            return ComponentHealth(
                name="exchange_rates",
                status="ok",
                message=f"{status['currency_count']} rates cached",
                details=status,
            )
        if state == "stale":
            return ComponentHealth(
                name="exchange_rates",
                status="degraded",
                message="Serving stale rates",
                details=status,
            )
        return ComponentHealth(
            name="exchange_rates",
            status="degraded",
            message="No rates cached, conversions pass amounts through",
            details=status,
        )

    def _check_geolocation(self) -> ComponentHealth:
        """Check whether the geolocation access key is configured."""
        if self.resolver.location_resolver.is_configured:
            return ComponentHealth(
                name="geolocation",
                status="ok",
                message="API key configured",
            )
        return ComponentHealth(
            name="geolocation",
            status="degraded",
            message="No API key - all users priced as US/USD",
            details={"api_key_env": self.resolver.config.geolocation.api_key_env},
        )

    def _check_pricing_table(self) -> ComponentHealth:
        """Check the regional table has its USD fallback entry."""
        if "USD" not in REGIONAL_PRICING:
            return ComponentHealth(
                name="pricing_table",
                status="error",
                message="USD fallback pricing missing",
            )
        return ComponentHealth(
            name="pricing_table",
            status="ok",
            message=f"{len(REGIONAL_PRICING)} regional price tables",
            details={
                "currencies": sorted(REGIONAL_PRICING),
                "emerging_markets": sorted(EMERGING_MARKET_CURRENCIES),
                "symbols": len(CURRENCY_SYMBOLS),
            },
        )
