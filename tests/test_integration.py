"""
Integration tests for the BodyVerse pricing API.

Exercises the FastAPI app with a resolver backed by mocked upstreams.
"""

from unittest.mock import Mock

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from bodyverse.geo.location import LocationResolver, LocationResult
from bodyverse.pricing.fx_provider import ExchangeRateCache
from bodyverse.services.pricing_resolver import PricingResolver
from bodyverse.utils.config_loader import AppConfig
from bodyverse.webapp.main import app
from bodyverse.webapp.middleware import get_client_id, get_limit_group, reset_rate_limits
from bodyverse.webapp.routes import get_pricing_resolver
from tests.fixtures.fx_mocks import SAMPLE_RATES, FakeClock


@pytest.fixture
def fetcher() -> Mock:
    return Mock(return_value=(dict(SAMPLE_RATES), "api"))


@pytest.fixture
def location_resolver() -> Mock:
    mock = Mock(spec=LocationResolver)
    mock.resolve_location.return_value = LocationResult("NG", "NGN")
    mock.is_configured = True
    return mock


@pytest.fixture
def resolver(fetcher: Mock, location_resolver: Mock) -> PricingResolver:
    cache = ExchangeRateCache(fetcher, clock=FakeClock())
    return PricingResolver(AppConfig(), rate_cache=cache, location_resolver=location_resolver)


@pytest.fixture
def client(resolver: PricingResolver):
    """Create a test client for the FastAPI app."""
    reset_rate_limits()
    app.dependency_overrides[get_pricing_resolver] = lambda: resolver
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    reset_rate_limits()


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_simple(self, client, fetcher):
        response = client.get("/health/simple")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        fetcher.assert_not_called()

    def test_health_detailed(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert set(data["components"]) == {"exchange_rates", "geolocation", "pricing_table"}
        assert "version" in data

    def test_health_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"


class TestPricingEndpoints:
    """Test plan table and quote endpoints."""

    def test_pricing_for_currency(self, client):
        response = client.get("/api/pricing", params={"currency": "eur"})
        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "EUR"
        assert data["prices"] == {"monthly": 11.99, "quarterly": 31.99, "yearly": 119.99}
        assert data["formatted"]["monthly"] == "€11.99"
        assert data["location"] is None

    def test_pricing_emerging_market(self, client):
        response = client.get("/api/pricing", params={"currency": "UGX"})
        data = response.json()
        assert data["rule"] == "emerging_market"
        assert data["prices"]["yearly"] == 59.99
        assert data["formatted"]["yearly"] == "UGX59.99"

    def test_pricing_unknown_currency_falls_back(self, client):
        data = client.get("/api/pricing", params={"currency": "JPY"}).json()
        assert data["rule"] == "default"
        assert data["prices"]["monthly"] == 12.99

    def test_pricing_rejects_malformed_code(self, client):
        response = client.get("/api/pricing", params={"currency": "dollars"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "INVALID_CURRENCY"
        assert data["details"]["value"] == "dollars"

    def test_pricing_requires_currency(self, client):
        response = client.get("/api/pricing")
        assert response.status_code == 422

    def test_local_pricing(self, client, location_resolver):
        response = client.get("/api/pricing/local")
        assert response.status_code == 200
        data = response.json()
        assert data["location"] == {"country_code": "NG", "currency_code": "NGN"}
        assert data["formatted"]["monthly"] == "₦6.99"
        # TestClient host is not a public IP, so the lookup uses the requester check
        location_resolver.resolve_location.assert_called_once_with(None)

    def test_local_pricing_uses_forwarded_ip(self, client, location_resolver):
        client.get("/api/pricing/local", headers={"X-Forwarded-For": "102.89.0.1, 10.0.0.1"})
        location_resolver.resolve_location.assert_called_once_with("102.89.0.1")

    def test_quote(self, client):
        response = client.get("/api/pricing/quote", params={"currency": "GBP", "period": "Quarterly"})
        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "quarterly"
        assert data["amount"] == 26.99
        assert data["formatted"] == "£26.99"
        assert data["formatted_monthly_equivalent"] == "£9.00"

    def test_quote_defaults_to_yearly(self, client):
        data = client.get("/api/pricing/quote", params={"currency": "USD"}).json()
        assert data["period"] == "yearly"
        assert data["formatted"] == "$129.99"

    def test_quote_rejects_unknown_period(self, client):
        response = client.get("/api/pricing/quote", params={"currency": "USD", "period": "weekly"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "INVALID_PERIOD"
        assert data["details"]["allowed"] == ["monthly", "quarterly", "yearly"]


class TestLocationEndpoint:
    """Test location endpoint."""

    def test_location(self, client):
        response = client.get("/api/location")
        assert response.status_code == 200
        assert response.json() == {"country_code": "NG", "currency_code": "NGN"}


class TestRateEndpoints:
    """Test exchange rate and conversion endpoints."""

    def test_rates(self, client, fetcher):
        response = client.get("/api/rates")
        assert response.status_code == 200
        data = response.json()
        assert data["base"] == "USD"
        assert data["rates"] == SAMPLE_RATES
        assert data["cache"]["state"] == "fresh"

        client.get("/api/rates")
        assert fetcher.call_count == 1

    def test_refresh_success(self, client, fetcher):
        client.get("/api/rates")
        response = client.post("/api/rates/refresh")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["currency_count"] == len(SAMPLE_RATES)
        assert fetcher.call_count == 2

    def test_refresh_failure_keeps_stale_rates(self, client, fetcher):
        client.get("/api/rates")
        fetcher.return_value = (None, "HTTP error from exchange rate API: 503")

        data = client.post("/api/rates/refresh").json()

        assert data["success"] is False
        assert "503" in data["error"]
        assert data["currency_count"] == len(SAMPLE_RATES)

    def test_convert(self, client):
        response = client.get(
            "/api/convert",
            params={"amount": 10, "from_currency": "USD", "to_currency": "NGN"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["converted"] is True
        assert data["converted_amount"] == pytest.approx(15500.0)
        assert data["formatted"] == "₦15500.00"

    def test_convert_unknown_currency_passes_through(self, client):
        data = client.get("/api/convert", params={"amount": 12.99, "to_currency": "XYZ"}).json()
        assert data["converted"] is False
        assert data["converted_amount"] == 12.99
        assert data["rate"] is None

    def test_convert_rejects_malformed_code(self, client):
        response = client.get("/api/convert", params={"amount": 1, "to_currency": "N1N"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "to_currency"

    @pytest.mark.parametrize("amount", ["nan", "inf", "-Infinity"])
    def test_convert_rejects_non_finite_amount(self, client, amount):
        response = client.get("/api/convert", params={"amount": amount, "to_currency": "EUR"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["details"]["field"] == "amount"

    def test_convert_with_unusable_cached_rate_passes_through(self, client, fetcher):
        fetcher.return_value = ({"USD": 1.0, "EUR": float("nan")}, "api")

        data = client.get("/api/convert", params={"amount": 10, "to_currency": "EUR"}).json()

        assert data["converted"] is False
        assert data["rate"] is None
        assert data["converted_amount"] == 10.0
        assert data["formatted"] == "$10.00"

    def test_rate_outage_degrades(self, client, fetcher):
        fetcher.return_value = (None, "Connection error")

        rates = client.get("/api/rates").json()
        converted = client.get("/api/convert", params={"amount": 5, "to_currency": "EUR"}).json()

        assert rates["rates"] == {}
        assert rates["cache"]["state"] == "empty"
        assert converted["converted_amount"] == 5.0
        assert converted["formatted"] == "$5.00"


class TestDisplayEndpoints:
    """Test currency listing and formatting endpoints."""

    def test_currencies(self, client):
        data = client.get("/api/currencies").json()
        assert {"code": "GHS", "symbol": "GH₵"} in data["currencies"]
        assert data["emerging_markets"] == ["GHS", "KES", "NGN", "TZS", "UGX", "ZAR"]

    def test_format(self, client):
        data = client.get("/api/format", params={"amount": 6.99, "currency": "ngn"}).json()
        assert data["formatted"] == "₦6.99"
        assert data["symbol"] == "₦"

    def test_format_rejects_nan(self, client):
        response = client.get("/api/format", params={"amount": "nan", "currency": "USD"})
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestRateLimiting:
    """Test rate limiting middleware."""

    def test_rate_limit_headers_present(self, client):
        response = client.get("/api/currencies")
        assert response.headers["X-RateLimit-Limit"] == "60"

    def test_location_lookups_limited(self, client):
        statuses = [client.get("/api/location").status_code for _ in range(11)]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429

    def test_location_endpoints_share_one_allowance(self, client):
        paths = ["/api/location", "/api/pricing/local"] * 6
        statuses = [client.get(path).status_code for path in paths]
        assert statuses[:10] == [200] * 10
        assert statuses[10:] == [429, 429]

    def test_forwarded_header_does_not_reset_count(self, client):
        for i in range(10):
            client.get("/api/location", headers={"X-Forwarded-For": f"102.89.0.{i + 1}"})

        response = client.get("/api/location", headers={"X-Forwarded-For": "102.89.0.99"})
        assert response.status_code == 429

    @pytest.mark.parametrize(
        "path,group",
        [
            ("/api/location", "location"),
            ("/api/pricing/local", "location"),
            ("/api/rates/refresh", "rates"),
            ("/api/convert", "rates"),
            ("/api/pricing", "default"),
        ],
    )
    def test_limit_groups(self, path, group):
        assert get_limit_group(path) == group

    def test_client_id_uses_forwarded_header_only_when_trusted(self):
        request = Request({
            "type": "http",
            "headers": [(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")],
            "client": ("10.0.0.5", 51234),
        })

        assert get_client_id(request) == "10.0.0.5"
        assert get_client_id(request, trust_forwarded_for=True) == "203.0.113.7"
