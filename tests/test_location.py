"""
Tests for the IP geolocation resolver.
"""

from unittest.mock import Mock, patch

import pytest
import requests
import responses

from bodyverse.geo.location import (
    DEFAULT_LOCATION,
    GeolocationError,
    LocationResolver,
    LocationResult,
    parse_location_payload,
)
from bodyverse.utils.config_loader import AppConfig
from tests.fixtures.geo_mocks import (
    TEST_API_KEY,
    add_location_response,
    mock_error_body,
    mock_location_body,
)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def resolver(config: AppConfig) -> LocationResolver:
    return LocationResolver(config, api_key=TEST_API_KEY)


class TestParseLocationPayload:
    """Tests for parse_location_payload."""

    def test_parses_country_and_currency(self) -> None:
        location = parse_location_payload(mock_location_body("KE", "KES"))
        assert location == LocationResult(country_code="KE", currency_code="KES")

    def test_missing_currency_defaults_to_usd(self) -> None:
        location = parse_location_payload({"country_code": "FR", "currency": None})
        assert location == LocationResult(country_code="FR", currency_code="USD")

    def test_missing_country_defaults_to_us(self) -> None:
        location = parse_location_payload({"currency": {"code": "eur"}})
        assert location == LocationResult(country_code="US", currency_code="EUR")

    def test_error_body_raises(self) -> None:
        with pytest.raises(GeolocationError, match="valid API Access Key"):
            parse_location_payload(mock_error_body())

    def test_non_object_raises(self) -> None:
        with pytest.raises(GeolocationError):
            parse_location_payload(["NG"])


class TestLocationResolver:
    """Tests for LocationResolver.resolve_location."""

    @patch("bodyverse.geo.location.requests.get")
    def test_no_api_key_skips_network(self, mock_get: Mock, config: AppConfig, monkeypatch) -> None:
        monkeypatch.delenv("IPSTACK_API_KEY", raising=False)
        resolver = LocationResolver(config)

        assert resolver.is_configured is False
        assert resolver.resolve_location() == LocationResult("US", "USD")
        mock_get.assert_not_called()

    def test_api_key_read_from_environment(self, config: AppConfig, monkeypatch) -> None:
        monkeypatch.setenv("IPSTACK_API_KEY", "  env-key  ")
        assert LocationResolver(config).api_key == "env-key"

    def test_blank_api_key_counts_as_missing(self, config: AppConfig, monkeypatch) -> None:
        monkeypatch.setenv("IPSTACK_API_KEY", "   ")
        assert LocationResolver(config).is_configured is False

    @responses.activate
    def test_successful_lookup(self, resolver: LocationResolver) -> None:
        add_location_response(mock_location_body("NG", "NGN"))

        location = resolver.resolve_location()

        assert location == LocationResult("NG", "NGN")
        assert len(responses.calls) == 1
        assert f"access_key={TEST_API_KEY}" in responses.calls[0].request.url

    @responses.activate
    def test_lookup_for_explicit_ip(self, resolver: LocationResolver) -> None:
        add_location_response(mock_location_body("GH", "GHS"), target="41.66.0.1")

        location = resolver.resolve_location("41.66.0.1")

        assert location == LocationResult("GH", "GHS")

    @responses.activate
    def test_api_error_body_returns_default(self, resolver: LocationResolver) -> None:
        add_location_response(mock_error_body())

        assert resolver.resolve_location() == DEFAULT_LOCATION

    @responses.activate
    def test_http_error_returns_default(self, resolver: LocationResolver) -> None:
        add_location_response({}, status=500)

        assert resolver.resolve_location() == DEFAULT_LOCATION

    @patch("bodyverse.geo.location.requests.get")
    def test_timeout_returns_default(self, mock_get: Mock, resolver: LocationResolver) -> None:
        mock_get.side_effect = requests.exceptions.Timeout()

        assert resolver.resolve_location() == LocationResult("US", "USD")
        assert mock_get.call_args.kwargs["timeout"] == 5.0

    @patch("bodyverse.geo.location.requests.get")
    def test_connection_error_returns_default(self, mock_get: Mock, resolver: LocationResolver) -> None:
        mock_get.side_effect = requests.exceptions.ConnectionError("DNS failure")

        assert resolver.resolve_location() == DEFAULT_LOCATION
        mock_get.assert_called_once()

    @patch("bodyverse.geo.location.requests.get")
    def test_failure_reason_reported_by_fetch(self, mock_get: Mock, resolver: LocationResolver) -> None:
        mock_get.side_effect = requests.exceptions.ConnectionError("DNS failure")

        location, source = resolver.fetch_location()

        assert location is None
        assert "connection" in source.lower()

    def test_build_url(self, resolver: LocationResolver) -> None:
        assert resolver.build_url() == "http://api.ipstack.com/check"
        assert resolver.build_url("  ") == "http://api.ipstack.com/check"
        assert resolver.build_url("8.8.8.8") == "http://api.ipstack.com/8.8.8.8"

    @pytest.mark.parametrize("ip", ["../x", "8.8.8.8/../admin", "check?x=1", "not-an-ip"])
    def test_build_url_rejects_non_ip_targets(self, resolver: LocationResolver, ip: str) -> None:
        with pytest.raises(GeolocationError, match="Invalid IP address"):
            resolver.build_url(ip)

    @patch("bodyverse.geo.location.requests.get")
    def test_invalid_ip_never_reaches_network(self, mock_get: Mock, resolver: LocationResolver) -> None:
        location, source = resolver.fetch_location("../x")

        assert location is None
        assert "Invalid IP address" in source
        assert resolver.resolve_location("../x") == DEFAULT_LOCATION
        mock_get.assert_not_called()

    def test_to_dict(self) -> None:
        assert DEFAULT_LOCATION.to_dict() == {"country_code": "US", "currency_code": "USD"}
