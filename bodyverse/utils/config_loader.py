"""
Configuration loader module.

Loads application configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class RatesConfig:
    """Exchange rate API configuration."""

    base_url: str = "https://api.exchangerate-api.com/v4/latest"
    base_currency: str = "USD"
    timeout_seconds: float = 5.0


@dataclass
class GeolocationConfig:
    """IP geolocation (ipstack) configuration."""

    api_key_env: str = "IPSTACK_API_KEY"
    base_url: str = "http://api.ipstack.com"
    timeout_seconds: float = 5.0


@dataclass
class RateLimitSettings:
    """Per-client request limits (requests per minute)."""

    enabled: bool = True
    default_rpm: int = 60
    location_rpm: int = 10
    rates_rpm: int = 30
    trust_forwarded_for: bool = False


@dataclass
class ServerConfig:
    """Web server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    file: str | None = None


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections into a single object.
    """

    rates: RatesConfig = field(default_factory=RatesConfig)
    geolocation: GeolocationConfig = field(default_factory=GeolocationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_env(env_file: Path = Path(".env")) -> None:
    """
    Load environment variables from .env file.

    Args:
        env_file: Path to .env file.
    """
    if env_file.exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from: {env_file}")
    else:
        logger.debug(f"No .env file found at: {env_file}")


def load_config(config_file: Path = Path("config/config.yaml")) -> AppConfig:
    """
    Load application configuration from YAML file.

    Args:
        config_file: Path to configuration YAML file.

    Returns:
        AppConfig: Loaded configuration object.

    Raises:
        yaml.YAMLError: If config file is invalid.
    """
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}. Using defaults.")
        return AppConfig()

    with open(config_file, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        return AppConfig()

    config = _parse_config(raw_config)
    logger.info(f"Loaded configuration from: {config_file}")
    return config


def _parse_config(raw: dict[str, Any]) -> AppConfig:
    """
    Parse raw YAML dict into AppConfig dataclass.

    Args:
        raw: Raw dictionary from YAML file.

    Returns:
        AppConfig: Parsed configuration object.
    """
    rates_raw = raw.get("rates") or {}
    rates = RatesConfig(
        base_url=rates_raw.get("base_url", RatesConfig.base_url).rstrip("/"),
        base_currency=str(rates_raw.get("base_currency", "USD")).upper(),
        timeout_seconds=float(rates_raw.get("timeout_seconds", 5.0)),
    )

    geo_raw = raw.get("geolocation") or {}
    geolocation = GeolocationConfig(
        api_key_env=geo_raw.get("api_key_env", "IPSTACK_API_KEY"),
        base_url=geo_raw.get("base_url", GeolocationConfig.base_url).rstrip("/"),
        timeout_seconds=float(geo_raw.get("timeout_seconds", 5.0)),
    )

    server_raw = raw.get("server") or {}
    limit_raw = server_raw.get("rate_limit") or {}
    server = ServerConfig(
        host=server_raw.get("host", "127.0.0.1"),
        port=int(server_raw.get("port", 8000)),
        rate_limit=RateLimitSettings(
            enabled=bool(limit_raw.get("enabled", True)),
            default_rpm=int(limit_raw.get("default_rpm", 60)),
            location_rpm=int(limit_raw.get("location_rpm", 10)),
            rates_rpm=int(limit_raw.get("rates_rpm", 30)),
            trust_forwarded_for=bool(limit_raw.get("trust_forwarded_for", False)),
        ),
    )

    logging_raw = raw.get("logging") or {}
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", "text"),
        file=logging_raw.get("file"),
    )

    return AppConfig(
        rates=rates,
        geolocation=geolocation,
        server=server,
        logging=logging_config,
    )


def get_env_var(key: str, default: str | None = None) -> str | None:
    """
    Get an environment variable with optional default.

    Args:
        key: Environment variable name.
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(key, default)


def get_geolocation_api_key(config: AppConfig | None = None) -> str | None:
    """
    Get the geolocation access key from environment.

    Empty or whitespace-only values count as unset.

    Returns:
        API key if set, None otherwise.
    """
    env_name = config.geolocation.api_key_env if config else GeolocationConfig.api_key_env
    value = get_env_var(env_name)
    if value is None or not value.strip():
        return None
    return value.strip()
