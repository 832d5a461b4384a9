"""
Utility modules.

Common helpers for configuration loading and logging.
"""

from bodyverse.utils.config_loader import AppConfig, load_config, load_env
from bodyverse.utils.logging_config import setup_logging

__all__ = [
    "load_config",
    "load_env",
    "AppConfig",
    "setup_logging",
]
