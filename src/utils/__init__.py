"""
Utility modules.

Common helpers for logging and configuration loading.
"""

from src.utils.config_loader import AppConfig, load_config, load_env
from src.utils.logging_setup import setup_logging, setup_logging_from_config

__all__ = [
    "load_config",
    "load_env",
    "AppConfig",
    "setup_logging",
    "setup_logging_from_config",
]
