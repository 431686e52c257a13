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
class CurrencyConfig:
    """Currency display configuration."""

    locale: str = "tr-TR"


@dataclass
class RoundingConfig:
    """Price rounding configuration."""

    decimal_places: int = 2


@dataclass
class BackendFXConfig:
    """Backend latest-rate endpoint configuration."""

    base_url: str = "https://localhost:7001"
    rate_endpoint: str = "/api/dovizkuru"
    timeout_seconds: int = 10
    api_token_env: str = "BACKEND_API_TOKEN"
    # Currency code -> backend currency id
    currency_ids: dict[str, str] = field(default_factory=lambda: {"USD": "USD", "EUR": "EURO"})


@dataclass
class FXConfig:
    """FX rate configuration."""

    mode: str = "backend"  # "backend" or "manual"
    default_usd_rate: float = 0.0
    default_eur_rate: float = 0.0
    backend: BackendFXConfig = field(default_factory=BackendFXConfig)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: str | None = None
    json_format: bool = False


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections into a single object.
    """

    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    rounding: RoundingConfig = field(default_factory=RoundingConfig)
    fx: FXConfig = field(default_factory=FXConfig)
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
    config_file = Path(config_file)
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
    # Parse currency config
    currency_raw = raw.get("currency") or {}
    currency = CurrencyConfig(
        locale=currency_raw.get("locale", "tr-TR"),
    )

    # Parse rounding config
    rounding_raw = raw.get("rounding") or {}
    rounding = RoundingConfig(
        decimal_places=int(rounding_raw.get("decimal_places", 2)),
    )

    # Parse FX config
    fx_raw = raw.get("fx") or {}
    backend_raw = fx_raw.get("backend") or {}
    backend = BackendFXConfig(
        base_url=os.environ.get("BACKEND_API_URL", backend_raw.get("base_url", "https://localhost:7001")),
        rate_endpoint=backend_raw.get("rate_endpoint", "/api/dovizkuru"),
        timeout_seconds=backend_raw.get("timeout_seconds", 10),
        api_token_env=backend_raw.get("api_token_env", "BACKEND_API_TOKEN"),
        currency_ids={
            "USD": "USD",
            "EUR": "EURO",
            **(backend_raw.get("currency_ids") or {}),
        },
    )
    fx = FXConfig(
        mode=fx_raw.get("mode", "backend"),
        default_usd_rate=float(fx_raw.get("default_usd_rate", 0.0)),
        default_eur_rate=float(fx_raw.get("default_eur_rate", 0.0)),
        backend=backend,
    )

    # Parse logging config
    logging_raw = raw.get("logging") or {}
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        log_file=logging_raw.get("log_file"),
        json_format=bool(logging_raw.get("json_format", False)),
    )

    return AppConfig(
        currency=currency,
        rounding=rounding,
        fx=fx,
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
