"""
FX rate provider module.

Builds exchange-rate snapshots (TRY per USD / EUR) from manual input, the
backend's latest-rate endpoint, or configured defaults. The pricing functions
never call this module; callers fetch a snapshot here and pass it in.
"""

import logging
from typing import Optional, Tuple, Dict
from decimal import Decimal

import requests

from src.pricing.currency import CurrencyCode, ExchangeRates, HOME_CURRENCY, normalize_currency
from src.pricing.exceptions import FXProviderError
from src.utils.config_loader import AppConfig, get_env_var


logger = logging.getLogger(__name__)

FOREIGN_CURRENCIES = (CurrencyCode.USD, CurrencyCode.EUR)


class FXProvider:
    """
    Provider for USD / EUR to TRY exchange rates.

    Supports:
    - Manual rate input per currency
    - Backend latest-rate fetching
    - Fallback to configured default rates (0 = not loaded)

    Attributes:
        config: Application configuration.
        manual_rates: Manually set rates by currency.
        current_rates: Last snapshot built by refresh().
    """

    def __init__(self, config: AppConfig) -> None:
        """
        Initialize the FX provider.

        Args:
            config: Application configuration with FX settings.
        """
        self.config = config
        self.manual_rates: Dict[CurrencyCode, float] = {}
        self.current_rates: Optional[ExchangeRates] = None

    def get_default_rates(self) -> ExchangeRates:
        """
        Get the default rates from configuration.

        Returns:
            ExchangeRates: Snapshot of configured default rates.
        """
        return ExchangeRates(
            usd=Decimal(str(self.config.fx.default_usd_rate)),
            eur=Decimal(str(self.config.fx.default_eur_rate)),
            source="default",
        )

    def set_manual_rate(self, currency: str, rate: float) -> None:
        """
        Set a manual FX rate for one currency.

        Args:
            currency: Foreign currency code (USD, EUR/EURO).
            rate: TRY per 1 unit of the currency.

        Raises:
            FXProviderError: If the currency has no exchange rate.
            ValueError: If rate is invalid (<=0).
        """
        code = normalize_currency(currency)
        if code is HOME_CURRENCY:
            raise FXProviderError(
                f"No exchange rate for currency: {currency}",
                details={"currency": str(currency)},
            )
        if rate <= 0:
            raise ValueError(f"Invalid FX rate: {rate}. Must be positive.")

        self.manual_rates[code] = rate
        self.current_rates = None
        logger.info(f"Manual FX rate set: {code.value}={rate}")

    def clear_manual_rates(self) -> None:
        """Forget all manual rates."""
        self.manual_rates.clear()
        self.current_rates = None

    def refresh(self) -> ExchangeRates:
        """
        Build a fresh snapshot, fetching from the backend if configured.

        Returns:
            ExchangeRates: New snapshot.
        """
        self.current_rates = get_exchange_rates(self.config, self.manual_rates)
        return self.current_rates

    def get_rates(self) -> ExchangeRates:
        """
        Get the current snapshot, building it on first use.

        Returns:
            ExchangeRates: Current snapshot.
        """
        if self.current_rates is None:
            return self.refresh()
        return self.current_rates

    def get_rate_info(self) -> dict:
        """
        Get information about the current rates.

        Returns:
            dict: Rate values, source, and whether all rates are loaded.
        """
        rates = self.get_rates()
        return {
            **rates.to_dict(),
            "is_loaded": rates.is_loaded,
            "manual": sorted(code.value for code in self.manual_rates),
        }


def fetch_backend_rate(config: AppConfig, currency: str) -> Tuple[Optional[float], str]:
    """
    Fetch the latest rate for one currency from the backend.

    The backend answers with its standard envelope:
    {"success": true, "data": 32.45, "message": null, "error": null, "traceId": "..."}

    Args:
        config: Application configuration with backend FX settings.
        currency: Foreign currency code.

    Returns:
        Tuple of (rate, source):
            - (float, "backend") if successful
            - (None, error_message) if failed
    """
    backend = config.fx.backend
    code = normalize_currency(currency)
    currency_id = backend.currency_ids.get(code.value, code.value)

    url = f"{backend.base_url.rstrip('/')}{backend.rate_endpoint}/{currency_id}"

    headers = {"Accept": "application/json"}
    token = get_env_var(backend.api_token_env)
    if token:
        headers["Authorization"] = f"Bearer {token}"

    logger.info(f"Fetching {code.value} rate from backend: {url}")

    try:
        response = requests.get(url, headers=headers, timeout=backend.timeout_seconds)
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            error_msg = f"Backend returned no {code.value} rate: {error or payload}"
            logger.warning(error_msg)
            return None, error_msg

        rate = float(payload.get("data"))
        if not rate > 0 or rate == float("inf"):
            error_msg = f"Backend returned unusable {code.value} rate: {rate}"
            logger.warning(error_msg)
            return None, error_msg

        logger.info(f"Successfully fetched backend {code.value} rate: {rate}")
        return rate, "backend"

    except requests.exceptions.Timeout:
        error_msg = f"Backend rate request timed out after {backend.timeout_seconds}s"
        logger.warning(error_msg)
        return None, error_msg

    except requests.exceptions.ConnectionError as e:
        error_msg = f"Connection error fetching backend rate: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except requests.exceptions.HTTPError as e:
        error_msg = f"HTTP error from backend: {e}"
        logger.warning(error_msg)
        return None, error_msg

    except (ValueError, TypeError) as e:
        error_msg = f"Failed to parse backend rate response: {e}"
        logger.warning(error_msg)
        return None, error_msg


def get_exchange_rates(
    config: AppConfig,
    manual_overrides: Optional[Dict] = None,
) -> ExchangeRates:
    """
    Build a rate snapshot based on config mode and optional manual overrides.

    Priority per currency:
    1. manual override (if provided and positive)
    2. backend fetch (if mode == "backend")
    3. default rate (fallback, 0 = not loaded)

    Args:
        config: Application configuration.
        manual_overrides: Optional {currency: rate} overrides.

    Returns:
        ExchangeRates: Snapshot; source names every source used.
    """
    overrides = {
        normalize_currency(key): value
        for key, value in (manual_overrides or {}).items()
    }
    defaults = {
        CurrencyCode.USD: config.fx.default_usd_rate,
        CurrencyCode.EUR: config.fx.default_eur_rate,
    }
    mode = (config.fx.mode or "manual").lower()

    rates: Dict[CurrencyCode, float] = {}
    sources = []

    for code in FOREIGN_CURRENCIES:
        # Priority 1: Manual override
        override = overrides.get(code)
        if override is not None:
            if override > 0:
                logger.info(f"Using manual {code.value} rate override: {override}")
                rates[code] = override
                sources.append(f"{code.value}:manual_override")
                continue
            logger.warning(f"Invalid manual {code.value} override {override}, ignoring")

        # Priority 2: Backend (if mode is backend)
        if mode == "backend":
            rate, source = fetch_backend_rate(config, code.value)
            if rate is not None:
                rates[code] = rate
                sources.append(f"{code.value}:{source}")
                continue
            logger.warning(
                f"Backend {code.value} fetch failed ({source}), "
                f"falling back to default rate: {defaults[code]}"
            )

        # Priority 3: Default rate
        rates[code] = defaults[code]
        sources.append(f"{code.value}:default")

    return ExchangeRates(
        usd=Decimal(str(rates[CurrencyCode.USD])),
        eur=Decimal(str(rates[CurrencyCode.EUR])),
        source=",".join(sources),
    )
