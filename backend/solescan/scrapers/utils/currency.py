"""Shared conversion of source prices into the display currency (CAD)."""

import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Optional

import httpx
import structlog

from solescan.config import settings

logger = structlog.get_logger(__name__)


class CurrencyConverter:
    """Manages exchange rates with periodic live updates.

    Fetches live rates from the configured exchange-rate endpoint and
    falls back to hardcoded rates if it is unavailable. Rates are held
    in memory for EXCHANGE_RATE_TTL seconds.
    """

    # Units of display currency per one unit of the source currency
    _FALLBACK_RATES: Dict[str, Decimal] = {
        "CAD": Decimal("1"),
        "USD": Decimal("1.36"),
        "EUR": Decimal("1.48"),
        "GBP": Decimal("1.72"),
        "JPY": Decimal("0.0091"),
    }

    _live_rates: Dict[str, Decimal] = {}
    _last_fetched: float = 0

    @classmethod
    async def refresh_rates(cls, client: Optional[httpx.AsyncClient] = None) -> bool:
        """Fetch live exchange rates.

        Args:
            client: Optional client to reuse (a short-lived one is created otherwise)

        Returns:
            True if rates were successfully updated
        """
        try:
            if client is None:
                async with httpx.AsyncClient(timeout=10) as own_client:
                    resp = await own_client.get(settings.EXCHANGE_RATE_API_URL)
            else:
                resp = await client.get(settings.EXCHANGE_RATE_API_URL)
            resp.raise_for_status()
            payload = resp.json()
            rates_from_display = payload.get("rates") if isinstance(payload, dict) else None
            if not isinstance(rates_from_display, dict):
                raise ValueError("exchange rate payload has no rates object")

            new_rates: Dict[str, Decimal] = {settings.DISPLAY_CURRENCY: Decimal("1")}
            for code in cls._FALLBACK_RATES:
                rate = rates_from_display.get(code)
                if rate and float(rate) > 0:
                    # Endpoint quotes display->X, conversion needs X->display
                    new_rates[code] = (Decimal("1") / Decimal(str(rate))).quantize(Decimal("0.0001"))
        except (httpx.HTTPError, ValueError, TypeError, InvalidOperation) as e:
            logger.warning("exchange_rate_fetch_failed", error=str(e))
            return False

        cls._live_rates = new_rates
        cls._last_fetched = time.time()
        logger.info("exchange_rates_updated", rates={k: str(v) for k, v in new_rates.items()})
        return True

    @classmethod
    def get_rate(cls, currency: str) -> Decimal:
        """Rate from ``currency`` to the display currency; unknown codes are 1:1."""
        currency = (currency or "").upper()
        if cls._live_rates and (time.time() - cls._last_fetched < settings.EXCHANGE_RATE_TTL):
            return cls._live_rates.get(currency, cls._FALLBACK_RATES.get(currency, Decimal("1")))
        return cls._FALLBACK_RATES.get(currency, Decimal("1"))

    @classmethod
    def reset(cls) -> None:
        """Forget live rates."""
        cls._live_rates = {}
        cls._last_fetched = 0


def to_display_currency(amount: Decimal, currency: str) -> Decimal:
    """Convert a source price into the display currency.

    Prices already in the display currency pass through untouched;
    converted prices are whole units rounded half-up.
    """
    amount = Decimal(amount)
    if (currency or "").upper() == settings.DISPLAY_CURRENCY:
        return amount
    converted = amount * CurrencyConverter.get_rate(currency)
    return converted.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
