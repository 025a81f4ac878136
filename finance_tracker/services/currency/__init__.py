"""Currency conversion package."""

from finance_tracker.services.currency.converter import (
    CURRENCIES,
    FALLBACK_RATES,
    Currency,
    CurrencyConverter,
    get_currency,
)

__all__ = [
    "CURRENCIES",
    "FALLBACK_RATES",
    "Currency",
    "CurrencyConverter",
    "get_currency",
]
