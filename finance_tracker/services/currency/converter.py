"""
Currency Conversion

Converts amounts between currencies using a table of rates relative to
the base currency (1 base unit = rate units of the currency), and
formats amounts with their currency symbol.

Fetching rates is someone else's job: callers hand a rate table to
update_rates(). FALLBACK_RATES is the static table used when no fresh
rates are available.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from finance_tracker.config import get_settings


logger = structlog.get_logger(__name__)


class Currency(BaseModel):
    """A supported currency."""

    code: str = Field(..., min_length=3, max_length=3)
    name: str
    symbol: str


CURRENCIES: tuple[Currency, ...] = (
    Currency(code="INR", name="Indian Rupee", symbol="₹"),
    Currency(code="USD", name="US Dollar", symbol="$"),
    Currency(code="EUR", name="Euro", symbol="€"),
    Currency(code="GBP", name="British Pound", symbol="£"),
    Currency(code="JPY", name="Japanese Yen", symbol="¥"),
    Currency(code="CAD", name="Canadian Dollar", symbol="C$"),
    Currency(code="AUD", name="Australian Dollar", symbol="A$"),
    Currency(code="CNY", name="Chinese Yuan", symbol="¥"),
    Currency(code="BRL", name="Brazilian Real", symbol="R$"),
    Currency(code="MXN", name="Mexican Peso", symbol="Mex$"),
)

# Relative to INR
FALLBACK_RATES: dict[str, Decimal] = {
    "INR": Decimal("1"),
    "USD": Decimal("0.012"),
    "EUR": Decimal("0.011"),
    "GBP": Decimal("0.0095"),
    "JPY": Decimal("1.81"),
    "CAD": Decimal("0.016"),
    "AUD": Decimal("0.018"),
    "CNY": Decimal("0.087"),
    "BRL": Decimal("0.061"),
    "MXN": Decimal("0.20"),
}

DEFAULT_SYMBOL = "₹"

_CURRENCIES_BY_CODE = {currency.code: currency for currency in CURRENCIES}


def get_currency(code: str) -> Optional[Currency]:
    return _CURRENCIES_BY_CODE.get(code.upper())


class CurrencyConverter:
    """
    Rate table plus conversion and display helpers.

    An empty rate table makes every conversion the identity; a code
    missing from a loaded table is treated as rate 1.
    """

    def __init__(
        self,
        rates: Optional[dict[str, Decimal]] = None,
        base_currency: Optional[str] = None,
    ):
        self._base_currency = (
            base_currency or get_settings().currency.base_currency
        ).upper()
        self._rates: dict[str, Decimal] = {}
        self._last_updated: Optional[datetime] = None
        if rates:
            self.update_rates(rates)

    @property
    def base_currency(self) -> str:
        return self._base_currency

    @property
    def rates(self) -> dict[str, Decimal]:
        return dict(self._rates)

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    def update_rates(self, rates: dict[str, Decimal]) -> None:
        """Replace the rate table. Values are coerced to Decimal."""
        self._rates = {
            code.upper(): Decimal(str(rate)) for code, rate in rates.items()
        }
        self._last_updated = datetime.now()
        logger.info(
            "exchange_rates_updated",
            base_currency=self._base_currency,
            currency_count=len(self._rates),
        )

    def use_fallback_rates(self) -> None:
        logger.warning("exchange_rates_fallback", base_currency=self._base_currency)
        self.update_rates(FALLBACK_RATES)

    def convert_amount(
        self,
        amount: Decimal,
        from_code: str,
        to_code: Optional[str] = None,
    ) -> Decimal:
        """Convert via the base currency: amount / rate(from) * rate(to)."""
        from_code = from_code.upper()
        to_code = (to_code or self._base_currency).upper()

        if from_code == to_code or not self._rates:
            return amount

        from_rate = self._rates.get(from_code) or Decimal("1")
        to_rate = self._rates.get(to_code) or Decimal("1")
        return amount / from_rate * to_rate

    def format_amount(self, amount: Decimal, code: Optional[str] = None) -> str:
        """Symbol followed by the amount with two decimals, e.g. ₹1500.00."""
        currency = get_currency(code or self._base_currency)
        symbol = currency.symbol if currency else DEFAULT_SYMBOL
        return f"{symbol}{Decimal(amount):.2f}"
