"""Tests for currency conversion and formatting."""

from decimal import Decimal

from finance_tracker.services.currency import (
    FALLBACK_RATES,
    CurrencyConverter,
    get_currency,
)


class TestCurrencyConverter:
    """Tests for conversion through the base currency."""

    def test_identity_without_rates(self):
        converter = CurrencyConverter(base_currency="INR")
        assert converter.convert_amount(Decimal("50"), "USD") == Decimal("50")
        assert converter.last_updated is None

    def test_same_currency(self):
        converter = CurrencyConverter(rates=FALLBACK_RATES, base_currency="INR")
        assert converter.convert_amount(Decimal("50"), "inr", "INR") == Decimal("50")

    def test_to_base(self):
        converter = CurrencyConverter(rates=FALLBACK_RATES, base_currency="INR")
        assert converter.convert_amount(Decimal("12"), "USD") == Decimal("1000")

    def test_from_base(self):
        converter = CurrencyConverter(rates=FALLBACK_RATES, base_currency="INR")
        assert converter.convert_amount(Decimal("1000"), "INR", "USD") == Decimal("12")

    def test_unknown_code_uses_rate_one(self):
        converter = CurrencyConverter(rates=FALLBACK_RATES, base_currency="INR")
        assert converter.convert_amount(Decimal("100"), "XYZ") == Decimal("100")

    def test_update_rates(self):
        converter = CurrencyConverter(base_currency="INR")
        converter.update_rates({"usd": 0.5})

        assert converter.rates == {"USD": Decimal("0.5")}
        assert converter.last_updated is not None
        assert converter.convert_amount(Decimal("10"), "USD") == Decimal("20")

    def test_use_fallback_rates(self):
        converter = CurrencyConverter(base_currency="INR")
        converter.use_fallback_rates()
        assert converter.rates == FALLBACK_RATES


class TestFormatting:
    """Tests for display formatting."""

    def test_format_base(self):
        converter = CurrencyConverter(base_currency="INR")
        assert converter.format_amount(Decimal("1500")) == "₹1500.00"

    def test_format_other_currency(self):
        converter = CurrencyConverter(base_currency="INR")
        assert converter.format_amount(Decimal("12.5"), "USD") == "$12.50"
        assert converter.format_amount(Decimal("3"), "MXN") == "Mex$3.00"

    def test_unknown_currency_uses_rupee(self):
        converter = CurrencyConverter(base_currency="INR")
        assert converter.format_amount(Decimal("7"), "XYZ") == "₹7.00"

    def test_get_currency(self):
        assert get_currency("eur").symbol == "€"
        assert get_currency("XYZ") is None
