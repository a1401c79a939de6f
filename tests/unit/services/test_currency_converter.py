"""Tests for currency conversion."""

import pytest

from kasebyar.core.entities import ConversionMethod, Currency
from kasebyar.core.exceptions import CurrencyNotConfiguredError, InvalidExchangeRateError
from kasebyar.core.services import CurrencyConverter, convert


class TestConvert:
    def test_same_currency_is_identity(self):
        assert convert(123.0, "USD", "USD", 0, ConversionMethod.MULTIPLY) == 123.0

    def test_multiply_to_base(self):
        assert convert(10.0, Currency.USD, Currency.AFN, 70.0, "multiply") == 700.0

    def test_multiply_from_base(self):
        assert convert(700.0, Currency.AFN, Currency.USD, 70.0, "multiply") == 10.0

    def test_divide_to_base(self):
        assert convert(10000.0, Currency.IRT, Currency.AFN, 500.0, "divide") == 20.0

    def test_divide_from_base(self):
        assert convert(20.0, Currency.AFN, Currency.IRT, 500.0, "divide") == 10000.0

    @pytest.mark.parametrize("rate", [0, -1.5])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(InvalidExchangeRateError):
            convert(10.0, "USD", "AFN", rate, "multiply")

    def test_two_foreign_currencies_need_base(self):
        with pytest.raises(ValueError):
            convert(10.0, "USD", "IRT", 70.0, "multiply")


class TestCurrencyConverter:
    def test_to_base(self, converter):
        assert converter.to_base(10.0, "USD", 70.0) == 700.0
        assert converter.to_base(10000.0, "IRT", 500.0) == 20.0

    def test_base_currency_ignores_rate(self, converter):
        assert converter.to_base(500.0, "AFN", 0) == 500.0
        assert converter.effective_rate(Currency.AFN, 42.0) == 1.0

    def test_effective_rate_validates_foreign(self, converter):
        assert converter.effective_rate("USD", 70.0) == 70.0
        with pytest.raises(InvalidExchangeRateError):
            converter.effective_rate("USD", 0)

    def test_to_transactional(self, converter):
        assert converter.to_transactional(700.0, "USD", 70.0) == pytest.approx(10.0)

    def test_between_goes_through_base(self, converter):
        # 10 USD -> 700 AFN -> 350000 IRT
        assert converter.between(10.0, "USD", 70.0, "IRT", 500.0) == pytest.approx(350000.0)

    def test_unknown_config(self):
        partial = CurrencyConverter(base_currency="AFN", configs={})
        with pytest.raises(CurrencyNotConfiguredError):
            partial.to_base(1.0, "USD", 70.0)

    def test_defaults_from_settings(self):
        default = CurrencyConverter()
        assert default.base_currency == Currency.AFN
        assert default.method("USD") == ConversionMethod.MULTIPLY
        assert default.method("IRT") == ConversionMethod.DIVIDE
