"""
Currency conversion between the base currency and transactional currencies.

Every stored amount is either in the base currency or carries the rate it
was captured at. A currency's conversion method says how a transactional
amount becomes a base amount:

    multiply: base = amount * rate   (rate = base units per foreign unit)
    divide:   base = amount / rate   (rate = foreign units per base unit)

No rounding is applied here; presentation layers round for display.
"""

from kasebyar.config import CurrencyConfig, get_settings
from kasebyar.core.entities.currency import ConversionMethod, Currency
from kasebyar.core.exceptions import CurrencyNotConfiguredError, InvalidExchangeRateError


def validate_rate(currency: Currency | str, rate: float) -> None:
    """Raise if ``rate`` cannot be used for ``currency``."""
    if rate is None or rate <= 0:
        raise InvalidExchangeRateError(str(Currency(currency).value), rate)


def convert(
    amount: float,
    from_currency: Currency | str,
    to_currency: Currency | str,
    rate: float,
    method: ConversionMethod | str,
    base_currency: Currency | str = Currency.AFN,
) -> float:
    """
    Convert ``amount`` between the base currency and a transactional one.

    ``rate`` and ``method`` describe the non-base side of the pair.
    """
    from_currency = Currency(from_currency)
    to_currency = Currency(to_currency)
    base_currency = Currency(base_currency)
    method = ConversionMethod(method)

    if from_currency == to_currency:
        return amount

    foreign = to_currency if from_currency == base_currency else from_currency
    validate_rate(foreign, rate)

    if to_currency == base_currency:
        return amount * rate if method == ConversionMethod.MULTIPLY else amount / rate
    if from_currency == base_currency:
        return amount / rate if method == ConversionMethod.MULTIPLY else amount * rate

    # Two foreign currencies need two rates; see CurrencyConverter.between().
    raise ValueError(
        f"convert() needs the base currency on one side, got {from_currency.value}->{to_currency.value}"
    )


class CurrencyConverter:
    """Conversion bound to the configured base currency and methods."""

    def __init__(
        self,
        base_currency: Currency | str | None = None,
        configs: dict[str, CurrencyConfig] | None = None,
    ) -> None:
        if base_currency is None or configs is None:
            settings = get_settings().currency
            base_currency = base_currency or settings.base_currency
            configs = configs if configs is not None else settings.configs
        self.base_currency = Currency(base_currency)
        self._configs = {Currency(code): cfg for code, cfg in configs.items()}

    def config(self, currency: Currency | str) -> CurrencyConfig:
        try:
            return self._configs[Currency(currency)]
        except (KeyError, ValueError):
            raise CurrencyNotConfiguredError(str(currency)) from None

    def method(self, currency: Currency | str) -> ConversionMethod:
        return ConversionMethod(self.config(currency).method)

    def effective_rate(self, currency: Currency | str, rate: float) -> float:
        """The base currency always trades at 1."""
        if Currency(currency) == self.base_currency:
            return 1.0
        validate_rate(currency, rate)
        return rate

    def to_base(self, amount: float, currency: Currency | str, rate: float) -> float:
        currency = Currency(currency)
        if currency == self.base_currency:
            return amount
        return convert(amount, currency, self.base_currency, rate, self.method(currency), self.base_currency)

    def to_transactional(self, amount: float, currency: Currency | str, rate: float) -> float:
        currency = Currency(currency)
        if currency == self.base_currency:
            return amount
        return convert(amount, self.base_currency, currency, rate, self.method(currency), self.base_currency)

    def between(
        self,
        amount: float,
        from_currency: Currency | str,
        from_rate: float,
        to_currency: Currency | str,
        to_rate: float,
    ) -> float:
        """Convert between two transactional currencies through base."""
        return self.to_transactional(
            self.to_base(amount, from_currency, from_rate), to_currency, to_rate
        )
