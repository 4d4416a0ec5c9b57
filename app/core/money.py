"""Money handling utilities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple


class Currency(NamedTuple):
    """Display metadata for a supported currency."""
    code: str
    symbol: str
    name: str
    is_default: bool = False


CURRENCIES = {
    'RUB': Currency('RUB', '₽', 'Российский рубль', is_default=True),
    'USD': Currency('USD', '$', 'Доллар США'),
    'EUR': Currency('EUR', '€', 'Евро'),
    'AMD': Currency('AMD', '֏', 'Армянский драм'),
    'GEL': Currency('GEL', '₾', 'Грузинский лари'),
    'KZT': Currency('KZT', '₸', 'Казахстанский тенге'),
    'BYN': Currency('BYN', 'Br', 'Белорусский рубль'),
}

# Common currency codes supported
SUPPORTED_CURRENCIES = list(CURRENCIES)

ZERO = Decimal('0')
CENT = Decimal('0.01')
# Numeric(14, 2) columns
MAX_AMOUNT = Decimal('10') ** 12


def to_decimal(value) -> Decimal:
    """Convert int/float/str to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def currency_symbol(code: str) -> str:
    currency = CURRENCIES.get(code)
    return currency.symbol if currency else code


def format_money(amount, currency: str = 'RUB', places: int = 2) -> str:
    """Format an amount the way the dashboard shows it: '50 000 ₽'.

    Thousands are grouped with spaces and trailing zero fractions are dropped,
    so 1500.00 renders as '1 500 ₽' and 1500.5 as '1 500,5 ₽'.
    """
    quantum = Decimal(1).scaleb(-places)
    rounded = to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)

    integral, _, fraction = f"{abs(rounded):,.{places}f}".partition('.')
    formatted = integral.replace(',', ' ')
    fraction = fraction.rstrip('0')
    if fraction:
        formatted = f"{formatted},{fraction}"
    if rounded < 0:
        formatted = f"-{formatted}"

    return f"{formatted} {currency_symbol(currency)}"


class Money:
    """Immutable money value with currency."""

    def __init__(self, amount, currency='RUB'):
        """Initialize Money with automatic Decimal conversion."""
        self._amount = to_decimal(amount)
        self._currency = currency

    @property
    def amount(self) -> Decimal:
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f'<Money {self.amount} {self.currency}>'

    def __eq__(self, other):
        if isinstance(other, Money):
            return self.amount == other.amount and self.currency == other.currency
        return NotImplemented

    def __hash__(self):
        return hash((self.amount, self.currency))

    def format(self, places: int = 2) -> str:
        """Format money for display."""
        return format_money(self.amount, self.currency, places)

    @classmethod
    def zero(cls, currency: str = 'RUB') -> 'Money':
        """Create zero money value."""
        return cls(ZERO, currency)


def parse_money(value: str, currency: str = 'RUB') -> Money:
    """Parse money from user input string ('50 000,50' -> 50000.50)."""
    if not value:
        return Money.zero(currency)

    # Remove common formatting
    cleaned = str(value).replace(' ', '').replace('\u00a0', '').replace(',', '.')

    try:
        return Money(Decimal(cleaned), currency)
    except InvalidOperation:
        raise ValueError(f"Invalid money value: {value}")


def to_cents(value) -> Decimal:
    """Stored form of a user-entered amount: finite, below MAX_AMOUNT, rounded to cents."""
    try:
        amount = to_decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid money value: {value}")
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        raise ValueError(f"Amount out of range: {value}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
