from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(amount) -> Decimal:
    """Convert an int, float, str or Decimal to Decimal without float noise."""
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def format_currency(amount, symbol: str = "$") -> str:
    """Format an amount as a USD string, e.g. Decimal('1234.5') -> '$1,234.50'."""
    value = to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
