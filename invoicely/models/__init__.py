from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from invoicely.constants import CURRENCY_SYMBOLS

CENT = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round to currency minor units, half away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency_code: str, use_symbol: bool = True) -> str:
    """Format an amount for display: Decimal('1234.5'), 'USD' -> '$1,234.50'

    Currencies without a known symbol, or any currency when ``use_symbol`` is
    False, are prefixed with their code: 'EUR 1,234.50'.
    """
    value = round2(amount)
    sign = "-" if value < 0 else ""
    formatted = f"{abs(value):,.2f}"
    code = (currency_code or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code) if use_symbol else None
    if symbol is None:
        return f"{sign}{code} {formatted}".strip()
    return f"{sign}{symbol}{formatted}"


def parse_money(text: str) -> Decimal | None:
    """Parse a user-typed amount. Returns None on invalid input.

    Accepts formats like '2850', '2850.5', '2,850.00', '$2,850.00'.
    """
    text = text.strip().lstrip("$").replace(",", "").strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return round2(value)


def format_quantity(quantity: Decimal) -> str:
    """Plain quantity without trailing zeros: Decimal('2.50') -> '2.5'"""
    text = f"{Decimal(quantity):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
