from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0.00")
_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def percent_of(part: Decimal, total: Decimal) -> Decimal:
    """Return ``part`` as a percentage of ``total``; 0 when ``total`` is 0."""
    if not total:
        return Decimal(0)
    return Decimal(part) / Decimal(total) * 100


def format_amount(amount: Decimal, *, signed: bool = False) -> str:
    value = Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    text = f"{abs(value):,.2f}"
    if value < 0:
        return f"-{text}"
    if signed and value > 0:
        return f"+{text}"
    return text


def round_percent(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_TENTH, rounding=ROUND_HALF_UP)


def format_percent(value: Decimal) -> str:
    return f"{round_percent(value)}%"
