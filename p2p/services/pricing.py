"""Money arithmetic. Two fractional digits, rounded half-up."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

CENT = Decimal("0.01")


def money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price) -> Decimal:
    return money(Decimal(quantity) * money(unit_price))


def compute_totals(
    lines: Iterable[Tuple[int, Decimal]],
    tax=None,
    shipping=None,
) -> Tuple[Decimal, Decimal]:
    """Return (subtotal, total) for ``(quantity, unit_price)`` pairs."""
    subtotal = money(sum((line_total(q, p) for q, p in lines), Decimal("0")))
    return subtotal, money(subtotal + money(tax) + money(shipping))


def within_limit(limit: Optional[Decimal], amount) -> bool:
    """An approver may sign off amounts up to and including their limit."""
    if limit is None:
        return False
    return money(limit) >= money(amount)
