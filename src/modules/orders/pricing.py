"""Order money arithmetic.

All amounts are ``Decimal`` quantised to two places; totals never go
below zero.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Sum of ``unit_price * quantity`` over ``(unit_price, quantity)`` pairs."""
    return to_money(sum((to_money(price) * qty for price, qty in lines), ZERO))


def compute_total(subtotal: Decimal, shipping_fee: Decimal, discount: Decimal) -> Decimal:
    """``max(0, subtotal + shipping_fee - discount)``."""
    return max(ZERO, to_money(subtotal) + to_money(shipping_fee) - to_money(discount))
