"""Customer contact message rendered when an order is placed.

The message is stored on the order as plain text with newlines; the
storefront encodes it for the messaging channel.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Protocol

from django.conf import settings


class MessageLine(Protocol):
    title: str
    quantity: int
    unit_price: Decimal


def format_amount(amount: Decimal) -> str:
    """Group thousands and drop a zero fractional part: ``1000 -> "1,000"``."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def render_line(line: MessageLine, currency: str) -> str:
    return f"• {line.title} x{line.quantity} — {currency}{format_amount(line.unit_price)}"


def render_contact_message(
    *,
    ref: str,
    full_name: str,
    phone: str,
    total: Decimal,
    lines: Iterable[MessageLine],
    currency: Optional[str] = None,
) -> str:
    currency = settings.STORE_CURRENCY_SYMBOL if currency is None else currency
    return "\n".join(
        [
            "Hello, I want to pay for my order.",
            f"Reference: {ref}",
            f"Name: {full_name}",
            f"Phone: {phone}",
            f"Total: {currency}{format_amount(total)}",
            "Items:",
            *(render_line(line, currency) for line in lines),
        ]
    )
