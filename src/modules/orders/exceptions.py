"""Order domain exceptions.

Raised by the order service, builder and state machine; rendered by the
core API exception handler.
"""

from __future__ import annotations

from modules.core.exceptions import Conflict, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist or has been soft-deleted."""

    code = "order_not_found"


class OrderAlreadyPaid(Conflict):
    """``mark_paid`` was called on an order that is already paid."""

    code = "order_already_paid"


class InvalidOrderStatus(Conflict):
    """The requested transition is not allowed from the current status."""

    code = "invalid_order_status"
