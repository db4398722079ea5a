"""Order state machine.

Decides whether a status change is allowed and applies its stock side
effects through the ledger.  Only two transitions touch stock:

- ``pending -> paid`` deducts every line (all or nothing);
- cancelling an order whose stock is deducted restores every line,
  before the status flips.

All other changes are bookkeeping.  ``Order.stock_deducted`` guarantees
that an order never holds more than one deduction.

The caller must hold the order row lock (``select_for_update``) and an
open transaction; ``apply`` mutates the aggregate in memory and records
its domain event, persisting is left to the repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

import structlog

from modules.core.exceptions import ValidationFailed
from modules.orders.constants import UNPAYABLE_STATES, OrderStatus
from modules.orders.events import OrderCancelled, OrderPaid, OrderStatusChanged
from modules.orders.exceptions import InvalidOrderStatus, OrderAlreadyPaid

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.products.dtos import StockChangeDTO
    from modules.products.ledger import StockLedger

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransitionOutcome:
    old_status: str
    new_status: str
    changed: bool
    stock_changes: List[StockChangeDTO] = field(default_factory=list)


class OrderStateMachine:
    def __init__(self, ledger: StockLedger) -> None:
        self._ledger = ledger

    def apply(self, order: Order, target: str, changed_by: str = "") -> TransitionOutcome:
        """Move ``order`` to ``target``.

        Raises:
            ValidationFailed: ``target`` is not a known status.
            OrderAlreadyPaid: the order is already paid.
            InvalidOrderStatus: the order can no longer be paid.
            InsufficientStock: paying would oversell a product; the
                order is left untouched.
        """
        if target not in OrderStatus.values:
            raise ValidationFailed(f"Unknown order status '{target}'.", attr="status")

        current = order.status
        log = logger.bind(
            order_id=str(order.id), ref=order.ref, old_status=current, new_status=target
        )

        if target == OrderStatus.PAID:
            return self._pay(order, changed_by, log)

        if target == current:
            log.debug("order.transition_noop")
            return TransitionOutcome(old_status=current, new_status=target, changed=False)

        if target == OrderStatus.CANCELLED:
            return self._cancel(order, changed_by, log)

        order.status = target
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                ref=order.ref,
                old_status=current,
                new_status=target,
                changed_by=changed_by,
            )
        )
        log.info("order.status_changed")
        return TransitionOutcome(old_status=current, new_status=target, changed=True)

    def _pay(self, order: Order, changed_by: str, log) -> TransitionOutcome:
        current = order.status
        if current == OrderStatus.PAID:
            log.warning("order.already_paid")
            raise OrderAlreadyPaid(
                f"Order {order.ref} has already been marked as paid.", attr="status"
            )
        if current in UNPAYABLE_STATES:
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Order {order.ref} is {current} and cannot be marked as paid.",
                attr="status",
            )

        changes: List[StockChangeDTO] = []
        if order.stock_deducted:
            log.info("order.stock_already_deducted")
        else:
            changes = self._ledger.deduct_all(order.stock_lines())
            order.stock_deducted = True

        order.status = OrderStatus.PAID
        order.add_domain_event(
            OrderPaid(
                aggregate_id=order.id,
                ref=order.ref,
                old_status=current,
                new_status=OrderStatus.PAID,
                changed_by=changed_by,
            )
        )
        log.info("order.paid", lines_deducted=len(changes))
        return TransitionOutcome(
            old_status=current,
            new_status=OrderStatus.PAID,
            changed=True,
            stock_changes=changes,
        )

    def _cancel(self, order: Order, changed_by: str, log) -> TransitionOutcome:
        current = order.status
        changes: List[StockChangeDTO] = []
        restored = order.stock_deducted
        if restored:
            changes = self._ledger.restore_all(order.stock_lines())
            order.stock_deducted = False

        order.status = OrderStatus.CANCELLED
        order.add_domain_event(
            OrderCancelled(
                aggregate_id=order.id,
                ref=order.ref,
                old_status=current,
                new_status=OrderStatus.CANCELLED,
                changed_by=changed_by,
                stock_restored=restored,
            )
        )
        log.info("order.cancelled", lines_restored=len(changes))
        return TransitionOutcome(
            old_status=current,
            new_status=OrderStatus.CANCELLED,
            changed=True,
            stock_changes=changes,
        )
