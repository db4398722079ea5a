"""Order service layer (Use Cases).

Orchestrates order creation, status management, payment and
cancellation.  All write operations are atomic: the service defines the
unit-of-work boundary, locks the order row before any transition and
writes history and outbox rows in the same transaction.

Business rules enforced:
- New orders are validated and priced by ``OrderAggregateBuilder``.
- Status changes go through ``OrderStateMachine``; paying deducts stock,
  cancelling an order that holds deducted stock restores it.
- Every applied status change is recorded in the order history.
- ``total`` is recomputed whenever shipping fee or discount change.
- Every mutation requires an admin principal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.core.permissions import AdminPrincipal, require_admin
from modules.core.references import looks_like_ref, normalize_ref
from modules.orders.builder import OrderAggregateBuilder
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderAmountsChanged
from modules.orders.exceptions import OrderNotFound
from modules.orders.pricing import to_money
from modules.orders.state_machine import OrderStateMachine
from modules.products.ledger import StockLedger

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.core.references import ReferenceGenerator
    from modules.orders.dtos import CreateOrderDTO, UpdateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        references: Optional[ReferenceGenerator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._ledger = StockLedger(product_repository)
        self._builder = OrderAggregateBuilder(
            order_repository, product_repository, self._ledger, references=references
        )
        self._state_machine = OrderStateMachine(self._ledger)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place a new ``pending`` order.  No stock is deducted.

        Raises:
            InsufficientStock: one or more lines are missing or unavailable.
            ReferenceCollision: no unused reference could be minted.
        """
        order = self._builder.build(dto)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def update_status(
        self,
        order_id: str,
        new_status: str,
        principal: Optional[AdminPrincipal],
        notes: str = "",
    ) -> Order:
        """Transition an order to ``new_status``.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before consulting the state machine, so concurrent transitions on
        the same order are linearised.

        Raises:
            OrderNotFound: order does not exist.
            OrderAlreadyPaid / InvalidOrderStatus: transition not allowed.
            InsufficientStock: paying would oversell; nothing is changed.
        """
        require_admin(principal)
        order = self._lock(order_id)
        self._transition(order, new_status, principal, notes)
        return self._order_repo.get_by_id(str(order.id))

    def mark_paid(
        self, order_id: str, principal: Optional[AdminPrincipal], notes: str = ""
    ) -> Order:
        """``pending -> paid``: deduct stock for every line, all or nothing."""
        return self.update_status(
            order_id, OrderStatus.PAID, principal, notes=notes or "Marked as paid"
        )

    def cancel_order(
        self, order_id: str, principal: Optional[AdminPrincipal], notes: str = ""
    ) -> Order:
        """Cancel an order; a paid order gets its stock back first."""
        return self.update_status(
            order_id, OrderStatus.CANCELLED, principal, notes=notes or "Order cancelled"
        )

    @transaction.atomic
    def update_order(
        self, order_id: str, dto: UpdateOrderDTO, principal: Optional[AdminPrincipal]
    ) -> Order:
        """Admin edit: optional status change plus shipping fee / discount.

        The status change (with its stock effects) is applied first; if it
        fails, the amounts are not touched either.
        """
        require_admin(principal)
        order = self._lock(order_id)

        if dto.status is not None:
            self._transition(order, dto.status, principal, dto.notes)

        if dto.shipping_fee is not None or dto.discount is not None:
            if dto.shipping_fee is not None:
                order.shipping_fee = to_money(dto.shipping_fee)
            if dto.discount is not None:
                order.discount = to_money(dto.discount)
            order.recalculate_total()
            order.add_domain_event(
                OrderAmountsChanged(
                    aggregate_id=order.id,
                    ref=order.ref,
                    shipping_fee=str(order.shipping_fee),
                    discount=str(order.discount),
                    total=str(order.total),
                )
            )
            self._order_repo.save(order)
            logger.info(
                "order.amounts_updated",
                order_id=str(order.id),
                shipping_fee=str(order.shipping_fee),
                discount=str(order.discount),
                total=str(order.total),
                admin=str(principal),
            )

        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def delete_order(self, order_id: str, principal: Optional[AdminPrincipal]) -> None:
        """Soft-delete an order.  Stock is not touched.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        require_admin(principal)
        if not self._order_repo.delete(order_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        logger.info("order.deleted", order_id=str(order_id), admin=str(principal))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve an order by id, or by reference when given one.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        if looks_like_ref(order_id):
            return self.get_order_by_ref(order_id)
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_by_ref(self, ref: str) -> Order:
        order = self._order_repo.get_by_ref(normalize_ref(ref))
        if not order:
            raise OrderNotFound(f"Order {ref} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _transition(
        self, order: Order, new_status: str, principal: AdminPrincipal, notes: str
    ) -> None:
        outcome = self._state_machine.apply(order, new_status, changed_by=str(principal))
        if not outcome.changed:
            return
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=outcome.new_status,
            old_status=outcome.old_status,
            notes=notes,
            changed_by=str(principal),
        )
        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            ref=order.ref,
            old_status=outcome.old_status,
            new_status=outcome.new_status,
            admin=str(principal),
        )
