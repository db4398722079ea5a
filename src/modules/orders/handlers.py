"""Event handlers for Orders domain events.

Handlers run when the outbox relay publishes an event, after the
producing transaction has committed.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderAmountsChanged,
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    """Hands the customer contact message to the messaging channel."""

    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.contact_message_ready",
            order_id=str(event.aggregate_id),
            ref=event.ref,
            total=event.total,
            message_length=len(event.contact_message),
        )


class OrderPaidHandler(IEventHandler[OrderPaid]):
    def handle(self, event: OrderPaid) -> None:
        logger.info(
            "order.payment_confirmed",
            order_id=str(event.aggregate_id),
            ref=event.ref,
            changed_by=event.changed_by,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.cancellation_processed",
            order_id=str(event.aggregate_id),
            ref=event.ref,
            previous_status=event.old_status,
            stock_restored=event.stock_restored,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    """Audit log for every transition, paid and cancelled included."""

    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.status_change_processed",
            order_id=str(event.aggregate_id),
            ref=event.ref,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderAmountsChangedHandler(IEventHandler[OrderAmountsChanged]):
    def handle(self, event: OrderAmountsChanged) -> None:
        logger.info(
            "order.amounts_change_processed",
            order_id=str(event.aggregate_id),
            ref=event.ref,
            total=event.total,
        )


order_created_handler = OrderCreatedHandler()
order_paid_handler = OrderPaidHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_amounts_changed_handler = OrderAmountsChangedHandler()
