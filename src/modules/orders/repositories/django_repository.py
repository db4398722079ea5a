"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so the
Order aggregate (Order + OrderItems) and its outbox rows are persisted
atomically.

Concurrency control on transitions uses ``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.outbox import record_domain_events
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ORDER_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        items = data.pop("items", [])
        order = Order(**data)
        order.save()

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=item["product_id"],
                    title=item["title"],
                    unit_price=item["unit_price"],
                    quantity=item["quantity"],
                    position=position,
                )
                for position, item in enumerate(items)
            ]
        )

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            ref=order.ref,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self) -> QuerySet:
        return Order.objects.alive().prefetch_related("items", "status_history")

    def get_by_id(self, id: str) -> Optional[Order]:
        """Return ``None`` for non-existent or invalid IDs."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_ref(self, ref: str) -> Optional[Order]:
        return self._base_queryset().filter(ref=ref).first()

    def ref_exists(self, ref: str) -> bool:
        return Order.objects.filter(ref=ref).exists()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List live orders, e.g. ``{"status": "paid"}``."""
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_for_update(self, id: str) -> Optional[Order]:
        """Lock the order row; items are prefetched after the lock."""
        try:
            return (
                Order.objects.alive()
                .select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and store its pending domain events."""
        entity.save()
        event_count = record_domain_events(entity, topic=ORDER_TOPIC)
        logger.debug("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete an order by ID."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id), ref=order.ref)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        changed_by: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            changed_by=changed_by,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
            changed_by=changed_by,
        )
        return history
