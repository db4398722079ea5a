"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- ``ref`` is unique and never changes after creation.
- Items are a snapshot (title, unit price, quantity) taken when the order
  is placed; ``product_id`` is a weak reference so deleting a product
  never touches past orders.
- ``subtotal`` is fixed at creation; ``total`` is recomputed from it
  whenever shipping fee or discount change, and never goes below zero.
- ``stock_deducted`` records whether the ledger currently holds a
  deduction for this order, so deduction and restore each run at most
  once.
- Every status change generates a history record.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import OrderStatus
from modules.orders.pricing import compute_total
from modules.products.dtos import StockLineDTO
from shared.domain.events import DomainEventMixin

MONEY = {"max_digits": 12, "decimal_places": 2}


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``ref`` is the human-readable identifier (``GLS-YYYYMMDD-XXXX``) given
    to the customer; the UUIDv7 ``id`` is used for internal references.
    """

    ref: models.CharField = models.CharField(max_length=32, unique=True, editable=False)
    customer_full_name: models.CharField = models.CharField(max_length=255)
    customer_phone: models.CharField = models.CharField(max_length=32)
    customer_email: models.EmailField = models.EmailField(blank=True, default="")
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    subtotal: models.DecimalField = models.DecimalField(
        **MONEY, validators=[MinValueValidator(Decimal("0.00"))], editable=False
    )
    shipping_fee: models.DecimalField = models.DecimalField(
        **MONEY, default=Decimal("0.00"), validators=[MinValueValidator(Decimal("0.00"))]
    )
    discount: models.DecimalField = models.DecimalField(
        **MONEY, default=Decimal("0.00"), validators=[MinValueValidator(Decimal("0.00"))]
    )
    total: models.DecimalField = models.DecimalField(
        **MONEY, validators=[MinValueValidator(Decimal("0.00"))]
    )
    contact_message: models.TextField = models.TextField(blank=True, default="")
    stock_deducted: models.BooleanField = models.BooleanField(default=False)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["customer_email"], name="orders_email_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(shipping_fee__gte=0, discount__gte=0, total__gte=0),
                name="orders_amounts_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Amounts
    # ------------------------------------------------------------------

    def recalculate_total(self) -> Decimal:
        self.total = compute_total(self.subtotal, self.shipping_fee, self.discount)
        return self.total

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def stock_lines(self) -> List[StockLineDTO]:
        """Items as ledger lines, in stored order."""
        return [
            StockLineDTO(product_id=item.product_id, quantity=item.quantity, title=item.title)
            for item in self.items.all()
        ]

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.ref} ({self.status})"


class OrderItem(BaseModel):
    """Snapshot line of an order.

    ``product_id`` is not a foreign key: the product may be deleted
    later while the order keeps its title and price.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id: models.UUIDField = models.UUIDField(db_index=True)
    title: models.CharField = models.CharField(max_length=255)
    unit_price: models.DecimalField = models.DecimalField(
        **MONEY, validators=[MinValueValidator(Decimal("0.00"))]
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    position: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def __str__(self) -> str:
        return f"{self.title} x{self.quantity}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Audit records are immutable, so this inherits ``BaseModel`` rather
    than ``SoftDeleteModel``.  ``changed_by`` holds the admin username;
    blank means the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    changed_by: models.CharField = models.CharField(max_length=150, blank=True, default="")
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"

