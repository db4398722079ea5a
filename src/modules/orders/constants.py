"""Order domain constants.

Status choices for the order state machine and the statuses from which
an order can no longer be paid.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


# Statuses an order may never return to ``paid`` from.
UNPAYABLE_STATES: set[str] = {
    OrderStatus.CANCELLED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
}
