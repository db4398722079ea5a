"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and the Service layer.
DTOs are immutable (``frozen=True``).

- ``CustomerInfoDTO``: contact snapshot stored on the order.
- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``UpdateOrderDTO``: admin edit of status and amounts.
- ``StatusChangeDTO``: admin status transition with an audit note.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.orders.constants import OrderStatus
from modules.products.dtos import Money

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CustomerInfoDTO(BaseModel):
    """Who to contact about the order.  Name and phone are required."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    phone: str
    email: str = ""

    @field_validator("full_name", "phone")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Customer name and phone are required.")
        return v.strip()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> str:
        return (v or "").strip().lower()


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    The storefront sends ``product_id`` and ``quantity``; ``title`` is only
    used to name a line whose product cannot be found.  Title and unit
    price are resolved from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    title: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one item.
    - Each product appears at most once.
    - Shipping fee and discount are non-negative amounts that fit the
      order columns (12 digits, 2 decimal places).
    """

    model_config = ConfigDict(frozen=True)

    customer: CustomerInfoDTO
    items: List[CreateOrderItemDTO]
    shipping_fee: Money = Decimal("0")
    discount: Money = Decimal("0")

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self) -> CreateOrderDTO:
        """Prevent duplicate product IDs in the same order."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate products in order. Merge the quantities.")
        return self


class UpdateOrderDTO(BaseModel):
    """Partial admin update; ``None`` means leave unchanged."""

    model_config = ConfigDict(frozen=True)

    status: Optional[OrderStatus] = None
    shipping_fee: Optional[Money] = None
    discount: Optional[Money] = None
    notes: str = ""


class StatusChangeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    notes: str = ""
