"""Product and stock DTOs.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``).

- ``CreateProductDTO`` / ``UpdateProductDTO``: catalog admin input.
- ``AdjustStockDTO``: admin restock input handled by the stock ledger.
- ``StockLineDTO``: one (product, quantity) pair handed to the ledger.
- ``StockCheckDTO``, ``StockShortageDTO``, ``StockChangeDTO``: ledger output.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.products.models import ProductCategory

# Fits the DecimalField(max_digits=12, decimal_places=2) money columns.
Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Rating = Annotated[Decimal, Field(ge=0, le=5, max_digits=2, decimal_places=1)]

# ---------------------------------------------------------------------------
# Catalog input
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    price: Money
    category: ProductCategory
    description: str = ""
    specs: Dict[str, Any] = Field(default_factory=dict)
    rating: Rating = Decimal("0")
    available_quantity: int = 0

    @field_validator("code", "name")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip()

    @field_validator("available_quantity")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock amount cannot be negative.")
        return v


class UpdateProductDTO(BaseModel):
    """Partial product update.  Stock is adjusted through ``AdjustStockDTO``."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    price: Optional[Money] = None
    category: Optional[ProductCategory] = None
    description: Optional[str] = None
    specs: Optional[Dict[str, Any]] = None
    rating: Optional[Rating] = None


class AdjustStockDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    available_quantity: int

    @field_validator("available_quantity")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock amount cannot be negative.")
        return v


# ---------------------------------------------------------------------------
# Stock ledger input / output
# ---------------------------------------------------------------------------


class StockLineDTO(BaseModel):
    """A quantity of one product, as stored on an order line."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    title: str = ""


class StockCheckDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    current_qty: int


class StockShortageDTO(BaseModel):
    """Why one line cannot be fulfilled."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    requested: int
    available: int
    found: bool = True

    def describe(self) -> str:
        if not self.found:
            return f"Product {self.product_name} not found"
        return (
            f"{self.product_name} - Only {self.available} available, "
            f"requested {self.requested}"
        )


class StockChangeDTO(BaseModel):
    """Result of a single ledger mutation."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    previous_qty: int
    delta: int
    new_qty: int
    in_stock: bool
