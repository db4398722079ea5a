"""Product model with stock-tracked availability.

Business rules implemented:
- Product ``code`` is unique and normalised to uppercase.
- Price cannot be negative.
- ``rating`` is a 0-5 score; ``specs`` holds free-form attributes
  (frame size, material, lens index) shown on the product page.
- ``available_quantity`` is never negative (DB check constraint).
- ``in_stock`` is derived: ``available_quantity > 0`` after every stock
  mutation.
- Stock fields are written only by ``modules.products.ledger.StockLedger``:
  saving an existing product never writes ``available_quantity`` or
  ``in_stock``.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)

STOCK_FIELDS = frozenset({"available_quantity", "in_stock"})


class ProductCategory(models.TextChoices):
    FRAMES = "frames", "Frames"
    LENSES = "lenses", "Lenses"
    EYEDROP = "eyedrop", "Eye drops"
    ACCESSORIES = "accessories", "Accessories"


class StockFieldWriteError(Exception):
    """Raised when code outside the stock ledger tries to save stock fields."""


class Product(SoftDeleteModel):
    """Catalog product.

    A new product may be created with an initial ``available_quantity``;
    ``in_stock`` is derived from it.  Afterwards only the stock ledger's
    conditional UPDATEs change either field.
    """

    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=20, choices=ProductCategory.choices)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    specs = models.JSONField(default=dict, blank=True)
    rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=Decimal("0.0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("5"))],
    )
    available_quantity = models.PositiveIntegerField(default=0)
    in_stock = models.BooleanField(default=False)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category"], name="products_category_idx"),
            models.Index(fields=["in_stock"], name="products_in_stock_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(rating__gte=0, rating__lte=5),
                name="products_rating_range",
            ),
            models.CheckConstraint(
                check=models.Q(available_quantity__gte=0),
                name="products_quantity_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.code:
            self.code = self.code.strip().upper()

        if is_new:
            self.in_stock = self.available_quantity > 0
        else:
            update_fields = kwargs.get("update_fields")
            if update_fields is None:
                kwargs["update_fields"] = [
                    field.name
                    for field in self._meta.concrete_fields
                    if not field.primary_key and field.name not in STOCK_FIELDS
                ]
            elif STOCK_FIELDS.intersection(update_fields):
                raise StockFieldWriteError(
                    "Stock fields can only be changed through StockLedger."
                )

        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product.created",
                product_id=str(self.id),
                code=self.code,
                available_quantity=self.available_quantity,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"
