"""Django ORM implementation of the Product repository.

Missing or malformed IDs yield ``None`` (Null Object style); the service
layer and the stock ledger decide which domain error to raise.

Stock mutations are single conditional UPDATE statements evaluated by
the database against the current row, so two writers can never both
pass the ``available_quantity >= quantity`` check on stale reads.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Case, F, QuerySet, Value, When
from django.utils import timezone

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_code(self, code: str) -> Optional[Product]:
        return Product.objects.alive().filter(code=code.strip().upper()).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List live products, e.g. ``{"category": "frames", "in_stock": True}``."""
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), code=entity.code)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Stock primitives (used by StockLedger only)
    # ------------------------------------------------------------------

    def get_for_update(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def lock_many(self, ids: Iterable[str]) -> List[Product]:
        try:
            return list(
                Product.objects.alive()
                .select_for_update()
                .filter(id__in=list(ids))
                .order_by("id")
            )
        except (ValueError, ValidationError):
            return []

    def deduct_if_available(self, id: str, quantity: int) -> bool:
        updated = (
            Product.objects.alive()
            .filter(id=id, in_stock=True, available_quantity__gte=quantity)
            .update(
                # Must precede available_quantity: it reads the pre-update
                # value (old > qty <=> new > 0) and MySQL assigns left to right.
                in_stock=Case(
                    When(available_quantity__gt=quantity, then=Value(True)),
                    default=Value(False),
                ),
                available_quantity=F("available_quantity") - quantity,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def add_stock(self, id: str, quantity: int) -> bool:
        updated = (
            Product.objects.alive()
            .filter(id=id)
            .update(
                available_quantity=F("available_quantity") + quantity,
                in_stock=True,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def set_stock(self, id: str, quantity: int) -> bool:
        updated = (
            Product.objects.alive()
            .filter(id=id)
            .update(
                available_quantity=quantity,
                in_stock=quantity > 0,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def refresh_stock(self, product: Product) -> Product:
        product.refresh_from_db(fields=["available_quantity", "in_stock", "updated_at"])
        return product
