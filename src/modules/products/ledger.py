"""Stock ledger: the only writer of ``available_quantity`` / ``in_stock``.

Every mutation runs inside ``transaction.atomic`` and is expressed as a
conditional UPDATE (compare-and-swap on the quantity), after locking the
affected rows in primary-key order.  Concurrent deductions for the same
product are therefore linearised and can never drive the quantity below
zero, and a multi-line deduction either applies to every line or to none.

``restore`` is deliberately not idempotent; the order state machine
guarantees it runs at most once per cancellation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.exceptions import ValidationFailed
from modules.products.dtos import (
    StockChangeDTO,
    StockCheckDTO,
    StockLineDTO,
    StockShortageDTO,
)
from modules.products.exceptions import InsufficientStock, ProductNotFound

if TYPE_CHECKING:
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockLedger:
    """Per-product available-quantity counter and its mutation rules."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._repo = product_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_availability(self, product_id: UUID, quantity: int) -> StockCheckDTO:
        """Read-only check; never raises for a missing product."""
        product = self._repo.get_by_id(str(product_id))
        if product is None:
            return StockCheckDTO(available=False, current_qty=0)
        return StockCheckDTO(
            available=product.in_stock and product.available_quantity >= quantity,
            current_qty=product.available_quantity,
        )

    # ------------------------------------------------------------------
    # Single-product commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def deduct(self, product_id: UUID, quantity: int) -> StockChangeDTO:
        """Subtract ``quantity`` from one product.

        Raises:
            ProductNotFound: the product does not exist.
            InsufficientStock: out of stock or not enough quantity.
        """
        _require_positive(quantity)
        product = self._repo.get_for_update(str(product_id))
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found.")
        return self._apply_deduction(product, quantity)

    @transaction.atomic
    def restore(self, product_id: UUID, quantity: int) -> StockChangeDTO:
        """Add ``quantity`` back and re-enable sale unconditionally.

        Raises:
            ProductNotFound: the product does not exist.
        """
        _require_positive(quantity)
        product = self._repo.get_for_update(str(product_id))
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found.")
        return self._apply_restore(product, quantity)

    @transaction.atomic
    def set_quantity(self, product_id: UUID, quantity: int) -> Product:
        """Overwrite the available quantity (admin restock or correction)."""
        if quantity < 0:
            raise ValidationFailed(
                "Stock amount cannot be negative.", attr="available_quantity"
            )
        product = self._repo.get_for_update(str(product_id))
        if product is None or not self._repo.set_stock(str(product.id), quantity):
            raise ProductNotFound(f"Product {product_id} not found.")
        previous = product.available_quantity
        product = self._repo.refresh_stock(product)
        logger.info(
            "stock.adjusted",
            product_id=str(product.id),
            previous_qty=previous,
            new_qty=product.available_quantity,
            in_stock=product.in_stock,
        )
        return product

    # ------------------------------------------------------------------
    # Multi-line commands (one order transition)
    # ------------------------------------------------------------------

    @transaction.atomic
    def deduct_all(self, lines: Sequence[StockLineDTO]) -> List[StockChangeDTO]:
        """Deduct every line or none of them.

        All products are locked and validated before the first write.  If
        any line cannot be fulfilled, ``InsufficientStock`` lists every
        offending line and nothing is written; a conditional UPDATE that
        still misses (a concurrent writer on a database without row locks)
        raises the same error and rolls the whole transaction back.
        """
        requested = _aggregate(lines)
        locked = {str(p.id): p for p in self._repo.lock_many(requested)}

        shortages: List[StockShortageDTO] = []
        for product_id, (quantity, title) in requested.items():
            product = locked.get(product_id)
            if product is None:
                shortages.append(
                    StockShortageDTO(
                        product_id=UUID(product_id),
                        product_name=title or product_id,
                        requested=quantity,
                        available=0,
                        found=False,
                    )
                )
            elif not product.in_stock or product.available_quantity < quantity:
                shortages.append(_shortage(product, quantity))

        if shortages:
            logger.warning(
                "stock.deduction_rejected",
                shortages=[s.describe() for s in shortages],
            )
            raise InsufficientStock(shortages)

        return [
            self._apply_deduction(locked[product_id], quantity)
            for product_id, (quantity, _) in requested.items()
        ]

    @transaction.atomic
    def restore_all(self, lines: Sequence[StockLineDTO]) -> List[StockChangeDTO]:
        """Restore every line whose product still exists.

        Lines pointing at deleted products are skipped and logged; an
        order line only holds a weak reference to its product.
        """
        requested = _aggregate(lines)
        locked = {str(p.id): p for p in self._repo.lock_many(requested)}

        changes: List[StockChangeDTO] = []
        for product_id, (quantity, title) in requested.items():
            product = locked.get(product_id)
            if product is None:
                logger.warning(
                    "stock.restore_skipped",
                    product_id=product_id,
                    title=title,
                    quantity=quantity,
                )
                continue
            changes.append(self._apply_restore(product, quantity))
        return changes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_deduction(self, product: Product, quantity: int) -> StockChangeDTO:
        previous = product.available_quantity
        if not self._repo.deduct_if_available(str(product.id), quantity):
            product = self._repo.refresh_stock(product)
            logger.warning(
                "stock.deduction_conflict",
                product_id=str(product.id),
                requested=quantity,
                available=product.available_quantity,
            )
            raise InsufficientStock([_shortage(product, quantity)])
        product = self._repo.refresh_stock(product)
        logger.info(
            "stock.deducted",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.available_quantity,
            in_stock=product.in_stock,
        )
        return _change(product, previous, -quantity)

    def _apply_restore(self, product: Product, quantity: int) -> StockChangeDTO:
        previous = product.available_quantity
        if not self._repo.add_stock(str(product.id), quantity):
            raise ProductNotFound(f"Product {product.id} not found.")
        product = self._repo.refresh_stock(product)
        logger.info(
            "stock.restored",
            product_id=str(product.id),
            quantity=quantity,
            restored_stock=product.available_quantity,
        )
        return _change(product, previous, quantity)


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1.", attr="quantity")


def _aggregate(lines: Sequence[StockLineDTO]) -> Dict[str, tuple[int, str]]:
    """Sum quantities per product, keeping first-seen (stored) order."""
    requested: Dict[str, tuple[int, str]] = {}
    for line in lines:
        _require_positive(line.quantity)
        key = str(line.product_id)
        quantity, title = requested.get(key, (0, line.title))
        requested[key] = (quantity + line.quantity, title)
    return requested


def _shortage(product: Product, quantity: int) -> StockShortageDTO:
    return StockShortageDTO(
        product_id=product.id,
        product_name=product.name,
        requested=quantity,
        available=product.available_quantity if product.in_stock else 0,
    )


def _change(product: Product, previous: int, delta: int) -> StockChangeDTO:
    return StockChangeDTO(
        product_id=product.id,
        product_name=product.name,
        previous_qty=previous,
        delta=delta,
        new_qty=product.available_quantity,
        in_stock=product.in_stock,
    )
