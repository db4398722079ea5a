"""Product service layer (Use Cases).

Orchestrates catalog use-cases for the Product aggregate, delegating
persistence to the injected ``IProductRepository`` and every stock
change to the ``StockLedger``.

Business rules enforced here:
- Product code must be unique.
- Price cannot be negative (validated by DTO).
- Stock is never edited through ``update_product``; admins restock with
  ``adjust_stock``.
- Soft delete via repository.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.core.permissions import AdminPrincipal, require_admin
from modules.products.exceptions import ProductAlreadyExists, ProductNotFound
from modules.products.ledger import StockLedger
from modules.products.models import Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.products.dtos import (
        AdjustStockDTO,
        CreateProductDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

_CATALOG_FIELDS = ("name", "price", "category", "description", "specs", "rating")


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: IProductRepository,
        ledger: Optional[StockLedger] = None,
    ) -> None:
        self._repo = repository
        self._ledger = ledger or StockLedger(repository)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(
        self, dto: CreateProductDTO, principal: Optional[AdminPrincipal]
    ) -> Product:
        """Create a new product after enforcing uniqueness rules.

        Raises:
            ProductAlreadyExists: if the code is already taken.
        """
        require_admin(principal)
        log = logger.bind(code=dto.code, admin=str(principal))

        if self._repo.get_by_code(dto.code):
            log.warning("product.duplicate_code")
            raise ProductAlreadyExists(
                f"Product code '{dto.code}' already registered.", attr="code"
            )

        product = Product(
            code=dto.code,
            name=dto.name,
            price=dto.price,
            category=dto.category,
            description=dto.description,
            specs=dto.specs,
            rating=dto.rating,
            available_quantity=dto.available_quantity,
        )
        product = self._repo.save(product)
        log.info("product.registered", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(
        self, id: str, dto: UpdateProductDTO, principal: Optional[AdminPrincipal]
    ) -> Product:
        """Update catalog fields of an existing product.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        require_admin(principal)
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        for field in _CATALOG_FIELDS:
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        product = self._repo.save(product)
        logger.info("product.updated", product_id=str(id), admin=str(principal))
        return product

    def adjust_stock(
        self, id: str, dto: AdjustStockDTO, principal: Optional[AdminPrincipal]
    ) -> Product:
        """Set the available quantity of a product (restock/correction)."""
        require_admin(principal)
        product = self._ledger.set_quantity(id, dto.available_quantity)
        logger.info(
            "product.stock_adjusted",
            product_id=str(id),
            available_quantity=product.available_quantity,
            admin=str(principal),
        )
        return product

    @transaction.atomic
    def delete_product(self, id: str, principal: Optional[AdminPrincipal]) -> None:
        """Soft-delete a product.

        Existing order lines keep their snapshot; restoring stock for a
        deleted product is skipped by the ledger.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        require_admin(principal)
        if not self._repo.delete(id):
            raise ProductNotFound(f"Product {id} not found.")
        logger.info("product.deleted", product_id=str(id), admin=str(principal))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product
