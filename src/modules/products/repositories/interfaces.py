"""Product repository interface.

Besides the generic CRUD contract it exposes the primitives the stock
ledger builds on: row locking and conditional stock UPDATEs.  Nothing
outside ``modules.products.ledger`` calls the stock primitives.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Product]:
        """Retrieve a live product by its code."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a live product holding a row-level lock."""

    @abstractmethod
    def lock_many(self, ids: Iterable[str]) -> List[Product]:
        """Lock live products in primary-key order (deadlock-free)."""

    @abstractmethod
    def deduct_if_available(self, id: str, quantity: int) -> bool:
        """Atomically subtract ``quantity`` when in stock and sufficient.

        Returns ``False`` (and writes nothing) when the condition fails.
        """

    @abstractmethod
    def add_stock(self, id: str, quantity: int) -> bool:
        """Atomically add ``quantity`` and mark the product in stock."""

    @abstractmethod
    def set_stock(self, id: str, quantity: int) -> bool:
        """Overwrite the available quantity, deriving ``in_stock``."""

    @abstractmethod
    def refresh_stock(self, product: Product) -> Product:
        """Reload the stock fields of ``product`` from the database."""
