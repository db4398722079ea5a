"""Product and stock domain exceptions.

Raised by the product service and the stock ledger; rendered by the
core API exception handler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Sequence

from rest_framework import status

from modules.core.exceptions import Conflict, DomainError, NotFound

if TYPE_CHECKING:
    from modules.products.dtos import StockShortageDTO


class ProductNotFound(NotFound):
    """The requested product does not exist or has been soft-deleted."""

    code = "product_not_found"


class ProductAlreadyExists(Conflict):
    """A product with the same code already exists."""

    code = "product_already_exists"


class InsufficientStock(DomainError):
    """One or more lines request more than the available quantity.

    Carries one ``StockShortageDTO`` per offending line so callers can
    render a message without another round trip.
    """

    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, shortages: Sequence[StockShortageDTO]) -> None:
        self.shortages: List[StockShortageDTO] = list(shortages)
        super().__init__(
            "; ".join(shortage.describe() for shortage in self.shortages),
            attr="items",
        )

    def as_errors(self) -> List[Dict[str, Any]]:
        return [
            {
                "code": self.code,
                "detail": shortage.describe(),
                "attr": self.attr,
                "product_id": str(shortage.product_id),
                "product_name": shortage.product_name,
                "requested": shortage.requested,
                "available": shortage.available,
            }
            for shortage in self.shortages
        ]
