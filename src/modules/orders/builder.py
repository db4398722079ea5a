"""Order aggregate builder.

Turns a validated ``CreateOrderDTO`` into a persisted ``pending`` order:

1. resolve every line against the catalog and check availability through
   the stock ledger (read-only; nothing is reserved),
2. fail with *every* unavailable line at once,
3. snapshot title and unit price from the catalog,
4. compute subtotal and total,
5. mint a unique reference and render the contact message,
6. persist order + items and record ``OrderCreated``.

Stock is only deducted later, when the order is paid.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.core.references import ReferenceGenerator
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated
from modules.orders.messages import render_contact_message
from modules.orders.pricing import compute_subtotal, compute_total, to_money
from modules.products.dtos import StockShortageDTO
from modules.products.exceptions import InsufficientStock

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.ledger import StockLedger
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _Line:
    """Catalog-resolved order line."""

    product_id: UUID
    title: str
    unit_price: Decimal
    quantity: int


class OrderAggregateBuilder:
    """Builds and persists new orders.

    Collaborators are injected so the builder can be exercised against
    fakes; ``references`` defaults to a generator configured from settings.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        ledger: StockLedger,
        references: Optional[ReferenceGenerator] = None,
        ref_prefix: Optional[str] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._ledger = ledger
        self._references = references or ReferenceGenerator()
        self._ref_prefix = ref_prefix or settings.ORDER_REF_PREFIX

    @transaction.atomic
    def build(self, dto: CreateOrderDTO) -> Order:
        """Validate, price and persist a new pending order.

        Raises:
            InsufficientStock: one or more lines are missing or unavailable.
            ReferenceCollision: no unused reference within the retry budget.
        """
        log = logger.bind(item_count=len(dto.items))
        lines = self._resolve_lines(dto)

        subtotal = compute_subtotal((line.unit_price, line.quantity) for line in lines)
        shipping_fee = to_money(dto.shipping_fee)
        discount = to_money(dto.discount)
        total = compute_total(subtotal, shipping_fee, discount)

        ref = self._references.mint_unique(
            self._ref_prefix, self._order_repo.ref_exists, now=timezone.now()
        )
        contact_message = render_contact_message(
            ref=ref,
            full_name=dto.customer.full_name,
            phone=dto.customer.phone,
            total=total,
            lines=lines,
        )

        order = self._order_repo.create(
            {
                "ref": ref,
                "customer_full_name": dto.customer.full_name,
                "customer_phone": dto.customer.phone,
                "customer_email": dto.customer.email,
                "status": OrderStatus.PENDING,
                "subtotal": subtotal,
                "shipping_fee": shipping_fee,
                "discount": discount,
                "total": total,
                "contact_message": contact_message,
                "items": [
                    {
                        "product_id": line.product_id,
                        "title": line.title,
                        "unit_price": line.unit_price,
                        "quantity": line.quantity,
                    }
                    for line in lines
                ],
            }
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                ref=ref,
                total=str(total),
                contact_message=contact_message,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id, status=OrderStatus.PENDING, notes="Order created"
        )

        log.info("order.created", order_id=str(order.id), ref=ref, total=str(total))
        return order

    def _resolve_lines(self, dto: CreateOrderDTO) -> List[_Line]:
        lines: List[_Line] = []
        shortages: List[StockShortageDTO] = []

        for item in dto.items:
            product = self._product_repo.get_by_id(str(item.product_id))
            if product is None:
                shortages.append(
                    StockShortageDTO(
                        product_id=item.product_id,
                        product_name=item.title or str(item.product_id),
                        requested=item.quantity,
                        available=0,
                        found=False,
                    )
                )
                continue

            check = self._ledger.check_availability(product.id, item.quantity)
            if not check.available:
                shortages.append(
                    StockShortageDTO(
                        product_id=product.id,
                        product_name=product.name,
                        requested=item.quantity,
                        available=check.current_qty,
                    )
                )
                continue

            lines.append(_Line(product.id, product.name, product.price, item.quantity))

        if shortages:
            logger.warning(
                "order.stock_unavailable",
                shortages=[shortage.describe() for shortage in shortages],
            )
            raise InsufficientStock(shortages)
        return lines
