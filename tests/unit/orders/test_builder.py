"""Unit tests for OrderAggregateBuilder.

Covers:
- Pending order persisted with catalog snapshot, amounts and reference.
- Worked example: 1000x2 + 500x1, fee 200, discount 100 -> 2500 / 2600.
- Every unavailable line reported at once; nothing persisted.
- No stock is touched when an order is placed.
- Reference collisions exhaust the retry budget.
"""

from __future__ import annotations

import re
from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent
from modules.core.references import ReferenceCollision, ReferenceGenerator
from modules.orders.builder import OrderAggregateBuilder
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, CustomerInfoDTO
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.exceptions import InsufficientStock
from modules.products.ledger import StockLedger
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


class _TakenRefs(OrderDjangoRepository):
    def ref_exists(self, ref):
        return True


def _builder(order_repo=None, **kwargs):
    products = ProductDjangoRepository()
    return OrderAggregateBuilder(
        order_repo or OrderDjangoRepository(), products, StockLedger(products), **kwargs
    )


def _dto(*lines, shipping_fee="0", discount="0"):
    return CreateOrderDTO(
        customer=CustomerInfoDTO(
            full_name="Ada Obi", phone="+2348030000000", email="ada@example.com"
        ),
        items=[
            CreateOrderItemDTO(product_id=product_id, quantity=quantity, title=title)
            for product_id, quantity, title in lines
        ],
        shipping_fee=Decimal(shipping_fee),
        discount=Decimal(discount),
    )


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestBuild:
    def test_worked_example(self, make_product):
        frame = make_product(name="Frame", price=Decimal("1000"), available_quantity=5)
        case = make_product(name="Case", price=Decimal("500"), available_quantity=5)

        order = _builder().build(
            _dto((frame.id, 2, ""), (case.id, 1, ""), shipping_fee="200", discount="100")
        )

        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Decimal("2500.00")
        assert order.shipping_fee == Decimal("200.00")
        assert order.discount == Decimal("100.00")
        assert order.total == Decimal("2600.00")

    def test_reference_format(self, make_product, settings):
        settings.ORDER_REF_PREFIX = "GLS"
        product = make_product()
        order = _builder().build(_dto((product.id, 1, "")))
        assert re.fullmatch(r"GLS-\d{8}-[A-Z0-9]{4}", order.ref)

    def test_custom_prefix(self, make_product):
        product = make_product()
        order = _builder(ref_prefix="SHOP").build(_dto((product.id, 1, "")))
        assert order.ref.startswith("SHOP-")

    def test_items_snapshot_catalog(self, make_product):
        product = make_product(name="Rimless Titanium Frame", price=Decimal("42000"))
        order = _builder().build(_dto((product.id, 1, "client title")))

        item = order.items.get()
        assert item.product_id == product.id
        assert item.title == "Rimless Titanium Frame"
        assert item.unit_price == Decimal("42000.00")
        assert item.quantity == 1

    def test_items_keep_request_order(self, make_product):
        first = make_product(name="Zeta")
        second = make_product(name="Alpha")
        order = _builder().build(_dto((first.id, 1, ""), (second.id, 1, "")))
        assert [i.title for i in order.items.all()] == ["Zeta", "Alpha"]

    def test_customer_snapshot(self, make_product):
        product = make_product()
        order = _builder().build(_dto((product.id, 1, "")))
        assert order.customer_full_name == "Ada Obi"
        assert order.customer_phone == "+2348030000000"
        assert order.customer_email == "ada@example.com"

    def test_contact_message(self, make_product, settings):
        settings.STORE_CURRENCY_SYMBOL = "₦"
        product = make_product(name="Frame", price=Decimal("1000"))
        order = _builder().build(_dto((product.id, 2, "")))

        assert order.contact_message.startswith("Hello, I want to pay for my order.")
        assert f"Reference: {order.ref}" in order.contact_message
        assert "Total: ₦2,000" in order.contact_message
        assert "• Frame x2 — ₦1,000" in order.contact_message

    def test_no_stock_is_deducted(self, make_product):
        product = make_product(available_quantity=3)
        order = _builder().build(_dto((product.id, 3, "")))

        product.refresh_from_db()
        assert product.available_quantity == 3
        assert order.stock_deducted is False

    def test_history_and_outbox(self, make_product):
        product = make_product()
        order = _builder().build(_dto((product.id, 1, "")))

        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status is None
        assert history.new_status == OrderStatus.PENDING

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderCreated"
        assert event.payload["ref"] == order.ref
        assert event.payload["total"] == str(order.total)

    def test_discount_beyond_amount_clamps_total(self, make_product):
        product = make_product(price=Decimal("500"))
        order = _builder().build(_dto((product.id, 1, ""), discount="900"))
        assert order.total == Decimal("0.00")


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestBuildFailures:
    def test_every_unavailable_line_is_reported(self, make_product):
        ok = make_product(available_quantity=5)
        short = make_product(name="Photochromic Lenses", available_quantity=1)
        ghost_id = uuid4()

        with pytest.raises(InsufficientStock) as exc_info:
            _builder().build(
                _dto((ok.id, 1, ""), (short.id, 2, ""), (ghost_id, 1, "Old Case"))
            )

        shortages = exc_info.value.shortages
        assert [s.product_id for s in shortages] == [short.id, ghost_id]
        assert shortages[0].available == 1
        assert shortages[1].found is False
        assert shortages[1].product_name == "Old Case"
        assert not Order.objects.exists()

    def test_deleted_product_is_not_found(self, make_product):
        product = make_product()
        product.delete()
        with pytest.raises(InsufficientStock) as exc_info:
            _builder().build(_dto((product.id, 1, "")))
        assert exc_info.value.shortages[0].found is False

    def test_reference_collision(self, make_product):
        product = make_product()
        builder = _builder(
            order_repo=_TakenRefs(), references=ReferenceGenerator(max_attempts=10)
        )

        with pytest.raises(ReferenceCollision):
            builder.build(_dto((product.id, 1, "")))

        assert not Order.objects.exists()
