"""Unit tests for OrderService.

Covers:
- Order creation (pending, no stock touched).
- Payment: all-or-nothing deduction, double payment, cancelled orders.
- Two orders competing for the same stock (first paid wins).
- Cancellation with stock restore.
- Admin edit of status, shipping fee and discount.
- History recording and admin gating.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.exceptions import AdminRequired
from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.dtos import UpdateOrderDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderAlreadyPaid, OrderNotFound
from modules.orders.models import Order, OrderStatusHistory
from modules.products.exceptions import InsufficientStock

pytestmark = pytest.mark.unit


def _stock(product):
    product.refresh_from_db()
    return product.available_quantity


def _history(order):
    return list(
        OrderStatusHistory.objects.filter(order_id=order.id)
        .order_by("id")
        .values_list("old_status", "new_status")
    )


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_creates_pending_order(self, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])

        assert order.status == OrderStatus.PENDING
        assert order.items.count() == 1
        assert _stock(product) == 5

    def test_worked_example(self, place_order, make_product):
        frame = make_product(price=Decimal("1000"))
        case = make_product(price=Decimal("500"))

        order = place_order(
            [(frame, 2), (case, 1)],
            shipping_fee=Decimal("200"),
            discount=Decimal("100"),
        )

        assert order.subtotal == Decimal("2500.00")
        assert order.total == Decimal("2600.00")

    def test_unavailable_stock_rejected(self, place_order, make_product):
        product = make_product(available_quantity=1)
        with pytest.raises(InsufficientStock):
            place_order([(product, 2)])
        assert not Order.objects.exists()


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


class TestMarkPaid:
    def test_deducts_every_line(
        self, order_service, place_order, make_product, admin_principal
    ):
        frame = make_product(available_quantity=5)
        lens = make_product(available_quantity=4)
        order = place_order([(frame, 2), (lens, 4)])

        paid = order_service.mark_paid(str(order.id), admin_principal)

        assert paid.status == OrderStatus.PAID
        assert paid.stock_deducted is True
        assert _stock(frame) == 3
        assert _stock(lens) == 0
        lens.refresh_from_db()
        assert lens.in_stock is False

    def test_first_paid_wins(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order_a = place_order([(product, 3)])
        order_b = place_order([(product, 4)])

        order_service.mark_paid(str(order_a.id), admin_principal)
        assert _stock(product) == 2

        with pytest.raises(InsufficientStock) as exc_info:
            order_service.mark_paid(str(order_b.id), admin_principal)

        shortage = exc_info.value.shortages[0]
        assert (shortage.requested, shortage.available) == (4, 2)
        order_b.refresh_from_db()
        assert order_b.status == OrderStatus.PENDING
        assert _stock(product) == 2

    def test_shortage_on_one_line_deducts_nothing(
        self, order_service, place_order, make_product, admin_principal
    ):
        plenty = make_product(available_quantity=10)
        scarce = make_product(available_quantity=5)
        order = place_order([(plenty, 2), (scarce, 5)])
        # Someone else bought the scarce item since the order was placed.
        order_service.mark_paid(
            str(place_order([(scarce, 2)]).id), admin_principal
        )

        with pytest.raises(InsufficientStock):
            order_service.mark_paid(str(order.id), admin_principal)

        assert _stock(plenty) == 10
        assert _stock(scarce) == 3
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.stock_deducted is False
        assert _history(order) == [(None, "pending")]

    def test_double_payment_rejected(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])
        order_service.mark_paid(str(order.id), admin_principal)

        with pytest.raises(OrderAlreadyPaid):
            order_service.mark_paid(str(order.id), admin_principal)

        assert _stock(product) == 3

    def test_cancelled_order_cannot_be_paid(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])
        order_service.cancel_order(str(order.id), admin_principal)

        with pytest.raises(InvalidOrderStatus):
            order_service.mark_paid(str(order.id), admin_principal)

        assert _stock(product) == 5

    def test_requires_admin(self, order_service, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])

        with pytest.raises(AdminRequired):
            order_service.mark_paid(str(order.id), None)

        assert _stock(product) == 5

    def test_unknown_order(self, order_service, admin_principal):
        with pytest.raises(OrderNotFound):
            order_service.mark_paid(str(uuid4()), admin_principal)

    def test_records_history_and_event(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])

        order_service.mark_paid(str(order.id), admin_principal, notes="Bank transfer")

        history = OrderStatusHistory.objects.get(order_id=order.id, new_status="paid")
        assert history.old_status == "pending"
        assert history.changed_by == "storeadmin"
        assert history.notes == "Bank transfer"
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.id), event_type="OrderPaid"
        ).exists()


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancelOrder:
    def test_cancelling_paid_order_restores_stock(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=3)
        order = place_order([(product, 3)])
        order_service.mark_paid(str(order.id), admin_principal)
        assert _stock(product) == 0

        cancelled = order_service.cancel_order(str(order.id), admin_principal)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.stock_deducted is False
        assert _stock(product) == 3
        product.refresh_from_db()
        assert product.in_stock is True

    def test_cancelling_pending_order_leaves_stock(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=3)
        order = place_order([(product, 2)])

        order_service.cancel_order(str(order.id), admin_principal)

        assert _stock(product) == 3

    def test_cancelling_order_moved_back_to_pending_restores_stock(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order = place_order([(product, 3)])
        order_service.mark_paid(str(order.id), admin_principal)
        order_service.update_status(str(order.id), OrderStatus.PENDING, admin_principal)
        assert _stock(product) == 2

        cancelled = order_service.cancel_order(str(order.id), admin_principal)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.stock_deducted is False
        assert _stock(product) == 5

    def test_cancelling_twice_restores_once(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=3)
        order = place_order([(product, 2)])
        order_service.mark_paid(str(order.id), admin_principal)
        order_service.cancel_order(str(order.id), admin_principal)

        order_service.cancel_order(str(order.id), admin_principal)

        assert _stock(product) == 3
        assert _history(order) == [
            (None, "pending"),
            ("pending", "paid"),
            ("paid", "cancelled"),
        ]

    def test_restock_after_cancel_frees_stock_for_next_order(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order_a = place_order([(product, 3)])
        order_b = place_order([(product, 4)])
        order_service.mark_paid(str(order_a.id), admin_principal)

        order_service.cancel_order(str(order_a.id), admin_principal)
        order_service.mark_paid(str(order_b.id), admin_principal)

        assert _stock(product) == 1


# ---------------------------------------------------------------------------
# Admin edit
# ---------------------------------------------------------------------------


class TestUpdateOrder:
    def test_fee_change_recomputes_total(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(price=Decimal("1000"))
        order = place_order([(product, 2)], shipping_fee=Decimal("200"))

        updated = order_service.update_order(
            str(order.id),
            UpdateOrderDTO(shipping_fee=Decimal("500"), discount=Decimal("300")),
            admin_principal,
        )

        assert updated.subtotal == Decimal("2000.00")
        assert updated.total == Decimal("2200.00")
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.id), event_type="OrderAmountsChanged"
        ).exists()

    def test_large_discount_clamps_total(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(price=Decimal("1000"))
        order = place_order([(product, 1)])

        updated = order_service.update_order(
            str(order.id), UpdateOrderDTO(discount=Decimal("5000")), admin_principal
        )

        assert updated.total == Decimal("0.00")

    def test_status_change_goes_through_state_machine(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])

        updated = order_service.update_order(
            str(order.id), UpdateOrderDTO(status=OrderStatus.PAID), admin_principal
        )

        assert updated.status == OrderStatus.PAID
        assert _stock(product) == 3

    def test_failed_status_change_keeps_amounts(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product(available_quantity=1, price=Decimal("1000"))
        order = place_order([(product, 1)])
        order_service.mark_paid(
            str(place_order([(product, 1)]).id), admin_principal
        )

        with pytest.raises(InsufficientStock):
            order_service.update_order(
                str(order.id),
                UpdateOrderDTO(status=OrderStatus.PAID, shipping_fee=Decimal("300")),
                admin_principal,
            )

        order.refresh_from_db()
        assert order.shipping_fee == Decimal("0.00")
        assert order.total == Decimal("1000.00")

    def test_same_status_records_no_history(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product()
        order = place_order([(product, 1)])

        order_service.update_status(str(order.id), OrderStatus.PENDING, admin_principal)

        assert _history(order) == [(None, "pending")]

    def test_requires_admin(self, order_service, place_order, make_product):
        order = place_order([(make_product(), 1)])
        with pytest.raises(AdminRequired):
            order_service.update_order(str(order.id), UpdateOrderDTO(), None)


# ---------------------------------------------------------------------------
# Queries / delete
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_by_id_and_ref(self, order_service, place_order, make_product):
        order = place_order([(make_product(), 1)])
        assert order_service.get_order(str(order.id)).pk == order.pk
        assert order_service.get_order(order.ref).pk == order.pk
        assert order_service.get_order(order.ref.lower()).pk == order.pk
        assert order_service.get_order_by_ref(order.ref).pk == order.pk

    def test_unknown(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.get_order(str(uuid4()))
        with pytest.raises(OrderNotFound):
            order_service.get_order("GLS-20250101-ZZZZ")
        with pytest.raises(OrderNotFound):
            order_service.get_order("garbage")

    def test_delete_hides_order(
        self, order_service, place_order, make_product, admin_principal
    ):
        order = place_order([(make_product(), 1)])
        order_service.delete_order(str(order.id), admin_principal)
        with pytest.raises(OrderNotFound):
            order_service.get_order(str(order.id))

    def test_list_filters(
        self, order_service, place_order, make_product, admin_principal
    ):
        product = make_product()
        pending = place_order([(product, 1)])
        paid = place_order([(product, 1)])
        order_service.mark_paid(str(paid.id), admin_principal)

        assert [o.pk for o in order_service.list_orders({"status": "pending"})] == [
            pending.pk
        ]
