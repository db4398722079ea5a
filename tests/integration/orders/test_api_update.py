"""Integration tests for admin order actions: payment, cancel, edit, delete."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _stock(product):
    product.refresh_from_db()
    return product.available_quantity


class TestMarkPaid:
    def test_deducts_stock(self, admin_client, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 3)])

        response = admin_client.post(
            f"{URL}{order.id}/mark-paid/", {"notes": "Transfer"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["stock_deducted"] is True
        history = {h["new_status"]: h for h in response.json()["status_history"]}
        assert history["paid"]["notes"] == "Transfer"
        assert _stock(product) == 2

    def test_second_order_rejected_with_details(
        self, admin_client, place_order, make_product
    ):
        product = make_product(name="Aviator Frame", available_quantity=5)
        order_a = place_order([(product, 3)])
        order_b = place_order([(product, 4)])
        admin_client.post(f"{URL}{order_a.id}/mark-paid/")

        response = admin_client.post(f"{URL}{order_b.id}/mark-paid/")

        assert response.status_code == 409
        error = response.json()["errors"][0]
        assert error["code"] == "insufficient_stock"
        assert error["attr"] == "items"
        assert error["product_name"] == "Aviator Frame"
        assert (error["requested"], error["available"]) == (4, 2)
        order_b.refresh_from_db()
        assert order_b.status == "pending"
        assert _stock(product) == 2

    def test_double_payment_409(self, admin_client, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])
        admin_client.post(f"{URL}{order.id}/mark-paid/")

        response = admin_client.post(f"{URL}{order.id}/mark-paid/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "order_already_paid"
        assert _stock(product) == 3

    def test_cancelled_order_cannot_be_paid(
        self, admin_client, place_order, make_product
    ):
        order = place_order([(make_product(), 1)])
        admin_client.post(f"{URL}{order.id}/cancel/")

        response = admin_client.post(f"{URL}{order.id}/mark-paid/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_order_status"

    def test_anonymous_401(self, api_client, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 2)])

        response = api_client.post(f"{URL}{order.id}/mark-paid/")

        assert response.status_code == 401
        assert _stock(product) == 5

    def test_non_staff_403(self, customer_client, place_order, make_product):
        order = place_order([(make_product(), 1)])
        response = customer_client.post(f"{URL}{order.id}/mark-paid/")
        assert response.status_code == 403


class TestCancel:
    def test_restores_stock(self, admin_client, place_order, make_product):
        product = make_product(available_quantity=3)
        order = place_order([(product, 3)])
        admin_client.post(f"{URL}{order.id}/mark-paid/")
        assert _stock(product) == 0

        response = admin_client.post(
            f"{URL}{order.id}/cancel/", {"notes": "Customer changed mind"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["stock_deducted"] is False
        assert _stock(product) == 3


class TestStatusAction:
    def test_walks_the_lifecycle(self, admin_client, place_order, make_product):
        product = make_product(available_quantity=5)
        order = place_order([(product, 1)])

        for status in ("paid", "shipped", "delivered"):
            response = admin_client.post(
                f"{URL}{order.id}/status/", {"status": status}, format="json"
            )
            assert response.status_code == 200
            assert response.json()["status"] == status

        assert _stock(product) == 4

    def test_unknown_status_400(self, admin_client, place_order, make_product):
        order = place_order([(make_product(), 1)])
        response = admin_client.post(
            f"{URL}{order.id}/status/", {"status": "teleported"}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "status"


class TestEdit:
    def test_patch_amounts_recomputes_total(
        self, admin_client, place_order, make_product
    ):
        product = make_product(price=Decimal("1000"))
        order = place_order([(product, 2)])

        response = admin_client.patch(
            f"{URL}{order.id}/",
            {"shipping_fee": "500", "discount": "300"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["subtotal"] == "2000.00"
        assert body["total"] == "2200.00"

    def test_patch_status_to_paid_deducts(
        self, admin_client, place_order, make_product
    ):
        product = make_product(available_quantity=4)
        order = place_order([(product, 4)])

        response = admin_client.patch(
            f"{URL}{order.id}/", {"status": "paid"}, format="json"
        )

        assert response.status_code == 200
        assert _stock(product) == 0

    def test_negative_discount_400(self, admin_client, place_order, make_product):
        order = place_order([(make_product(), 1)])
        response = admin_client.patch(
            f"{URL}{order.id}/", {"discount": "-5"}, format="json"
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["1e30", "12345678901234567890"])
    def test_oversized_amount_400(self, admin_client, place_order, make_product, amount):
        order = place_order([(make_product(price=Decimal("100")), 1)])

        response = admin_client.patch(
            f"{URL}{order.id}/", {"shipping_fee": amount, "discount": amount}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"
        order.refresh_from_db()
        assert order.total == Decimal("100.00")

    def test_put_behaves_like_patch(self, admin_client, place_order, make_product):
        order = place_order([(make_product(price=Decimal("100")), 1)])
        response = admin_client.put(
            f"{URL}{order.id}/", {"shipping_fee": "50"}, format="json"
        )
        assert response.json()["total"] == "150.00"


class TestDelete:
    def test_soft_deletes(self, admin_client, api_client, place_order, make_product):
        order = place_order([(make_product(), 1)])

        response = admin_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 204
        assert api_client.get(f"{URL}{order.id}/").status_code == 404
        assert Order.objects.dead().filter(pk=order.pk).exists()

    def test_non_staff_403(self, customer_client, place_order, make_product):
        order = place_order([(make_product(), 1)])
        assert customer_client.delete(f"{URL}{order.id}/").status_code == 403
