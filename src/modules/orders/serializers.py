"""Order DRF serializers for API output.

Input is parsed into Pydantic DTOs (``dtos.py``) by the views; these
serializers only render orders.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    """Snapshot line: title and unit price as they were when ordered."""

    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["product_id", "title", "unit_price", "quantity", "line_total"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ["id", "old_status", "new_status", "changed_by", "notes", "created_at"]
        read_only_fields = fields


class CustomerSnapshotMixin(serializers.Serializer):
    customer = serializers.SerializerMethodField()

    def get_customer(self, order: Order) -> dict:
        return {
            "full_name": order.customer_full_name,
            "phone": order.customer_phone,
            "email": order.customer_email,
        }


class OrderSerializer(CustomerSnapshotMixin, serializers.ModelSerializer):
    """Full order with items; history is included for admins only."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "ref",
            "status",
            "customer",
            "items",
            "subtotal",
            "shipping_fee",
            "discount",
            "total",
            "contact_message",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["stock_deducted", "status_history"]
        read_only_fields = fields


class OrderListSerializer(CustomerSnapshotMixin, serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = ["id", "ref", "status", "customer", "total", "created_at"]
        read_only_fields = fields
