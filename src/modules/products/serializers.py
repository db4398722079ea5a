"""Product DRF serializers for API output.

Input is parsed straight into Pydantic DTOs in the views; the service
layer never sees a serializer.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    class Meta:
        model = Product
        fields = [
            "id",
            "code",
            "name",
            "description",
            "category",
            "price",
            "specs",
            "rating",
            "available_quantity",
            "in_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
