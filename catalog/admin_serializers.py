"""Admin serializers for write endpoints in the catalog app."""

from rest_framework import serializers

from .models import Product


class ProductAdminSerializer(serializers.ModelSerializer):
    """Product with its stock fields.

    ``initial_quantity`` and ``reorder_level`` are only read on create; later
    stock changes go through the inventory endpoints.
    """

    initial_quantity = serializers.IntegerField(min_value=0, default=0, write_only=True)
    reorder_level = serializers.IntegerField(min_value=0, default=0, write_only=True)
    quantity_on_hand = serializers.IntegerField(source="stock.quantity_on_hand", read_only=True)
    current_reorder_level = serializers.IntegerField(source="stock.reorder_level", read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "status",
            "initial_quantity",
            "reorder_level",
            "quantity_on_hand",
            "current_reorder_level",
        ]

    def validate(self, attrs):
        if self.instance is not None:
            attrs.pop("initial_quantity", None)
            attrs.pop("reorder_level", None)
        return attrs
