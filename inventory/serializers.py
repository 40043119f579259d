"""Serializers for inventory domain.

Read-only serializers for stock and movements, plus input serializers that
validate request payloads before they reach the services.
"""

from common.choices import MovementReason
from django.conf import settings
from rest_framework import serializers

from .models import StockMovement


class StockLevelSerializer(serializers.Serializer):
    """Current stock for a product, as returned by the selectors."""

    sku = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    quantity_on_hand = serializers.IntegerField(read_only=True)
    reorder_level = serializers.IntegerField(read_only=True)
    in_stock = serializers.BooleanField(read_only=True)
    low_stock = serializers.BooleanField(read_only=True)


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of a ledger entry with its product."""

    sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "sku",
            "product_name",
            "quantity_change",
            "reason",
            "reference_type",
            "reference_id",
            "actor",
            "note",
            "unit_cost",
            "created_at",
        ]
        read_only_fields = fields


class ReceiptLineSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)


class ReceiveStockSerializer(serializers.Serializer):
    items = ReceiptLineSerializer(many=True, allow_empty=False)
    received_by = serializers.CharField(max_length=150, required=False, allow_blank=True)
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class SaleSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    reference_id = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    actor = serializers.CharField(max_length=150, required=False, allow_blank=True)


class AdjustmentSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    delta = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=MovementReason.choices, default=MovementReason.ADJUSTMENT)
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    actor = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_delta(self, value: int) -> int:
        if value == 0:
            raise serializers.ValidationError("Delta must be non-zero.")
        return value


class ReturnSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    reference_id = serializers.CharField(max_length=120)
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    actor = serializers.CharField(max_length=150, required=False, allow_blank=True)


class ReorderLevelSerializer(serializers.Serializer):
    reorder_level = serializers.IntegerField(min_value=0)


class AuditTrailQuerySerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=MovementReason.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=getattr(settings, "INVENTORY_AUDIT_MAX_LIMIT", 500),
    )


# EOF
