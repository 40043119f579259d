"""Admin registrations for inventory app.

Quantities are read-only here: stock only changes through the services so
that every change lands in the ledger.
"""

from django.contrib import admin

from .models import ReceiptIdempotencyKey, StockMovement, StockRecord


@admin.register(StockRecord)
class StockRecordAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "quantity_on_hand", "reorder_level", "updated_at")
    search_fields = ("product__sku", "product__name")
    readonly_fields = ("product", "quantity_on_hand", "created_at", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "product",
        "reason",
        "quantity_change",
        "reference_type",
        "reference_id",
        "actor",
        "created_at",
    )
    list_filter = ("reason", "reference_type")
    search_fields = ("product__sku", "product__name", "reference_id", "actor")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ReceiptIdempotencyKey)
class ReceiptIdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "receipt_id", "received_by", "expires_at", "created_at")
    search_fields = ("key", "receipt_id")
    date_hierarchy = "created_at"


# EOF
