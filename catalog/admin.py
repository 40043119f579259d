"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "status", "updated_at")
    search_fields = ("sku", "name")
    list_filter = ("status",)

    def has_delete_permission(self, request, obj=None):
        # Deletion goes through catalog.services.delete_product (ledger purge policy).
        return False
