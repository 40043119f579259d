"""Django app configuration for the inventory app."""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """AppConfig for the stock ledger (records, movements, receipts)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
