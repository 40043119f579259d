"""Catalog app models.

The catalog owns product identity and display metadata. Stock quantities
live in the inventory app and are keyed by ``Product``.
"""

from common.choices import ActiveInactive
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Sellable product identified by its SKU."""

    STATUS_ACTIVE = ActiveInactive.ACTIVE
    STATUS_INACTIVE = ActiveInactive.INACTIVE
    STATUS_CHOICES = ActiveInactive.choices

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="catalog_product_name_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} [{self.sku}]"
