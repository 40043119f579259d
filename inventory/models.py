"""Inventory models (single-location stock ledger).

One ``StockRecord`` per product holds the current quantity on hand. Every
change to that quantity is recorded as an immutable ``StockMovement``; the
sum of a product's movements always equals its quantity on hand.
"""

from common.choices import MovementReason, ReferenceType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class LedgerImmutableError(Exception):
    """Raised when code tries to rewrite or remove ledger history."""


class StockRecord(TimeStampedModel):
    product = models.OneToOneField("catalog.Product", on_delete=models.PROTECT, related_name="stock")
    quantity_on_hand = models.IntegerField(default=0)
    reorder_level = models.IntegerField(default=0)

    class Meta:
        ordering = ["-updated_at", "id"]
        constraints = [
            models.CheckConstraint(name="stock_on_hand_non_negative", condition=models.Q(quantity_on_hand__gte=0)),
            models.CheckConstraint(name="reorder_level_non_negative", condition=models.Q(reorder_level__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"StockRecord<{self.product_id}> on_hand={self.quantity_on_hand} reorder={self.reorder_level}"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_on_hand <= self.reorder_level


class StockMovementQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise LedgerImmutableError("Stock movements cannot be updated")

    def delete(self):
        raise LedgerImmutableError("Stock movements cannot be deleted; append a compensating adjustment")

    def purge(self):
        """Irreversibly remove movements. Only product deletion may call this."""
        return super().delete()


class StockMovement(models.Model):
    REASON_RECEIPT = MovementReason.RECEIPT
    REASON_SALE = MovementReason.SALE
    REASON_ADJUSTMENT = MovementReason.ADJUSTMENT
    REASON_CHOICES = MovementReason.choices

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="stock_movements")
    quantity_change = models.IntegerField()  # signed: +in, -out
    reason = models.CharField(max_length=16, choices=REASON_CHOICES)
    reference_type = models.CharField(max_length=32, choices=ReferenceType.choices, blank=True)
    reference_id = models.CharField(max_length=120, blank=True, db_index=True)
    actor = models.CharField(max_length=150)
    note = models.CharField(max_length=200, blank=True)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity_change=0)),
            models.CheckConstraint(
                name="movement_unit_cost_non_negative",
                condition=models.Q(unit_cost__gte=0) | models.Q(unit_cost__isnull=True),
            ),
        ]
        indexes = [
            models.Index(fields=["product", "created_at"], name="inv_move_product_created_idx"),
            models.Index(fields=["reason", "created_at"], name="inv_move_reason_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.reason} {self.quantity_change:+d} for {self.product_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutableError("Stock movements are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError("Stock movements cannot be deleted; append a compensating adjustment")


class ReceiptIdempotencyKey(TimeStampedModel):
    """Client-supplied token that makes a stock receipt submission idempotent."""

    key = models.CharField(max_length=128, unique=True)
    receipt_id = models.CharField(max_length=64)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    received_by = models.CharField(max_length=150)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["expires_at"], name="inv_receiptkey_expires_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"ReceiptKey<{self.key}> -> {self.receipt_id}"


# EOF
