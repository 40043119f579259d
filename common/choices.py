"""Shared enumerations and choices used across apps."""

from django.db import models


class ActiveInactive(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class MovementReason(models.TextChoices):
    """Closed set of causes for a stock movement."""

    RECEIPT = "receipt", "Receipt"
    SALE = "sale", "Sale"
    ADJUSTMENT = "adjustment", "Adjustment"


class ReferenceType(models.TextChoices):
    """What a movement's reference id points at (traceability only)."""

    RECEIPT = "receipt", "Stock receipt"
    ORDER = "order", "Order"
    RETURN = "return", "Customer return"
    OPENING_BALANCE = "opening_balance", "Opening balance"
    MANUAL = "manual", "Manual"
