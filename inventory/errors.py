"""Inventory error taxonomy.

Every failure raised by the stock mutation engine or the query selectors
derives from ``MovementError``. Nothing is committed when one is raised.
"""


class MovementError(Exception):
    """Base class for stock ledger failures."""

    code = "movement_error"
    retryable = False


class ValidationError(MovementError):
    """Malformed input (non-positive quantity, empty batch, bad filter)."""

    code = "invalid"

    def __init__(self, message: str, *, line: int | None = None):
        super().__init__(message)
        self.line = line


class IdempotencyConflict(ValidationError):
    """An idempotency key was reused with a different payload."""

    code = "idempotency_conflict"


class OutstandingStock(ValidationError):
    """A product still holds stock and cannot be removed."""

    code = "outstanding_stock"


class NotFound(MovementError):
    code = "not_found"

    def __init__(self, sku: str, *, line: int | None = None):
        super().__init__(f"No stock record for product {sku!r}")
        self.sku = sku
        self.line = line


class InsufficientStock(MovementError):
    """The change would drive quantity on hand below zero."""

    code = "insufficient_stock"

    def __init__(self, sku: str, *, requested: int, available: int):
        super().__init__(f"Insufficient stock for {sku!r}: requested {requested}, available {available}")
        self.sku = sku
        self.requested = requested
        self.available = available


class TransientStorageError(MovementError):
    """Store unavailable or lock wait exceeded; the whole call may be retried."""

    code = "transient"
    retryable = True


class ReconciliationViolation(MovementError):
    """Stock records and the movement ledger disagree. Needs an operator."""

    code = "reconciliation_violation"

    def __init__(self, mismatches: list[dict]):
        skus = ", ".join(m["sku"] for m in mismatches)
        super().__init__(f"Ledger does not reconcile for: {skus}")
        self.mismatches = mismatches


# EOF
