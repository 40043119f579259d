"""Selectors for the inventory domain: read-only views over stock and ledger.

Nothing here writes or caches. Storage failures surface as
``TransientStorageError`` so that an unreadable ledger is never mistaken for
an empty one.
"""

import logging
from contextlib import contextmanager

from common.choices import MovementReason, ReferenceType
from django.conf import settings
from django.db import DatabaseError, connection, transaction
from django.db.models import Count, F, Q, Sum

from .errors import NotFound, ReconciliationViolation, TransientStorageError, ValidationError
from .models import StockMovement, StockRecord

logger = logging.getLogger("stockledger.inventory")


@contextmanager
def translate_storage_errors(operation: str):
    try:
        yield
    except DatabaseError as exc:
        raise TransientStorageError(f"{operation} failed: storage unavailable") from exc


def _summary(record: StockRecord) -> dict:
    return {
        "sku": record.product.sku,
        "name": record.product.name,
        "quantity_on_hand": int(record.quantity_on_hand),
        "reorder_level": int(record.reorder_level),
        "in_stock": record.quantity_on_hand > 0,
        "low_stock": record.is_low_stock,
    }


def get_stock(sku: str) -> dict:
    """Current stock for one product; used to gate add-to-cart."""

    with translate_storage_errors("get_stock"):
        try:
            record = StockRecord.objects.select_related("product").get(product__sku=sku)
        except StockRecord.DoesNotExist:
            raise NotFound(sku)
    return _summary(record)


def list_low_stock() -> list[dict]:
    """Products at or below their reorder level."""

    with translate_storage_errors("list_low_stock"):
        qs = StockRecord.objects.select_related("product").filter(quantity_on_hand__lte=F("reorder_level"))
        return [_summary(record) for record in qs]


def _audit_limit(limit) -> int:
    if limit is None:
        return int(getattr(settings, "INVENTORY_AUDIT_DEFAULT_LIMIT", 100))
    max_limit = int(getattr(settings, "INVENTORY_AUDIT_MAX_LIMIT", 500))
    if isinstance(limit, bool) or not isinstance(limit, int) or not 0 < limit <= max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return limit


def audit_trail(*, reason: str | None = None, search: str | None = None, limit: int | None = None):
    """Most recent movements, newest first (ties broken by id).

    ``reason`` restricts to one category; ``search`` is a case-insensitive
    substring match on product name, SKU or reason.
    """

    limit = _audit_limit(limit)
    if reason and reason not in MovementReason.values:
        raise ValidationError(f"Unknown movement reason {reason!r}")

    qs = StockMovement.objects.select_related("product").order_by("-created_at", "-id")
    if reason:
        qs = qs.filter(reason=reason)
    search = (search or "").strip()
    if search:
        qs = qs.filter(
            Q(product__name__icontains=search)
            | Q(product__sku__icontains=search)
            | Q(reason__icontains=search)
        )
    with translate_storage_errors("audit_trail"):
        return list(qs[:limit])


def receipt_movements(receipt_id: str):
    """All movements written by one stock receipt, in line order."""

    with translate_storage_errors("receipt_movements"):
        return list(
            StockMovement.objects.select_related("product")
            .filter(reference_type=ReferenceType.RECEIPT, reference_id=receipt_id)
            .order_by("id")
        )


def _ledger_total(product_id: int) -> int:
    agg = StockMovement.objects.filter(product_id=product_id).aggregate(total=Sum("quantity_change"))
    return int(agg["total"] or 0)


def reconciliation_check(sku: str) -> bool:
    """Recompute the ledger sum for one product and compare it to quantity on hand.

    The stock row is locked for the duration of the read so a concurrent
    writer cannot slip between the two reads.
    """

    with translate_storage_errors("reconciliation_check"), transaction.atomic():
        try:
            record = StockRecord.objects.select_for_update(of=("self",)).select_related("product").get(product__sku=sku)
        except StockRecord.DoesNotExist:
            raise NotFound(sku)
        ledger_total = _ledger_total(record.product_id)

    if ledger_total != record.quantity_on_hand:
        logger.error(
            "inventory.reconciliation_violation",
            extra={
                "event": "inventory.reconciliation_violation",
                "sku": sku,
                "quantity_on_hand": int(record.quantity_on_hand),
                "ledger_total": ledger_total,
            },
        )
        return False
    return True


def _snapshot_isolation() -> None:
    # Must be the first statement of the transaction.
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")


def audit_ledger() -> int:
    """Check every product; raise ReconciliationViolation listing any mismatch.

    Records and movement sums are read from one snapshot without taking row
    locks, so writers keep going while the audit runs. Returns the number of
    products checked.
    """

    outermost = not connection.in_atomic_block
    with translate_storage_errors("audit_ledger"), transaction.atomic():
        if outermost:
            _snapshot_isolation()
        records = list(StockRecord.objects.select_related("product").order_by("pk"))
        totals = {
            row["product_id"]: int(row["total"] or 0)
            for row in StockMovement.objects.order_by().values("product_id").annotate(total=Sum("quantity_change"))
        }

    mismatches = []
    for record in records:
        ledger_total = totals.get(record.product_id, 0)
        if ledger_total != record.quantity_on_hand:
            mismatch = {
                "sku": record.product.sku,
                "quantity_on_hand": int(record.quantity_on_hand),
                "ledger_total": ledger_total,
            }
            logger.error(
                "inventory.reconciliation_violation",
                extra={"event": "inventory.reconciliation_violation", **mismatch},
            )
            mismatches.append(mismatch)
    if mismatches:
        raise ReconciliationViolation(mismatches)
    return len(records)


def inventory_summary() -> dict:
    with translate_storage_errors("inventory_summary"):
        agg = StockRecord.objects.aggregate(
            total_products=Count("id"),
            total_units=Sum("quantity_on_hand"),
            low_stock_count=Count("id", filter=Q(quantity_on_hand__lte=F("reorder_level"))),
            out_of_stock_count=Count("id", filter=Q(quantity_on_hand=0)),
        )
    return {key: int(value or 0) for key, value in agg.items()}


def movement_totals() -> dict:
    """Movement count and net units per reason category."""

    totals = {reason: {"movements": 0, "units": 0} for reason in MovementReason.values}
    with translate_storage_errors("movement_totals"):
        rows = StockMovement.objects.order_by().values("reason").annotate(
            movements=Count("id"), units=Sum("quantity_change")
        )
        for row in rows:
            totals[row["reason"]] = {"movements": int(row["movements"]), "units": int(row["units"] or 0)}
    return totals


# EOF
