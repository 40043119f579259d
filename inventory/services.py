"""Inventory services: the single writer of stock state.

Every mutation follows the same apply protocol inside one transaction:
lock the stock row(s), compute the next quantity, reject it if negative,
write the quantity and append the movement(s), commit.
"""

import hashlib
import json
import logging
import time
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Mapping, NamedTuple, Optional, Sequence

from common.choices import MovementReason, ReferenceType
from django.conf import settings
from django.db import DatabaseError, IntegrityError, OperationalError, connection, transaction
from django.utils import timezone

from .errors import (
    IdempotencyConflict,
    InsufficientStock,
    NotFound,
    OutstandingStock,
    TransientStorageError,
    ValidationError,
)
from .models import ReceiptIdempotencyKey, StockMovement, StockRecord
from .selectors import translate_storage_errors

logger = logging.getLogger("stockledger.inventory")

ACTOR_MAX_LENGTH = StockMovement._meta.get_field("actor").max_length
REFERENCE_MAX_LENGTH = StockMovement._meta.get_field("reference_id").max_length
NOTE_MAX_LENGTH = StockMovement._meta.get_field("note").max_length
UNIT_COST_FIELD = StockMovement._meta.get_field("unit_cost")
IDEMPOTENCY_KEY_MAX_LENGTH = ReceiptIdempotencyKey._meta.get_field("key").max_length


class ReceiptLine(NamedTuple):
    sku: str
    quantity: int
    unit_cost: Optional[Decimal] = None


def _setting(name: str, default):
    return getattr(settings, name, default)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _require_actor(actor) -> str:
    actor = str(actor or "").strip()
    if not actor:
        raise ValidationError("An actor is required for every stock mutation")
    return _bounded("actor", actor, ACTOR_MAX_LENGTH)


def _bounded(name: str, value, max_length: int) -> str:
    value = str(value or "")
    if len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


def _set_lock_timeout() -> None:
    # Lock waits are bounded on postgres only.
    if connection.vendor != "postgresql":
        return
    timeout_ms = int(_setting("INVENTORY_LOCK_TIMEOUT_MS", 3000))
    with connection.cursor() as cursor:
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"])


def run_unit_of_work(operation: str, work: Callable):
    """Run ``work`` atomically, retrying a bounded number of times on lock/availability errors.

    Raises TransientStorageError once the retry budget is spent. When called
    inside an outer transaction there is exactly one attempt, since the outer
    caller owns the commit.
    """

    nested = connection.in_atomic_block
    attempts = 1 if nested else int(_setting("INVENTORY_MAX_RETRIES", 3)) + 1
    backoff = float(_setting("INVENTORY_RETRY_BACKOFF_SECONDS", 0.05))

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                _set_lock_timeout()
                return work()
        except IntegrityError:
            raise
        except OperationalError as exc:
            if attempt >= attempts:
                raise TransientStorageError(f"{operation} could not acquire stock locks; retry later") from exc
            logger.warning(
                "inventory.transient_retry",
                extra={"event": "inventory.transient_retry", "operation": operation, "attempt": attempt},
            )
            time.sleep(backoff * attempt)
        except DatabaseError as exc:
            raise TransientStorageError(f"{operation} failed: storage unavailable") from exc


def _lock_record(sku: str) -> StockRecord:
    try:
        return StockRecord.objects.select_for_update(of=("self",)).select_related("product").get(product__sku=sku)
    except StockRecord.DoesNotExist:
        raise NotFound(sku)


def _lock_records(skus: Iterable[str]) -> dict:
    # Always lock in ascending pk order.
    qs = (
        StockRecord.objects.select_for_update(of=("self",))
        .select_related("product")
        .filter(product__sku__in=set(skus))
        .order_by("pk")
    )
    return {record.product.sku: record for record in qs}


def _apply(
    record: StockRecord,
    delta: int,
    *,
    reason: str,
    actor: str,
    reference_type: str = "",
    reference_id: str = "",
    note: str = "",
    unit_cost: Optional[Decimal] = None,
) -> StockMovement:
    """Apply a signed change to a locked record and append its movement."""

    next_quantity = int(record.quantity_on_hand) + int(delta)
    if next_quantity < 0:
        raise InsufficientStock(record.product.sku, requested=-int(delta), available=int(record.quantity_on_hand))
    record.quantity_on_hand = next_quantity
    record.save(update_fields=["quantity_on_hand", "updated_at"])
    return StockMovement.objects.create(
        product_id=record.product_id,
        quantity_change=delta,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        actor=actor,
        note=note,
        unit_cost=unit_cost,
    )


# Receipts


def compute_request_hash(lines: Sequence[ReceiptLine]) -> str:
    """SHA256 over a canonical JSON rendering of the receipt lines."""

    payload = [
        {
            "sku": line.sku,
            "quantity": line.quantity,
            "unit_cost": None if line.unit_cost is None else str(line.unit_cost),
        }
        for line in lines
    ]
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _normalize_unit_cost(value, index: int) -> Decimal:
    """Bring a line's unit cost to the stored precision.

    Values that would need rounding or do not fit the column are rejected, so
    the stored cost and the idempotency hash always match what was sent.
    """

    try:
        cost = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Line {index}: unit_cost is not a number", line=index)
    if not cost.is_finite() or cost < 0:
        raise ValidationError(f"Line {index}: unit_cost must be zero or more", line=index)
    places = UNIT_COST_FIELD.decimal_places
    try:
        quantized = cost.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        raise ValidationError(f"Line {index}: unit_cost is too large", line=index)
    if quantized != cost:
        raise ValidationError(f"Line {index}: unit_cost allows at most {places} decimal places", line=index)
    if len(quantized.as_tuple().digits) > UNIT_COST_FIELD.max_digits:
        raise ValidationError(f"Line {index}: unit_cost is too large", line=index)
    # -0.00 and 0.00 hash the same
    return abs(quantized)


def _normalize_receipt_lines(items) -> list[ReceiptLine]:
    if not items:
        raise ValidationError("A stock receipt needs at least one line item")
    lines = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Line {index}: expected a mapping with sku and quantity", line=index)
        sku = str(item.get("sku") or "").strip()
        if not sku:
            raise ValidationError(f"Line {index}: sku is required", line=index)
        quantity = item.get("quantity")
        if not _is_positive_int(quantity):
            raise ValidationError(f"Line {index}: quantity must be a positive integer", line=index)
        unit_cost = item.get("unit_cost")
        if unit_cost is not None:
            unit_cost = _normalize_unit_cost(unit_cost, index)
        lines.append(ReceiptLine(sku=sku, quantity=quantity, unit_cost=unit_cost))
    return lines


def _existing_receipt(key: str, request_hash: str) -> Optional[str]:
    with translate_storage_errors("receipt key lookup"):
        idem = ReceiptIdempotencyKey.objects.filter(key=key).first()
    if idem is None:
        return None
    if idem.request_hash and idem.request_hash != request_hash:
        raise IdempotencyConflict("Idempotency key reused with a different receipt")
    return idem.receipt_id


def receive_stock(
    *,
    items: Sequence[Mapping],
    received_by: str,
    idempotency_key: Optional[str] = None,
    note: str = "",
) -> str:
    """Record a batch of incoming stock as one receipt and return its id.

    All lines apply or none do. Each line appends one ``receipt`` movement
    carrying the shared receipt id. Passing ``idempotency_key`` makes repeated
    submissions of the same batch return the original receipt id.
    """

    lines = _normalize_receipt_lines(items)
    actor = _require_actor(received_by)
    note = _bounded("note", note, NOTE_MAX_LENGTH)
    key = _bounded("idempotency_key", (idempotency_key or "").strip(), IDEMPOTENCY_KEY_MAX_LENGTH) or None
    request_hash = compute_request_hash(lines)

    if key:
        existing = _existing_receipt(key, request_hash)
        if existing:
            logger.info(
                "inventory.receipt_replayed",
                extra={"event": "inventory.receipt_replayed", "receipt_id": existing, "actor": actor},
            )
            return existing

    receipt_id = uuid.uuid4().hex

    def _work():
        if key:
            ttl = int(_setting("INVENTORY_IDEMPOTENCY_TTL_HOURS", 24))
            ReceiptIdempotencyKey.objects.create(
                key=key,
                receipt_id=receipt_id,
                request_hash=request_hash,
                received_by=actor,
                expires_at=timezone.now() + timedelta(hours=ttl),
            )
        records = _lock_records(line.sku for line in lines)
        for index, line in enumerate(lines, start=1):
            if line.sku not in records:
                raise NotFound(line.sku, line=index)
        for line in lines:
            _apply(
                records[line.sku],
                line.quantity,
                reason=MovementReason.RECEIPT,
                actor=actor,
                reference_type=ReferenceType.RECEIPT,
                reference_id=receipt_id,
                note=note,
                unit_cost=line.unit_cost,
            )

    try:
        run_unit_of_work("receive_stock", _work)
    except IntegrityError:
        # A concurrent submission with the same key won the insert.
        existing = _existing_receipt(key, request_hash) if key else None
        if existing is None:
            raise
        return existing

    logger.info(
        "inventory.receipt_recorded",
        extra={
            "event": "inventory.receipt_recorded",
            "receipt_id": receipt_id,
            "actor": actor,
            "lines": len(lines),
            "units": sum(line.quantity for line in lines),
        },
    )
    return receipt_id


# Sales and adjustments


def record_sale(
    *,
    sku: str,
    quantity: int,
    reference_id: str,
    actor: str,
    reference_type: str = ReferenceType.ORDER,
) -> StockMovement:
    """Remove sold units. Never lets quantity on hand go below zero."""

    if not _is_positive_int(quantity):
        raise ValidationError("Sale quantity must be a positive integer")
    actor = _require_actor(actor)
    reference_id = _bounded("reference_id", reference_id, REFERENCE_MAX_LENGTH)

    def _work():
        record = _lock_record(sku)
        return _apply(
            record,
            -quantity,
            reason=MovementReason.SALE,
            actor=actor,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    try:
        movement = run_unit_of_work("record_sale", _work)
    except InsufficientStock as exc:
        logger.info(
            "inventory.sale_rejected",
            extra={
                "event": "inventory.sale_rejected",
                "sku": sku,
                "requested": exc.requested,
                "available": exc.available,
                "reference_id": reference_id,
            },
        )
        raise
    logger.info(
        "inventory.sale_recorded",
        extra={
            "event": "inventory.sale_recorded",
            "sku": sku,
            "quantity": quantity,
            "movement_id": movement.id,
            "reference_id": reference_id,
            "actor": actor,
        },
    )
    return movement


def adjust_stock(
    *,
    sku: str,
    delta: int,
    actor: str,
    reason: str = MovementReason.ADJUSTMENT,
    note: str = "",
    reference_type: str = "",
    reference_id: str = "",
) -> StockMovement:
    """Correct stock by a signed delta (miscount, write-off, return)."""

    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("Adjustment delta must be a non-zero integer")
    if reason not in MovementReason.values:
        raise ValidationError(f"Unknown movement reason {reason!r}")
    if reason == MovementReason.RECEIPT and delta < 0:
        raise ValidationError("Receipt movements must add stock")
    if reason == MovementReason.SALE and delta > 0:
        raise ValidationError("Sale movements must remove stock")
    actor = _require_actor(actor)
    note = _bounded("note", note, NOTE_MAX_LENGTH)
    reference_id = _bounded("reference_id", reference_id, REFERENCE_MAX_LENGTH)

    def _work():
        record = _lock_record(sku)
        return _apply(
            record,
            delta,
            reason=reason,
            actor=actor,
            reference_type=reference_type or ReferenceType.MANUAL,
            reference_id=reference_id,
            note=note,
        )

    movement = run_unit_of_work("adjust_stock", _work)
    logger.info(
        "inventory.stock_adjusted",
        extra={
            "event": "inventory.stock_adjusted",
            "sku": sku,
            "delta": delta,
            "reason": str(reason),
            "movement_id": movement.id,
            "actor": actor,
        },
    )
    return movement


def record_return(*, sku: str, quantity: int, reference_id: str, actor: str, note: str = "") -> StockMovement:
    """Put returned units back on hand as a compensating adjustment."""

    if not _is_positive_int(quantity):
        raise ValidationError("Return quantity must be a positive integer")
    return adjust_stock(
        sku=sku,
        delta=quantity,
        actor=actor,
        note=note or "customer return",
        reference_type=ReferenceType.RETURN,
        reference_id=reference_id,
    )


def fulfill_order_lines(*, order_reference: str, lines: Sequence[Mapping], actor: str) -> list[dict]:
    """Record one sale per order line, independently.

    A failing line never rolls back lines already applied; the outcome list
    lets the checkout side decide whether to cancel, refund or partially ship.
    """

    outcomes = []
    for line in lines:
        sku = str(line.get("sku") or "")
        quantity = line.get("quantity")
        outcome = {"sku": sku, "quantity": quantity}
        try:
            movement = record_sale(sku=sku, quantity=quantity, reference_id=order_reference, actor=actor)
        except InsufficientStock as exc:
            outcome.update(status="insufficient_stock", available=exc.available)
        except NotFound:
            outcome.update(status="not_found")
        except ValidationError as exc:
            outcome.update(status="invalid", detail=str(exc))
        except TransientStorageError:
            outcome.update(status="retry")
        else:
            outcome.update(status="fulfilled", movement_id=movement.id)
        outcomes.append(outcome)
    return outcomes


# Stock record lifecycle


def create_stock_record(*, product, initial_quantity: int = 0, reorder_level: int = 0, actor: str) -> StockRecord:
    """Create the stock record for a new product.

    A non-zero opening quantity is booked as a receipt movement so the
    ledger reconciles from the first row.
    """

    for name, value in (("initial_quantity", initial_quantity), ("reorder_level", reorder_level)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{name} must be a non-negative integer")
    actor = _require_actor(actor)

    def _work():
        record = StockRecord.objects.create(product=product, quantity_on_hand=0, reorder_level=reorder_level)
        if initial_quantity:
            _apply(
                record,
                initial_quantity,
                reason=MovementReason.RECEIPT,
                actor=actor,
                reference_type=ReferenceType.OPENING_BALANCE,
                reference_id=product.sku,
            )
        return record

    return run_unit_of_work("create_stock_record", _work)


def set_reorder_level(*, sku: str, reorder_level: int) -> StockRecord:
    if isinstance(reorder_level, bool) or not isinstance(reorder_level, int) or reorder_level < 0:
        raise ValidationError("reorder_level must be a non-negative integer")

    def _work():
        record = _lock_record(sku)
        record.reorder_level = reorder_level
        record.save(update_fields=["reorder_level", "updated_at"])
        return record

    return run_unit_of_work("set_reorder_level", _work)


def purge_product_stock(*, product, actor: str) -> int:
    """Irreversibly drop a product's stock record and ledger history.

    Refused while any stock is on hand: write it off with an adjustment first.
    Returns the number of movements removed.
    """

    actor = _require_actor(actor)

    def _work():
        try:
            record = StockRecord.objects.select_for_update().get(product=product)
        except StockRecord.DoesNotExist:
            return 0
        if record.quantity_on_hand != 0:
            raise OutstandingStock(
                f"{product.sku} still has {record.quantity_on_hand} units on hand; write them off first"
            )
        removed, _ = StockMovement.objects.filter(product=product).purge()
        record.delete()
        return removed

    removed = run_unit_of_work("purge_product_stock", _work)
    logger.warning(
        "inventory.ledger_purged",
        extra={"event": "inventory.ledger_purged", "sku": product.sku, "movements": removed, "actor": actor},
    )
    return removed


# EOF
