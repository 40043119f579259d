import threading
from typing import List

import pytest
from catalog.services import create_product
from django.db import close_old_connections, connection, connections
from inventory.errors import InsufficientStock, MovementError
from inventory.models import ReceiptIdempotencyKey, StockMovement, StockRecord
from inventory.selectors import audit_ledger, reconciliation_check
from inventory.services import receive_stock, record_sale


def _sale_worker(barrier: threading.Barrier, sku: str, qty: int, successes: List[int], errors: List[Exception]):
    # Ensure this thread uses its own DB connection
    close_old_connections()
    barrier.wait()
    try:
        record_sale(sku=sku, quantity=qty, reference_id="order-race", actor="checkout")
        successes.append(qty)
    except MovementError as exc:
        errors.append(exc)
    finally:
        connections.close_all()


def _receipt_worker(barrier: threading.Barrier, items, key, receipt_ids: List[str], errors: List[Exception]):
    close_old_connections()
    barrier.wait()
    try:
        receipt_ids.append(receive_stock(items=items, received_by="dock", idempotency_key=key))
    except MovementError as exc:  # pragma: no cover
        errors.append(exc)
    finally:
        connections.close_all()


def _run(threads):
    for t in threads:
        t.start()
    for t in threads:
        t.join()


@pytest.mark.django_db(transaction=True)
def test_threaded_competing_sales_never_oversell():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    create_product(sku="P-RACE", name="Last One", actor="seed", initial_quantity=3)

    barrier = threading.Barrier(2)
    successes: List[int] = []
    errors: List[Exception] = []
    _run(
        [
            threading.Thread(target=_sale_worker, args=(barrier, "P-RACE", 3, successes, errors)),
            threading.Thread(target=_sale_worker, args=(barrier, "P-RACE", 3, successes, errors)),
        ]
    )

    # Exactly one should succeed; the loser sees the post-commit quantity
    assert successes == [3]
    assert len(errors) == 1 and isinstance(errors[0], InsufficientStock)
    assert errors[0].available == 0
    assert StockRecord.objects.get(product__sku="P-RACE").quantity_on_hand == 0
    assert reconciliation_check("P-RACE") is True


@pytest.mark.django_db(transaction=True)
def test_threaded_single_unit_sales_succeed_exactly_k_times(settings):
    settings.INVENTORY_MAX_RETRIES = 50
    settings.INVENTORY_RETRY_BACKOFF_SECONDS = 0.01
    create_product(sku="P-RUSH", name="Limited Run", actor="seed", initial_quantity=3)

    barrier = threading.Barrier(8)
    successes: List[int] = []
    errors: List[Exception] = []
    _run([threading.Thread(target=_sale_worker, args=(barrier, "P-RUSH", 1, successes, errors)) for _ in range(8)])

    assert len(successes) == 3
    assert len(errors) == 5
    assert all(isinstance(exc, InsufficientStock) for exc in errors)
    assert StockRecord.objects.get(product__sku="P-RUSH").quantity_on_hand == 0
    assert StockMovement.objects.filter(product__sku="P-RUSH", reference_id="order-race").count() == 3
    assert reconciliation_check("P-RUSH") is True


@pytest.mark.django_db(transaction=True)
def test_threaded_mixed_writers_keep_ledger_reconciled():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    create_product(sku="A", name="Alpha", actor="seed", initial_quantity=10)
    create_product(sku="B", name="Beta", actor="seed", initial_quantity=10)

    barrier = threading.Barrier(6)
    successes: List[int] = []
    errors: List[Exception] = []
    receipt_ids: List[str] = []
    threads = [threading.Thread(target=_sale_worker, args=(barrier, "A", 2, successes, errors)) for _ in range(3)]
    threads += [
        # Opposite line order in each batch; locks are still taken in one global order
        threading.Thread(
            target=_receipt_worker,
            args=(barrier, [{"sku": "A", "quantity": 1}, {"sku": "B", "quantity": 1}], None, receipt_ids, errors),
        ),
        threading.Thread(
            target=_receipt_worker,
            args=(barrier, [{"sku": "B", "quantity": 1}, {"sku": "A", "quantity": 1}], None, receipt_ids, errors),
        ),
        threading.Thread(target=_sale_worker, args=(barrier, "B", 4, successes, errors)),
    ]
    _run(threads)

    assert errors == []
    assert len(receipt_ids) == 2
    assert StockRecord.objects.get(product__sku="A").quantity_on_hand == 10 - 6 + 2
    assert StockRecord.objects.get(product__sku="B").quantity_on_hand == 10 - 4 + 2
    assert audit_ledger() == 2


@pytest.mark.django_db(transaction=True)
def test_threaded_duplicate_receipt_submissions_apply_once():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    create_product(sku="P-DUP", name="Duplicate", actor="seed")
    items = [{"sku": "P-DUP", "quantity": 7}]

    barrier = threading.Barrier(2)
    receipt_ids: List[str] = []
    errors: List[Exception] = []
    _run(
        [
            threading.Thread(target=_receipt_worker, args=(barrier, items, "dock-42", receipt_ids, errors)),
            threading.Thread(target=_receipt_worker, args=(barrier, items, "dock-42", receipt_ids, errors)),
        ]
    )

    assert errors == []
    assert len(receipt_ids) == 2 and receipt_ids[0] == receipt_ids[1]
    assert ReceiptIdempotencyKey.objects.filter(key="dock-42").count() == 1
    assert StockMovement.objects.filter(reference_id=receipt_ids[0]).count() == 1
    assert StockRecord.objects.get(product__sku="P-DUP").quantity_on_hand == 7


# EOF
