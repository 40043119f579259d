from datetime import timedelta
from io import StringIO

import pytest
from catalog.services import create_product
from django.core.management import CommandError, call_command
from django.utils import timezone
from inventory.models import ReceiptIdempotencyKey, StockRecord


@pytest.mark.django_db
def test_check_stock_ledger_passes_when_reconciled():
    create_product(sku="P1", name="Blue Notebook", actor="seed", initial_quantity=3)
    create_product(sku="P2", name="Gel Pen", actor="seed")
    out = StringIO()

    call_command("check_stock_ledger", stdout=out)

    assert "reconciled for 2 product(s)" in out.getvalue()


@pytest.mark.django_db
def test_check_stock_ledger_fails_on_mismatch():
    create_product(sku="P1", name="Blue Notebook", actor="seed", initial_quantity=3)
    StockRecord.objects.filter(product__sku="P1").update(quantity_on_hand=5)
    err = StringIO()

    with pytest.raises(CommandError):
        call_command("check_stock_ledger", stderr=err)

    assert "P1: on hand 5, ledger 3" in err.getvalue()


@pytest.mark.django_db
def test_cleanup_receipt_keys_removes_only_expired():
    now = timezone.now()
    ReceiptIdempotencyKey.objects.create(
        key="old", receipt_id="r1", received_by="dock", expires_at=now - timedelta(hours=1)
    )
    ReceiptIdempotencyKey.objects.create(
        key="fresh", receipt_id="r2", received_by="dock", expires_at=now + timedelta(hours=1)
    )
    ReceiptIdempotencyKey.objects.create(key="forever", receipt_id="r3", received_by="dock")
    out = StringIO()

    call_command("cleanup_receipt_keys", stdout=out)

    assert "Deleted 1 expired receipt keys." in out.getvalue()
    assert set(ReceiptIdempotencyKey.objects.values_list("key", flat=True)) == {"fresh", "forever"}
