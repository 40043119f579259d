import json
import logging

import pytest
from catalog.services import create_product
from config.logging import JsonFormatter, SamplingFilter
from inventory.errors import InsufficientStock
from inventory.models import StockRecord
from inventory.selectors import reconciliation_check
from inventory.services import receive_stock, record_sale


def _events(caplog):
    return [getattr(r, "event", None) for r in caplog.records]


@pytest.mark.django_db
def test_sale_events_are_logged(caplog):
    create_product(sku="P1", name="Blue Notebook", actor="seed", initial_quantity=2)
    caplog.set_level(logging.INFO, logger="stockledger.inventory")

    record_sale(sku="P1", quantity=1, reference_id="order-1", actor="checkout")
    with pytest.raises(InsufficientStock):
        record_sale(sku="P1", quantity=5, reference_id="order-2", actor="checkout")

    assert _events(caplog) == ["inventory.sale_recorded", "inventory.sale_rejected"]
    rejected = caplog.records[-1]
    assert rejected.sku == "P1"
    assert rejected.requested == 5
    assert rejected.available == 1


@pytest.mark.django_db
def test_receipt_replay_is_logged(caplog):
    create_product(sku="P1", name="Blue Notebook", actor="seed")
    caplog.set_level(logging.INFO, logger="stockledger.inventory")
    items = [{"sku": "P1", "quantity": 1}]

    receipt_id = receive_stock(items=items, received_by="dock", idempotency_key="k1")
    receive_stock(items=items, received_by="dock", idempotency_key="k1")

    assert _events(caplog) == ["inventory.receipt_recorded", "inventory.receipt_replayed"]
    assert caplog.records[0].receipt_id == receipt_id
    assert caplog.records[0].units == 1


@pytest.mark.django_db
def test_reconciliation_violation_is_logged_as_error(caplog):
    create_product(sku="P1", name="Blue Notebook", actor="seed", initial_quantity=2)
    StockRecord.objects.filter(product__sku="P1").update(quantity_on_hand=9)
    caplog.set_level(logging.INFO, logger="stockledger.inventory")

    assert reconciliation_check("P1") is False

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.event == "inventory.reconciliation_violation"
    assert record.ledger_total == 2


def test_json_formatter_merges_extra_fields():
    record = logging.LogRecord(
        "stockledger.inventory", logging.INFO, __file__, 1, "inventory.sale_recorded", None, None
    )
    record.event = "inventory.sale_recorded"
    record.sku = "P1"
    record.quantity = 3

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["name"] == "stockledger.inventory"
    assert payload["message"] == "inventory.sale_recorded"
    assert payload["event"] == "inventory.sale_recorded"
    assert payload["sku"] == "P1"
    assert payload["quantity"] == 3
    assert payload["time"].endswith("Z")


def test_sampling_filter_keeps_allowed_events_and_warnings():
    drop_all = SamplingFilter(rate=0.0, levels=["INFO"], allow_events=["inventory.receipt_recorded"])

    def _record(level, msg):
        return logging.LogRecord("stockledger.inventory", level, __file__, 1, msg, None, None)

    assert drop_all.filter(_record(logging.INFO, "inventory.receipt_recorded")) is True
    assert drop_all.filter(_record(logging.INFO, "inventory.sale_recorded")) is False
    assert drop_all.filter(_record(logging.WARNING, "inventory.transient_retry")) is True
