import pytest
from catalog.models import Product
from catalog.services import create_product, delete_product
from inventory.errors import NotFound, OutstandingStock, ValidationError
from inventory.models import StockMovement, StockRecord
from inventory.selectors import reconciliation_check
from inventory.services import adjust_stock, record_sale


@pytest.mark.django_db
def test_create_product_creates_stock_record():
    product = create_product(sku=" P1 ", name="Blue Notebook", actor="seed", initial_quantity=5, reorder_level=2)

    assert product.sku == "P1"
    record = StockRecord.objects.get(product=product)
    assert record.quantity_on_hand == 5
    assert record.reorder_level == 2
    assert reconciliation_check("P1") is True


@pytest.mark.django_db
@pytest.mark.parametrize(
    "kwargs",
    [
        {"sku": "", "name": "Nameless"},
        {"sku": "P1", "name": "  "},
        {"sku": "P1", "name": "Bad", "initial_quantity": -1},
        {"sku": "P1", "name": "Bad", "reorder_level": -3},
    ],
)
def test_create_product_rejects_bad_input(kwargs):
    with pytest.raises(ValidationError):
        create_product(actor="seed", **kwargs)
    assert not Product.objects.exists()
    assert not StockRecord.objects.exists()


@pytest.mark.django_db
def test_create_product_duplicate_sku():
    create_product(sku="P1", name="Blue Notebook", actor="seed")
    with pytest.raises(ValidationError):
        create_product(sku="P1", name="Other", actor="seed")


@pytest.mark.django_db
def test_delete_product_requires_write_off():
    create_product(sku="P1", name="Blue Notebook", actor="seed", initial_quantity=5)
    record_sale(sku="P1", quantity=2, reference_id="order-1", actor="checkout")

    with pytest.raises(OutstandingStock):
        delete_product(sku="P1", actor="admin")
    assert StockMovement.objects.filter(product__sku="P1").count() == 2

    adjust_stock(sku="P1", delta=-3, actor="admin", note="write-off")
    removed = delete_product(sku="P1", actor="admin")

    assert removed == 3
    assert not Product.objects.filter(sku="P1").exists()
    assert not StockRecord.objects.exists()


@pytest.mark.django_db
def test_delete_unknown_product():
    with pytest.raises(NotFound):
        delete_product(sku="GHOST", actor="admin")
