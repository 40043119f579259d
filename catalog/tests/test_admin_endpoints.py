import pytest
from catalog.models import Product
from catalog.tests.factories import ProductFactory
from common.choices import ReferenceType
from django.contrib.auth import get_user_model
from inventory.models import StockMovement, StockRecord
from inventory.services import adjust_stock
from rest_framework.test import APIClient

URL = "/api/v1/admin/catalog/products/"


def _staff_client(username="admin"):
    User = get_user_model()
    staff = User.objects.create_user(
        username=username, email=f"{username}@example.com", password="pass1234", is_staff=True
    )
    client = APIClient()
    client.force_authenticate(user=staff)
    return client


@pytest.mark.django_db
def test_admin_create_product_requires_staff():
    User = get_user_model()
    regular = User.objects.create_user(username="user", email="user@example.com", password="pass1234")
    client = APIClient()
    client.force_authenticate(user=regular)

    resp = client.post(URL, {"sku": "P1", "name": "Blue Notebook"}, format="json")

    assert resp.status_code in (401, 403)
    assert not Product.objects.filter(sku="P1").exists()


@pytest.mark.django_db
def test_admin_create_product_books_opening_stock():
    client = _staff_client()

    resp = client.post(
        URL,
        {"sku": "P1", "name": "Blue Notebook", "initial_quantity": 12, "reorder_level": 5},
        format="json",
    )

    assert resp.status_code == 201
    assert resp.data["sku"] == "P1"
    assert resp.data["quantity_on_hand"] == 12
    assert resp.data["current_reorder_level"] == 5
    movement = StockMovement.objects.get(product__sku="P1")
    assert movement.quantity_change == 12
    assert movement.reference_type == ReferenceType.OPENING_BALANCE
    assert movement.actor == "admin"


@pytest.mark.django_db
def test_admin_create_product_without_stock():
    client = _staff_client()
    resp = client.post(URL, {"sku": "P2", "name": "Gel Pen"}, format="json")
    assert resp.status_code == 201
    assert resp.data["quantity_on_hand"] == 0
    assert not StockMovement.objects.filter(product__sku="P2").exists()


@pytest.mark.django_db
def test_admin_create_duplicate_sku_is_rejected():
    ProductFactory(sku="P1")
    client = _staff_client()
    resp = client.post(URL, {"sku": "P1", "name": "Again"}, format="json")
    assert resp.status_code == 400
    assert Product.objects.filter(sku="P1").count() == 1


@pytest.mark.django_db
def test_admin_update_does_not_touch_stock():
    client = _staff_client()
    client.post(URL, {"sku": "P1", "name": "Blue Notebook", "initial_quantity": 3}, format="json")

    resp = client.patch(f"{URL}P1/", {"name": "Navy Notebook", "initial_quantity": 50}, format="json")

    assert resp.status_code == 200
    assert resp.data["name"] == "Navy Notebook"
    assert resp.data["quantity_on_hand"] == 3
    assert StockMovement.objects.filter(product__sku="P1").count() == 1


@pytest.mark.django_db
def test_admin_delete_refused_while_stock_on_hand():
    client = _staff_client()
    client.post(URL, {"sku": "P1", "name": "Blue Notebook", "initial_quantity": 4}, format="json")

    resp = client.delete(f"{URL}P1/")

    assert resp.status_code == 409
    assert resp.data["code"] == "outstanding_stock"
    assert Product.objects.filter(sku="P1").exists()
    assert StockRecord.objects.get(product__sku="P1").quantity_on_hand == 4


@pytest.mark.django_db
def test_admin_delete_after_write_off_removes_history():
    client = _staff_client()
    client.post(URL, {"sku": "P1", "name": "Blue Notebook", "initial_quantity": 4}, format="json")
    adjust_stock(sku="P1", delta=-4, actor="admin", note="write-off before delisting")

    resp = client.delete(f"{URL}P1/")

    assert resp.status_code == 204
    assert not Product.objects.filter(sku="P1").exists()
    assert not StockRecord.objects.filter(product__sku="P1").exists()
    assert not StockMovement.objects.filter(product__sku="P1").exists()


@pytest.mark.django_db
def test_admin_delete_unknown_product():
    client = _staff_client()
    assert client.delete(f"{URL}GHOST/").status_code == 404
