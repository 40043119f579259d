"""Catalog services: product lifecycle wired to the inventory core."""

import logging

from django.db import transaction
from inventory.errors import NotFound, ValidationError
from inventory.services import create_stock_record, purge_product_stock

from .models import Product

logger = logging.getLogger("stockledger.catalog")


@transaction.atomic
def create_product(
    *,
    sku: str,
    name: str,
    actor: str,
    description: str = "",
    status: str = Product.STATUS_ACTIVE,
    initial_quantity: int = 0,
    reorder_level: int = 0,
) -> Product:
    """Create a product together with its stock record."""

    sku = (sku or "").strip()
    if not sku or not (name or "").strip():
        raise ValidationError("Products need a sku and a name")
    if Product.objects.filter(sku=sku).exists():
        raise ValidationError(f"A product with sku {sku!r} already exists")
    product = Product.objects.create(sku=sku, name=name.strip(), description=description, status=status)
    create_stock_record(product=product, initial_quantity=initial_quantity, reorder_level=reorder_level, actor=actor)
    logger.info(
        "catalog.product_created",
        extra={"event": "catalog.product_created", "sku": sku, "initial_quantity": initial_quantity, "actor": actor},
    )
    return product


@transaction.atomic
def delete_product(*, sku: str, actor: str) -> int:
    """Delete a product and its ledger history.

    Refused with ``OutstandingStock`` while units remain on hand; the stock
    must first be written off through an adjustment. Returns the number of
    movements removed.
    """

    try:
        product = Product.objects.select_for_update().get(sku=sku)
    except Product.DoesNotExist:
        raise NotFound(sku)
    removed = purge_product_stock(product=product, actor=actor)
    product.delete()
    logger.warning(
        "catalog.product_deleted",
        extra={"event": "catalog.product_deleted", "sku": sku, "movements_removed": removed, "actor": actor},
    )
    return removed


# EOF
