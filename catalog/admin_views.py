"""Admin viewsets for write endpoints in the catalog app.

Endpoints are restricted to staff users and use scoped throttling. Product
creation and deletion run through the catalog services so the stock record
and ledger stay consistent with the catalog.
"""

from drf_spectacular.utils import extend_schema, extend_schema_view
from inventory.errors import MovementError
from inventory.views import error_response
from rest_framework import permissions, status, viewsets
from rest_framework.response import Response

from .admin_serializers import ProductAdminSerializer
from .models import Product
from .services import create_product, delete_product


class AdminBaseViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "catalog_admin_write"


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List products (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get product (admin)"),
    create=extend_schema(tags=["Admin Endpoints"], summary="Create product with opening stock"),
    update=extend_schema(tags=["Admin Endpoints"], summary="Update product"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update product"),
    destroy=extend_schema(
        tags=["Admin Endpoints"],
        summary="Delete product",
        description="Refused with 409 while stock is on hand; removes the product's ledger history otherwise.",
    ),
)
class ProductAdminViewSet(AdminBaseViewSet):
    queryset = Product.objects.select_related("stock").order_by("name")
    serializer_class = ProductAdminSerializer
    lookup_field = "sku"

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            product = create_product(
                sku=data["sku"],
                name=data["name"],
                description=data.get("description", ""),
                status=data.get("status", Product.STATUS_ACTIVE),
                initial_quantity=data.get("initial_quantity", 0),
                reorder_level=data.get("reorder_level", 0),
                actor=request.user.get_username(),
            )
        except MovementError as exc:
            return error_response(exc)
        return Response(self.get_serializer(product).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        try:
            delete_product(sku=product.sku, actor=request.user.get_username())
        except MovementError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)
