"""Inventory API views.

Stock reads are public so storefront listings can gate add-to-cart. Every
mutation and the audit views are restricted to staff.
"""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors, services
from .errors import (
    IdempotencyConflict,
    InsufficientStock,
    MovementError,
    NotFound,
    OutstandingStock,
    TransientStorageError,
    ValidationError,
)
from .serializers import (
    AdjustmentSerializer,
    AuditTrailQuerySerializer,
    ReceiveStockSerializer,
    ReorderLevelSerializer,
    ReturnSerializer,
    SaleSerializer,
    StockLevelSerializer,
    StockMovementSerializer,
)

ErrorSerializer = inline_serializer(name="InventoryError", fields={"detail": rf_serializers.CharField()})


def error_response(exc: MovementError) -> Response:
    """Map an inventory error to the response the storefront shows."""

    if isinstance(exc, InsufficientStock):
        return Response(
            {
                "detail": "Item no longer available at requested quantity.",
                "code": exc.code,
                "sku": exc.sku,
                "available": exc.available,
            },
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, (IdempotencyConflict, OutstandingStock)):
        return Response({"detail": str(exc), "code": exc.code}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, ValidationError):
        body = {"detail": str(exc), "code": exc.code}
        if exc.line is not None:
            body["line"] = exc.line
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, NotFound):
        body = {"detail": "Not found.", "code": exc.code, "sku": exc.sku}
        if exc.line is not None:
            body["line"] = exc.line
        return Response(body, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, TransientStorageError):
        return Response(
            {"detail": "Unable to update stock right now. Please retry.", "code": exc.code},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response(
        {"detail": "Unable to update stock.", "code": exc.code},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _actor(request, supplied: str | None = None) -> str:
    return (supplied or "").strip() or request.user.get_username()


class InventoryHealthView(APIView):
    throttle_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


class StockDetailView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Get stock for a product",
        description="Quantity on hand and reorder level for one SKU.",
        responses={200: StockLevelSerializer, 404: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Stock",
                value={
                    "sku": "P1",
                    "name": "Notebook",
                    "quantity_on_hand": 7,
                    "reorder_level": 5,
                    "in_stock": True,
                    "low_stock": False,
                },
            )
        ],
    )
    def get(self, request, sku: str):
        try:
            data = selectors.get_stock(sku)
        except MovementError as exc:
            return error_response(exc)
        return Response(StockLevelSerializer(data).data)


class LowStockListView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List low-stock products",
        description="Products whose quantity on hand is at or below their reorder level.",
        responses={200: StockLevelSerializer(many=True)},
    )
    def get(self, request):
        try:
            rows = selectors.list_low_stock()
        except MovementError as exc:
            return error_response(exc)
        return Response({"results": StockLevelSerializer(rows, many=True).data})


class StockReconciliationView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Check ledger reconciliation for a product",
        responses={
            200: inline_serializer(
                name="ReconciliationResult",
                fields={"sku": rf_serializers.CharField(), "reconciled": rf_serializers.BooleanField()},
            ),
            404: ErrorSerializer,
        },
    )
    def get(self, request, sku: str):
        try:
            ok = selectors.reconciliation_check(sku)
        except MovementError as exc:
            return error_response(exc)
        return Response({"sku": sku, "reconciled": ok})


class ReorderLevelView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Set reorder level",
        request=ReorderLevelSerializer,
        responses={200: StockLevelSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
    )
    def patch(self, request, sku: str):
        serializer = ReorderLevelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.set_reorder_level(sku=sku, reorder_level=serializer.validated_data["reorder_level"])
            data = selectors.get_stock(sku)
        except MovementError as exc:
            return error_response(exc)
        return Response(StockLevelSerializer(data).data)


class InventorySummaryView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory dashboard summary",
        description="Product and unit totals, low/out-of-stock counts, and movement totals per reason.",
    )
    def get(self, request):
        try:
            body = {**selectors.inventory_summary(), "movements": selectors.movement_totals()}
        except MovementError as exc:
            return error_response(exc)
        return Response(body)


class MovementListView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Stock audit trail",
        description=(
            "Most recent movements, newest first. Filters: reason (receipt/sale/adjustment), "
            "search (product name, SKU or reason text), limit (default 100)."
        ),
        parameters=[
            OpenApiParameter(name="reason", required=False, type=str),
            OpenApiParameter(name="search", required=False, type=str),
            OpenApiParameter(name="limit", required=False, type=int),
        ],
        responses={200: StockMovementSerializer(many=True)},
    )
    def get(self, request):
        query = AuditTrailQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            movements = selectors.audit_trail(**query.validated_data)
        except MovementError as exc:
            return error_response(exc)
        return Response({"results": StockMovementSerializer(movements, many=True).data})


class ReceiptCreateView(APIView):
    """Receive a batch of stock.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with a different payload.
    """

    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Receive stock",
        description="Adds stock for every line atomically. Idempotent when Idempotency-Key header is set.",
        request=ReceiveStockSerializer,
        parameters=[
            OpenApiParameter(
                name="Idempotency-Key",
                location=OpenApiParameter.HEADER,
                required=False,
                description="Repeated submissions with the same key return the original receipt",
                type=str,
            )
        ],
        responses={
            201: inline_serializer(name="ReceiptCreated", fields={"receipt_id": rf_serializers.CharField()}),
            400: ErrorSerializer,
            404: ErrorSerializer,
            409: ErrorSerializer,
        },
        examples=[
            OpenApiExample(
                "Receipt",
                value={
                    "items": [{"sku": "P1", "quantity": 20}, {"sku": "P2", "quantity": 5}],
                    "received_by": "Mohamed",
                },
                request_only=True,
            ),
            OpenApiExample("Created", value={"receipt_id": "3f0c9d3a5b8e4b2f9a1d6c7e8f901234"}, response_only=True),
        ],
    )
    def post(self, request):
        serializer = ReceiveStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            receipt_id = services.receive_stock(
                items=data["items"],
                received_by=_actor(request, data.get("received_by")),
                idempotency_key=request.headers.get("Idempotency-Key"),
                note=data.get("note", ""),
            )
        except MovementError as exc:
            return error_response(exc)
        return Response({"receipt_id": receipt_id}, status=status.HTTP_201_CREATED)


class ReceiptDetailView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Get receipt movements",
        responses={200: StockMovementSerializer(many=True), 404: ErrorSerializer},
    )
    def get(self, request, receipt_id: str):
        try:
            movements = selectors.receipt_movements(receipt_id)
        except MovementError as exc:
            return error_response(exc)
        if not movements:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {"receipt_id": receipt_id, "results": StockMovementSerializer(movements, many=True).data}
        )


class SaleCreateView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Record a sale",
        description="Removes sold units. Fails with 409 when stock would go negative.",
        request=SaleSerializer,
        responses={201: StockMovementSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Insufficient stock",
                value={"detail": "Item no longer available at requested quantity.", "sku": "P1", "available": 2},
                response_only=True,
                status_codes=["409"],
            )
        ],
    )
    def post(self, request):
        serializer = SaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = services.record_sale(
                sku=data["sku"],
                quantity=data["quantity"],
                reference_id=data.get("reference_id", ""),
                actor=_actor(request, data.get("actor")),
            )
        except MovementError as exc:
            return error_response(exc)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class AdjustmentCreateView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Adjust stock",
        description="Signed correction (miscount, write-off). Negative deltas cannot take stock below zero.",
        request=AdjustmentSerializer,
        responses={201: StockMovementSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
    )
    def post(self, request):
        serializer = AdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = services.adjust_stock(
                sku=data["sku"],
                delta=data["delta"],
                reason=data["reason"],
                note=data.get("note", ""),
                actor=_actor(request, data.get("actor")),
            )
        except MovementError as exc:
            return error_response(exc)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class ReturnCreateView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Record a customer return",
        request=ReturnSerializer,
        responses={201: StockMovementSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
    )
    def post(self, request):
        serializer = ReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = services.record_return(
                sku=data["sku"],
                quantity=data["quantity"],
                reference_id=data["reference_id"],
                note=data.get("note", ""),
                actor=_actor(request, data.get("actor")),
            )
        except MovementError as exc:
            return error_response(exc)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


# EOF
