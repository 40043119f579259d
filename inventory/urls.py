from django.urls import path

from .views import (
    AdjustmentCreateView,
    InventoryHealthView,
    InventorySummaryView,
    LowStockListView,
    MovementListView,
    ReceiptCreateView,
    ReceiptDetailView,
    ReorderLevelView,
    ReturnCreateView,
    SaleCreateView,
    StockDetailView,
    StockReconciliationView,
)

app_name = "inventory"

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    path("summary/", InventorySummaryView.as_view(), name="inventory-summary"),
    # Stock records
    path("low-stock/", LowStockListView.as_view(), name="low-stock-list"),
    path("stock/<str:sku>/", StockDetailView.as_view(), name="stock-detail"),
    path("stock/<str:sku>/reconciliation/", StockReconciliationView.as_view(), name="stock-reconciliation"),
    path("stock/<str:sku>/reorder-level/", ReorderLevelView.as_view(), name="stock-reorder-level"),
    # Ledger
    path("movements/", MovementListView.as_view(), name="movement-list"),
    path("receipts/", ReceiptCreateView.as_view(), name="receipt-create"),
    path("receipts/<str:receipt_id>/", ReceiptDetailView.as_view(), name="receipt-detail"),
    path("sales/", SaleCreateView.as_view(), name="sale-create"),
    path("adjustments/", AdjustmentCreateView.as_view(), name="adjustment-create"),
    path("returns/", ReturnCreateView.as_view(), name="return-create"),
]

# EOF
