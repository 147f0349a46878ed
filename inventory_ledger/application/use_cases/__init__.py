"""Application use cases."""

from inventory_ledger.application.use_cases.adjust_stock import (
    AdjustedLine,
    StockAdjustment,
    StockAdjustmentUseCase,
)
from inventory_ledger.application.use_cases.complete_purchase_order import (
    CompletionCoordinator,
    CompletionResult,
)
from inventory_ledger.application.use_cases.inventory_report import (
    InventoryReportUseCase,
    InventoryValuation,
    Reconciliation,
)
from inventory_ledger.application.use_cases.manage_purchase_order import (
    PurchaseOrderPage,
    PurchaseOrderWorkflow,
)

__all__ = [
    "CompletionCoordinator",
    "CompletionResult",
    "PurchaseOrderWorkflow",
    "PurchaseOrderPage",
    "InventoryReportUseCase",
    "Reconciliation",
    "InventoryValuation",
    "StockAdjustmentUseCase",
    "StockAdjustment",
    "AdjustedLine",
]
