"""
Use case providers for route handlers.

Each request gets a fresh use case; the stores, lock registry and pool
behind them are process-wide singletons resolved lazily. Tests replace
these providers through ``app.dependency_overrides``.
"""

from inventory_ledger.application.use_cases import (
    CompletionCoordinator,
    InventoryReportUseCase,
    PurchaseOrderWorkflow,
    StockAdjustmentUseCase,
)


def get_completion_coordinator() -> CompletionCoordinator:
    return CompletionCoordinator()


def get_purchase_order_workflow() -> PurchaseOrderWorkflow:
    return PurchaseOrderWorkflow()


def get_inventory_report_use_case() -> InventoryReportUseCase:
    return InventoryReportUseCase()


def get_stock_adjustment_use_case() -> StockAdjustmentUseCase:
    return StockAdjustmentUseCase()
