"""Inventory endpoints: ingredient accounts, ledger and reports."""

from fastapi import APIRouter, Depends, Query, Response, status

from inventory_ledger.api.dependencies import (
    get_inventory_report_use_case,
    get_stock_adjustment_use_case,
)
from inventory_ledger.application.dto.requests import (
    RegisterIngredientRequest,
    StockAdjustmentRequest,
)
from inventory_ledger.application.dto.responses import (
    AccountListResponse,
    ErrorResponse,
    IngredientAccountResponse,
    LedgerEntryResponse,
    LedgerPageResponse,
    PurchaseHistoryResponse,
    ReconciliationResponse,
    RegisterIngredientResponse,
    StockAdjustmentResponse,
    ValuationResponse,
)
from inventory_ledger.application.use_cases.adjust_stock import StockAdjustmentUseCase
from inventory_ledger.application.use_cases.inventory_report import InventoryReportUseCase

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.post(
    "/ingredients",
    response_model=RegisterIngredientResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def register_ingredient(
    request: RegisterIngredientRequest,
    response: Response,
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> RegisterIngredientResponse:
    """Create a zero-stock account; 200 if it already exists."""
    account, created = await use_case.register(request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return RegisterIngredientResponse(
        account=IngredientAccountResponse.from_entity(account),
        created=created,
    )


@router.post(
    "/adjustments",
    response_model=StockAdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def adjust_stock(
    request: StockAdjustmentRequest,
    use_case: StockAdjustmentUseCase = Depends(get_stock_adjustment_use_case),
) -> StockAdjustmentResponse:
    """Set ingredients to their counted quantity; the difference is ledgered."""
    adjustment = await use_case.adjust(request)
    return use_case.to_response(adjustment)


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> AccountListResponse:
    accounts, limit, offset = await use_case.list_accounts(limit=limit, offset=offset)
    return AccountListResponse(
        accounts=[IngredientAccountResponse.from_entity(a) for a in accounts],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/accounts/{ingredient_id}",
    response_model=IngredientAccountResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_account(
    ingredient_id: str,
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> IngredientAccountResponse:
    return IngredientAccountResponse.from_entity(await use_case.get_account(ingredient_id))


@router.get(
    "/accounts/{ingredient_id}/ledger",
    response_model=LedgerPageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_ledger(
    ingredient_id: str,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> LedgerPageResponse:
    """Ledger entries of an ingredient, newest first."""
    entries, limit, offset = await use_case.ledger_page(
        ingredient_id, limit=limit, offset=offset
    )
    return LedgerPageResponse(
        ingredient_id=ingredient_id,
        entries=[LedgerEntryResponse.from_entity(e) for e in entries],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/accounts/{ingredient_id}/reconcile",
    response_model=ReconciliationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def reconcile_account(
    ingredient_id: str,
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> ReconciliationResponse:
    """Compare the account's stock with the sum of its ledger entries."""
    result = await use_case.reconcile(ingredient_id)
    return use_case.reconciliation_response(result)


@router.get(
    "/accounts/{ingredient_id}/purchase-history",
    response_model=PurchaseHistoryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_purchase_history(
    ingredient_id: str,
    limit: int | None = Query(default=None, ge=1),
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> PurchaseHistoryResponse:
    history = await use_case.purchase_history(ingredient_id, limit=limit)
    return use_case.purchase_history_response(history)


@router.get("/low-stock", response_model=AccountListResponse)
async def list_low_stock(
    threshold: int | None = Query(default=None, ge=0),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> AccountListResponse:
    """Accounts at or below ``threshold`` (default: each account's min_stock)."""
    accounts, limit, offset = await use_case.low_stock(
        threshold=threshold, limit=limit, offset=offset
    )
    return AccountListResponse(
        accounts=[IngredientAccountResponse.from_entity(a) for a in accounts],
        limit=limit,
        offset=offset,
    )


@router.get("/valuation", response_model=ValuationResponse)
async def get_valuation(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    use_case: InventoryReportUseCase = Depends(get_inventory_report_use_case),
) -> ValuationResponse:
    """Inventory value at weighted-average cost."""
    valuation = await use_case.valuation(limit=limit, offset=offset)
    return ValuationResponse(
        accounts=[IngredientAccountResponse.from_entity(a) for a in valuation.accounts],
        account_count=valuation.account_count,
        total_units=valuation.total_units,
        total_value=valuation.total_value,
    )
