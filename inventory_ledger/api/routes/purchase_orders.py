"""Purchase order endpoints."""

from fastapi import APIRouter, Depends, Query, status

from inventory_ledger.api.dependencies import (
    get_completion_coordinator,
    get_purchase_order_workflow,
)
from inventory_ledger.application.dto.requests import (
    CreatePurchaseOrderRequest,
    ReplaceItemsRequest,
)
from inventory_ledger.application.dto.responses import (
    CompletionResponse,
    ErrorResponse,
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
)
from inventory_ledger.application.use_cases.complete_purchase_order import (
    CompletionCoordinator,
)
from inventory_ledger.application.use_cases.manage_purchase_order import (
    PurchaseOrderWorkflow,
)
from inventory_ledger.core.entities.purchase_order import PurchaseOrderStatus

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])


@router.post(
    "",
    response_model=PurchaseOrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_purchase_order(
    request: CreatePurchaseOrderRequest,
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderResponse:
    """Create a draft or issued purchase order."""
    order = await workflow.create(request)
    return workflow.to_response(order)


@router.get("", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    status_filter: PurchaseOrderStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderListResponse:
    """List purchase orders, newest issued first."""
    page = await workflow.list_orders(status=status_filter, limit=limit, offset=offset)
    return workflow.to_list_response(page)


@router.get(
    "/{purchase_order_id}",
    response_model=PurchaseOrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_purchase_order(
    purchase_order_id: str,
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderResponse:
    return workflow.to_response(await workflow.get(purchase_order_id))


@router.put(
    "/{purchase_order_id}/items",
    response_model=PurchaseOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def replace_purchase_order_items(
    purchase_order_id: str,
    request: ReplaceItemsRequest,
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderResponse:
    """Replace the line items of a draft order."""
    order = await workflow.replace_items(purchase_order_id, request.items)
    return workflow.to_response(order)


@router.post(
    "/{purchase_order_id}/issue",
    response_model=PurchaseOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def issue_purchase_order(
    purchase_order_id: str,
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderResponse:
    return workflow.to_response(await workflow.issue(purchase_order_id))


@router.post(
    "/{purchase_order_id}/cancel",
    response_model=PurchaseOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def cancel_purchase_order(
    purchase_order_id: str,
    workflow: PurchaseOrderWorkflow = Depends(get_purchase_order_workflow),
) -> PurchaseOrderResponse:
    return workflow.to_response(await workflow.cancel(purchase_order_id))


@router.post(
    "/{purchase_order_id}/complete",
    response_model=CompletionResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def complete_purchase_order(
    purchase_order_id: str,
    coordinator: CompletionCoordinator = Depends(get_completion_coordinator),
) -> CompletionResponse:
    """
    Receive all lines into stock and mark the order complete.

    Safe to repeat: lines already received are skipped, and a complete
    order returns success without touching stock.
    """
    result = await coordinator.complete(purchase_order_id)
    return coordinator.to_response(result)


@router.delete(
    "/{purchase_order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_purchase_order(
    purchase_order_id: str,
    coordinator: CompletionCoordinator = Depends(get_completion_coordinator),
) -> None:
    """Delete an order that is not complete."""
    await coordinator.delete(purchase_order_id)
