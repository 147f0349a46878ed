"""Purchase order workflow: create, issue, cancel, edit and list orders."""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from functools import partial
from typing import Any
from uuid import uuid4

from inventory_ledger.application.dto.requests import (
    CreatePurchaseOrderRequest,
    LineItemRequest,
)
from inventory_ledger.application.dto.responses import (
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
)
from inventory_ledger.application.use_cases.complete_purchase_order import (
    TransactionFactory,
)
from inventory_ledger.config import get_logger, get_settings
from inventory_ledger.core.entities.inventory import utc_now
from inventory_ledger.core.entities.purchase_order import (
    PURCHASE_ORDER_REF,
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)
from inventory_ledger.core.exceptions import (
    InvalidStateError,
    PurchaseOrderNotFoundError,
    ValidationError,
)
from inventory_ledger.core.interfaces.inventory_store import ILedgerStore
from inventory_ledger.core.interfaces.purchase_order_store import IPurchaseOrderStore
from inventory_ledger.core.interfaces.supplier_catalog import ISupplierCatalog

logger = get_logger(__name__)

_CREATABLE = (PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.ISSUED)


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Apply the configured default and maximum page size."""
    ledger = get_settings().ledger
    if limit is None or limit <= 0:
        limit = ledger.default_page_size
    return min(limit, ledger.max_page_size), max(offset or 0, 0)


@dataclass
class PurchaseOrderPage:
    orders: list[PurchaseOrder]
    total: int
    limit: int
    offset: int


class PurchaseOrderWorkflow:
    """Procurement-side operations on purchase orders (completion excluded)."""

    def __init__(
        self,
        purchase_order_store: IPurchaseOrderStore | None = None,
        supplier_catalog: ISupplierCatalog | None = None,
        ledger_store: ILedgerStore | None = None,
        transaction: TransactionFactory | None = None,
    ):
        self._purchase_order_store = purchase_order_store
        self._supplier_catalog = supplier_catalog
        self._ledger_store = ledger_store
        self._transaction = transaction

    async def _get_purchase_order_store(self) -> IPurchaseOrderStore:
        if self._purchase_order_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import (
                get_purchase_order_store,
            )

            self._purchase_order_store = await get_purchase_order_store()
        return self._purchase_order_store

    async def _get_supplier_catalog(self) -> ISupplierCatalog:
        if self._supplier_catalog is None:
            from inventory_ledger.infrastructure.storage.sqlite import (
                get_supplier_link_store,
            )

            self._supplier_catalog = await get_supplier_link_store()
        return self._supplier_catalog

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

    def _begin(self) -> AbstractAsyncContextManager[Any]:
        if self._transaction is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_transaction

            self._transaction = partial(get_transaction, immediate=True)
        return self._transaction()

    async def create(self, request: CreatePurchaseOrderRequest) -> PurchaseOrder:
        """Create a draft or issued order and link its catalog items."""
        if request.status not in _CREATABLE:
            raise ValidationError(
                "status", "must be 'draft' or 'issued'", request.status.value
            )
        items = self._build_items(request.items)

        now = utc_now()
        order = PurchaseOrder(
            id=str(uuid4()),
            supplier_id=request.supplier_id,
            status=request.status,
            items=items,
            issued_at=now if request.status == PurchaseOrderStatus.ISSUED else None,
        )

        catalog = await self._get_supplier_catalog()
        for item in items:
            await catalog.ensure_link(item.catalog_item_id, item.store_ingredient_id)

        po_store = await self._get_purchase_order_store()
        order = await po_store.create(order)
        logger.info(
            "purchase_order_workflow_created",
            purchase_order_id=order.id,
            status=order.status.value,
            grand_total=order.grand_total,
        )
        return order

    async def get(self, purchase_order_id: str) -> PurchaseOrder:
        po_store = await self._get_purchase_order_store()
        order = await po_store.get(purchase_order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(purchase_order_id)
        return order

    async def list_orders(
        self,
        status: PurchaseOrderStatus | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> PurchaseOrderPage:
        limit, offset = clamp_page(limit, offset)
        po_store = await self._get_purchase_order_store()
        orders, total = await po_store.list_orders(status=status, limit=limit, offset=offset)
        return PurchaseOrderPage(orders=orders, total=total, limit=limit, offset=offset)

    async def issue(self, purchase_order_id: str) -> PurchaseOrder:
        """draft -> issued."""
        return await self._transition(
            purchase_order_id,
            PurchaseOrderStatus.DRAFT,
            PurchaseOrderStatus.ISSUED,
            "issue",
        )

    async def cancel(self, purchase_order_id: str) -> PurchaseOrder:
        """
        draft|issued -> cancelled.

        An issued order whose lines were partly received cannot be cancelled;
        it must be completed so stock and the order agree. The ledger check
        and the transition share one write transaction, so a completion
        cannot land between them.
        """
        async with self._begin():
            order = await self.get(purchase_order_id)
            if order.status not in _CREATABLE:
                raise InvalidStateError(order.id, order.status.value, "cancel")

            if order.status == PurchaseOrderStatus.ISSUED:
                ledger = await self._get_ledger_store()
                if await ledger.list_by_ref(PURCHASE_ORDER_REF, order.id):
                    logger.warning("purchase_order_cancel_refused", purchase_order_id=order.id)
                    raise InvalidStateError(order.id, "partially received", "cancel")

            return await self._transition(
                order.id, order.status, PurchaseOrderStatus.CANCELLED, "cancel"
            )

    async def replace_items(
        self, purchase_order_id: str, items: list[LineItemRequest]
    ) -> PurchaseOrder:
        """
        Replace the lines of a draft order.

        The store re-checks the draft status when it writes, so an order
        issued while links were being ensured keeps its items.
        """
        order = await self.get(purchase_order_id)
        if order.status != PurchaseOrderStatus.DRAFT:
            raise InvalidStateError(order.id, order.status.value, "modify items of")

        new_items = self._build_items(items)
        catalog = await self._get_supplier_catalog()
        for item in new_items:
            await catalog.ensure_link(item.catalog_item_id, item.store_ingredient_id)

        po_store = await self._get_purchase_order_store()
        return await po_store.replace_items(order.id, new_items)

    async def _transition(
        self,
        purchase_order_id: str,
        from_status: PurchaseOrderStatus,
        to_status: PurchaseOrderStatus,
        operation: str,
    ) -> PurchaseOrder:
        po_store = await self._get_purchase_order_store()
        if not await po_store.transition(purchase_order_id, from_status, to_status):
            current = await po_store.get(purchase_order_id)
            if current is None:
                raise PurchaseOrderNotFoundError(purchase_order_id)
            raise InvalidStateError(purchase_order_id, current.status.value, operation)
        return await self.get(purchase_order_id)

    @staticmethod
    def _build_items(items: list[LineItemRequest]) -> list[LineItem]:
        if not items:
            raise ValidationError("items", "at least one line item is required")
        built = []
        for index, item in enumerate(items, start=1):
            if not item.store_ingredient_id or not item.catalog_item_id:
                raise ValidationError(
                    f"items[{index}]", "ingredient and catalog item are required"
                )
            if item.qty <= 0:
                raise ValidationError(f"items[{index}].qty", "must be positive", item.qty)
            if item.price < 0:
                raise ValidationError(
                    f"items[{index}].price", "must not be negative", item.price
                )
            built.append(
                LineItem(
                    line_no=index,
                    store_ingredient_id=item.store_ingredient_id,
                    catalog_item_id=item.catalog_item_id,
                    qty=item.qty,
                    price=item.price,
                    base_uom=item.base_uom,
                )
            )
        return built

    @staticmethod
    def to_response(order: PurchaseOrder) -> PurchaseOrderResponse:
        return PurchaseOrderResponse.from_entity(order)

    @staticmethod
    def to_list_response(page: PurchaseOrderPage) -> PurchaseOrderListResponse:
        return PurchaseOrderListResponse(
            orders=[PurchaseOrderResponse.from_entity(order) for order in page.orders],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.offset + len(page.orders) < page.total,
        )
