"""Inventory read side: ingredient registration, accounts, ledger and reports."""

from dataclasses import dataclass
from datetime import datetime

from inventory_ledger.application.dto.requests import RegisterIngredientRequest
from inventory_ledger.application.dto.responses import (
    PurchaseHistoryEntryResponse,
    PurchaseHistoryResponse,
    ReconciliationResponse,
    SupplierLinkResponse,
)
from inventory_ledger.application.use_cases.manage_purchase_order import clamp_page
from inventory_ledger.config import get_logger, get_settings
from inventory_ledger.core.entities.inventory import (
    IngredientAccount,
    LedgerEntry,
    LedgerReason,
    utc_now,
)
from inventory_ledger.core.entities.purchase_order import PURCHASE_ORDER_REF
from inventory_ledger.core.entities.supplier_link import SupplierCatalogLink
from inventory_ledger.core.exceptions import IngredientAccountNotFoundError
from inventory_ledger.core.interfaces.inventory_store import IAccountStore, ILedgerStore
from inventory_ledger.core.interfaces.purchase_order_store import IPurchaseOrderStore
from inventory_ledger.core.interfaces.supplier_catalog import ISupplierCatalog

logger = get_logger(__name__)


@dataclass
class Reconciliation:
    """Account projection versus the sum of its ledger entries."""

    ingredient_id: str
    account_stock: int
    ledger_stock: int
    checked_at: datetime

    @property
    def difference(self) -> int:
        return self.account_stock - self.ledger_stock

    @property
    def balanced(self) -> bool:
        return self.difference == 0


@dataclass
class InventoryValuation:
    accounts: list[IngredientAccount]
    account_count: int
    total_units: int
    total_value: int


@dataclass
class PurchaseReceipt:
    entry: LedgerEntry
    unit_price: int | None


@dataclass
class PurchaseHistory:
    ingredient_id: str
    receipts: list[PurchaseReceipt]
    links: list[SupplierCatalogLink]


class InventoryReportUseCase:
    """Read-only views over accounts and the ledger, plus account registration."""

    def __init__(
        self,
        account_store: IAccountStore | None = None,
        ledger_store: ILedgerStore | None = None,
        purchase_order_store: IPurchaseOrderStore | None = None,
        supplier_catalog: ISupplierCatalog | None = None,
    ):
        self._account_store = account_store
        self._ledger_store = ledger_store
        self._purchase_order_store = purchase_order_store
        self._supplier_catalog = supplier_catalog

    async def _get_account_store(self) -> IAccountStore:
        if self._account_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_account_store

            self._account_store = await get_account_store()
        return self._account_store

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

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

    async def register(
        self, request: RegisterIngredientRequest
    ) -> tuple[IngredientAccount, bool]:
        """Create a zero-stock account; an existing account is returned as is."""
        store = await self._get_account_store()
        account, created = await store.ensure(
            request.ingredient_id,
            base_uom=request.base_uom,
            name=request.name,
            min_stock=request.min_stock,
        )
        if not created:
            logger.debug("ingredient_already_registered", ingredient_id=account.ingredient_id)
        return account, created

    async def get_account(self, ingredient_id: str) -> IngredientAccount:
        store = await self._get_account_store()
        account = await store.get(ingredient_id)
        if account is None:
            raise IngredientAccountNotFoundError(ingredient_id)
        return account

    async def list_accounts(
        self, limit: int | None = None, offset: int | None = None
    ) -> tuple[list[IngredientAccount], int, int]:
        limit, offset = clamp_page(limit, offset)
        store = await self._get_account_store()
        return await store.list_accounts(limit=limit, offset=offset), limit, offset

    async def ledger_page(
        self, ingredient_id: str, limit: int | None = None, offset: int | None = None
    ) -> tuple[list[LedgerEntry], int, int]:
        """Ledger entries of one ingredient, newest first."""
        await self.get_account(ingredient_id)
        limit, offset = clamp_page(limit, offset)
        ledger = await self._get_ledger_store()
        entries = await ledger.list_by_ingredient(ingredient_id, limit=limit, offset=offset)
        return entries, limit, offset

    async def low_stock(
        self,
        threshold: int | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[IngredientAccount], int, int]:
        """Accounts at or below ``threshold``, or their own min_stock when unset."""
        if threshold is None:
            threshold = get_settings().ledger.low_stock_default_threshold
        limit, offset = clamp_page(limit, offset)
        store = await self._get_account_store()
        accounts = await store.list_low_stock(threshold=threshold, limit=limit, offset=offset)
        return accounts, limit, offset

    async def valuation(
        self, limit: int | None = None, offset: int | None = None
    ) -> InventoryValuation:
        """Per-ingredient stock * avg_cost for one page plus store-wide totals."""
        limit, offset = clamp_page(limit, offset)
        store = await self._get_account_store()
        accounts = await store.list_accounts(limit=limit, offset=offset)
        count, units, value = await store.valuation_totals()
        return InventoryValuation(
            accounts=accounts,
            account_count=count,
            total_units=units,
            total_value=value,
        )

    async def reconcile(self, ingredient_id: str) -> Reconciliation:
        """Compare current_stock with the ledger sum for one ingredient."""
        account = await self.get_account(ingredient_id)
        ledger = await self._get_ledger_store()
        ledger_stock = await ledger.stock_at(ingredient_id)
        result = Reconciliation(
            ingredient_id=ingredient_id,
            account_stock=account.current_stock,
            ledger_stock=ledger_stock,
            checked_at=utc_now(),
        )
        if not result.balanced:
            logger.error(
                "ingredient_account_out_of_balance",
                ingredient_id=ingredient_id,
                account_stock=result.account_stock,
                ledger_stock=result.ledger_stock,
            )
        return result

    async def purchase_history(
        self, ingredient_id: str, limit: int | None = None
    ) -> PurchaseHistory:
        """Purchase-order receipts of an ingredient with their unit prices."""
        await self.get_account(ingredient_id)
        limit, _ = clamp_page(limit, 0)
        ledger = await self._get_ledger_store()
        po_store = await self._get_purchase_order_store()
        catalog = await self._get_supplier_catalog()

        entries = await ledger.list_by_ingredient(ingredient_id, limit=limit)
        receipts = []
        for entry in entries:
            if entry.reason != LedgerReason.PO or entry.ref_type != PURCHASE_ORDER_REF:
                continue
            unit_price = None
            order = await po_store.get(entry.ref_id) if entry.ref_id else None
            if order is not None:
                for item in order.items:
                    if item.store_ingredient_id == ingredient_id and (
                        entry.ref_line is None or item.line_no == entry.ref_line
                    ):
                        unit_price = item.price
                        break
            receipts.append(PurchaseReceipt(entry=entry, unit_price=unit_price))

        links = await catalog.list_links_for_ingredient(ingredient_id)
        return PurchaseHistory(ingredient_id=ingredient_id, receipts=receipts, links=links)

    @staticmethod
    def reconciliation_response(result: Reconciliation) -> ReconciliationResponse:
        return ReconciliationResponse(
            ingredient_id=result.ingredient_id,
            account_stock=result.account_stock,
            ledger_stock=result.ledger_stock,
            difference=result.difference,
            balanced=result.balanced,
            checked_at=result.checked_at,
        )

    @staticmethod
    def purchase_history_response(history: PurchaseHistory) -> PurchaseHistoryResponse:
        return PurchaseHistoryResponse(
            ingredient_id=history.ingredient_id,
            receipts=[
                PurchaseHistoryEntryResponse(
                    purchase_order_id=receipt.entry.ref_id or "",
                    line_no=receipt.entry.ref_line,
                    qty=receipt.entry.delta_qty,
                    unit_price=receipt.unit_price,
                    received_at=receipt.entry.occurred_at,
                )
                for receipt in history.receipts
            ],
            supplier_links=[SupplierLinkResponse.from_entity(link) for link in history.links],
        )
