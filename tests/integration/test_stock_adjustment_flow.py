"""Stock counts against a real SQLite database."""

import asyncio

import pytest

from inventory_ledger.application.dto.requests import (
    CreatePurchaseOrderRequest,
    LineItemRequest,
    StockAdjustmentRequest,
    StockCountRequest,
)
from inventory_ledger.application.use_cases import (
    CompletionCoordinator,
    InventoryReportUseCase,
    PurchaseOrderWorkflow,
    StockAdjustmentUseCase,
)
from inventory_ledger.core.entities import (
    STOCK_ADJUSTMENT_REF,
    BaseUom,
    LedgerReason,
    PurchaseOrderStatus,
)
from inventory_ledger.core.exceptions import ConcurrentUpdateError, UnknownIngredientError
from inventory_ledger.infrastructure.storage.sqlite import (
    SQLiteAccountStore,
    SQLiteLedgerStore,
)


async def receive(ingredient_id: str, qty: int, price: int) -> None:
    order = await PurchaseOrderWorkflow().create(
        CreatePurchaseOrderRequest(
            status=PurchaseOrderStatus.ISSUED,
            items=[
                LineItemRequest(
                    store_ingredient_id=ingredient_id,
                    catalog_item_id=f"cat-{ingredient_id}",
                    qty=qty,
                    price=price,
                    base_uom=BaseUom.GR,
                )
            ],
        )
    )
    await CompletionCoordinator().complete(order.id)


def counted(**quantities: int) -> StockAdjustmentRequest:
    return StockAdjustmentRequest(
        items=[
            StockCountRequest(ingredient_id=ingredient_id, counted_qty=qty)
            for ingredient_id, qty in quantities.items()
        ]
    )


class TestStockCount:
    async def test_count_below_stock(self, ledger_db):
        await receive("flour", 10, 1000)

        adjustment = await StockAdjustmentUseCase().adjust(counted(flour=4))

        line = adjustment.lines[0]
        assert (line.previous_stock, line.delta_qty) == (10, -6)
        account = await SQLiteAccountStore().get("flour")
        assert (account.current_stock, account.avg_cost) == (4, 1000)

        entries = await SQLiteLedgerStore().list_by_ref(STOCK_ADJUSTMENT_REF, adjustment.id)
        assert [(e.delta_qty, e.reason, e.ref_line) for e in entries] == [
            (-6, LedgerReason.ADJUSTMENT, 1)
        ]
        reconciliation = await InventoryReportUseCase().reconcile("flour")
        assert reconciliation.balanced

    async def test_count_of_zero_keeps_average(self, ledger_db):
        await receive("flour", 10, 1000)

        await StockAdjustmentUseCase().adjust(counted(flour=0))

        accounts = SQLiteAccountStore()
        account = await accounts.get("flour")
        assert (account.current_stock, account.avg_cost) == (0, 1000)
        assert await SQLiteLedgerStore().stock_at("flour") == 0

        # The next receipt starts a fresh average
        await receive("flour", 10, 2000)
        assert (await accounts.get("flour")).avg_cost == 2000

    async def test_count_above_stock_keeps_average(self, ledger_db):
        await receive("flour", 10, 1000)

        await StockAdjustmentUseCase().adjust(counted(flour=13))

        account = await SQLiteAccountStore().get("flour")
        assert (account.current_stock, account.avg_cost) == (13, 1000)

    async def test_matching_count_writes_no_entry(self, ledger_db):
        await receive("flour", 10, 1000)
        await receive("sugar", 5, 300)

        adjustment = await StockAdjustmentUseCase().adjust(counted(flour=10, sugar=2))

        assert adjustment.changed_lines == 1
        entries = await SQLiteLedgerStore().list_by_ref(STOCK_ADJUSTMENT_REF, adjustment.id)
        assert [(e.ingredient_id, e.delta_qty, e.ref_line) for e in entries] == [("sugar", -3, 2)]

    async def test_stale_count_rolls_back_whole_adjustment(self, ledger_db):
        await receive("flour", 10, 1000)
        await receive("sugar", 5, 300)
        accounts = SQLiteAccountStore()
        seen = await accounts.get("sugar")
        # A receipt lands after the count sheet was printed
        await receive("sugar", 5, 300)

        request = StockAdjustmentRequest(
            items=[
                StockCountRequest(ingredient_id="flour", counted_qty=8),
                StockCountRequest(
                    ingredient_id="sugar", counted_qty=4, expected_version=seen.version
                ),
            ]
        )
        with pytest.raises(ConcurrentUpdateError):
            await StockAdjustmentUseCase().adjust(request)

        assert (await accounts.get("flour")).current_stock == 10
        assert (await accounts.get("sugar")).current_stock == 10
        assert await SQLiteLedgerStore().stock_at("flour") == 10

    async def test_unknown_ingredient_rejected(self, ledger_db):
        await receive("flour", 10, 1000)
        with pytest.raises(UnknownIngredientError):
            await StockAdjustmentUseCase().adjust(counted(flour=1, ghost=1))
        assert (await SQLiteAccountStore().get("flour")).current_stock == 10

    async def test_count_and_receipt_race(self, ledger_db):
        await receive("flour", 10, 1000)

        await asyncio.gather(
            StockAdjustmentUseCase().adjust(counted(flour=3)),
            receive("flour", 5, 1000),
        )

        # Either order is valid; the projection must match the ledger
        stock = (await SQLiteAccountStore().get("flour")).current_stock
        assert stock in (3, 8)
        assert await SQLiteLedgerStore().stock_at("flour") == stock
