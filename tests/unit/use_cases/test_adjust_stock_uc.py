"""Unit tests for StockAdjustmentUseCase."""

import contextlib
from unittest.mock import AsyncMock

import pytest

from conftest import make_receipt
from inventory_ledger.application.dto.requests import (
    StockAdjustmentRequest,
    StockCountRequest,
)
from inventory_ledger.application.use_cases.adjust_stock import StockAdjustmentUseCase
from inventory_ledger.core.entities import (
    STOCK_ADJUSTMENT_REF,
    BaseUom,
    IngredientAccount,
    LedgerReason,
)
from inventory_ledger.core.exceptions import (
    LockTimeoutError,
    UnknownIngredientError,
    ValidationError,
)
from inventory_ledger.core.interfaces import IAccountStore, ILedgerStore
from inventory_ledger.infrastructure.locking import KeyedLockRegistry


def count(*pairs: tuple[str, int], expected_version: int | None = None) -> StockAdjustmentRequest:
    return StockAdjustmentRequest(
        items=[
            StockCountRequest(
                ingredient_id=ingredient_id,
                counted_qty=qty,
                expected_version=expected_version,
            )
            for ingredient_id, qty in pairs
        ]
    )


@pytest.fixture
def stock():
    return {
        "flour": IngredientAccount(
            ingredient_id="flour", base_uom=BaseUom.GR, current_stock=20, avg_cost=1500, version=3
        ),
        "sugar": IngredientAccount(
            ingredient_id="sugar", base_uom=BaseUom.GR, current_stock=5, avg_cost=300, version=1
        ),
    }


@pytest.fixture
def accounts(stock):
    store = AsyncMock(spec=IAccountStore)
    store.get.side_effect = lambda ingredient_id: stock.get(ingredient_id)

    async def apply(ingredient_id, delta_qty, unit_cost, expected_version=None):
        account = stock[ingredient_id]
        return account.model_copy(
            update={
                "current_stock": account.current_stock + delta_qty,
                "version": account.version + 1,
            }
        )

    store.apply_movement.side_effect = apply
    return store


@pytest.fixture
def ledger():
    store = AsyncMock(spec=ILedgerStore)
    store.append.return_value = make_receipt("flour", 9)
    return store


@pytest.fixture
def locks():
    return KeyedLockRegistry(default_timeout=1.0)


@pytest.fixture
def use_case(ledger, accounts, locks):
    return StockAdjustmentUseCase(
        ledger_store=ledger,
        account_store=accounts,
        locks=locks,
        transaction=contextlib.nullcontext,
    )


class TestAdjust:
    async def test_count_below_stock_writes_outflow(self, use_case, ledger, accounts):
        adjustment = await use_case.adjust(count(("flour", 12)))

        draft = ledger.append.await_args.args[0]
        assert (draft.ingredient_id, draft.delta_qty, draft.uom) == ("flour", -8, BaseUom.GR)
        assert draft.reason == LedgerReason.ADJUSTMENT
        assert (draft.ref_type, draft.ref_id, draft.ref_line) == (
            STOCK_ADJUSTMENT_REF,
            adjustment.id,
            1,
        )
        # Valued at the running average
        accounts.apply_movement.assert_awaited_once_with(
            "flour", -8, 1500, expected_version=None
        )
        line = adjustment.lines[0]
        assert (line.previous_stock, line.delta_qty) == (20, -8)
        assert line.account.current_stock == 12
        assert adjustment.changed_lines == 1

    async def test_matching_count_writes_nothing(self, use_case, ledger, accounts):
        adjustment = await use_case.adjust(count(("sugar", 5), ("flour", 25)))

        assert [line.delta_qty for line in adjustment.lines] == [0, 5]
        assert adjustment.lines[0].entry is None
        assert adjustment.changed_lines == 1
        ledger.append.assert_awaited_once()
        accounts.apply_movement.assert_awaited_once_with(
            "flour", 5, 1500, expected_version=None
        )

    async def test_expected_version_passed_to_conditional_write(self, use_case, accounts):
        await use_case.adjust(count(("flour", 0), expected_version=2))
        accounts.apply_movement.assert_awaited_once_with(
            "flour", -20, 1500, expected_version=2
        )

    async def test_unknown_ingredient(self, use_case, ledger):
        with pytest.raises(UnknownIngredientError):
            await use_case.adjust(count(("ghost", 1)))
        ledger.append.assert_not_awaited()

    async def test_duplicate_ingredient_rejected(self, use_case, accounts):
        with pytest.raises(ValidationError) as exc_info:
            await use_case.adjust(count(("flour", 1), ("flour", 2)))
        assert exc_info.value.details["field"] == "items[2].ingredient_id"
        accounts.get.assert_not_awaited()

    async def test_busy_ingredient_times_out(self, use_case, locks, ledger):
        use_case._lock_timeout = 0.01
        async with locks.hold("sugar"):
            with pytest.raises(LockTimeoutError):
                await use_case.adjust(count(("flour", 1), ("sugar", 1)))
        ledger.append.assert_not_awaited()
        # The lock taken before the timeout was released
        assert not locks.is_locked("flour")

    async def test_one_transaction_per_count(self, ledger, accounts):
        opened = []

        @contextlib.asynccontextmanager
        async def tracking_transaction():
            opened.append(True)
            yield

        use_case = StockAdjustmentUseCase(
            ledger_store=ledger,
            account_store=accounts,
            locks=KeyedLockRegistry(1.0),
            transaction=tracking_transaction,
        )
        await use_case.adjust(count(("flour", 1), ("sugar", 1)))
        assert len(opened) == 1


def test_to_response(stock):
    from inventory_ledger.application.use_cases import AdjustedLine, StockAdjustment
    from inventory_ledger.core.entities import utc_now

    adjustment = StockAdjustment(
        id="adj-1",
        occurred_at=utc_now(),
        lines=[
            AdjustedLine(
                line_no=1,
                ingredient_id="sugar",
                counted_qty=5,
                previous_stock=5,
                account=stock["sugar"],
            )
        ],
    )
    response = StockAdjustmentUseCase.to_response(adjustment)
    assert response.changed_lines == 0
    assert response.lines[0].ledger_entry_id is None
    assert response.lines[0].delta_qty == 0
