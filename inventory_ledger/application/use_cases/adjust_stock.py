"""Stock count (opname): set ingredients to their counted quantity.

Every counted ingredient becomes one ``adjustment`` ledger entry of
``counted - current_stock``. The whole count commits as one write
transaction, with the ingredient locks taken in sorted order.
"""

from contextlib import AbstractAsyncContextManager, AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from inventory_ledger.application.dto.requests import StockAdjustmentRequest
from inventory_ledger.application.dto.responses import (
    IngredientAccountResponse,
    StockAdjustmentLineResponse,
    StockAdjustmentResponse,
)
from inventory_ledger.application.use_cases.complete_purchase_order import (
    TransactionFactory,
)
from inventory_ledger.config import get_logger
from inventory_ledger.core.entities.inventory import (
    STOCK_ADJUSTMENT_REF,
    IngredientAccount,
    LedgerEntry,
    LedgerEntryDraft,
    LedgerReason,
    utc_now,
)
from inventory_ledger.core.exceptions import UnknownIngredientError, ValidationError
from inventory_ledger.core.interfaces.inventory_store import IAccountStore, ILedgerStore

if TYPE_CHECKING:
    from inventory_ledger.infrastructure.locking import KeyedLockRegistry

logger = get_logger(__name__)


@dataclass
class AdjustedLine:
    line_no: int
    ingredient_id: str
    counted_qty: int
    previous_stock: int
    account: IngredientAccount
    entry: LedgerEntry | None = None  # None when the count matched the stock

    @property
    def delta_qty(self) -> int:
        return self.counted_qty - self.previous_stock


@dataclass
class StockAdjustment:
    id: str
    occurred_at: datetime
    lines: list[AdjustedLine] = field(default_factory=list)

    @property
    def changed_lines(self) -> int:
        return sum(1 for line in self.lines if line.entry is not None)


class StockAdjustmentUseCase:
    """Applies stock counts as adjustment movements."""

    def __init__(
        self,
        ledger_store: ILedgerStore | None = None,
        account_store: IAccountStore | None = None,
        locks: "KeyedLockRegistry | None" = None,
        transaction: TransactionFactory | None = None,
        lock_timeout: float | None = None,
    ):
        self._ledger_store = ledger_store
        self._account_store = account_store
        self._locks = locks
        self._transaction = transaction
        self._lock_timeout = lock_timeout

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

    async def _get_account_store(self) -> IAccountStore:
        if self._account_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_account_store

            self._account_store = await get_account_store()
        return self._account_store

    def _get_locks(self) -> "KeyedLockRegistry":
        if self._locks is None:
            from inventory_ledger.infrastructure.locking import get_lock_registry

            self._locks = get_lock_registry()
        return self._locks

    def _begin(self) -> AbstractAsyncContextManager[Any]:
        if self._transaction is None:
            from inventory_ledger.infrastructure.storage.sqlite import get_transaction

            self._transaction = partial(get_transaction, immediate=True)
        return self._transaction()

    async def adjust(self, request: StockAdjustmentRequest) -> StockAdjustment:
        """
        Apply a stock count.

        Lines whose count equals the current stock write nothing. A line
        carrying ``expected_version`` is rejected if the account has moved
        on since that version was read.

        Raises:
            ValidationError: an ingredient is counted twice
            UnknownIngredientError: no account for a counted ingredient
            ConcurrentUpdateError: a stale ``expected_version``
            LockTimeoutError: an ingredient stayed busy
        """
        self._validate(request)
        ledger = await self._get_ledger_store()
        accounts = await self._get_account_store()
        locks = self._get_locks()

        adjustment = StockAdjustment(id=str(uuid4()), occurred_at=utc_now())
        ingredient_ids = sorted(item.ingredient_id for item in request.items)

        async with AsyncExitStack() as stack:
            for ingredient_id in ingredient_ids:
                await stack.enter_async_context(locks.hold(ingredient_id, self._lock_timeout))

            async with self._begin():
                for line_no, item in enumerate(request.items, start=1):
                    account = await accounts.get(item.ingredient_id)
                    if account is None:
                        raise UnknownIngredientError(item.ingredient_id)

                    line = AdjustedLine(
                        line_no=line_no,
                        ingredient_id=item.ingredient_id,
                        counted_qty=item.counted_qty,
                        previous_stock=account.current_stock,
                        account=account,
                    )
                    if line.delta_qty != 0:
                        line.entry = await ledger.append(
                            LedgerEntryDraft(
                                ingredient_id=item.ingredient_id,
                                delta_qty=line.delta_qty,
                                uom=account.base_uom,
                                reason=LedgerReason.ADJUSTMENT,
                                ref_type=STOCK_ADJUSTMENT_REF,
                                ref_id=adjustment.id,
                                ref_line=line_no,
                                occurred_at=adjustment.occurred_at,
                            )
                        )
                        # Valued at the running average so the count never moves it
                        line.account = await accounts.apply_movement(
                            item.ingredient_id,
                            line.delta_qty,
                            account.avg_cost,
                            expected_version=item.expected_version,
                        )
                    adjustment.lines.append(line)

        logger.info(
            "stock_adjustment_applied",
            adjustment_id=adjustment.id,
            lines=len(adjustment.lines),
            changed=adjustment.changed_lines,
        )
        return adjustment

    @staticmethod
    def _validate(request: StockAdjustmentRequest) -> None:
        if not request.items:
            raise ValidationError("items", "at least one counted ingredient is required")
        seen: set[str] = set()
        for index, item in enumerate(request.items, start=1):
            if item.counted_qty < 0:
                raise ValidationError(
                    f"items[{index}].counted_qty", "must not be negative", item.counted_qty
                )
            if item.ingredient_id in seen:
                raise ValidationError(
                    f"items[{index}].ingredient_id", "counted more than once", item.ingredient_id
                )
            seen.add(item.ingredient_id)

    @staticmethod
    def to_response(adjustment: StockAdjustment) -> StockAdjustmentResponse:
        return StockAdjustmentResponse(
            adjustment_id=adjustment.id,
            lines=[
                StockAdjustmentLineResponse(
                    line_no=line.line_no,
                    ingredient_id=line.ingredient_id,
                    counted_qty=line.counted_qty,
                    previous_stock=line.previous_stock,
                    delta_qty=line.delta_qty,
                    ledger_entry_id=line.entry.id if line.entry else None,
                    account=IngredientAccountResponse.from_entity(line.account),
                )
                for line in adjustment.lines
            ],
            changed_lines=adjustment.changed_lines,
            occurred_at=adjustment.occurred_at,
        )
