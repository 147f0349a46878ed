"""Complete Purchase Order Use Case: issued -> complete with stock receipts.

Each line item is applied under its ingredient's lock inside one write
transaction: order re-check, replay check, ledger append, account valuation
and supplier link update commit together or not at all. Lines committed by
an earlier call are detected in the ledger and skipped, so the call is safe
to repeat. The ingredient lock only spans this process; the write
transaction and the ledger's one-entry-per-line index cover other workers.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any

from inventory_ledger.application.dto.responses import (
    CompletionResponse,
    PurchaseOrderResponse,
)
from inventory_ledger.config import get_logger
from inventory_ledger.core.entities.inventory import (
    LedgerEntryDraft,
    LedgerReason,
    utc_now,
)
from inventory_ledger.core.entities.purchase_order import (
    PURCHASE_ORDER_REF,
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)
from inventory_ledger.core.exceptions import (
    DuplicateLedgerEntryError,
    InvalidStateError,
    PartialApplyError,
    PurchaseOrderNotFoundError,
)
from inventory_ledger.core.interfaces.inventory_store import IAccountStore, ILedgerStore
from inventory_ledger.core.interfaces.purchase_order_store import IPurchaseOrderStore
from inventory_ledger.core.interfaces.supplier_catalog import ISupplierCatalog

if TYPE_CHECKING:
    from inventory_ledger.infrastructure.locking import KeyedLockRegistry

logger = get_logger(__name__)

TransactionFactory = Callable[[], AbstractAsyncContextManager[Any]]

# A complete order was finished by a concurrent call; its lines replay as skipped
_RECEIVABLE = (PurchaseOrderStatus.ISSUED, PurchaseOrderStatus.COMPLETE)


@dataclass
class CompletionResult:
    """Result of completing a purchase order."""

    purchase_order: PurchaseOrder
    applied_lines: list[int] = field(default_factory=list)
    skipped_lines: list[int] = field(default_factory=list)
    already_complete: bool = False


class CompletionCoordinator:
    """Drives purchase orders from issued to complete exactly once per line."""

    def __init__(
        self,
        purchase_order_store: IPurchaseOrderStore | None = None,
        ledger_store: ILedgerStore | None = None,
        account_store: IAccountStore | None = None,
        supplier_catalog: ISupplierCatalog | None = None,
        locks: "KeyedLockRegistry | None" = None,
        transaction: TransactionFactory | None = None,
        lock_timeout: float | None = None,
    ):
        self._purchase_order_store = purchase_order_store
        self._ledger_store = ledger_store
        self._account_store = account_store
        self._supplier_catalog = supplier_catalog
        self._locks = locks
        self._transaction = transaction
        self._lock_timeout = lock_timeout

    async def _get_purchase_order_store(self) -> IPurchaseOrderStore:
        if self._purchase_order_store is None:
            from inventory_ledger.infrastructure.storage.sqlite import (
                get_purchase_order_store,
            )

            self._purchase_order_store = await get_purchase_order_store()
        return self._purchase_order_store

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

    async def _get_supplier_catalog(self) -> ISupplierCatalog:
        if self._supplier_catalog is None:
            from inventory_ledger.infrastructure.storage.sqlite import (
                get_supplier_link_store,
            )

            self._supplier_catalog = await get_supplier_link_store()
        return self._supplier_catalog

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

    async def complete(self, purchase_order_id: str) -> CompletionResult:
        """
        Complete an issued purchase order.

        Repeating the call after success is a no-op. After a failure the
        order stays issued and a repeated call resumes with the pending lines.

        Raises:
            PurchaseOrderNotFoundError: unknown order
            InvalidStateError: order is draft or cancelled
            PartialApplyError: some lines are committed, others failed
            LockTimeoutError, InvariantViolation, ...: nothing committed yet
        """
        po_store = await self._get_purchase_order_store()
        order = await po_store.get(purchase_order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(purchase_order_id)

        if order.status == PurchaseOrderStatus.COMPLETE:
            logger.info("purchase_order_already_complete", purchase_order_id=order.id)
            return CompletionResult(
                purchase_order=order,
                skipped_lines=[item.line_no for item in order.items],
                already_complete=True,
            )
        if order.status != PurchaseOrderStatus.ISSUED:
            raise InvalidStateError(order.id, order.status.value, "complete")

        logger.info(
            "purchase_order_completion_started",
            purchase_order_id=order.id,
            lines=len(order.items),
        )

        result = CompletionResult(purchase_order=order)
        for index, item in enumerate(order.items):
            try:
                applied = await self._apply_line(order, item)
            except Exception as e:
                committed = result.applied_lines + result.skipped_lines
                pending = [line.line_no for line in order.items[index:]]
                logger.warning(
                    "purchase_order_line_failed",
                    purchase_order_id=order.id,
                    line_no=item.line_no,
                    ingredient_id=item.store_ingredient_id,
                    error=str(e),
                    committed_lines=committed,
                )
                if committed:
                    raise PartialApplyError(order.id, committed, pending, e) from e
                raise
            if applied:
                result.applied_lines.append(item.line_no)
            else:
                result.skipped_lines.append(item.line_no)

        completed_at = utc_now()
        if not await po_store.transition(
            order.id, PurchaseOrderStatus.ISSUED, PurchaseOrderStatus.COMPLETE, completed_at
        ):
            # Lost the race to another completion, or the order moved on
            current = await po_store.get(order.id)
            if current is None:
                raise PurchaseOrderNotFoundError(order.id)
            if current.status != PurchaseOrderStatus.COMPLETE:
                raise InvalidStateError(order.id, current.status.value, "complete")
            result.purchase_order = current
        else:
            result.purchase_order = order.model_copy(
                update={
                    "status": PurchaseOrderStatus.COMPLETE,
                    "completed_at": completed_at,
                    "updated_at": completed_at,
                }
            )

        logger.info(
            "purchase_order_completed",
            purchase_order_id=order.id,
            applied=len(result.applied_lines),
            skipped=len(result.skipped_lines),
        )
        return result

    async def _apply_line(self, order: PurchaseOrder, item: LineItem) -> bool:
        """Apply one line; False if the ledger shows it was applied before."""
        po_store = await self._get_purchase_order_store()
        ledger = await self._get_ledger_store()
        accounts = await self._get_account_store()
        catalog = await self._get_supplier_catalog()

        async with self._get_locks().hold(item.store_ingredient_id, self._lock_timeout):
            try:
                async with self._begin():
                    current = await po_store.get(order.id)
                    if current is None:
                        raise PurchaseOrderNotFoundError(order.id)
                    if current.status not in _RECEIVABLE:
                        raise InvalidStateError(order.id, current.status.value, "complete")

                    existing = await ledger.list_by_ref(PURCHASE_ORDER_REF, order.id)
                    if any(
                        entry.matches_line(item.store_ingredient_id, item.line_no)
                        for entry in existing
                    ):
                        logger.debug(
                            "purchase_order_line_skipped",
                            purchase_order_id=order.id,
                            line_no=item.line_no,
                        )
                        return False

                    now = utc_now()
                    await accounts.ensure(item.store_ingredient_id, base_uom=item.base_uom)
                    await ledger.append(
                        LedgerEntryDraft(
                            ingredient_id=item.store_ingredient_id,
                            delta_qty=item.qty,
                            uom=item.base_uom,
                            reason=LedgerReason.PO,
                            ref_type=PURCHASE_ORDER_REF,
                            ref_id=order.id,
                            ref_line=item.line_no,
                            occurred_at=now,
                        )
                    )
                    await accounts.apply_movement(
                        item.store_ingredient_id, item.qty, item.price
                    )
                    await catalog.record_last_purchase(
                        item.catalog_item_id, item.store_ingredient_id, item.price, now
                    )
                    return True
            except DuplicateLedgerEntryError:
                # Recorded by a writer the replay check could not see; rolled back
                logger.info(
                    "purchase_order_line_already_recorded",
                    purchase_order_id=order.id,
                    line_no=item.line_no,
                )
                return False

    async def delete(self, purchase_order_id: str) -> None:
        """
        Delete a purchase order that is not complete.

        An issued order with received lines is kept, like for cancel, so
        no ledger entry points at a missing order.

        Raises:
            PurchaseOrderNotFoundError: unknown order
            InvalidStateError: order is complete or partially received
        """
        po_store = await self._get_purchase_order_store()
        ledger = await self._get_ledger_store()

        async with self._begin():
            order = await po_store.get(purchase_order_id)
            if order is None:
                raise PurchaseOrderNotFoundError(purchase_order_id)
            if not order.can_delete:
                raise InvalidStateError(order.id, order.status.value, "delete")
            if order.status == PurchaseOrderStatus.ISSUED and await ledger.list_by_ref(
                PURCHASE_ORDER_REF, order.id
            ):
                logger.warning("purchase_order_delete_refused", purchase_order_id=order.id)
                raise InvalidStateError(order.id, "partially received", "delete")

            if not await po_store.delete(order.id):
                raise InvalidStateError(order.id, order.status.value, "delete")

    def to_response(self, result: CompletionResult) -> CompletionResponse:
        """Convert result to API response."""
        return CompletionResponse(
            purchase_order=PurchaseOrderResponse.from_entity(result.purchase_order),
            applied_lines=result.applied_lines,
            skipped_lines=result.skipped_lines,
            already_complete=result.already_complete,
        )
