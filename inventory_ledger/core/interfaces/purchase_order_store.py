"""Abstract interface for purchase order storage."""

from abc import ABC, abstractmethod
from datetime import datetime

from inventory_ledger.core.entities.purchase_order import (
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)


class IPurchaseOrderStore(ABC):
    """Interface for purchase order persistence."""

    @abstractmethod
    async def create(self, order: PurchaseOrder) -> PurchaseOrder:
        """Insert an order and its line items (line numbers assigned 1..n)."""
        pass

    @abstractmethod
    async def get(self, purchase_order_id: str) -> PurchaseOrder | None:
        """Get order with items by ID."""
        pass

    @abstractmethod
    async def list_orders(
        self,
        status: PurchaseOrderStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PurchaseOrder], int]:
        """List orders newest-issued first. Returns (page, total)."""
        pass

    @abstractmethod
    async def transition(
        self,
        purchase_order_id: str,
        from_status: PurchaseOrderStatus,
        to_status: PurchaseOrderStatus,
        at: datetime | None = None,
    ) -> bool:
        """
        Move an order between states if it is still in ``from_status``.

        Stamps issued_at / completed_at for the matching target state.
        Returns False when the order was not in ``from_status``.
        """
        pass

    @abstractmethod
    async def replace_items(
        self, purchase_order_id: str, items: list[LineItem]
    ) -> PurchaseOrder:
        """
        Replace all line items of a draft order.

        Raises InvalidStateError if the order is no longer a draft when the
        write happens, PurchaseOrderNotFoundError if it does not exist.
        """
        pass

    @abstractmethod
    async def delete(self, purchase_order_id: str) -> bool:
        """Delete an order that is not complete. Returns False if nothing was deleted."""
        pass
