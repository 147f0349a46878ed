"""Abstract interfaces for the stock ledger and ingredient accounts."""

from abc import ABC, abstractmethod
from datetime import datetime

from inventory_ledger.core.entities.inventory import (
    BaseUom,
    IngredientAccount,
    LedgerEntry,
    LedgerEntryDraft,
)


class ILedgerStore(ABC):
    """Append-only log of inventory movements. No update or delete."""

    @abstractmethod
    async def append(self, entry: LedgerEntryDraft) -> LedgerEntry:
        """
        Validate and persist a movement.

        Raises ValidationError for a zero delta, a delta whose sign contradicts
        the reason, or an ingredient without an account.
        Raises DuplicateLedgerEntryError if the entry's document line
        (ref_type, ref_id, ref_line) is already recorded.
        """
        pass

    @abstractmethod
    async def list_by_ref(self, ref_type: str, ref_id: str) -> list[LedgerEntry]:
        """Entries pointing at a source document, in insertion order."""
        pass

    @abstractmethod
    async def list_by_ingredient(
        self, ingredient_id: str, limit: int = 100, offset: int = 0
    ) -> list[LedgerEntry]:
        """Entries for an ingredient, newest first."""
        pass

    @abstractmethod
    async def stock_at(self, ingredient_id: str, at: datetime | None = None) -> int:
        """Sum of deltas for an ingredient up to and including ``at``."""
        pass


class IAccountStore(ABC):
    """Current stock / average cost projection per ingredient."""

    @abstractmethod
    async def get(self, ingredient_id: str) -> IngredientAccount | None:
        """Get account by ingredient ID."""
        pass

    @abstractmethod
    async def ensure(
        self,
        ingredient_id: str,
        base_uom: BaseUom = BaseUom.PCS,
        name: str | None = None,
        min_stock: int = 0,
    ) -> tuple[IngredientAccount, bool]:
        """Get the account, creating a zero-stock one if missing. Returns (account, created)."""
        pass

    @abstractmethod
    async def apply_movement(
        self,
        ingredient_id: str,
        delta_qty: int,
        unit_cost: int,
        expected_version: int | None = None,
    ) -> IngredientAccount:
        """
        The sole stock/cost mutator.

        Raises InvariantViolation if the movement would make stock negative,
        and ConcurrentUpdateError if the account is no longer at
        ``expected_version``; the account is left unchanged in both cases.
        """
        pass

    @abstractmethod
    async def list_accounts(
        self, limit: int = 100, offset: int = 0
    ) -> list[IngredientAccount]:
        """List accounts ordered by ingredient id."""
        pass

    @abstractmethod
    async def list_low_stock(
        self, threshold: int | None = None, limit: int = 100, offset: int = 0
    ) -> list[IngredientAccount]:
        """Accounts at or below ``threshold`` (or their own min_stock when None)."""
        pass

    @abstractmethod
    async def valuation_totals(self) -> tuple[int, int, int]:
        """Return (account count, total units on hand, total stock value)."""
        pass
