"""Inventory domain entities: ingredient accounts and the stock ledger."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ref_type of entries written by a stock count
STOCK_ADJUSTMENT_REF = "stock_adjustment"


def utc_now() -> datetime:
    return datetime.now(UTC)


class BaseUom(str, Enum):
    """Canonical unit an ingredient's stock is tracked in."""

    GR = "gr"
    ML = "ml"
    PCS = "pcs"


class LedgerReason(str, Enum):
    """Why a stock movement happened."""

    PO = "po"  # purchase order receipt
    ADJUSTMENT = "adjustment"
    SALE = "sale"
    VOID = "void"  # voided sale, stock returns

    @property
    def sign(self) -> int:
        """Required sign of delta_qty: 1 inbound, -1 outbound, 0 either."""
        return _REASON_SIGN[self]


_REASON_SIGN = {
    LedgerReason.PO: 1,
    LedgerReason.ADJUSTMENT: 0,
    LedgerReason.SALE: -1,
    LedgerReason.VOID: 1,
}


class IngredientAccount(BaseModel):
    """Current stock and weighted-average unit cost of one ingredient."""

    ingredient_id: str
    name: str | None = None
    base_uom: BaseUom = BaseUom.PCS
    min_stock: int = 0
    current_stock: int = 0  # in base_uom
    avg_cost: int = 0  # currency minor units per base unit
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def stock_value(self) -> int:
        """Inventory value = current_stock * avg_cost."""
        return self.current_stock * self.avg_cost

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock


class LedgerEntryDraft(BaseModel):
    """A stock movement about to be appended to the ledger."""

    ingredient_id: str
    delta_qty: int  # positive for inbound
    uom: BaseUom = BaseUom.PCS
    reason: LedgerReason
    ref_type: str | None = None  # e.g. "purchase_order"
    ref_id: str | None = None
    ref_line: int | None = None  # line number inside the referenced document
    occurred_at: datetime | None = None


class LedgerEntry(LedgerEntryDraft):
    """An appended, immutable ledger record."""

    model_config = ConfigDict(frozen=True)

    id: int
    occurred_at: datetime

    def matches_line(self, ingredient_id: str, line_no: int | None) -> bool:
        """True if this entry records the given document line."""
        if self.ingredient_id != ingredient_id:
            return False
        return self.ref_line is None or line_no is None or self.ref_line == line_no
