"""Pure domain services: no I/O, no storage imports."""

from inventory_ledger.core.services.valuation import (
    Movement,
    StockPosition,
    Valuation,
    ValuationEngine,
)

__all__ = [
    "Movement",
    "StockPosition",
    "Valuation",
    "ValuationEngine",
]
