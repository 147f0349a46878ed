"""
Weighted-average valuation of stock movements.

Pure computation: no I/O, no hidden state. Callers persist the result.
"""

from dataclasses import dataclass

from inventory_ledger.core.exceptions import ValidationError


@dataclass(frozen=True)
class StockPosition:
    """Stock on hand and average unit cost of one ingredient."""

    stock: int
    avg_cost: int


@dataclass(frozen=True)
class Movement:
    """An incoming change to a position."""

    delta_qty: int
    unit_cost: int = 0


@dataclass(frozen=True)
class Valuation:
    """Outcome of valuing a movement: the next position, or why there is none."""

    position: StockPosition | None
    error: str | None = None
    shortfall: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


NEGATIVE_STOCK = "negative_stock"


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves away from zero for positives."""
    quotient, remainder = divmod(numerator, denominator)
    if 2 * remainder >= denominator:
        quotient += 1
    return quotient


class ValuationEngine:
    """Computes the next (stock, avg_cost) for a movement."""

    def compute_next(self, current: StockPosition, movement: Movement) -> Valuation:
        """
        Apply ``movement`` to ``current``.

        - next stock = stock + delta; below zero yields an error valuation.
        - Only receipts (delta > 0) blend their unit cost into the average.
          Outflows and zero deltas keep the previous average.
        - A resulting stock of zero keeps the previous average.
        - Otherwise avg = round((stock*avg + delta*unit_cost) / next_stock).
        """
        self._validate(current, movement)

        next_stock = current.stock + movement.delta_qty
        if next_stock < 0:
            return Valuation(
                position=None,
                error=NEGATIVE_STOCK,
                shortfall=-next_stock,
            )

        if movement.delta_qty <= 0:
            # Outflows are valued at the running average
            return Valuation(position=StockPosition(next_stock, current.avg_cost))

        if next_stock == 0:
            return Valuation(position=StockPosition(0, current.avg_cost))

        blended = current.stock * current.avg_cost + movement.delta_qty * movement.unit_cost
        return Valuation(
            position=StockPosition(next_stock, round_half_up(blended, next_stock))
        )

    @staticmethod
    def _validate(current: StockPosition, movement: Movement) -> None:
        if current.stock < 0:
            raise ValidationError("stock", "must not be negative", current.stock)
        if current.avg_cost < 0:
            raise ValidationError("avg_cost", "must not be negative", current.avg_cost)
        if movement.delta_qty > 0 and movement.unit_cost < 0:
            raise ValidationError("unit_cost", "must not be negative", movement.unit_cost)
