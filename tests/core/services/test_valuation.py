"""Tests for the weighted-average valuation engine."""

import random

import pytest

from inventory_ledger.core.exceptions import ValidationError
from inventory_ledger.core.services.valuation import (
    NEGATIVE_STOCK,
    Movement,
    StockPosition,
    ValuationEngine,
    round_half_up,
)


@pytest.fixture
def engine() -> ValuationEngine:
    return ValuationEngine()


class TestRoundHalfUp:
    def test_exact(self):
        assert round_half_up(30000, 20) == 1500

    def test_rounds_down_below_half(self):
        assert round_half_up(9, 4) == 2  # 2.25

    def test_half_rounds_up(self):
        assert round_half_up(5, 2) == 3
        assert round_half_up(7, 2) == 4

    def test_above_half_rounds_up(self):
        assert round_half_up(11, 4) == 3  # 2.75


class TestReceipts:
    def test_weighted_average(self, engine):
        result = engine.compute_next(StockPosition(10, 1000), Movement(10, 2000))
        assert result.ok
        assert result.position == StockPosition(20, 1500)

    def test_from_zero_stock_takes_receipt_cost(self, engine):
        result = engine.compute_next(StockPosition(0, 500), Movement(5, 5000))
        assert result.position == StockPosition(5, 5000)

    def test_average_rounded_to_nearest_minor_unit(self, engine):
        # (3*100 + 1*101) / 4 = 100.25
        result = engine.compute_next(StockPosition(3, 100), Movement(1, 101))
        assert result.position == StockPosition(4, 100)
        # (1*100 + 1*101) / 2 = 100.5
        result = engine.compute_next(StockPosition(1, 100), Movement(1, 101))
        assert result.position == StockPosition(2, 101)

    def test_free_receipt_dilutes_average(self, engine):
        result = engine.compute_next(StockPosition(10, 1000), Movement(10, 0))
        assert result.position == StockPosition(20, 500)

    def test_average_stays_between_old_and_new_cost(self, engine):
        rng = random.Random(7)
        for _ in range(200):
            stock, avg = rng.randint(0, 10_000), rng.randint(0, 50_000)
            qty, cost = rng.randint(1, 10_000), rng.randint(0, 50_000)
            result = engine.compute_next(StockPosition(stock, avg), Movement(qty, cost))
            low, high = (min(avg, cost), max(avg, cost)) if stock else (cost, cost)
            assert low <= result.position.avg_cost <= high
            assert result.position.stock == stock + qty


class TestOutflows:
    def test_outflow_keeps_average(self, engine):
        result = engine.compute_next(StockPosition(10, 1000), Movement(-4, 99999))
        assert result.position == StockPosition(6, 1000)

    def test_outflow_to_zero_keeps_average(self, engine):
        result = engine.compute_next(StockPosition(5, 1200), Movement(-5))
        assert result.position == StockPosition(0, 1200)

    def test_zero_delta_is_noop(self, engine):
        result = engine.compute_next(StockPosition(5, 1200), Movement(0, 3000))
        assert result.position == StockPosition(5, 1200)

    def test_negative_unit_cost_ignored_for_outflows(self, engine):
        result = engine.compute_next(StockPosition(5, 1200), Movement(-1, -50))
        assert result.ok


class TestNegativeStock:
    def test_reported_as_error_value(self, engine):
        result = engine.compute_next(StockPosition(5, 1000), Movement(-10))
        assert not result.ok
        assert result.error == NEGATIVE_STOCK
        assert result.position is None
        assert result.shortfall == 5


class TestInvalidInput:
    def test_negative_stock_input(self, engine):
        with pytest.raises(ValidationError):
            engine.compute_next(StockPosition(-1, 0), Movement(1, 1))

    def test_negative_avg_cost_input(self, engine):
        with pytest.raises(ValidationError):
            engine.compute_next(StockPosition(1, -1), Movement(1, 1))

    def test_negative_receipt_cost(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.compute_next(StockPosition(1, 1), Movement(1, -1))
        assert exc_info.value.details["field"] == "unit_cost"
