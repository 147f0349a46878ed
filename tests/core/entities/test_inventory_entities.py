"""Tests for inventory entities."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from inventory_ledger.core.entities.inventory import (
    BaseUom,
    IngredientAccount,
    LedgerEntry,
    LedgerEntryDraft,
    LedgerReason,
    utc_now,
)


class TestLedgerReason:
    def test_polarity(self):
        assert LedgerReason.PO.sign == 1
        assert LedgerReason.VOID.sign == 1
        assert LedgerReason.SALE.sign == -1
        assert LedgerReason.ADJUSTMENT.sign == 0

    def test_values(self):
        assert {r.value for r in LedgerReason} == {"po", "adjustment", "sale", "void"}


class TestIngredientAccount:
    def test_defaults(self):
        account = IngredientAccount(ingredient_id="flour")
        assert account.current_stock == 0
        assert account.avg_cost == 0
        assert account.version == 0
        assert account.base_uom == BaseUom.PCS

    def test_stock_value(self):
        account = IngredientAccount(ingredient_id="flour", current_stock=20, avg_cost=1500)
        assert account.stock_value == 30000

    def test_low_stock_at_minimum(self):
        account = IngredientAccount(ingredient_id="flour", current_stock=5, min_stock=5)
        assert account.is_low_stock
        account.current_stock = 6
        assert not account.is_low_stock


class TestLedgerEntry:
    def _entry(self, **overrides) -> LedgerEntry:
        data = {
            "id": 1,
            "ingredient_id": "flour",
            "delta_qty": 10,
            "uom": BaseUom.GR,
            "reason": LedgerReason.PO,
            "ref_type": "purchase_order",
            "ref_id": "po-1",
            "ref_line": 2,
            "occurred_at": utc_now(),
        }
        data.update(overrides)
        return LedgerEntry(**data)

    def test_immutable(self):
        entry = self._entry()
        with pytest.raises(PydanticValidationError):
            entry.delta_qty = 99  # type: ignore[misc]

    def test_matches_same_line(self):
        assert self._entry().matches_line("flour", 2)

    def test_other_line_same_ingredient(self):
        assert not self._entry().matches_line("flour", 3)

    def test_other_ingredient(self):
        assert not self._entry().matches_line("sugar", 2)

    def test_entry_without_line_matches_any_line(self):
        assert self._entry(ref_line=None).matches_line("flour", 7)

    def test_draft_has_no_id(self):
        draft = LedgerEntryDraft(ingredient_id="flour", delta_qty=1, reason=LedgerReason.PO)
        assert draft.occurred_at is None
        assert not hasattr(draft, "id")
