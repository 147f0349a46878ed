"""Tests for purchase order entities."""

from inventory_ledger.core.entities.inventory import BaseUom
from inventory_ledger.core.entities.purchase_order import (
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)


def _item(ingredient: str, qty: int, price: int) -> LineItem:
    return LineItem(
        store_ingredient_id=ingredient,
        catalog_item_id=f"cat-{ingredient}",
        qty=qty,
        price=price,
        base_uom=BaseUom.ML,
    )


class TestPurchaseOrderStatus:
    def test_terminal_states(self):
        assert PurchaseOrderStatus.COMPLETE.is_terminal
        assert PurchaseOrderStatus.CANCELLED.is_terminal
        assert not PurchaseOrderStatus.DRAFT.is_terminal
        assert not PurchaseOrderStatus.ISSUED.is_terminal


class TestPurchaseOrder:
    def test_grand_total(self):
        order = PurchaseOrder(id="po-1", items=[_item("milk", 3, 250), _item("cream", 2, 900)])
        assert order.grand_total == 3 * 250 + 2 * 900

    def test_empty_order_total(self):
        assert PurchaseOrder(id="po-1").grand_total == 0

    def test_defaults_to_draft(self):
        assert PurchaseOrder(id="po-1").status == PurchaseOrderStatus.DRAFT

    def test_complete_cannot_be_deleted(self):
        order = PurchaseOrder(id="po-1", status=PurchaseOrderStatus.COMPLETE)
        assert not order.can_delete

    def test_other_states_can_be_deleted(self):
        for status in (
            PurchaseOrderStatus.DRAFT,
            PurchaseOrderStatus.ISSUED,
            PurchaseOrderStatus.CANCELLED,
        ):
            assert PurchaseOrder(id="po-1", status=status).can_delete

    def test_ingredient_ids_distinct_in_order(self):
        order = PurchaseOrder(
            id="po-1",
            items=[_item("milk", 1, 1), _item("cream", 1, 1), _item("milk", 2, 1)],
        )
        assert order.ingredient_ids == ["milk", "cream"]
