"""Tests for supplier catalog links."""

from datetime import UTC, datetime, timedelta

import pytest

from inventory_ledger.infrastructure.storage.sqlite import SQLiteSupplierLinkStore

T0 = datetime(2024, 2, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
async def links(ledger_db):
    return SQLiteSupplierLinkStore()


async def test_first_link_is_preferred(links):
    first = await links.ensure_link("cat-1", "flour")
    second = await links.ensure_link("cat-2", "flour")
    again = await links.ensure_link("cat-1", "flour")

    assert first.preferred
    assert not second.preferred
    assert again.preferred

    listed = await links.list_links_for_ingredient("flour")
    assert [link.catalog_item_id for link in listed] == ["cat-1", "cat-2"]


async def test_record_last_purchase_creates_link(links):
    link = await links.record_last_purchase("cat-1", "sugar", 450, T0)
    assert link.last_purchase_price == 450
    assert link.last_purchased_at == T0


async def test_older_purchase_does_not_overwrite(links):
    await links.record_last_purchase("cat-1", "sugar", 450, T0)
    stale = await links.record_last_purchase("cat-1", "sugar", 999, T0 - timedelta(days=1))
    assert stale.last_purchase_price == 450

    newer = await links.record_last_purchase("cat-1", "sugar", 500, T0 + timedelta(days=1))
    assert newer.last_purchase_price == 500
    assert newer.last_purchased_at == T0 + timedelta(days=1)


async def test_links_for_unknown_ingredient(links):
    assert await links.list_links_for_ingredient("nothing") == []
