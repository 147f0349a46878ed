"""API tests for inventory endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import make_receipt
from inventory_ledger.api.dependencies import (
    get_inventory_report_use_case,
    get_stock_adjustment_use_case,
)
from inventory_ledger.api.main import app
from inventory_ledger.application.use_cases import (
    AdjustedLine,
    InventoryReportUseCase,
    InventoryValuation,
    Reconciliation,
    StockAdjustment,
    StockAdjustmentUseCase,
)
from inventory_ledger.core.entities import BaseUom, IngredientAccount
from inventory_ledger.core.exceptions import (
    ConcurrentUpdateError,
    IngredientAccountNotFoundError,
    UnknownIngredientError,
)


@pytest.fixture
def flour():
    return IngredientAccount(
        ingredient_id="flour",
        name="Flour",
        base_uom=BaseUom.GR,
        min_stock=50,
        current_stock=20,
        avg_cost=1500,
    )


@pytest.fixture
def mock_use_case(flour):
    use_case = AsyncMock(spec=InventoryReportUseCase)
    use_case.register.return_value = (flour, True)
    use_case.get_account.return_value = flour
    use_case.list_accounts.return_value = ([flour], 50, 0)
    use_case.low_stock.return_value = ([flour], 50, 0)
    use_case.ledger_page.return_value = ([make_receipt("flour", 1)], 50, 0)
    use_case.valuation.return_value = InventoryValuation(
        accounts=[flour], account_count=1, total_units=20, total_value=30000
    )
    use_case.reconcile.return_value = Reconciliation(
        ingredient_id="flour",
        account_stock=20,
        ledger_stock=20,
        checked_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
    use_case.reconciliation_response.side_effect = (
        InventoryReportUseCase.reconciliation_response
    )
    use_case.purchase_history_response.side_effect = (
        InventoryReportUseCase.purchase_history_response
    )
    return use_case


@pytest.fixture
async def client(mock_use_case):
    app.dependency_overrides[get_inventory_report_use_case] = lambda: mock_use_case
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_inventory_report_use_case, None)


class TestIngredients:
    async def test_register_new_returns_201(self, client):
        response = await client.post(
            "/api/inventory/ingredients",
            json={"ingredient_id": "flour", "base_uom": "gr", "min_stock": 50},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["created"] is True
        assert body["account"]["base_uom"] == "gr"

    async def test_register_existing_returns_200(self, client, mock_use_case, flour):
        mock_use_case.register.return_value = (flour, False)
        response = await client.post("/api/inventory/ingredients", json={"ingredient_id": "flour"})
        assert response.status_code == 200
        assert response.json()["created"] is False

    async def test_register_negative_min_stock_rejected(self, client):
        response = await client.post(
            "/api/inventory/ingredients", json={"ingredient_id": "flour", "min_stock": -1}
        )
        assert response.status_code == 422


class TestAccounts:
    async def test_get_account(self, client):
        response = await client.get("/api/inventory/accounts/flour")
        assert response.status_code == 200
        body = response.json()
        assert body["stock_value"] == 30000
        assert body["is_low_stock"] is True

    async def test_unknown_account_returns_404(self, client, mock_use_case):
        mock_use_case.get_account.side_effect = IngredientAccountNotFoundError("ghost")
        response = await client.get("/api/inventory/accounts/ghost")
        assert response.status_code == 404
        assert response.json()["error_code"] == "INGREDIENT_NOT_FOUND"

    async def test_list_accounts(self, client, mock_use_case):
        response = await client.get("/api/inventory/accounts?limit=5&offset=10")
        assert response.status_code == 200
        mock_use_case.list_accounts.assert_awaited_once_with(limit=5, offset=10)

    async def test_ledger(self, client):
        response = await client.get("/api/inventory/accounts/flour/ledger")
        assert response.status_code == 200
        entry = response.json()["entries"][0]
        assert entry["reason"] == "po"
        assert entry["ref_line"] == 1

    async def test_reconcile(self, client):
        response = await client.get("/api/inventory/accounts/flour/reconcile")
        assert response.status_code == 200
        assert response.json()["balanced"] is True


class TestReports:
    async def test_low_stock_threshold_passed(self, client, mock_use_case):
        response = await client.get("/api/inventory/low-stock?threshold=30")
        assert response.status_code == 200
        assert mock_use_case.low_stock.await_args.kwargs["threshold"] == 30

    async def test_valuation(self, client):
        response = await client.get("/api/inventory/valuation")
        assert response.status_code == 200
        body = response.json()
        assert body["total_value"] == 30000
        assert body["accounts"][0]["ingredient_id"] == "flour"

    async def test_purchase_history(self, client, mock_use_case):
        from inventory_ledger.application.use_cases.inventory_report import (
            PurchaseHistory,
            PurchaseReceipt,
        )

        mock_use_case.purchase_history.return_value = PurchaseHistory(
            ingredient_id="flour",
            receipts=[PurchaseReceipt(entry=make_receipt("flour", 1), unit_price=2000)],
            links=[],
        )
        response = await client.get("/api/inventory/accounts/flour/purchase-history")
        assert response.status_code == 200
        assert response.json()["receipts"][0]["unit_price"] == 2000


@pytest.fixture
def mock_adjustment(flour):
    use_case = AsyncMock(spec=StockAdjustmentUseCase)
    counted = flour.model_copy(update={"current_stock": 12, "version": 4})
    use_case.adjust.return_value = StockAdjustment(
        id="adj-1",
        occurred_at=datetime(2024, 1, 2, tzinfo=UTC),
        lines=[
            AdjustedLine(
                line_no=1,
                ingredient_id="flour",
                counted_qty=12,
                previous_stock=20,
                account=counted,
                entry=make_receipt("flour", 7),
            )
        ],
    )
    use_case.to_response.side_effect = StockAdjustmentUseCase.to_response
    app.dependency_overrides[get_stock_adjustment_use_case] = lambda: use_case
    yield use_case
    app.dependency_overrides.pop(get_stock_adjustment_use_case, None)


class TestAdjustments:
    async def test_count_returns_201_with_deltas(self, client, mock_adjustment):
        response = await client.post(
            "/api/inventory/adjustments",
            json={"items": [{"ingredient_id": "flour", "counted_qty": 12}]},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["adjustment_id"] == "adj-1"
        assert body["changed_lines"] == 1
        line = body["lines"][0]
        assert (line["previous_stock"], line["delta_qty"]) == (20, -8)
        assert line["ledger_entry_id"] == 7
        assert line["account"]["current_stock"] == 12
        request = mock_adjustment.adjust.await_args.args[0]
        assert request.items[0].counted_qty == 12

    async def test_negative_count_rejected(self, client, mock_adjustment):
        response = await client.post(
            "/api/inventory/adjustments",
            json={"items": [{"ingredient_id": "flour", "counted_qty": -1}]},
        )
        assert response.status_code == 422
        mock_adjustment.adjust.assert_not_awaited()

    async def test_empty_count_rejected(self, client, mock_adjustment):
        response = await client.post("/api/inventory/adjustments", json={"items": []})
        assert response.status_code == 422

    async def test_unknown_ingredient_returns_400(self, client, mock_adjustment):
        mock_adjustment.adjust.side_effect = UnknownIngredientError("ghost")
        response = await client.post(
            "/api/inventory/adjustments",
            json={"items": [{"ingredient_id": "ghost", "counted_qty": 1}]},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_stale_count_returns_503(self, client, mock_adjustment):
        mock_adjustment.adjust.side_effect = ConcurrentUpdateError("flour", 3)
        response = await client.post(
            "/api/inventory/adjustments",
            json={"items": [{"ingredient_id": "flour", "counted_qty": 1, "expected_version": 3}]},
        )
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["error_code"] == "CONCURRENT_UPDATE"
