"""
HTTP Tests for the Credits API

Tests cover:
1. Account endpoints
2. Deposits, spends and the minimum deposit
3. Admin transactions
4. Ledger history
5. Entity activation through the spend gate
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from ledger.api import app


client = TestClient(app)


def new_account(name="API Advertiser", **extra):
    response = client.post("/accounts", json={"name": name, **extra})
    assert response.status_code == 201
    return response.json()["id"]


def deposit(account_id, amount):
    return client.post(f"/accounts/{account_id}/deposits", json={"amount": amount})


class TestAccounts:
    """Account endpoints and lookups."""

    def test_health(self):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_open_and_fetch_account(self):
        account_id = new_account(owner_type="organization", bonus_credits="5.00")

        response = client.get(f"/accounts/{account_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["owner_type"] == "organization"
        assert Decimal(body["balance"]) == Decimal("0.00")
        assert Decimal(body["total_available_credits"]) == Decimal("5.00")

    def test_unknown_account_is_404(self):
        response = client.get("/accounts/00000000-0000-0000-0000-000000000000/balance")

        assert response.status_code == 404


class TestDeposits:
    """Deposits, spends and the minimum deposit."""

    def test_deposit_credits_account(self):
        account_id = new_account()

        response = deposit(account_id, "100.00")

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["balance"]) == Decimal("100.00")
        assert body["entry"]["kind"] == "deposit"
        assert body["entry"]["signed_amount"] == "+100.00"

    def test_deposit_below_minimum_rejected(self):
        account_id = new_account()

        response = deposit(account_id, "5.00")

        assert response.status_code == 400
        assert response.json()["detail"] == "Minimum deposit is $10.00"
        balance = client.get(f"/accounts/{account_id}/balance").json()
        assert balance["total_entries"] == 0

    def test_overdrawing_spend_is_409(self):
        account_id = new_account()
        deposit(account_id, "100.00")

        response = client.post(
            f"/accounts/{account_id}/spends",
            json={"amount": "150.00", "description": "spend"},
        )

        assert response.status_code == 409
        balance = client.get(f"/accounts/{account_id}/balance").json()
        assert Decimal(balance["balance"]) == Decimal("100.00")

    @pytest.mark.parametrize("amount", ["1e30", "10.001"])
    def test_out_of_range_deposit_is_422(self, amount):
        account_id = new_account()

        response = deposit(account_id, amount)

        assert response.status_code == 422
        balance = client.get(f"/accounts/{account_id}/balance").json()
        assert balance["total_entries"] == 0


class TestAdminTransactions:
    """Manual admin transactions."""

    def test_admin_adjustment(self):
        account_id = new_account()
        deposit(account_id, "50.00")

        response = client.post(
            f"/admin/accounts/{account_id}/transactions",
            json={"amount": "-20.00", "kind": "admin_adjustment", "description": "correction"},
        )

        assert response.status_code == 201
        assert response.json()["message"] == "Successfully deducted $20.00"
        assert Decimal(response.json()["balance"]) == Decimal("30.00")

    def test_zero_amount_rejected(self):
        account_id = new_account()

        response = client.post(
            f"/admin/accounts/{account_id}/transactions",
            json={"amount": "0", "description": "nothing"},
        )

        assert response.status_code == 400


class TestLedgerHistory:
    """Ledger history filtering and paging."""

    def test_history_filtered_by_kind(self):
        account_id = new_account()
        deposit(account_id, "100.00")
        client.post(f"/accounts/{account_id}/spends", json={"amount": "10.00", "description": "spend"})

        response = client.get(f"/accounts/{account_id}/ledger", params={"kind": "spend"})

        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 1
        assert Decimal(body["entries"][0]["amount"]) == Decimal("-10.00")
        assert Decimal(body["current_balance"]) == Decimal("90.00")

    @pytest.mark.parametrize("params", [{"offset": -5}, {"limit": 0}, {"limit": -1}])
    def test_negative_paging_is_422(self, params):
        account_id = new_account()

        response = client.get(f"/accounts/{account_id}/ledger", params=params)

        assert response.status_code == 422

    def test_list_accounts_negative_limit_is_422(self):
        response = client.get("/accounts", params={"limit": -1})

        assert response.status_code == 422


class TestEntities:
    """Entity creation and activation through the spend gate."""

    def create_campaign(self, account_id, budget="30.00"):
        response = client.post("/entities", json={
            "account_id": account_id, "name": "Launch", "daily_budget": budget,
        })
        assert response.status_code == 201
        return response.json()["id"]

    def test_activation_blocked_without_credits(self):
        account_id = new_account()
        deposit(account_id, "10.00")
        entity_id = self.create_campaign(account_id, "25.00")

        response = client.post(f"/entities/{entity_id}/activate")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["field"] == "base"
        assert detail["required"] == "25.00"
        assert detail["available"] == "10.00"
        assert client.get(f"/entities/{entity_id}").json()["status"] == "inactive"

    def test_activation_and_serving_status(self):
        account_id = new_account()
        deposit(account_id, "100.00")
        entity_id = self.create_campaign(account_id)

        response = client.post(f"/entities/{entity_id}/activate")
        serving = client.get(f"/entities/{entity_id}/serving").json()

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert serving["can_serve_ads"] is True
        assert serving["should_pause_for_credits"] is False

    def test_budget_below_floor_is_422(self):
        account_id = new_account()

        response = client.post("/entities", json={
            "account_id": account_id, "name": "Tiny", "daily_budget": "5.00",
        })

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "daily_budget"

    def test_out_of_range_budget_is_422(self):
        account_id = new_account()

        response = client.post("/entities", json={
            "account_id": account_id, "name": "Huge", "daily_budget": "1e30",
        })

        assert response.status_code == 422

    def test_entity_for_unknown_account_is_404(self):
        response = client.post("/entities", json={
            "account_id": "00000000-0000-0000-0000-000000000000",
            "name": "Orphan", "daily_budget": "30.00",
        })

        assert response.status_code == 404


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
