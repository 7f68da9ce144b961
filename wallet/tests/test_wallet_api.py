"""
API Tests for the Wallet Routes

Tests cover:
1. Deposit routes and admin approval
2. Withdraw routes and eligibility
3. Task routes, cooldown and the journal
4. Mapping of typed errors to HTTP status codes
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from wallet.api import create_app


BANK = {"bank_name": "VIB", "account_number": "0123456789", "account_holder": "NGUYEN VAN A"}
ADMIN_HEADERS = {"X-Admin-Id": "aaaaaaaa-0000-0000-0000-000000000001", "X-Admin-Role": "admin", "X-Admin-Name": "ops"}


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def account_id(client):
    response = client.post("/accounts", json={"username": "alice"})
    assert response.status_code == 201
    return response.json()["id"]


def deposit_and_approve(client, account_id, amount=200000):
    deposit = client.post(f"/accounts/{account_id}/deposits", json={"amount": amount}).json()
    response = client.post(f"/admin/deposits/{deposit['id']}/approve", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    return deposit


class TestDepositRoutes:
    """Tests for the deposit endpoints."""

    def test_deposit_then_approve(self, client, account_id):
        """Test the deposit scenario over HTTP."""
        deposit = client.post(f"/accounts/{account_id}/deposits", json={"amount": 200000})
        assert deposit.status_code == 201
        assert deposit.json()["status"] == "pending"

        approved = client.post(f"/admin/deposits/{deposit.json()['id']}/approve", headers=ADMIN_HEADERS)
        assert approved.status_code == 200
        assert approved.json()["status"] == "completed"

        account = client.get(f"/accounts/{account_id}").json()
        assert Decimal(account["balance"]) == Decimal("200000")
        assert Decimal(account["deposited_total"]) == Decimal("200000")
        assert Decimal(account["total_balance"]) == Decimal("200000")

    def test_low_deposit_is_400(self, client, account_id):
        """Test that business rule violations map to 400."""
        response = client.post(f"/accounts/{account_id}/deposits", json={"amount": 1000})
        assert response.status_code == 400

    def test_approve_without_admin_is_401(self, client, account_id):
        """Test that admin routes need an admin identity."""
        deposit = client.post(f"/accounts/{account_id}/deposits", json={"amount": 200000}).json()
        response = client.post(f"/admin/deposits/{deposit['id']}/approve")
        assert response.status_code == 401

    def test_support_role_is_403(self, client, account_id):
        """Test that missing capabilities map to 403."""
        deposit = client.post(f"/accounts/{account_id}/deposits", json={"amount": 200000}).json()
        headers = dict(ADMIN_HEADERS, **{"X-Admin-Role": "support"})
        response = client.post(f"/admin/deposits/{deposit['id']}/approve", headers=headers)
        assert response.status_code == 403

    def test_reject_without_reason_is_400(self, client, account_id):
        """Test that a missing reason is refused."""
        deposit = client.post(f"/accounts/{account_id}/deposits", json={"amount": 200000}).json()
        response = client.post(f"/admin/deposits/{deposit['id']}/reject", json={}, headers=ADMIN_HEADERS)
        assert response.status_code == 400

    def test_stats_for_unknown_account_is_404(self, client):
        """Test that stats on a missing account map to 404."""
        missing = "00000000-0000-0000-0000-000000000000"

        assert client.get(f"/accounts/{missing}/deposits/stats").status_code == 404
        assert client.get(f"/accounts/{missing}/withdraws/stats").status_code == 404

    def test_unknown_deposit_is_404(self, client):
        """Test that unknown ids map to 404."""
        response = client.post(
            "/admin/deposits/00000000-0000-0000-0000-000000000000/approve", headers=ADMIN_HEADERS
        )
        assert response.status_code == 404


class TestWithdrawRoutes:
    """Tests for the withdraw endpoints."""

    def test_eligibility_reasons(self, client, account_id):
        """Test that an empty account reports both reasons in order."""
        response = client.get(f"/accounts/{account_id}/withdraws/eligibility")

        body = response.json()
        assert response.status_code == 200
        assert body["eligible"] is False
        assert len(body["reasons"]) == 2
        assert "Deposit" in body["reasons"][0]

    def test_withdraw_reject_scenario(self, client, account_id):
        """Test create then reject over HTTP."""
        deposit_and_approve(client, account_id)

        withdraw = client.post(
            f"/accounts/{account_id}/withdraws", json={"amount": 150000, "bank": BANK}
        )
        assert withdraw.status_code == 201

        rejected = client.post(
            f"/admin/withdraws/{withdraw.json()['id']}/reject",
            json={"reason": "bank info invalid"},
            headers=ADMIN_HEADERS,
        )
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "failed"

        account = client.get(f"/accounts/{account_id}").json()
        assert Decimal(account["balance"]) == Decimal("200000")
        assert Decimal(account["commission"]) == Decimal("0")

    def test_complete_flow(self, client, account_id):
        """Test approve then complete over HTTP."""
        deposit_and_approve(client, account_id)
        withdraw = client.post(
            f"/accounts/{account_id}/withdraws", json={"amount": 150000, "bank": BANK}
        ).json()

        client.post(f"/admin/withdraws/{withdraw['id']}/approve", headers=ADMIN_HEADERS)
        completed = client.post(
            f"/admin/withdraws/{withdraw['id']}/complete",
            json={"external_txn_id": "FT1"},
            headers=ADMIN_HEADERS,
        )

        assert completed.status_code == 200
        assert completed.json()["external_txn_id"] == "FT1"
        stats = client.get(f"/accounts/{account_id}/withdraws/stats").json()
        assert stats["completed"]["count"] == 1

    def test_withdraw_without_deposit_is_400(self, client, account_id):
        """Test the deposit threshold over HTTP."""
        response = client.post(
            f"/accounts/{account_id}/withdraws", json={"amount": 150000, "bank": BANK}
        )
        assert response.status_code == 400


class TestTaskRoutes:
    """Tests for the task endpoints."""

    def test_cooldown_is_429(self, client, account_id):
        """Test that the cooldown maps to 429 with the next available time."""
        first = client.post(f"/accounts/{account_id}/tasks", json={"platform": "shopee", "level": 1})
        assert first.status_code == 200
        assert Decimal(first.json()["task"]["commission_awarded"]) == Decimal("1500")

        second = client.post(f"/accounts/{account_id}/tasks", json={"platform": "shopee", "level": 1})
        assert second.status_code == 429
        assert second.json()["detail"]["next_available"] is not None

    def test_levels_and_platform_tasks(self, client, account_id):
        """Test the level overview and platform listing."""
        levels = client.get(f"/accounts/{account_id}/levels").json()
        assert levels["current_level"] == 1
        assert len(levels["levels"]) == 5

        tasks = client.get(f"/accounts/{account_id}/platforms/lazada/tasks").json()
        assert [t["is_available"] for t in tasks] == [True, False, False, False, False]

    def test_ledger_history(self, client, account_id):
        """Test the journal endpoint."""
        deposit_and_approve(client, account_id)
        client.post(f"/accounts/{account_id}/tasks", json={"platform": "tiki", "level": 1})

        history = client.get(f"/accounts/{account_id}/ledger").json()

        assert history["total_count"] == 2
        assert Decimal(history["total_balance"]) == Decimal("201500")
