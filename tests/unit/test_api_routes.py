"""
Unit tests for API routes against a shared in-memory database
"""
import pytest
from decimal import Decimal
from src.auth.utils import create_admin_token, create_user_token
from src.database.models import Wallet
from src.services.algorithm_access import REQUIRED_ANSWER_KEYS

USER_ID = 2


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    return _auth(create_user_token(user_id=USER_ID))


@pytest.fixture
def admin_headers():
    return _auth(create_admin_token(user_id=1))


@pytest.fixture
def funded_user(api_db):
    wallet = Wallet(user_id=USER_ID, balance=Decimal("1000.00"), currency="USD")
    api_db.add(wallet)
    api_db.commit()
    return wallet


@pytest.fixture
def plan(client, admin_headers):
    response = client.post("/api/v1/admin/plans", headers=admin_headers, json={
        "name": "Growth",
        "min_amount": "100",
        "max_amount": "900",
        "return_percentage": "10",
        "duration_days": 30,
    })
    assert response.status_code == 201
    return response.json()


class TestPublicEndpoints:
    """Tests for endpoints that need no token"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["api_version"] == "v1"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_price_board(self, client):
        response = client.get("/api/v1/trade/prices", params={"asset_type": "crypto"})

        assert response.status_code == 200
        prices = response.json()["prices"]
        assert {p["asset_type"] for p in prices} == {"crypto"}
        assert "BTC" in {p["symbol"] for p in prices}

    def test_price_board_unknown_asset_type(self, client):
        response = client.get("/api/v1/trade/prices", params={"asset_type": "bond"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_plans_public(self, client, plan):
        response = client.get("/api/v1/investments/plans")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Growth"]


class TestAuthentication:
    """Tests for token handling and permissions"""

    def test_missing_token(self, client):
        response = client.get("/api/v1/user/wallet")

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTHENTICATION_ERROR"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/user/wallet", headers=_auth("garbage"))
        assert response.status_code == 401

    def test_user_cannot_use_back_office(self, client, user_headers):
        response = client.get("/api/v1/admin/deposits", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"


class TestTradeRoutes:
    """Tests for /api/v1/trade"""

    def test_buy(self, client, user_headers, funded_user):
        response = client.post("/api/v1/trade/buy", headers=user_headers, json={
            "asset_type": "stock", "symbol": "AAPL", "asset_name": "Apple Inc.",
            "quantity": 2, "price": 100
        })

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == "799.80"
        assert data["trade"]["fee"] == "0.20"
        assert data["trade"]["trade_type"] == "buy"

    def test_buy_insufficient_funds(self, client, user_headers, funded_user):
        response = client.post("/api/v1/trade/buy", headers=user_headers, json={
            "asset_type": "stock", "symbol": "AAPL", "asset_name": "Apple Inc.",
            "quantity": 10, "price": 100
        })

        assert response.status_code == 400
        assert response.json() == {
            "error": "Insufficient balance",
            "error_code": "INSUFFICIENT_FUNDS",
            "required": "1001.00",
            "available": "1000.00",
        }

    def test_sell_without_holding(self, client, user_headers, funded_user):
        response = client.post("/api/v1/trade/sell", headers=user_headers, json={
            "asset_type": "stock", "symbol": "TSLA", "asset_name": "Tesla",
            "quantity": 1, "price": 100
        })

        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_SUCH_HOLDING"

    def test_malformed_order(self, client, user_headers, funded_user):
        response = client.post("/api/v1/trade/buy", headers=user_headers, json={"symbol": "AAPL"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert any(f["loc"][-1] == "quantity" for f in body["fields"])

    def test_holdings_and_revaluation(self, client, user_headers, funded_user):
        client.post("/api/v1/trade/buy", headers=user_headers, json={
            "asset_type": "stock", "symbol": "AAPL", "asset_name": "Apple Inc.",
            "quantity": 2, "price": 100
        })

        response = client.post("/api/v1/trade/holdings/prices", headers=user_headers)

        assert response.status_code == 200
        holding = response.json()[0]
        assert holding["current_price"] == "120.00"
        assert holding["profit_loss"] == "40.00"

        history = client.get("/api/v1/trade/history", headers=user_headers).json()
        assert [t["symbol"] for t in history] == ["AAPL"]


class TestFundsRoutes:
    """Tests for /api/v1/user and funds review"""

    def test_wallet(self, client, user_headers, funded_user):
        response = client.get("/api/v1/user/wallet", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["balance"] == "1000.00"

    def test_missing_wallet(self, client, user_headers):
        response = client.get("/api/v1/user/wallet", headers=user_headers)
        assert response.status_code == 404

    def test_deposit_review_flow(self, client, user_headers, admin_headers, funded_user):
        created = client.post("/api/v1/user/deposits", headers=user_headers, json={
            "amount": "250", "payment_method": "bank_transfer"
        })
        assert created.status_code == 201
        deposit_id = created.json()["id"]

        early = client.patch(
            f"/api/v1/admin/deposits/{deposit_id}", headers=admin_headers, json={"status": "approved"}
        )
        assert early.status_code == 409

        proof = client.post(
            f"/api/v1/user/deposits/{deposit_id}/proof", headers=user_headers, json={"proof_notes": "wire ref 42"}
        )
        assert proof.status_code == 200
        assert proof.json()["status"] == "awaiting_confirmation"

        approved = client.patch(
            f"/api/v1/admin/deposits/{deposit_id}", headers=admin_headers, json={"status": "approved"}
        )
        assert approved.status_code == 200
        assert approved.json()["reviewed_by"] == 1
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "1250.00"

        again = client.patch(
            f"/api/v1/admin/deposits/{deposit_id}", headers=admin_headers, json={"status": "approved"}
        )
        assert again.status_code == 409
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "1250.00"

    def test_unknown_deposit(self, client, admin_headers):
        response = client.patch("/api/v1/admin/deposits/404", headers=admin_headers, json={"status": "approved"})
        assert response.status_code == 404

    def test_user_routes_scoped_to_token_owner(self, client, api_db, user_headers, funded_user):
        """Another user's deposit is invisible to the caller"""
        api_db.add(Wallet(user_id=3, balance=Decimal("50.00"), currency="USD"))
        api_db.commit()
        other_headers = _auth(create_user_token(user_id=3))
        created = client.post("/api/v1/user/deposits", headers=other_headers, json={
            "amount": "20", "payment_method": "bank_transfer"
        })
        assert created.status_code == 201

        proof = client.post(
            f"/api/v1/user/deposits/{created.json()['id']}/proof", headers=user_headers, json={"proof_notes": "mine"}
        )

        assert proof.status_code == 404
        assert client.get("/api/v1/user/deposits", headers=user_headers).json() == []
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "1000.00"

    def test_withdrawal_holds_funds(self, client, user_headers, admin_headers, funded_user):
        created = client.post("/api/v1/user/withdrawals", headers=user_headers, json={
            "amount": "300", "withdrawal_method": "crypto", "wallet_address": "0xabc"
        })
        assert created.status_code == 201
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "700.00"

        pending = client.get("/api/v1/admin/withdrawals", headers=admin_headers).json()
        assert [w["id"] for w in pending] == [created.json()["id"]]

        rejected = client.patch(
            f"/api/v1/admin/withdrawals/{created.json()['id']}", headers=admin_headers, json={"status": "rejected"}
        )
        assert rejected.status_code == 200
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "1000.00"

    def test_transactions(self, client, user_headers, funded_user):
        client.post("/api/v1/user/withdrawals", headers=user_headers, json={
            "amount": "300", "withdrawal_method": "crypto"
        })

        entries = client.get("/api/v1/user/transactions", headers=user_headers).json()

        assert [(e["type"], e["status"]) for e in entries] == [("withdrawal", "pending")]


class TestInvestmentRoutes:
    """Tests for plans, subscriptions and algorithm access"""

    def test_invest(self, client, user_headers, funded_user, plan):
        response = client.post("/api/v1/investments/invest", headers=user_headers, json={
            "plan_id": plan["id"], "amount": "500"
        })

        assert response.status_code == 201
        data = response.json()
        assert data["expected_return"] == "50.00"
        assert data["plan"]["name"] == "Growth"
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "500.00"

    def test_invest_out_of_range(self, client, user_headers, funded_user, plan):
        response = client.post("/api/v1/investments/invest", headers=user_headers, json={
            "plan_id": plan["id"], "amount": "950"
        })

        assert response.status_code == 400
        assert response.json()["min_amount"] == "100.00"
        assert response.json()["max_amount"] == "900.00"

    def test_maturity_sweep(self, client, user_headers, admin_headers, funded_user, plan):
        client.post("/api/v1/investments/invest", headers=user_headers, json={
            "plan_id": plan["id"], "amount": "500"
        })

        response = client.post(
            "/api/v1/admin/investments/mature", headers=admin_headers, json={"as_of": "2100-01-01T00:00:00"}
        )

        assert response.status_code == 200
        assert [i["status"] for i in response.json()] == ["COMPLETED"]
        assert client.get("/api/v1/user/wallet", headers=user_headers).json()["balance"] == "1050.00"

    def test_algorithm_application_flow(self, client, user_headers, admin_headers, plan):
        answers = {key: "answer" for key in REQUIRED_ANSWER_KEYS}

        applied = client.post("/api/v1/algo/apply", headers=user_headers, json={"answers": answers})
        assert applied.status_code == 201

        duplicate = client.post("/api/v1/algo/apply", headers=user_headers, json={"answers": answers})
        assert duplicate.status_code == 409

        reviewed = client.patch(
            f"/api/v1/admin/algo/applications/{applied.json()['id']}",
            headers=admin_headers,
            json={"status": "approved", "plan_id": plan["id"], "custom_duration_days": 14}
        )
        assert reviewed.status_code == 200

        status = client.get("/api/v1/algo/status", headers=user_headers).json()
        assert status["status"] == "approved"
        assert status["access"][0]["custom_duration_days"] == 14

        eligible = client.get("/api/v1/algo/eligible-plans", headers=user_headers).json()
        assert eligible[0]["effective_duration_days"] == 14

    def test_incomplete_application(self, client, user_headers):
        response = client.post("/api/v1/algo/apply", headers=user_headers, json={"answers": {"age_range": "30-40"}})

        assert response.status_code == 400
        assert response.json()["field"] == "answers"


class TestAdminWalletRoutes:
    """Tests for wallet management"""

    def test_open_and_adjust_wallet(self, client, admin_headers):
        opened = client.post("/api/v1/admin/wallets", headers=admin_headers, json={"user_id": 9})
        assert opened.status_code == 201
        assert opened.json()["balance"] == "0.00"

        adjusted = client.patch(
            f"/api/v1/admin/wallets/{opened.json()['id']}", headers=admin_headers, json={"balance": "75.50"}
        )
        assert adjusted.json()["balance"] == "75.50"

        entries = client.get("/api/v1/admin/transactions", headers=admin_headers, params={"user_id": 9}).json()
        assert [(e["type"], e["amount"]) for e in entries] == [("deposit", "75.50")]

    def test_duplicate_wallet(self, client, admin_headers):
        client.post("/api/v1/admin/wallets", headers=admin_headers, json={"user_id": 9})

        response = client.post("/api/v1/admin/wallets", headers=admin_headers, json={"user_id": 9})

        assert response.status_code == 400
