"""
Tests for the HTTP and WebSocket surface.
"""

import pytest
from fastapi.testclient import TestClient

from papertrade.core.config import Settings
from papertrade.main import create_application


USER = {"X-User-Id": "user-1"}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("MARKET_AUTO_TICK", "false")
    monkeypatch.setenv("MARKET_RANDOM_SEED", "7")
    monkeypatch.setenv("LOG_FILE_ENABLED", "false")
    settings = Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
    )
    with TestClient(create_application(settings)) as test_client:
        yield test_client


class TestHealth:
    """Tests for health and info endpoints."""
    
    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["services"]["ticker"]["running"] is False
    
    def test_root(self, client):
        assert client.get("/").json()["health"] == "/health"


class TestMarketEndpoints:
    """Tests for /api/market."""
    
    def test_all_prices(self, client):
        data = client.get("/api/market/all").json()
        assert len(data) == 15
        assert all(p["price"] == p["base_price"] for p in data)
    
    def test_single_price_case_insensitive(self, client):
        data = client.get("/api/market/price/infy").json()
        assert data["symbol"] == "INFY"
        assert data["price"] == 1450.0
    
    def test_unknown_price(self, client):
        response = client.get("/api/market/price/NOPE")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "UNKNOWN_SYMBOL"
        assert "INFY" in body["available_symbols"]
    
    def test_prices_for_list(self, client):
        data = client.get("/api/market/prices", params={"symbols": "INFY,tcs,NOPE"}).json()
        assert [p["symbol"] for p in data["prices"]] == ["INFY", "TCS"]
        assert data["not_found"] == ["NOPE"]
        assert data["count"] == 2
    
    def test_symbols_and_watchlist(self, client):
        symbols = client.get("/api/market/symbols").json()
        assert symbols["count"] == 15
        watchlist = client.get("/api/market/watchlist").json()
        assert watchlist[0]["percent"] == "+0.00%"
    
    def test_history(self, client):
        data = client.get("/api/market/history/INFY").json()
        assert data["prices"] == [1450.0]
        assert client.get("/api/market/history/NOPE").status_code == 404
    
    def test_reset(self, client):
        assert len(client.post("/api/market/reset").json()["reset"]) == 15
        assert client.post("/api/market/reset", params={"symbol": "infy"}).json()["reset"] == ["INFY"]
        assert client.post("/api/market/reset", params={"symbol": "NOPE"}).status_code == 404


class TestWalletEndpoints:
    """Tests for /api/wallet."""
    
    def test_requires_user(self, client):
        response = client.get("/api/wallet/balance")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
    
    def test_balance(self, client):
        data = client.get("/api/wallet/balance", headers=USER).json()
        assert data["user_id"] == "user-1"
        assert data["balance"] == 100000.0
        assert data["currency"] == "USD"
    
    def test_transactions_after_order(self, client):
        client.post("/api/orders", json={"symbol": "INFY", "qty": 2, "mode": "BUY"}, headers=USER)
        data = client.get("/api/wallet/transactions", headers=USER).json()
        assert len(data) == 1
        assert data[0]["amount"] == 2900.0
        assert data[0]["balance_after"] == 97100.0


class TestOrderEndpoints:
    """Tests for /api/orders and /api/holdings."""
    
    def test_buy_and_sell(self, client):
        response = client.post(
            "/api/orders",
            json={"symbol": "infy", "qty": 10, "mode": "buy", "price": 1.0},
            headers=USER,
        )
        assert response.status_code == 201
        order = response.json()
        assert order["price"] == 1450.0
        assert order["total_amount"] == 14500.0
        assert order["balance"] == 85500.0
        assert order["holding"]["qty"] == 10
        
        holding = client.get("/api/holdings/INFY", headers=USER).json()
        assert holding["avg_cost"] == 1450.0
        
        sold = client.post("/api/orders", json={"symbol": "INFY", "qty": 10, "mode": "SELL"}, headers=USER).json()
        assert sold["holding"] is None
        assert sold["balance"] == 100000.0
        
        history = client.get("/api/orders", headers=USER).json()
        assert [o["mode"] for o in history] == ["SELL", "BUY"]
        assert client.get("/api/holdings", headers=USER).json() == []
        assert client.get("/api/holdings/INFY", headers=USER).status_code == 404
    
    def test_insufficient_funds(self, client):
        response = client.post("/api/orders", json={"symbol": "MARUTI", "qty": 11, "mode": "BUY"}, headers=USER)
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["error"] == "INSUFFICIENT_FUNDS"
        assert body["required"] == 104500.0
        assert body["available"] == 100000.0
        assert body["retryable"] is False
        assert client.get("/api/orders", headers=USER).json() == []
    
    def test_insufficient_position(self, client):
        response = client.post("/api/orders", json={"symbol": "TCS", "qty": 1, "mode": "SELL"}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"] == "INSUFFICIENT_POSITION"
        assert response.json()["available"] == 0
    
    def test_huge_quantity_is_a_typed_rejection(self, client):
        response = client.post("/api/orders", json={"symbol": "TCS", "qty": "1e27", "mode": "BUY"}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"] == "INSUFFICIENT_FUNDS"
        assert client.get("/api/orders", headers=USER).json() == []
    
    def test_invalid_order(self, client):
        response = client.post("/api/orders", json={"symbol": "TCS", "qty": "ten", "mode": "BUY"}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ORDER"
        assert response.json()["field"] == "qty"
    
    def test_unknown_symbol(self, client):
        response = client.post("/api/orders", json={"symbol": "NOPE", "qty": 1, "mode": "BUY"}, headers=USER)
        assert response.status_code == 404
    
    def test_orders_require_user(self, client):
        response = client.post("/api/orders", json={"symbol": "TCS", "qty": 1, "mode": "BUY"})
        assert response.status_code == 401


class TestMarketWebSocket:
    """Tests for /api/realtime/ws/market."""
    
    def test_subscribe_flow(self, client):
        with client.websocket_connect("/api/realtime/ws/market") as ws:
            assert ws.receive_json()["type"] == "connected"
            
            ws.send_json({"action": "subscribe_watchlist", "symbols": ["infy", "NOPE"]})
            subscribed = ws.receive_json()
            assert subscribed["type"] == "subscribed"
            assert subscribed["symbols"] == ["INFY"]
            assert subscribed["rejected"] == ["NOPE"]
            
            update = ws.receive_json()
            assert update["type"] == "watchlist_update"
            assert [p["symbol"] for p in update["data"]] == ["INFY"]
            
            ws.send_json({"action": "unsubscribe_watchlist"})
            assert ws.receive_json() == {"type": "unsubscribed", "success": True}
    
    def test_rejected_subscription(self, client):
        with client.websocket_connect("/api/realtime/ws/market") as ws:
            ws.receive_json()
            ws.send_json({"action": "subscribe_watchlist", "symbols": ["NOPE"]})
            message = ws.receive_json()
            assert message["type"] == "subscription_rejected"
            assert len(message["available_symbols"]) == 15
    
    def test_ping_and_errors(self, client):
        with client.websocket_connect("/api/realtime/ws/market") as ws:
            ws.receive_json()
            ws.send_json({"action": "ping"})
            assert ws.receive_json()["type"] == "pong"
            
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}
            
            ws.send_json({"action": "dance"})
            assert ws.receive_json()["type"] == "error"
