"""
Tests for the HTTP API.

Requests go through the FastAPI app with an in-memory ledger installed on
app.state; the billing platform is mocked.
"""

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from gamebridge.main import app
from gamebridge.models.domain import PurchaseKind
from gamebridge.models.google_play import PlatformResponse
from gamebridge.services.purchase_ledger import (
    MSG_DUPLICATE_TOKEN,
    MSG_NOT_REGISTERED,
    MSG_SAVED,
    PurchaseLedger,
)
from gamebridge.services.record_store import InMemoryRecordStore


@pytest.fixture
async def client(ledger: PurchaseLedger) -> AsyncIterator[AsyncClient]:
    """Client against the app with the test ledger installed."""
    app.state.ledger = ledger
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    del app.state.ledger


class TestUserRoutes:
    """Tests for /v1/users/{user_id} endpoints."""

    async def test_register(self, client):
        """Registration succeeds with an empty message and no payload."""
        response = await client.post("/v1/users/u1/register")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": ""}

    async def test_game_data_round_trip(self, client):
        """Saved game data is returned in payload."""
        save = await client.put("/v1/users/u1/game-data", json={"game_data": '{"level": 7}'})
        load = await client.get("/v1/users/u1/game-data")

        assert save.json()["success"] is True
        assert load.json() == {"success": True, "message": "", "payload": '{"level": 7}'}

    async def test_game_data_unregistered(self, client):
        """Failures still answer 200 with success=false."""
        response = await client.get("/v1/users/ghost/game-data")

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": MSG_NOT_REGISTERED}

    async def test_verify_purchase(self, client, unity_receipt):
        """A verified receipt is recorded once."""
        first = await client.post("/v1/users/u1/purchases", json={"receipt": unity_receipt})
        second = await client.post("/v1/users/u1/purchases", json={"receipt": unity_receipt})

        assert first.json() == {"success": True, "message": MSG_SAVED}
        assert second.json() == {"success": False, "message": MSG_DUPLICATE_TOKEN}

    async def test_verify_purchase_empty_receipt(self, client):
        """Empty receipts are rejected by validation."""
        response = await client.post("/v1/users/u1/purchases", json={"receipt": ""})

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "receipt"]

    async def test_validation_error_does_not_echo_input(self, client):
        """Validation responses never include the submitted body."""
        response = await client.put("/v1/users/u1/game-data", json={"wrong": "secret-value"})

        assert response.status_code == 422
        assert "secret-value" not in response.text

    async def test_price_change_without_subscription(self, client):
        """No stored subscription is a failure result."""
        response = await client.get("/v1/users/u1/subscription/price-change")

        assert response.status_code == 200
        assert response.json()["success"] is False

    async def test_price_change_pending(self, client, oracle, subscription_receipt):
        """A pending price change returns the product id."""
        await client.post("/v1/users/u1/purchases", json={"receipt": subscription_receipt})
        oracle.verify_subscription.return_value = PlatformResponse(
            kind=PurchaseKind.SUBSCRIPTION, resource={"priceChange": {"state": 0}}
        )

        response = await client.get("/v1/users/u1/subscription/price-change")

        body = response.json()
        assert body["success"] is True
        assert body["payload"] == "com.example.subscription.gold"


class TestLedgerNotReady:
    """Tests for requests before startup completes."""

    async def test_service_unavailable(self):
        """Without a ledger the API answers 503."""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/v1/users/u1/register")

        assert response.status_code == 503
        assert response.json()["detail"] == "Purchase ledger not initialized"


class TestOperationalEndpoints:
    """Tests for /health and /metrics."""

    async def test_health(self, client):
        """Health reports the configured store."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["record_store"] == "memory"

    async def test_metrics(self, client):
        """Metrics are exposed in Prometheus text format."""
        await client.post("/v1/users/u1/register")

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "gamebridge_ledger_operations_total" in response.text
        assert "gamebridge_http_requests_total" in response.text

    async def test_in_progress_gauge(self, oracle):
        """Requests count as in progress only while they are being handled."""
        labels = {"endpoint": "/v1/users/{user_id}/register", "method": "POST"}
        seen: list[float | None] = []

        store = InMemoryRecordStore()

        async def observing_set(*args, **kwargs):
            seen.append(REGISTRY.get_sample_value("gamebridge_http_requests_in_progress", labels))

        store.set = observing_set  # type: ignore[method-assign]
        app.state.ledger = PurchaseLedger(store=store, oracle=oracle)
        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post("/v1/users/player-42/register")
        finally:
            del app.state.ledger

        assert response.json()["success"] is True
        assert seen == [1.0]
        assert REGISTRY.get_sample_value("gamebridge_http_requests_in_progress", labels) == 0.0
