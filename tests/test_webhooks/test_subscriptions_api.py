"""Tests for webhook subscription API endpoints."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.routes import create_app
from src.client.models import Message
from src.connection.lifecycle import ConnectionLifecycleManager, set_lifecycle_manager
from src.webhooks.dispatcher import EventDispatcher, set_event_dispatcher
from tests.fakes import API_KEY

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def client(settings, fake_client):
    """Create test client with a wired gateway."""
    app = create_app(settings=settings, client=fake_client, api_key=API_KEY)
    return TestClient(app)


# ============================================================================
# Create Subscription Tests
# ============================================================================


class TestCreateSubscription:
    """Tests for POST /subscriptions endpoint."""

    def test_create_subscription(self, client, auth_headers, registry):
        """Test registering a webhook."""
        response = client.post(
            "/subscriptions",
            json={"url": "https://example.com/webhook", "events": ["message"], "secret": "s1"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json() == {"message": "Subscription created successfully"}
        assert registry.get("https://example.com/webhook").secret == "s1"

    def test_missing_fields(self, client, auth_headers):
        """Test registering without a secret."""
        response = client.post(
            "/subscriptions",
            json={"url": "https://example.com/webhook", "events": ["message"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: url, events, secret"

    def test_events_not_array(self, client, auth_headers):
        """Test registering with a non-list events value."""
        response = client.post(
            "/subscriptions",
            json={"url": "https://example.com/webhook", "events": "message", "secret": "s1"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Events must be a non-empty array"

    def test_invalid_url(self, client, auth_headers):
        """Test registering an unparseable URL."""
        response = client.post(
            "/subscriptions",
            json={"url": "invalid-url", "events": ["message"], "secret": "s1"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL format"

    def test_malformed_json(self, client, auth_headers):
        """Test that body parse errors are 400, not 422."""
        response = client.post(
            "/subscriptions",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_requires_bearer_token(self, client):
        """Test that the API key is required."""
        response = client.post(
            "/subscriptions",
            json={"url": "https://example.com/webhook", "events": ["message"], "secret": "s1"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized - Bearer token required"


# ============================================================================
# List Subscription Tests
# ============================================================================


class TestListSubscriptions:
    """Tests for GET /subscriptions endpoint."""

    def test_list_hides_secret(self, client, auth_headers, registry):
        """Test that listings never include secrets."""
        registry.register("https://example.com/webhook", ["message"], "s1")

        response = client.get("/subscriptions", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == [{"url": "https://example.com/webhook", "events": ["message"]}]
        assert "s1" not in response.text

    def test_list_after_overwrite(self, client, auth_headers):
        """Test one entry per URL after re-registration."""
        for events in (["message"], ["message_ack", "group_join"]):
            client.post(
                "/subscriptions",
                json={"url": "https://example.com/webhook", "events": events, "secret": "s"},
                headers=auth_headers,
            )

        response = client.get("/subscriptions", headers=auth_headers)

        assert response.json() == [
            {"url": "https://example.com/webhook", "events": ["message_ack", "group_join"]}
        ]


# ============================================================================
# Delete Subscription Tests
# ============================================================================


class TestDeleteSubscription:
    """Tests for DELETE /subscriptions endpoint."""

    def test_delete_subscription(self, client, auth_headers, registry):
        """Test removing a webhook exactly once."""
        registry.register("https://example.com/webhook", ["message"], "s1")

        first = client.request(
            "DELETE", "/subscriptions", json={"url": "https://example.com/webhook"}, headers=auth_headers
        )
        second = client.request(
            "DELETE", "/subscriptions", json={"url": "https://example.com/webhook"}, headers=auth_headers
        )

        assert first.status_code == 200
        assert first.json() == {"message": "Subscription removed successfully"}
        assert second.status_code == 404
        assert second.json()["error"] == "Subscription not found"

    def test_delete_requires_url(self, client, auth_headers):
        """Test removing without a URL."""
        response = client.request("DELETE", "/subscriptions", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "URL is required"


# ============================================================================
# End-to-End Delivery Tests
# ============================================================================


class TestEndToEnd:
    """Register over HTTP, emit from the client, receive the webhook."""

    @pytest.mark.asyncio
    async def test_message_reaches_webhook(self, settings, fake_client, registry, auth_headers):
        """Test the full path with a mock webhook receiver."""
        received: list[httpx.Request] = []

        def receiver(request: httpx.Request) -> httpx.Response:
            if request.url.host == "down.example.com":
                raise httpx.ConnectError("Connection refused", request=request)
            received.append(request)
            return httpx.Response(200)

        dispatcher = EventDispatcher(registry, transport=httpx.MockTransport(receiver))
        dispatcher.attach(fake_client)
        set_event_dispatcher(dispatcher)
        set_lifecycle_manager(ConnectionLifecycleManager(fake_client))
        api = TestClient(create_app(settings=settings, api_key=API_KEY))

        for url, secret in (("https://down.example.com/webhook", "s0"), ("https://example.com/webhook", "s1")):
            response = api.post(
                "/subscriptions",
                json={"url": url, "events": ["message"], "secret": secret},
                headers=auth_headers,
            )
            assert response.status_code == 201

        fake_client.emit(
            "message",
            Message(id="m1", body="hi", from_="a@c.us", to="b@c.us", timestamp=1700000000),
        )
        await dispatcher.drain()

        assert len(received) == 1
        assert received[0].headers["Authorization"] == "Bearer s1"
        body = json.loads(received[0].content)
        assert body["event"] == "message"
        assert body["data"]["body"] == "hi"
