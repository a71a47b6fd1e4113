"""Tests for session authentication endpoints."""

import pytest
from fastapi.testclient import TestClient

from src.api.routes import create_app
from src.connection.lifecycle import get_lifecycle_manager
from tests.fakes import API_KEY, emit_qr, emit_ready

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def api(settings, fake_client):
    """Test client running the app lifespan."""
    app = create_app(settings=settings, client=fake_client, api_key=API_KEY)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def paired(api, auth_headers, fake_client):
    """Test client whose session has been restored."""
    fake_client.on_initialize = emit_ready
    response = api.post("/auth/initialize", headers=auth_headers)
    assert response.json() == {"status": "AUTHENTICATED"}
    return api


# ============================================================================
# Initialize Tests
# ============================================================================


class TestInitialize:
    """Tests for POST /auth/initialize."""

    def test_returns_qr(self, api, auth_headers, fake_client):
        """Test that pairing returns the QR code as a data URL."""
        fake_client.on_initialize = emit_qr("2@payload")

        response = api.post("/auth/initialize", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "QR_READY"
        assert data["qr"].startswith("data:image/png;base64,")

    def test_restored_session(self, api, auth_headers, fake_client):
        """Test that a saved session needs no QR code."""
        fake_client.on_initialize = emit_ready

        response = api.post("/auth/initialize", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"status": "AUTHENTICATED"}

    def test_already_authenticated(self, paired, auth_headers, fake_client):
        """Test that an authenticated session is not restarted."""
        response = paired.post("/auth/initialize", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "WhatsApp client is already authenticated"
        assert fake_client.initialize_calls == 1

    def test_auth_failure(self, api, auth_headers, fake_client):
        """Test that client failures become a 500."""
        fake_client.on_initialize = lambda client: client.emit("auth_failure", "expired")

        response = api.post("/auth/initialize", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to initialize WhatsApp client",
            "detail": "Authentication failed: expired",
        }

    def test_retries_exhausted(self, api, auth_headers, fake_client):
        """Test that a spent retry budget is reported."""
        manager = get_lifecycle_manager()
        manager.state.retry_count = manager.max_retries

        response = api.post("/auth/initialize", headers=auth_headers)

        assert response.status_code == 500
        assert "Max initialization retries reached" in response.json()["detail"]
        assert fake_client.initialize_calls == 0

    def test_requires_bearer_token(self, api):
        """Test that initialization requires the API key."""
        response = api.post("/auth/initialize")

        assert response.status_code == 401

    def test_wrong_bearer_token(self, api):
        """Test that a wrong API key is rejected."""
        response = api.post("/auth/initialize", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized - Bearer token required"


# ============================================================================
# Status Tests
# ============================================================================


class TestStatus:
    """Tests for GET /auth/status."""

    def test_before_initialization(self, api, auth_headers):
        """Test status of a fresh gateway."""
        response = api.get("/auth/status", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["authenticated"] is False
        assert data["initialized"] is False
        assert data["qrDisplayed"] is False
        assert data["state"] == "DISCONNECTED"
        assert isinstance(data["timestamp"], int)

    def test_while_qr_pending(self, api, auth_headers, fake_client):
        """Test status while a QR code waits to be scanned."""
        fake_client.on_initialize = emit_qr()
        api.post("/auth/initialize", headers=auth_headers)

        data = api.get("/auth/status", headers=auth_headers).json()

        assert data["qrDisplayed"] is True
        assert data["authenticated"] is False

    def test_after_login(self, paired, auth_headers):
        """Test status once the session is ready."""
        data = paired.get("/auth/status", headers=auth_headers).json()

        assert data["authenticated"] is True
        assert data["initialized"] is True
        assert data["state"] == "CONNECTED"


# ============================================================================
# QR Code Tests
# ============================================================================


class TestQrCode:
    """Tests for GET /auth/qrcode."""

    def test_no_qr(self, api, auth_headers):
        """Test that no QR is available before initialization."""
        response = api.get("/auth/qrcode", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "No QR code available"

    def test_pending_qr(self, api, auth_headers, fake_client):
        """Test fetching the pending QR code again."""
        fake_client.on_initialize = emit_qr()
        first = api.post("/auth/initialize", headers=auth_headers).json()

        response = api.get("/auth/qrcode", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == first

    def test_authenticated(self, paired, auth_headers):
        """Test that an authenticated session has no QR code."""
        response = paired.get("/auth/qrcode", headers=auth_headers)

        assert response.status_code == 400


# ============================================================================
# Key and Account Tests
# ============================================================================


class TestKeyAndAccount:
    """Tests for GET /auth/key and GET /auth/account."""

    def test_key(self, api, auth_headers):
        """Test returning the API key."""
        response = api.get("/auth/key", headers=auth_headers)

        assert response.json() == {"key": API_KEY}

    def test_account_before_ready(self, api, auth_headers):
        """Test account info before the client is ready."""
        response = api.get("/auth/account", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Client not fully initialized"

    def test_account(self, paired, auth_headers):
        """Test account info of the connected account."""
        response = paired.get("/auth/account", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "me": "15550001111",
            "pushname": "Me",
            "wid": "15550001111@c.us",
            "platform": None,
        }


class TestNoClientConfigured:
    """Tests for a gateway started without a messaging client."""

    def test_status_reports_configuration_error(self, settings, auth_headers):
        """Test that client endpoints fail clearly without a client."""
        app = create_app(settings=settings, api_key=API_KEY)
        with TestClient(app) as api:
            response = api.get("/auth/status", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "Messaging client not configured"
