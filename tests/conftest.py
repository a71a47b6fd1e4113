"""Shared fixtures: an in-memory messaging client and fresh gateway globals."""

import pytest

from src.api.security import set_api_key
from src.config import Settings
from src.connection.lifecycle import set_lifecycle_manager
from src.webhooks.dispatcher import EventDispatcher, set_event_dispatcher
from src.webhooks.registry import SubscriptionRegistry, set_subscription_registry
from tests.fakes import API_KEY, FakeMessagingClient

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def fresh_globals():
    """Give every test its own registry, dispatcher and lifecycle slot."""
    registry = SubscriptionRegistry()
    set_subscription_registry(registry)
    set_event_dispatcher(EventDispatcher(registry))
    set_lifecycle_manager(None)
    set_api_key(None)
    yield registry
    set_lifecycle_manager(None)
    set_api_key(None)


@pytest.fixture
def registry(fresh_globals):
    """The global subscription registry for this test."""
    return fresh_globals


@pytest.fixture
def fake_client():
    """In-memory messaging client."""
    return FakeMessagingClient()


@pytest.fixture
def settings(tmp_path):
    """Settings suitable for tests: no auto-init, short timeouts."""
    return Settings(
        AUTH_KEY_FILE=str(tmp_path / ".auth_key"),
        AUTO_INITIALIZE=False,
        MAX_INIT_RETRIES=5,
        RETRY_DELAY_SECONDS=0.01,
        INIT_TIMEOUT_SECONDS=1.0,
        WEBHOOK_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def auth_headers():
    """Bearer header carrying the test API key."""
    return {"Authorization": f"Bearer {API_KEY}"}
