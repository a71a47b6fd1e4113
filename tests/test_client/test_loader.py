"""Tests for messaging client loading."""

import pytest

from src.client.loader import create_client, load_client_factory
from src.config import Settings
from src.errors import ConfigurationError
from tests.fakes import FakeMessagingClient, create_restoring_client


class TestLoadClientFactory:
    """Tests for load_client_factory."""

    def test_load(self):
        """Test importing a factory by path."""
        assert load_client_factory("tests.fakes:create_restoring_client") is create_restoring_client

    @pytest.mark.parametrize("path", [None, ""])
    def test_not_configured(self, path):
        """Test that a client must be configured."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_client_factory(path)

        assert exc_info.value.message == "No messaging client configured"

    @pytest.mark.parametrize("path", ["tests.fakes", "tests.fakes:", ":factory"])
    def test_malformed(self, path):
        """Test that the path needs module and attribute."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_client_factory(path)

        assert exc_info.value.message == "Invalid MESSAGING_CLIENT value"

    @pytest.mark.parametrize("path", ["no_such_module_xyz:factory", "tests.fakes:missing"])
    def test_unimportable(self, path):
        """Test unknown modules and attributes."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_client_factory(path)

        assert exc_info.value.message == "Cannot load messaging client factory"

    def test_not_callable(self):
        """Test that the attribute must be callable."""
        with pytest.raises(ConfigurationError):
            load_client_factory("tests.fakes:API_KEY")


def test_create_client():
    """Test building the configured client."""
    client = create_client(Settings(MESSAGING_CLIENT="tests.fakes:create_restoring_client"))

    assert isinstance(client, FakeMessagingClient)
    assert client.on_initialize is not None
