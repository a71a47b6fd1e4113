"""Tests for API key bootstrap and bearer authentication."""

import pytest

from src.api.security import (
    generate_auth_key,
    get_api_key,
    get_or_create_auth_key,
    keys_match,
    set_api_key,
)
from src.errors import ConfigurationError


class TestGenerateAuthKey:
    """Tests for generate_auth_key."""

    def test_hex_of_32_bytes(self):
        """Test the key format."""
        key = generate_auth_key()

        assert len(key) == 64
        int(key, 16)

    def test_unique(self):
        """Test that keys are random."""
        assert generate_auth_key() != generate_auth_key()


class TestGetOrCreateAuthKey:
    """Tests for get_or_create_auth_key."""

    def test_creates_key_file(self, tmp_path):
        """Test generating and persisting a key on first use."""
        path = tmp_path / ".auth_key"

        key = get_or_create_auth_key(path)

        assert path.read_text(encoding="utf-8") == key
        assert len(key) == 64

    def test_reuses_existing_key(self, tmp_path):
        """Test that the key survives restarts."""
        path = tmp_path / ".auth_key"

        first = get_or_create_auth_key(path)
        second = get_or_create_auth_key(str(path))

        assert first == second

    def test_strips_whitespace(self, tmp_path):
        """Test reading a hand-edited key file."""
        path = tmp_path / ".auth_key"
        path.write_text("my-key\n", encoding="utf-8")

        assert get_or_create_auth_key(path) == "my-key"

    def test_empty_file_regenerates(self, tmp_path):
        """Test that an empty key file gets a fresh key."""
        path = tmp_path / ".auth_key"
        path.write_text("", encoding="utf-8")

        key = get_or_create_auth_key(path)

        assert len(key) == 64
        assert path.read_text(encoding="utf-8") == key

    def test_unwritable_location(self, tmp_path):
        """Test that I/O errors become configuration errors."""
        path = tmp_path / "missing-dir" / ".auth_key"

        with pytest.raises(ConfigurationError) as exc_info:
            get_or_create_auth_key(path)

        assert exc_info.value.message == "Cannot load API key"


class TestKeysMatch:
    """Tests for keys_match."""

    def test_equal(self):
        assert keys_match("abc", "abc") is True

    def test_different(self):
        assert keys_match("abc", "abd") is False

    @pytest.mark.parametrize("provided,expected", [(None, "abc"), ("abc", None), ("", "")])
    def test_missing(self, provided, expected):
        """Test that a missing key never matches."""
        assert keys_match(provided, expected) is False


def test_global_api_key():
    """Test the global get/set pair."""
    assert get_api_key() is None

    set_api_key("k")

    assert get_api_key() == "k"
