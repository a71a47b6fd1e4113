"""Tests for environment-based settings."""

from src.config import Settings


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        """Test defaults with an empty environment."""
        for name in ("PORT", "AUTO_INITIALIZE", "MAX_INIT_RETRIES", "ALLOWED_ORIGINS", "MESSAGING_CLIENT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.PORT == 3000
        assert settings.AUTO_INITIALIZE is True
        assert settings.MAX_INIT_RETRIES == 5
        assert settings.RETRY_DELAY_SECONDS == 10.0
        assert settings.MESSAGING_CLIENT is None
        assert settings.ALLOWED_ORIGINS == ["http://localhost:3000"]

    def test_overrides(self, monkeypatch):
        """Test reading values from the environment."""
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("AUTO_INITIALIZE", "off")
        monkeypatch.setenv("LOG_JSON", "yes")
        monkeypatch.setenv("WEBHOOK_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
        monkeypatch.setenv("MESSAGING_CLIENT", "adapter:create")

        settings = Settings.from_env()

        assert settings.PORT == 8080
        assert settings.AUTO_INITIALIZE is False
        assert settings.LOG_JSON is True
        assert settings.WEBHOOK_TIMEOUT_SECONDS == 2.5
        assert settings.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]
        assert settings.MESSAGING_CLIENT == "adapter:create"

    def test_unrecognized_bool_uses_default(self, monkeypatch):
        """Test that garbage booleans fall back to the default."""
        monkeypatch.setenv("AUTO_INITIALIZE", "maybe")

        assert Settings.from_env().AUTO_INITIALIZE is True
