"""Tests for settings loading."""

import logging

from config import Settings


class TestSettings:
    def test_missing_token_secret_is_generated_and_warned(self, monkeypatch, caplog):
        monkeypatch.delenv("ADMIN_TOKEN_SECRET", raising=False)
        with caplog.at_level(logging.WARNING, logger="config"):
            first, second = Settings(), Settings()
        assert first.ADMIN_TOKEN_SECRET
        assert first.ADMIN_TOKEN_SECRET != second.ADMIN_TOKEN_SECRET
        assert "ADMIN_TOKEN_SECRET not set" in caplog.text

    def test_pricing_from_environment(self, monkeypatch):
        monkeypatch.setenv("FREE_SHIPPING_THRESHOLD", "500")
        monkeypatch.setenv("TAX_RATE", "0.18")
        settings = Settings()
        assert settings.FREE_SHIPPING_THRESHOLD == 500
        assert settings.TAX_RATE == 0.18
