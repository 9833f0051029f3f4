"""Tests for BuddyUpConfig."""

from __future__ import annotations

from buddyup.infra.config import BuddyUpConfig


class TestBuddyUpConfig:
    def test_default_values(self, monkeypatch):
        monkeypatch.delenv("BUDDYUP_ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("BUDDYUP_ANTHROPIC_API_KEYS", raising=False)
        config = BuddyUpConfig()
        assert config.anthropic_api_key == ""
        assert config.default_model == "claude-sonnet-4-5-20250929"
        assert config.max_tokens == 1024
        assert config.model_timeout_seconds == 30.0
        assert config.match_synthesis_delay_seconds == 1.5
        assert config.reply_delay_seconds == 2.0
        assert config.user_name == "Alex"
        assert config.user_vip is True
        assert config.seed_demo_data is True
        assert config.get_api_keys() == []
        assert config.get_base_url() is None

    def test_loads_from_env(self, monkeypatch):
        monkeypatch.setenv("BUDDYUP_ANTHROPIC_API_KEY", "sk-test-key")
        monkeypatch.setenv("BUDDYUP_DEFAULT_MODEL", "claude-opus-4-1")
        monkeypatch.setenv("BUDDYUP_REPLY_DELAY_SECONDS", "0.5")
        monkeypatch.setenv("BUDDYUP_SEED_DEMO_DATA", "false")

        config = BuddyUpConfig()
        assert config.anthropic_api_key == "sk-test-key"
        assert config.default_model == "claude-opus-4-1"
        assert config.reply_delay_seconds == 0.5
        assert config.seed_demo_data is False
        assert config.get_api_keys() == ["sk-test-key"]

    def test_multi_key_preferred(self, monkeypatch):
        monkeypatch.setenv("BUDDYUP_ANTHROPIC_API_KEY", "single")
        monkeypatch.setenv("BUDDYUP_ANTHROPIC_API_KEYS", "k1, k2,,k3")
        monkeypatch.setenv("BUDDYUP_ANTHROPIC_BASE_URL", "https://proxy.example.com")

        config = BuddyUpConfig()
        assert config.get_api_keys() == ["k1", "k2", "k3"]
        assert config.get_base_url() == "https://proxy.example.com"
