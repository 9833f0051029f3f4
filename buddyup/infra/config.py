"""
Configuration management using pydantic-settings.

All BuddyUp settings are loaded from environment variables
with the BUDDYUP_ prefix.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class BuddyUpConfig(BaseSettings):
    """
    BuddyUp configuration.

    Environment variables are prefixed with BUDDYUP_, e.g.:
    - BUDDYUP_ANTHROPIC_API_KEY=sk-...
    - BUDDYUP_DEFAULT_MODEL=claude-sonnet-4-5-20250929
    - BUDDYUP_REPLY_DELAY_SECONDS=0.5
    """

    model_config = {"env_prefix": "BUDDYUP_"}

    # LLM
    anthropic_api_key: str = ""
    anthropic_api_keys: str = ""  # Comma-separated keys for round-robin
    anthropic_base_url: str = ""  # Proxy base URL
    default_model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 1024
    model_timeout_seconds: float = 30.0

    def get_api_keys(self) -> list[str]:
        """Return list of API keys (multi-key preferred, fallback to single)."""
        if self.anthropic_api_keys:
            return [k.strip() for k in self.anthropic_api_keys.split(",") if k.strip()]
        if self.anthropic_api_key:
            return [self.anthropic_api_key]
        return []

    def get_base_url(self) -> str | None:
        """Return base URL or None for Anthropic default."""
        return self.anthropic_base_url or None

    # Simulated latency
    match_synthesis_delay_seconds: float = 1.5
    reply_delay_seconds: float = 2.0

    # Self participant
    user_id: str = "me"
    user_name: str = "Alex"
    user_vip: bool = True

    # Startup data
    seed_demo_data: bool = True
