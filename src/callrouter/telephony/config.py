"""
Telephony provider configuration.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Supported telephony provider types."""

    TWILIO = "twilio"
    TELNYX = "telnyx"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider credentials
    twilio_auth_token: str = Field(default="")
    telnyx_public_key: str = Field(default="", description="Base64 ed25519 public key from the Telnyx portal.")
    telnyx_signature_tolerance_seconds: int = Field(default=300, ge=1, le=3600)
    validate_signatures: bool = Field(
        default=False,
        description="Reject webhooks whose vendor signature does not verify.",
    )

    # Webhook base URL (HTTP) used for TwiML action callbacks
    webhook_base_url: str = Field(default="http://localhost:8000")

    # Text-to-speech
    say_voice: str = Field(default="alice")
    say_language: str = Field(default="ru-RU")

    # Timeouts
    default_bridge_timeout_seconds: int = Field(default=30, ge=5, le=600)
    rule_bridge_timeout_seconds: int = Field(default=15, ge=5, le=600)
    seconds_per_ring: int = Field(default=5, ge=1, le=30)
    voicemail_max_length_seconds: int = Field(default=120, ge=10, le=3600)
    ai_agent_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=30,
        description="Upper bound on resolving an AI agent SIP URI before falling back to voicemail.",
    )

    def get_webhook_url(self, path: str = "/webhooks/twilio/voice") -> str:
        base = self.webhook_base_url.rstrip("/")
        return f"{base}{path}"

    @property
    def status_callback_url(self) -> str:
        return self.get_webhook_url("/webhooks/twilio/voice/status")

    @property
    def recording_callback_url(self) -> str:
        return self.get_webhook_url("/webhooks/twilio/voice/recording")


@lru_cache(maxsize=1)
def get_telephony_config() -> TelephonyConfig:
    """Return cached TelephonyConfig loaded from OS env + .env."""
    return TelephonyConfig()
