"""
Telephony provider interface definition.

A provider adapter translates between one vendor's webhook format and the
vendor-neutral types used by the routing engine:
- inbound: raw webhook payload -> CanonicalCallEvent (or None)
- outbound: list of commands -> WireResponse
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from callrouter.telephony.commands import Bridge, Command, message_and_hangup, voicemail_sequence
from callrouter.telephony.config import TelephonyConfig, get_telephony_config


class CallStatus(str, Enum):
    """Call status values relevant to routing."""

    RINGING = "ringing"
    NO_ANSWER = "no-answer"
    BUSY = "busy"
    ANSWERED = "answered"
    OTHER = "other"


@dataclass(frozen=True)
class CanonicalCallEvent:
    """Parsed inbound call webhook, independent of vendor."""

    call_id: str
    from_number: str
    to_number: str
    status: CallStatus
    raw_payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WireResponse:
    """Serialized HTTP response body for a vendor."""

    body: str
    media_type: str
    status_code: int = 200


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class UnsupportedProviderError(TelephonyProviderError):
    """No adapter is registered for the requested provider type."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers."""

    #: Registry key, e.g. "twilio".
    provider_type: str = ""

    def __init__(self, config: TelephonyConfig | None = None) -> None:
        self._config = config or get_telephony_config()

    @abstractmethod
    def parse_webhook_event(self, payload: dict[str, Any]) -> CanonicalCallEvent | None:
        """Parse a webhook payload.

        Returns None for anything that is not a call event (missing call id,
        other event family, wrong shape). Never raises.
        """
        ...

    @abstractmethod
    def serialize(self, commands: list[Command]) -> str:
        """Serialize normalized commands into the vendor body."""
        ...

    @property
    @abstractmethod
    def media_type(self) -> str:
        ...

    @abstractmethod
    def render_ignored(self) -> WireResponse:
        """Acknowledge a webhook that carries nothing to route."""
        ...

    @abstractmethod
    def validate_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        url: str,
        timestamp: str | None = None,
    ) -> bool:
        """Validate webhook signature for authenticity.

        `timestamp` is the vendor's signed send time, for vendors that sign one.
        """
        ...

    def normalize(self, commands: list[Command]) -> list[Command]:
        """Adjust a command sequence to what the vendor expects.

        Default is identity; adapters override it for vendor quirks.
        """
        return list(commands)

    def render(self, commands: list[Command]) -> WireResponse:
        """Render commands into the vendor wire format (pure, deterministic)."""
        return WireResponse(
            body=self.serialize(self.normalize(commands)),
            media_type=self.media_type,
        )

    def render_ringing(self, to: str, timeout_secs: int) -> WireResponse:
        """Ring `to` for `timeout_secs` seconds."""
        return self.render([Bridge(to=to, timeout_secs=timeout_secs)])

    def render_voicemail(self, greeting: str, transcribe: bool | None = None) -> WireResponse:
        """Greet the caller and record a message of the configured maximum length."""
        return self.render(voicemail_sequence(greeting, self._config.voicemail_max_length_seconds, transcribe))

    def render_message_and_hangup(self, text: str) -> WireResponse:
        """Say `text` and end the call."""
        return self.render(message_and_hangup(text))

