"""
Telephony provider adapters.

Each adapter parses its vendor's inbound webhooks into CanonicalCallEvent and
renders vendor-neutral commands back into the vendor's wire format.
"""

from callrouter.telephony.commands import (
    Answer,
    Bridge,
    Command,
    Hangup,
    Playback,
    RecordStart,
    Speak,
    Transfer,
)
from callrouter.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from callrouter.telephony.factory import get_telephony_provider
from callrouter.telephony.interface import (
    CallStatus,
    CanonicalCallEvent,
    TelephonyProvider,
    TelephonyProviderError,
    UnsupportedProviderError,
    WireResponse,
)
from callrouter.telephony.telnyx_adapter import TelnyxAdapter
from callrouter.telephony.twilio_adapter import TwilioAdapter

__all__ = [
    "Answer",
    "Bridge",
    "CallStatus",
    "CanonicalCallEvent",
    "Command",
    "Hangup",
    "Playback",
    "ProviderType",
    "RecordStart",
    "Speak",
    "TelephonyConfig",
    "TelephonyProvider",
    "TelephonyProviderError",
    "TelnyxAdapter",
    "Transfer",
    "TwilioAdapter",
    "UnsupportedProviderError",
    "WireResponse",
    "get_telephony_config",
    "get_telephony_provider",
]
