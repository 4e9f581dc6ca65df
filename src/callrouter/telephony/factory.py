"""
Telephony provider factory.

Adapters are stateless, so one cached instance per provider type is shared
by all requests.
"""

from __future__ import annotations

from functools import lru_cache

from callrouter.shared.logging import get_logger
from callrouter.telephony.config import ProviderType, get_telephony_config
from callrouter.telephony.interface import TelephonyProvider, UnsupportedProviderError
from callrouter.telephony.telnyx_adapter import TelnyxAdapter
from callrouter.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)

_ADAPTERS: dict[ProviderType, type[TelephonyProvider]] = {
    ProviderType.TWILIO: TwilioAdapter,
    ProviderType.TELNYX: TelnyxAdapter,
}


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


@lru_cache(maxsize=None)
def get_telephony_provider(provider_type: ProviderType | str) -> TelephonyProvider:
    """Create and cache the adapter for `provider_type`.

    Raises:
        UnsupportedProviderError: If no adapter is registered for the type.
    """
    try:
        key = ProviderType(str(getattr(provider_type, "value", provider_type)).lower())
    except ValueError as e:
        raise UnsupportedProviderError(
            f"Unsupported telephony provider_type: {provider_type}",
            error_code="UNSUPPORTED_PROVIDER",
        ) from e

    cfg = get_telephony_config()
    logger.info(
        "Telephony provider resolved",
        extra={
            "provider_type": key.value,
            "twilio_auth_token": _mask(cfg.twilio_auth_token),
            "validate_signatures": cfg.validate_signatures,
            "webhook_base_url": cfg.webhook_base_url,
        },
    )
    return _ADAPTERS[key](cfg)
