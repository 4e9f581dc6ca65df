"""
Factory for AI voice-agent adapters.
"""

from typing import Any

import httpx

from callrouter.ai_agents.elevenlabs_adapter import ElevenLabsAdapter
from callrouter.ai_agents.interface import AIAgentError, AIAgentType, AIVoiceAgentAdapter
from callrouter.ai_agents.vapi_adapter import VapiAdapter
from callrouter.shared.logging import get_logger

logger = get_logger(__name__)

_ADAPTERS: dict[AIAgentType, type[AIVoiceAgentAdapter]] = {
    AIAgentType.VAPI: VapiAdapter,
    AIAgentType.ELEVENLABS: ElevenLabsAdapter,
}


def create_ai_agent_adapter(
    vendor_type: AIAgentType | str,
    config: dict[str, Any],
    http_client: httpx.AsyncClient | None = None,
) -> AIVoiceAgentAdapter:
    """Create and initialize an AI voice-agent adapter.

    Args:
        vendor_type: Vendor name (vapi, elevenlabs) or AIAgentType.
        config: Vendor configuration as stored for the provider.
        http_client: Optional shared client, mainly for tests.

    Returns:
        Initialized adapter.

    Raises:
        AIAgentError: If the vendor is not supported or the config is invalid.
    """
    if isinstance(vendor_type, str):
        try:
            vendor_type = AIAgentType(vendor_type.lower())
        except ValueError:
            raise AIAgentError(
                f"Unsupported AI agent provider: {vendor_type}. "
                f"Supported providers: {[p.value for p in AIAgentType]}"
            )

    adapter = _ADAPTERS[vendor_type](http_client=http_client)
    adapter.initialize(config)

    logger.info("AI agent adapter created", extra={"vendor": vendor_type.value})
    return adapter
