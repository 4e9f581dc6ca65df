"""AI voice-agent adapters (SIP handoff targets)."""

from callrouter.ai_agents.elevenlabs_adapter import ElevenLabsAdapter, ElevenLabsConfig
from callrouter.ai_agents.factory import create_ai_agent_adapter
from callrouter.ai_agents.interface import (
    AgentContext,
    AIAgentError,
    AIAgentType,
    AIVoiceAgentAdapter,
    HealthCheckResult,
)
from callrouter.ai_agents.vapi_adapter import VapiAdapter, VapiConfig

__all__ = [
    "AIAgentError",
    "AIAgentType",
    "AIVoiceAgentAdapter",
    "AgentContext",
    "ElevenLabsAdapter",
    "ElevenLabsConfig",
    "HealthCheckResult",
    "VapiAdapter",
    "VapiConfig",
    "create_ai_agent_adapter",
]
