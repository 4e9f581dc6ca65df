"""
ElevenLabs conversational-agent adapter.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from callrouter.ai_agents.interface import (
    AgentContext,
    AIAgentError,
    AIAgentType,
    AIVoiceAgentAdapter,
    HealthCheckResult,
)
from callrouter.shared.logging import get_logger

logger = get_logger(__name__)

ELEVENLABS_SIP_DOMAIN = "sip.elevenlabs.io"


class ElevenLabsConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(..., min_length=1, alias="apiKey")
    agent_id: str | None = Field(default=None, alias="agentId")
    voice_id: str | None = Field(default=None, alias="voiceId")
    timeout_seconds: float = Field(default=3.0, gt=0, le=10, alias="timeoutSeconds")


class ElevenLabsAdapter(AIVoiceAgentAdapter):
    vendor = AIAgentType.ELEVENLABS
    api_base_url = "https://api.elevenlabs.io"

    _config: ElevenLabsConfig

    def initialize(self, config: dict[str, Any]) -> None:
        try:
            self._config = ElevenLabsConfig.model_validate(config)
        except ValidationError as e:
            raise AIAgentError(
                f"Invalid ElevenLabs config: {e.error_count()} error(s)",
                vendor=self.vendor.value,
            ) from e
        self._initialized = True

    def _auth_headers(self) -> dict[str, str]:
        return {"xi-api-key": self._config.api_key}

    def _timeout_seconds(self) -> float:
        return self._config.timeout_seconds

    async def get_sip_uri(
        self,
        assistant_id: str | None = None,
        context: AgentContext | None = None,
    ) -> str:
        self._ensure_initialized()
        agent_id = assistant_id or self._config.agent_id
        if not agent_id:
            raise AIAgentError("No ElevenLabs agent configured", vendor=self.vendor.value)

        logger.info(
            "ElevenLabs SIP URI resolved",
            extra={"agent_id": agent_id, "reason": context.reason if context else None},
        )
        return f"sip:{agent_id}@{ELEVENLABS_SIP_DOMAIN}"

    async def check_health(self) -> HealthCheckResult:
        self._ensure_initialized()
        return await self._timed_health("/v1/user")
