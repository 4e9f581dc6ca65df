"""
VAPI voice-agent adapter.
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

VAPI_SIP_DOMAIN = "sip.vapi.ai"


class VapiConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(..., min_length=1, alias="apiKey")
    assistant_id: str | None = Field(default=None, alias="assistantId")
    default_voice: str | None = Field(default=None, alias="defaultVoice")
    verify_assistant: bool = Field(default=False, alias="verifyAssistant")
    timeout_seconds: float = Field(default=3.0, gt=0, le=10, alias="timeoutSeconds")


class VapiAdapter(AIVoiceAgentAdapter):
    vendor = AIAgentType.VAPI
    api_base_url = "https://api.vapi.ai"

    _config: VapiConfig

    def initialize(self, config: dict[str, Any]) -> None:
        try:
            self._config = VapiConfig.model_validate(config)
        except ValidationError as e:
            raise AIAgentError(f"Invalid VAPI config: {e.error_count()} error(s)", vendor=self.vendor.value) from e
        self._initialized = True

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _timeout_seconds(self) -> float:
        return self._config.timeout_seconds

    async def get_sip_uri(
        self,
        assistant_id: str | None = None,
        context: AgentContext | None = None,
    ) -> str:
        self._ensure_initialized()
        resolved = assistant_id or self._config.assistant_id
        if not resolved:
            raise AIAgentError("No VAPI assistant configured", vendor=self.vendor.value)

        if self._config.verify_assistant:
            await self._get(f"/assistant/{resolved}")

        logger.info(
            "VAPI SIP URI resolved",
            extra={"assistant_id": resolved, "reason": context.reason if context else None},
        )
        return f"sip:{resolved}@{VAPI_SIP_DOMAIN}"

    async def check_health(self) -> HealthCheckResult:
        self._ensure_initialized()
        return await self._timed_health("/assistant")
