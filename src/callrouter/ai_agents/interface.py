"""
AI voice-agent adapter interface.

An AI voice-agent vendor hosts a conversational assistant reachable over SIP.
The routing engine only needs the SIP URI to transfer the caller to.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

import httpx

AgentReason = Literal["after_hours", "no_answer", "busy"]


class AIAgentType(str, Enum):
    """Supported AI voice-agent vendors."""

    VAPI = "vapi"
    ELEVENLABS = "elevenlabs"


@dataclass(frozen=True)
class AgentContext:
    """Why the caller is being handed to the agent, for a contextual greeting."""

    reason: AgentReason | None = None


@dataclass(frozen=True)
class HealthCheckResult:
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class AIAgentError(Exception):
    """Any failure resolving or talking to an AI voice-agent vendor."""

    def __init__(
        self,
        message: str,
        vendor: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.vendor = vendor
        self.status_code = status_code


class AIVoiceAgentAdapter(ABC):
    """Base class for AI voice-agent adapters.

    Subclasses validate their own config model in `initialize` and build the
    SIP URI in `get_sip_uri`. HTTP goes through a shared httpx.AsyncClient
    with a short timeout and no retries.
    """

    vendor: AIAgentType
    api_base_url: str = ""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._http_client = http_client
        self._initialized = False

    @abstractmethod
    def initialize(self, config: dict[str, Any]) -> None:
        """Validate and store vendor configuration.

        Raises:
            AIAgentError: If the configuration is invalid.
        """
        ...

    @abstractmethod
    async def get_sip_uri(
        self,
        assistant_id: str | None = None,
        context: AgentContext | None = None,
    ) -> str:
        """Return the SIP URI that connects a caller to the assistant.

        Raises:
            AIAgentError: If no assistant can be resolved or the vendor call fails.
        """
        ...

    @abstractmethod
    async def check_health(self) -> HealthCheckResult:
        ...

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        ...

    @abstractmethod
    def _timeout_seconds(self) -> float:
        ...

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise AIAgentError(
                f"{self.vendor.value} adapter used before initialize()",
                vendor=self.vendor.value,
            )

    async def _get(self, path: str) -> httpx.Response:
        """GET `path` on the vendor API; raise AIAgentError on non-2xx or transport error."""
        url = f"{self.api_base_url}{path}"
        try:
            if self._http_client is not None:
                r = await self._http_client.get(
                    url, headers=self._auth_headers(), timeout=self._timeout_seconds()
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds()) as client:
                    r = await client.get(url, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise AIAgentError(
                f"{self.vendor.value} request failed: {e!s}",
                vendor=self.vendor.value,
            ) from e

        if r.status_code >= 300:
            raise AIAgentError(
                f"{self.vendor.value} error {r.status_code}",
                vendor=self.vendor.value,
                status_code=r.status_code,
            )
        return r

    async def _timed_health(self, path: str) -> HealthCheckResult:
        started = time.perf_counter()
        try:
            await self._get(path)
        except AIAgentError as e:
            return HealthCheckResult(healthy=False, error=str(e))
        return HealthCheckResult(
            healthy=True,
            latency_ms=round((time.perf_counter() - started) * 1000, 1),
        )
