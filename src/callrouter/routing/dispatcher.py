"""
Action dispatch: turns the matched rule's action into call-control commands.
"""

from collections.abc import Callable
from typing import Any

import anyio

from callrouter.ai_agents.factory import create_ai_agent_adapter
from callrouter.ai_agents.interface import AgentContext, AgentReason, AIAgentError, AIVoiceAgentAdapter
from callrouter.routing import messages
from callrouter.routing.actions import (
    Action,
    ForwardAIAgentAction,
    ForwardNumberAction,
    HangupAction,
    PlayMessageAction,
    VoicemailAction,
)
from callrouter.routing.domain import PhoneLine, RuleCondition
from callrouter.routing.repository import AIProviderRepositoryProtocol
from callrouter.shared.logging import get_logger
from callrouter.telephony.commands import (
    Answer,
    Bridge,
    Command,
    Hangup,
    Playback,
    Speak,
    Transfer,
    voicemail_sequence,
)
from callrouter.telephony.config import TelephonyConfig, get_telephony_config
from callrouter.telephony.interface import CanonicalCallEvent

logger = get_logger(__name__)

AI_AGENT_CATEGORY = "ai_agent"

AdapterFactory = Callable[[str, dict[str, Any]], AIVoiceAgentAdapter]

_REASONS: dict[RuleCondition, AgentReason] = {
    RuleCondition.AFTER_HOURS: "after_hours",
    RuleCondition.NO_ANSWER: "no_answer",
    RuleCondition.BUSY: "busy",
}


def agent_reason(condition: RuleCondition | None) -> AgentReason | None:
    if condition is None:
        return None
    return _REASONS.get(condition)


class ActionDispatcher:
    """Builds the command sequence for an action.

    Never raises for a failed AI handoff: the caller is sent to voicemail
    instead.
    """

    def __init__(
        self,
        providers: AIProviderRepositoryProtocol,
        adapter_factory: AdapterFactory = create_ai_agent_adapter,
        config: TelephonyConfig | None = None,
    ) -> None:
        self._providers = providers
        self._adapter_factory = adapter_factory
        self._config = config or get_telephony_config()

    def ring_owner(self, phone_line: PhoneLine) -> list[Command]:
        """Default when no rule applies."""
        return [Bridge(to=phone_line.owner_number, timeout_secs=self._config.default_bridge_timeout_seconds)]

    def voicemail(self, greeting: str, transcribe: bool | None = None) -> list[Command]:
        return voicemail_sequence(greeting, self._config.voicemail_max_length_seconds, transcribe)

    def _fall_through(self, phone_line: PhoneLine, no_answer_rings: int | None) -> list[Command]:
        if no_answer_rings:
            timeout = no_answer_rings * self._config.seconds_per_ring
        else:
            timeout = self._config.rule_bridge_timeout_seconds
        return [Bridge(to=phone_line.owner_number, timeout_secs=timeout)]

    async def dispatch(
        self,
        action: Action | None,
        phone_line: PhoneLine,
        event: CanonicalCallEvent,
        *,
        condition: RuleCondition | None = None,
        no_answer_rings: int | None = None,
    ) -> list[Command]:
        """Return the commands for `action` (None means no rule matched)."""
        if action is None:
            return self.ring_owner(phone_line)

        match action:
            case ForwardNumberAction(target_number=target) if target:
                return [Answer(), Transfer(to=target, caller_id=event.from_number or None)]
            case ForwardAIAgentAction():
                return await self._forward_ai_agent(action, phone_line, event, condition)
            case VoicemailAction(greeting=greeting, transcribe=transcribe):
                return self.voicemail(greeting or messages.VOICEMAIL_GREETING, transcribe)
            case PlayMessageAction(message_url=url) if url:
                return [Answer(), Playback(audio_url=url), Hangup()]
            case PlayMessageAction(message_text=text) if text:
                return [Answer(), Speak(text=text), Hangup()]
            case HangupAction():
                return [Hangup()]

        logger.info(
            "Action not executable, ringing owner",
            extra={
                "call_id": event.call_id,
                "phone_line_id": phone_line.id,
                "action_type": action.type,
                "no_answer_rings": no_answer_rings,
            },
        )
        return self._fall_through(phone_line, no_answer_rings)

    async def _forward_ai_agent(
        self,
        action: ForwardAIAgentAction,
        phone_line: PhoneLine,
        event: CanonicalCallEvent,
        condition: RuleCondition | None,
    ) -> list[Command]:
        try:
            with anyio.fail_after(self._config.ai_agent_timeout_seconds):
                sip_uri = await self._resolve_sip_uri(action, phone_line, condition)
        except Exception:
            logger.exception(
                "AI agent handoff failed, falling back to voicemail",
                extra={
                    "call_id": event.call_id,
                    "phone_line_id": phone_line.id,
                    "ai_provider_id": action.ai_provider_id,
                },
            )
            return self.voicemail(messages.AI_UNAVAILABLE)

        return [Answer(), Transfer(to=sip_uri)]

    async def _resolve_sip_uri(
        self,
        action: ForwardAIAgentAction,
        phone_line: PhoneLine,
        condition: RuleCondition | None,
    ) -> str:
        provider_id = action.ai_provider_id
        if not provider_id:
            raise AIAgentError("forward_ai_agent action has no AI provider")

        config = await self._providers.get_config(provider_id)
        if config is None:
            raise AIAgentError(f"AI provider config not found: {provider_id}")

        providers = await self._providers.get_providers_for_routing(phone_line.provider_id, AI_AGENT_CATEGORY)
        provider = next((p for p in providers if p.id == provider_id), None)
        if provider is None:
            raise AIAgentError(f"AI provider not available for routing: {provider_id}")

        adapter = self._adapter_factory(provider.type, config)
        return await adapter.get_sip_uri(
            assistant_id=action.ai_assistant_id,
            context=AgentContext(reason=agent_reason(condition)),
        )
