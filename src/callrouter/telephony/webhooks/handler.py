"""
Inbound call webhook handler.

Orchestrates one webhook: parse, resolve the phone line, build the routing
context, match a rule, dispatch its action and render the vendor response.
Every path returns a renderable response; errors never reach the HTTP layer.
"""

from dataclasses import dataclass
from typing import Any

from callrouter.routing import messages
from callrouter.routing.context import DefaultContextBuilder, RoutingContextBuilder
from callrouter.routing.dispatcher import ActionDispatcher
from callrouter.routing.domain import PhoneLine, RoutingRule
from callrouter.routing.matcher import RuleMatcher, TriggerCounter
from callrouter.routing.repository import PhoneLineRepositoryProtocol
from callrouter.shared.logging import correlation_scope, get_logger
from callrouter.telephony.commands import Bridge, Command
from callrouter.telephony.interface import (
    CallStatus,
    CanonicalCallEvent,
    TelephonyProvider,
    WireResponse,
)

logger = get_logger(__name__)

_UNANSWERED = (CallStatus.NO_ANSWER, CallStatus.BUSY)


@dataclass(frozen=True)
class RoutingDecision:
    rule: RoutingRule | None
    commands: list[Command]


class InboundCallHandler:
    """Handles inbound voice webhooks for any telephony provider."""

    def __init__(
        self,
        phone_lines: PhoneLineRepositoryProtocol,
        matcher: RuleMatcher,
        dispatcher: ActionDispatcher,
        trigger_counter: TriggerCounter,
        context_builder: RoutingContextBuilder | None = None,
    ) -> None:
        """Initialize handler.

        Args:
            phone_lines: Phone line lookup by dialed number.
            matcher: Rule matcher scoped to the request's storage.
            dispatcher: Turns matched actions into commands.
            trigger_counter: Background rule trigger counting.
            context_builder: Source of caller/owner facts; defaults to status-only.
        """
        self._phone_lines = phone_lines
        self._matcher = matcher
        self._dispatcher = dispatcher
        self._trigger_counter = trigger_counter
        self._context_builder = context_builder or DefaultContextBuilder()

    async def handle_voice(self, provider: TelephonyProvider, payload: dict[str, Any]) -> WireResponse:
        """Route a new inbound call."""
        call_id = None
        try:
            event = provider.parse_webhook_event(payload)
            if event is None:
                return provider.render_ignored()
            call_id = event.call_id

            with correlation_scope(event.call_id):
                logger.info(
                    "Inbound call webhook",
                    extra={
                        "provider": provider.provider_type,
                        "from_number": event.from_number,
                        "to_number": event.to_number,
                        "status": event.status.value,
                    },
                )
                phone_line = await self._phone_lines.get_by_number(event.to_number)
                if phone_line is None:
                    logger.warning("Phone line not found", extra={"to_number": event.to_number})
                    return provider.render_message_and_hangup(messages.NUMBER_NOT_FOUND)

                decision = await self._decide(event, phone_line)
                return provider.render(decision.commands)
        except Exception:
            return self._render_error(provider, "voice", call_id)

    async def handle_status(self, provider: TelephonyProvider, payload: dict[str, Any]) -> WireResponse:
        """Handle a call status / dial outcome callback.

        When the owner did not pick up or was busy, the line's rules get a
        second chance; if none applies (or the rule would ring the owner
        again) the caller is sent to voicemail.
        """
        call_id = None
        try:
            event = provider.parse_webhook_event(payload)
            if event is None:
                return provider.render_ignored()
            call_id = event.call_id

            with correlation_scope(event.call_id):
                logger.info(
                    "Call status webhook",
                    extra={"provider": provider.provider_type, "status": event.status.value},
                )
                if event.status not in _UNANSWERED:
                    return provider.render_ignored()

                phone_line = await self._phone_lines.get_by_number(event.to_number)
                if phone_line is None:
                    logger.warning("Phone line not found", extra={"to_number": event.to_number})
                    return provider.render_ignored()

                decision = await self._decide(event, phone_line)
                if decision.rule is None or any(isinstance(c, Bridge) for c in decision.commands):
                    return provider.render_voicemail(messages.SUBSCRIBER_UNAVAILABLE)
                return provider.render(decision.commands)
        except Exception:
            return self._render_error(provider, "status", call_id)

    async def handle_recording(self, provider: TelephonyProvider, payload: dict[str, Any]) -> WireResponse:
        """Acknowledge a finished voicemail recording."""
        try:
            logger.info(
                "Voicemail recorded",
                extra={
                    "provider": provider.provider_type,
                    "call_id": payload.get("CallSid"),
                    "from_number": payload.get("From"),
                    "to_number": payload.get("To"),
                    "recording_url": payload.get("RecordingUrl"),
                    "recording_duration": payload.get("RecordingDuration"),
                    "transcription": payload.get("TranscriptionText"),
                },
            )
            return provider.render_message_and_hangup(messages.RECORDING_SAVED)
        except Exception:
            return self._render_error(provider, "recording", payload.get("CallSid"))

    async def _decide(self, event: CanonicalCallEvent, phone_line: PhoneLine) -> RoutingDecision:
        context = await self._context_builder.build(event, phone_line)
        rule = await self._matcher.match(phone_line.id, context)
        if rule is None:
            return RoutingDecision(rule=None, commands=await self._dispatcher.dispatch(None, phone_line, event))

        self._trigger_counter.schedule(rule.id)
        commands = await self._dispatcher.dispatch(
            rule.action,
            phone_line,
            event,
            condition=rule.condition,
            no_answer_rings=rule.no_answer_rings,
        )
        return RoutingDecision(rule=rule, commands=commands)

    def _render_error(self, provider: TelephonyProvider, webhook: str, call_id: str | None) -> WireResponse:
        logger.exception(
            "Call routing failed",
            extra={"provider": provider.provider_type, "webhook": webhook, "call_id": call_id},
        )
        return provider.render_message_and_hangup(messages.GENERIC_ERROR)
