"""Tests for turning routing actions into call-control commands."""

import asyncio
from typing import Any

import pytest

from callrouter.ai_agents.interface import AgentContext, AIAgentError
from callrouter.routing import messages
from callrouter.routing.actions import (
    ForwardAIAgentAction,
    ForwardNumberAction,
    HangupAction,
    PlayMessageAction,
    UnknownAction,
    VoicemailAction,
)
from callrouter.routing.dispatcher import ActionDispatcher, agent_reason
from callrouter.routing.domain import AIProvider, PhoneLine, RuleCondition
from callrouter.telephony.commands import (
    Answer,
    Bridge,
    Hangup,
    Playback,
    RecordStart,
    Speak,
    Transfer,
    is_terminated,
)
from callrouter.telephony.config import TelephonyConfig

from conftest import CALLER_NUMBER, OWNER_NUMBER, InMemoryAIProviders, make_event

AI_FALLBACK = [
    Answer(),
    Speak(text=messages.AI_UNAVAILABLE),
    RecordStart(format="mp3", max_length_secs=120),
]


class FakeAgentAdapter:
    def __init__(self, sip_uri: str = "sip:asst-1@sip.vapi.ai", error: Exception | None = None) -> None:
        self.sip_uri = sip_uri
        self.error = error
        self.calls: list[tuple[str | None, AgentContext | None]] = []

    async def get_sip_uri(self, assistant_id: str | None = None, context: AgentContext | None = None) -> str:
        self.calls.append((assistant_id, context))
        if self.error is not None:
            raise self.error
        return self.sip_uri


class RecordingFactory:
    def __init__(self, adapter: FakeAgentAdapter) -> None:
        self.adapter = adapter
        self.created: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, vendor_type: str, config: dict[str, Any]) -> FakeAgentAdapter:
        self.created.append((vendor_type, config))
        return self.adapter


@pytest.fixture
def ai_ready_providers() -> InMemoryAIProviders:
    return InMemoryAIProviders(
        providers=[AIProvider(id="ai-1", type="vapi", channel_id="channel-1")],
        configs={"ai-1": {"apiKey": "k"}},
    )


class TestSimpleActions:
    @pytest.mark.asyncio
    async def test_no_rule_rings_owner_for_30_seconds(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(None, phone_line, make_event())
        assert commands == [Bridge(to=OWNER_NUMBER, timeout_secs=30)]

    @pytest.mark.asyncio
    async def test_no_rule_without_forward_to_rings_line(self, dispatcher: ActionDispatcher) -> None:
        line = PhoneLine(id="line-9", phone_number="+74950009999")
        commands = await dispatcher.dispatch(None, line, make_event())
        assert commands == [Bridge(to="+74950009999", timeout_secs=30)]

    @pytest.mark.asyncio
    async def test_forward_number(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(
            ForwardNumberAction(target_number="+79990001122"), phone_line, make_event()
        )
        assert commands == [Answer(), Transfer(to="+79990001122", caller_id=CALLER_NUMBER)]

    @pytest.mark.asyncio
    async def test_forward_number_without_target_falls_through(
        self, dispatcher: ActionDispatcher, phone_line
    ) -> None:
        commands = await dispatcher.dispatch(ForwardNumberAction(), phone_line, make_event())
        assert commands == [Bridge(to=OWNER_NUMBER, timeout_secs=15)]

    @pytest.mark.asyncio
    async def test_voicemail_default_greeting(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(VoicemailAction(), phone_line, make_event())
        assert commands == [
            Answer(),
            Speak(text=messages.VOICEMAIL_GREETING),
            RecordStart(format="mp3", max_length_secs=120),
        ]

    @pytest.mark.asyncio
    async def test_voicemail_custom_greeting_and_transcription(
        self, dispatcher: ActionDispatcher, phone_line
    ) -> None:
        commands = await dispatcher.dispatch(
            VoicemailAction(greeting="Мы перезвоним", transcribe=False), phone_line, make_event()
        )
        assert commands[1] == Speak(text="Мы перезвоним")
        assert commands[2] == RecordStart(format="mp3", max_length_secs=120, transcribe=False)

    @pytest.mark.asyncio
    async def test_play_message_prefers_url(self, dispatcher: ActionDispatcher, phone_line) -> None:
        action = PlayMessageAction(message_url="https://cdn.example.com/hi.mp3", message_text="ignored")
        commands = await dispatcher.dispatch(action, phone_line, make_event())
        assert commands == [Answer(), Playback(audio_url="https://cdn.example.com/hi.mp3"), Hangup()]

    @pytest.mark.asyncio
    async def test_play_message_text(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(PlayMessageAction(message_text="Мы закрыты"), phone_line, make_event())
        assert commands == [Answer(), Speak(text="Мы закрыты"), Hangup()]

    @pytest.mark.asyncio
    async def test_empty_play_message_falls_through(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(PlayMessageAction(), phone_line, make_event(), no_answer_rings=2)
        assert commands == [Bridge(to=OWNER_NUMBER, timeout_secs=10)]

    @pytest.mark.asyncio
    async def test_hangup(self, dispatcher: ActionDispatcher, phone_line) -> None:
        assert await dispatcher.dispatch(HangupAction(), phone_line, make_event()) == [Hangup()]

    @pytest.mark.asyncio
    async def test_unknown_action_uses_ring_count(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(
            UnknownAction(type="ivr"), phone_line, make_event(), no_answer_rings=4
        )
        assert commands == [Bridge(to=OWNER_NUMBER, timeout_secs=20)]

    @pytest.mark.asyncio
    async def test_unknown_action_without_ring_count(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(UnknownAction(type="queue"), phone_line, make_event())
        assert commands == [Bridge(to=OWNER_NUMBER, timeout_secs=15)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action",
        [
            None,
            ForwardNumberAction(target_number="+7"),
            ForwardNumberAction(),
            VoicemailAction(),
            PlayMessageAction(message_text="x"),
            PlayMessageAction(),
            HangupAction(),
            UnknownAction(type="ivr"),
            ForwardAIAgentAction(),
        ],
    )
    async def test_every_sequence_is_terminated(self, dispatcher: ActionDispatcher, phone_line, action) -> None:
        commands = await dispatcher.dispatch(action, phone_line, make_event())
        assert is_terminated(commands)


class TestForwardAIAgent:
    @pytest.mark.asyncio
    async def test_success_transfers_to_sip(
        self, ai_ready_providers: InMemoryAIProviders, telephony_config: TelephonyConfig, phone_line
    ) -> None:
        factory = RecordingFactory(FakeAgentAdapter())
        dispatcher = ActionDispatcher(ai_ready_providers, adapter_factory=factory, config=telephony_config)

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1", ai_assistant_id="asst-1"),
            phone_line,
            make_event(),
            condition=RuleCondition.AFTER_HOURS,
        )

        assert commands == [Answer(), Transfer(to="sip:asst-1@sip.vapi.ai")]
        assert factory.created == [("vapi", {"apiKey": "k"})]
        assert factory.adapter.calls == [("asst-1", AgentContext(reason="after_hours"))]

    @pytest.mark.asyncio
    async def test_missing_provider_id_falls_back(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(ForwardAIAgentAction(), phone_line, make_event())
        assert commands == AI_FALLBACK

    @pytest.mark.asyncio
    async def test_missing_config_falls_back(self, dispatcher: ActionDispatcher, phone_line) -> None:
        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="nope"), phone_line, make_event()
        )
        assert commands == AI_FALLBACK

    @pytest.mark.asyncio
    async def test_config_lookup_error_falls_back(
        self, ai_ready_providers: InMemoryAIProviders, telephony_config: TelephonyConfig, phone_line
    ) -> None:
        ai_ready_providers.config_error = ConnectionError("db down")
        dispatcher = ActionDispatcher(ai_ready_providers, config=telephony_config)

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1"), phone_line, make_event()
        )
        assert commands == AI_FALLBACK

    @pytest.mark.asyncio
    async def test_provider_not_on_channel_falls_back(self, telephony_config: TelephonyConfig, phone_line) -> None:
        providers = InMemoryAIProviders(
            providers=[AIProvider(id="ai-1", type="vapi", channel_id="another-channel")],
            configs={"ai-1": {"apiKey": "k"}},
        )
        factory = RecordingFactory(FakeAgentAdapter())
        dispatcher = ActionDispatcher(providers, adapter_factory=factory, config=telephony_config)

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1"), phone_line, make_event()
        )

        assert commands == AI_FALLBACK
        assert factory.created == []

    @pytest.mark.asyncio
    async def test_adapter_error_falls_back(
        self, ai_ready_providers: InMemoryAIProviders, telephony_config: TelephonyConfig, phone_line
    ) -> None:
        factory = RecordingFactory(FakeAgentAdapter(error=AIAgentError("vendor 503")))
        dispatcher = ActionDispatcher(ai_ready_providers, adapter_factory=factory, config=telephony_config)

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1"), phone_line, make_event()
        )
        assert commands == AI_FALLBACK

    @pytest.mark.asyncio
    async def test_slow_adapter_times_out_to_fallback(
        self, ai_ready_providers: InMemoryAIProviders, phone_line
    ) -> None:
        class SlowAdapter(FakeAgentAdapter):
            async def get_sip_uri(self, assistant_id=None, context=None) -> str:
                await asyncio.sleep(5)
                return "sip:late@sip.vapi.ai"

        config = TelephonyConfig(ai_agent_timeout_seconds=0.05)
        dispatcher = ActionDispatcher(
            ai_ready_providers, adapter_factory=RecordingFactory(SlowAdapter()), config=config
        )

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1"), phone_line, make_event()
        )
        assert commands == AI_FALLBACK

    @pytest.mark.asyncio
    async def test_real_factory_with_invalid_config_falls_back(
        self, telephony_config: TelephonyConfig, phone_line
    ) -> None:
        providers = InMemoryAIProviders(
            providers=[AIProvider(id="ai-1", type="vapi", channel_id="channel-1")],
            configs={"ai-1": {}},
        )
        dispatcher = ActionDispatcher(providers, config=telephony_config)

        commands = await dispatcher.dispatch(
            ForwardAIAgentAction(ai_provider_id="ai-1", ai_assistant_id="a"), phone_line, make_event()
        )
        assert commands == AI_FALLBACK


@pytest.mark.parametrize(
    "condition,reason",
    [
        (RuleCondition.AFTER_HOURS, "after_hours"),
        (RuleCondition.NO_ANSWER, "no_answer"),
        (RuleCondition.BUSY, "busy"),
        (RuleCondition.ALWAYS, None),
        (None, None),
    ],
)
def test_agent_reason(condition, reason) -> None:
    assert agent_reason(condition) == reason
