"""
Pytest configuration and fixtures for call routing tests.

Storage collaborators are replaced with small in-memory fakes so routing
tests run without a database; repository tests use aiosqlite.
"""
from __future__ import annotations

from base64 import b64encode
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from callrouter.routing.actions import Action
from callrouter.routing.dispatcher import ActionDispatcher
from callrouter.routing.domain import AIProvider, PhoneLine, RoutingRule, RuleCondition
from callrouter.routing.matcher import RuleMatcher, TriggerCounter
from callrouter.shared.database import Base
from callrouter.telephony.config import TelephonyConfig
from callrouter.telephony.interface import CallStatus, CanonicalCallEvent
from callrouter.telephony.telnyx_adapter import TelnyxAdapter
from callrouter.telephony.twilio_adapter import TwilioAdapter
from callrouter.telephony.webhooks.handler import InboundCallHandler

BASE_URL = "https://crm.example.com"
LINE_NUMBER = "+74950000001"
OWNER_NUMBER = "+79160000002"
CALLER_NUMBER = "+79031234567"

_T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class InMemoryPhoneLines:
    def __init__(self, lines: list[PhoneLine] | None = None) -> None:
        self.lines = {line.phone_number: line for line in lines or []}
        self.lookups: list[str] = []

    async def get_by_number(self, phone_number: str) -> PhoneLine | None:
        self.lookups.append(phone_number)
        return self.lines.get(phone_number)


class InMemoryRules:
    def __init__(self, rules: list[RoutingRule] | None = None) -> None:
        self.rules = list(rules or [])
        self.increments: list[str] = []
        self.fail_increment = False

    async def list_active_for_line(self, phone_line_id: str) -> list[RoutingRule]:
        return [r for r in self.rules if r.phone_line_id == phone_line_id and r.is_active]

    async def increment_triggered_count(self, rule_id: str) -> None:
        if self.fail_increment:
            raise RuntimeError("counter store unavailable")
        self.increments.append(rule_id)


class InMemoryAIProviders:
    def __init__(
        self,
        providers: list[AIProvider] | None = None,
        configs: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.providers = list(providers or [])
        self.configs = dict(configs or {})
        self.config_error: Exception | None = None

    async def get_config(self, provider_id: str) -> dict[str, Any] | None:
        if self.config_error is not None:
            raise self.config_error
        return self.configs.get(provider_id)

    async def get_providers_for_routing(self, channel_id: str | None, category: str) -> list[AIProvider]:
        return [
            p
            for p in self.providers
            if p.channel_id == channel_id and p.category == category and p.is_active
        ]


def make_rule(
    rule_id: str,
    condition: RuleCondition,
    action: Action,
    *,
    phone_line_id: str = "line-1",
    priority: int = 0,
    created_offset: int = 0,
    **kwargs: Any,
) -> RoutingRule:
    return RoutingRule(
        id=rule_id,
        phone_line_id=phone_line_id,
        condition=condition,
        action=action,
        priority=priority,
        created_at=_T0 + timedelta(minutes=created_offset),
        **kwargs,
    )


def make_event(
    status: CallStatus = CallStatus.RINGING,
    *,
    to_number: str = LINE_NUMBER,
    from_number: str = CALLER_NUMBER,
    call_id: str = "CA-test-1",
) -> CanonicalCallEvent:
    return CanonicalCallEvent(
        call_id=call_id,
        from_number=from_number,
        to_number=to_number,
        status=status,
    )


def twilio_form(
    *,
    to_number: str = LINE_NUMBER,
    from_number: str = CALLER_NUMBER,
    call_status: str = "ringing",
    call_sid: str = "CA-test-1",
    **extra: str,
) -> dict[str, str]:
    form = {"CallSid": call_sid, "From": from_number, "To": to_number, "CallStatus": call_status}
    form.update(extra)
    return form


def telnyx_sign(private_key: Ed25519PrivateKey, timestamp: str, body: bytes) -> str:
    return b64encode(private_key.sign(f"{timestamp}|".encode() + body)).decode()


def telnyx_public_key(private_key: Ed25519PrivateKey) -> str:
    return b64encode(private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)).decode()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        webhook_base_url=BASE_URL,
        twilio_auth_token="test_auth_token_12345",
        validate_signatures=False,
    )


@pytest.fixture
def twilio(telephony_config: TelephonyConfig) -> TwilioAdapter:
    return TwilioAdapter(telephony_config)


@pytest.fixture
def telnyx(telephony_config: TelephonyConfig) -> TelnyxAdapter:
    return TelnyxAdapter(telephony_config)


@pytest.fixture
def phone_line() -> PhoneLine:
    return PhoneLine(id="line-1", phone_number=LINE_NUMBER, forward_to=OWNER_NUMBER, provider_id="channel-1")


@pytest.fixture
def phone_lines(phone_line: PhoneLine) -> InMemoryPhoneLines:
    return InMemoryPhoneLines([phone_line])


@pytest.fixture
def rules() -> InMemoryRules:
    return InMemoryRules()


@pytest.fixture
def ai_providers() -> InMemoryAIProviders:
    return InMemoryAIProviders()


@pytest.fixture
def dispatcher(ai_providers: InMemoryAIProviders, telephony_config: TelephonyConfig) -> ActionDispatcher:
    return ActionDispatcher(ai_providers, config=telephony_config)


@pytest.fixture
def trigger_counter(rules: InMemoryRules) -> TriggerCounter:
    return TriggerCounter(increment=rules.increment_triggered_count)


@pytest.fixture
def handler(
    phone_lines: InMemoryPhoneLines,
    rules: InMemoryRules,
    dispatcher: ActionDispatcher,
    trigger_counter: TriggerCounter,
) -> InboundCallHandler:
    return InboundCallHandler(
        phone_lines=phone_lines,
        matcher=RuleMatcher(rules),
        dispatcher=dispatcher,
        trigger_counter=trigger_counter,
    )


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[Any, None]:
    """In-memory SQLite engine with the routing tables created."""
    import callrouter.routing.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
