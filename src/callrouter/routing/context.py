"""
Routing context: the per-request facts rule conditions are evaluated against.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from callrouter.routing.domain import PhoneLine
from callrouter.telephony.interface import CallStatus, CanonicalCallEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RoutingContext:
    is_no_answer: bool = False
    is_busy: bool = False
    is_offline: bool = False
    is_vip: bool = False
    is_new_caller: bool = False
    now: datetime = field(default_factory=_utcnow)


class RoutingContextBuilder(Protocol):
    """Builds the RoutingContext for one inbound call."""

    async def build(self, event: CanonicalCallEvent, phone_line: PhoneLine) -> RoutingContext:
        ...


class DefaultContextBuilder:
    """Context from call status alone.

    Owner presence, VIP lists and caller history are not wired in yet, so the
    owner is treated as online, no caller is VIP and every caller is new.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    async def build(self, event: CanonicalCallEvent, phone_line: PhoneLine) -> RoutingContext:
        return RoutingContext(
            is_no_answer=event.status == CallStatus.NO_ANSWER,
            is_busy=event.status == CallStatus.BUSY,
            is_offline=False,
            is_vip=False,
            is_new_caller=True,
            now=self._clock(),
        )
