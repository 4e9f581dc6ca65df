"""
Routing domain objects.

These are read-only snapshots handed to the routing engine by the
repositories; the engine never mutates them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from callrouter.routing.actions import Action, UnknownAction

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class RuleCondition(str, Enum):
    """When a routing rule applies."""

    ALWAYS = "always"
    DEFAULT = "default"
    WORKING_HOURS = "working_hours"
    AFTER_HOURS = "after_hours"
    SCHEDULE = "schedule"
    NO_ANSWER = "no_answer"
    BUSY = "busy"
    OFFLINE = "offline"
    VIP = "vip"
    VIP_CALLER = "vip_caller"
    NEW_CALLER = "new_caller"


CATCH_ALL_CONDITIONS = frozenset({RuleCondition.ALWAYS, RuleCondition.DEFAULT})


def _minutes(hhmm: str) -> int:
    m = _HHMM.match(hhmm)
    if m is None:
        raise ValueError(f"Invalid time {hhmm!r}, expected HH:MM")
    return int(m.group(1)) * 60 + int(m.group(2))


@dataclass(frozen=True)
class Schedule:
    """Weekly working schedule in a given timezone.

    working_days uses 0 = Sunday .. 6 = Saturday. end_time is exclusive; an
    end_time earlier than start_time spans midnight.
    """

    timezone: str = "UTC"
    working_days: tuple[int, ...] = (1, 2, 3, 4, 5)
    start_time: str = "09:00"
    end_time: str = "18:00"
    holidays: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {self.timezone!r}") from e
        _minutes(self.start_time)
        _minutes(self.end_time)
        if any(d not in range(7) for d in self.working_days):
            raise ValueError(f"working_days must be within 0..6, got {self.working_days}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Schedule:
        """Build from stored JSON (camelCase or snake_case keys)."""
        if not isinstance(data, dict):
            raise TypeError(f"schedule must be an object, got {type(data).__name__}")

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            timezone=pick("timezone", "timezone", "UTC"),
            working_days=tuple(int(d) for d in pick("working_days", "workingDays", (1, 2, 3, 4, 5))),
            start_time=pick("start_time", "startTime", "09:00"),
            end_time=pick("end_time", "endTime", "18:00"),
            holidays=tuple(str(h) for h in pick("holidays", "holidays", ()) or ()),
        )

    def contains(self, now: datetime) -> bool:
        """Return True if `now` falls within working time."""
        local = now.astimezone(ZoneInfo(self.timezone))

        if local.date().isoformat() in self.holidays:
            return False

        day_of_week = (local.weekday() + 1) % 7
        if day_of_week not in self.working_days:
            return False

        current = local.hour * 60 + local.minute
        start = _minutes(self.start_time)
        end = _minutes(self.end_time)
        if start <= end:
            return start <= current < end
        return current >= start or current < end


@dataclass(frozen=True)
class PhoneLine:
    """Tenant phone line an inbound call is addressed to."""

    id: str
    phone_number: str
    forward_to: str | None = None
    provider_id: str | None = None

    @property
    def owner_number(self) -> str:
        """Where to ring when nothing more specific applies."""
        return self.forward_to or self.phone_number


@dataclass(frozen=True)
class RoutingRule:
    id: str
    phone_line_id: str
    condition: RuleCondition
    action: Action = field(default_factory=UnknownAction)
    priority: int = 0
    is_active: bool = True
    no_answer_rings: int | None = None
    schedule: Schedule | None = None
    created_at: datetime | None = None
    triggered_count: int = 0
    name: str = ""

    @property
    def is_catch_all(self) -> bool:
        return self.condition in CATCH_ALL_CONDITIONS


@dataclass(frozen=True)
class AIProvider:
    """AI voice-agent provider attached to a channel."""

    id: str
    type: str
    category: str = "ai_agent"
    channel_id: str | None = None
    is_active: bool = True
    is_default: bool = False
    priority: int = 0
