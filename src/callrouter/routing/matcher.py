"""
Rule matching.

Rules of a phone line are evaluated in a fixed order and the first one whose
condition holds for the call wins:
1. non catch-all rules before catch-all (always/default) rules
2. higher priority first
3. older rules first
"""

import asyncio
from collections.abc import Awaitable, Callable

from callrouter.routing.context import RoutingContext
from callrouter.routing.domain import RoutingRule, RuleCondition
from callrouter.routing.repository import RoutingRuleRepositoryProtocol
from callrouter.shared.logging import get_logger

logger = get_logger(__name__)


def rule_order_key(rule: RoutingRule) -> tuple[bool, int, float, str]:
    created = rule.created_at.timestamp() if rule.created_at is not None else float("inf")
    return (rule.is_catch_all, -rule.priority, created, rule.id)


def condition_matches(rule: RoutingRule, context: RoutingContext) -> bool:
    """Evaluate a rule's condition against the routing context."""
    match rule.condition:
        case RuleCondition.ALWAYS | RuleCondition.DEFAULT:
            return True
        case RuleCondition.NO_ANSWER:
            return context.is_no_answer
        case RuleCondition.BUSY:
            return context.is_busy
        case RuleCondition.OFFLINE:
            return context.is_offline
        case RuleCondition.AFTER_HOURS:
            if rule.schedule is not None:
                return not rule.schedule.contains(context.now)
            return context.is_offline
        case RuleCondition.WORKING_HOURS | RuleCondition.SCHEDULE:
            return rule.schedule is not None and rule.schedule.contains(context.now)
        case RuleCondition.VIP | RuleCondition.VIP_CALLER:
            return context.is_vip
        case RuleCondition.NEW_CALLER:
            return context.is_new_caller
    return False


class RuleMatcher:
    """Picks the routing rule that applies to a call."""

    def __init__(self, rules: RoutingRuleRepositoryProtocol) -> None:
        self._rules = rules

    async def match(self, phone_line_id: str, context: RoutingContext) -> RoutingRule | None:
        rules = await self._rules.list_active_for_line(phone_line_id)
        candidates = sorted(
            (r for r in rules if r.is_active and r.phone_line_id == phone_line_id),
            key=rule_order_key,
        )

        for rule in candidates:
            if condition_matches(rule, context):
                logger.info(
                    "Routing rule matched",
                    extra={
                        "phone_line_id": phone_line_id,
                        "rule_id": rule.id,
                        "condition": rule.condition.value,
                        "action_type": rule.action.type,
                    },
                )
                return rule

        logger.info(
            "No routing rule matched",
            extra={"phone_line_id": phone_line_id, "rules_evaluated": len(candidates)},
        )
        return None


class TriggerCounter:
    """Fire-and-forget increments of rule trigger counts.

    Increments run as background tasks so storage latency or failure never
    delays the webhook response; failures are only logged.
    """

    def __init__(self, increment: Callable[[str], Awaitable[None]]) -> None:
        self._increment = increment
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, rule_id: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._run(rule_id))
        # The event loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, rule_id: str) -> None:
        try:
            await self._increment(rule_id)
        except Exception:
            logger.exception("Failed to increment rule triggered count", extra={"rule_id": rule_id})

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for outstanding increments (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
