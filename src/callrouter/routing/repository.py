"""
Repositories for the routing engine's storage collaborators.

Rows are converted to the frozen domain objects in routing.domain so the
engine never holds ORM instances.
"""

from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from callrouter.routing.actions import parse_action
from callrouter.routing.domain import AIProvider, PhoneLine, RoutingRule, RuleCondition, Schedule
from callrouter.routing.models import ChannelProviderModel, PhoneLineModel, RoutingRuleModel
from callrouter.shared.database import DatabaseManager, get_database_manager
from callrouter.shared.logging import get_logger

logger = get_logger(__name__)


class PhoneLineRepositoryProtocol(Protocol):
    """Protocol for phone line lookups."""

    async def get_by_number(self, phone_number: str) -> PhoneLine | None:
        """Get the active phone line with this number."""
        ...


class RoutingRuleRepositoryProtocol(Protocol):
    """Protocol for routing rule operations."""

    async def list_active_for_line(self, phone_line_id: str) -> list[RoutingRule]:
        """Get active rules of a phone line."""
        ...

    async def increment_triggered_count(self, rule_id: str) -> None:
        """Atomically add one to the rule's triggered count."""
        ...


class AIProviderRepositoryProtocol(Protocol):
    """Protocol for AI voice-agent provider lookups."""

    async def get_config(self, provider_id: str) -> dict[str, Any] | None:
        """Get vendor configuration of a provider."""
        ...

    async def get_providers_for_routing(
        self,
        channel_id: str | None,
        category: str,
    ) -> list[AIProvider]:
        """Get active providers of a channel, preferred first."""
        ...


class PhoneLineRepository:
    """Repository for phone line lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_number(self, phone_number: str) -> PhoneLine | None:
        stmt = select(PhoneLineModel).where(
            PhoneLineModel.phone_number == phone_number,
            PhoneLineModel.is_active.is_(True),
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return PhoneLine(
            id=row.id,
            phone_number=row.phone_number,
            forward_to=row.forward_to,
            provider_id=row.provider_id,
        )


def _rule_from_row(row: RoutingRuleModel) -> RoutingRule | None:
    try:
        condition = RuleCondition(row.condition)
    except ValueError:
        logger.warning(
            "Routing rule with unknown condition skipped",
            extra={"rule_id": row.id, "condition": row.condition},
        )
        return None

    schedule: Schedule | None = None
    if row.schedule:
        try:
            schedule = Schedule.from_dict(row.schedule)
        except (TypeError, ValueError):
            logger.warning(
                "Routing rule schedule is invalid; treating rule as unscheduled",
                extra={"rule_id": row.id},
                exc_info=True,
            )

    return RoutingRule(
        id=row.id,
        phone_line_id=row.phone_line_id,
        name=row.name,
        condition=condition,
        action=parse_action(row.action),
        priority=row.priority,
        is_active=row.is_active,
        no_answer_rings=row.no_answer_rings,
        schedule=schedule,
        created_at=row.created_at,
        triggered_count=row.triggered_count,
    )


class RoutingRuleRepository:
    """Repository for routing rule operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_active_for_line(self, phone_line_id: str) -> list[RoutingRule]:
        stmt = (
            select(RoutingRuleModel)
            .where(
                RoutingRuleModel.phone_line_id == phone_line_id,
                RoutingRuleModel.is_active.is_(True),
            )
            .order_by(RoutingRuleModel.priority.desc(), RoutingRuleModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        rules = (_rule_from_row(row) for row in result.scalars().all())
        return [r for r in rules if r is not None]

    async def increment_triggered_count(self, rule_id: str) -> None:
        # Single UPDATE so concurrent calls never lose increments.
        stmt = (
            update(RoutingRuleModel)
            .where(RoutingRuleModel.id == rule_id)
            .values(
                triggered_count=RoutingRuleModel.triggered_count + 1,
                last_triggered_at=datetime.now(timezone.utc),
            )
        )
        await self._session.execute(stmt)
        await self._session.flush()


class AIProviderRepository:
    """Repository for AI voice-agent providers."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_config(self, provider_id: str) -> dict[str, Any] | None:
        stmt = select(ChannelProviderModel.config).where(ChannelProviderModel.id == provider_id)
        result = await self._session.execute(stmt)
        config = result.scalar_one_or_none()
        return dict(config) if config is not None else None

    async def get_providers_for_routing(
        self,
        channel_id: str | None,
        category: str,
    ) -> list[AIProvider]:
        if channel_id is None:
            return []
        stmt = (
            select(ChannelProviderModel)
            .where(
                ChannelProviderModel.channel_id == channel_id,
                ChannelProviderModel.category == category,
                ChannelProviderModel.is_active.is_(True),
            )
            .order_by(ChannelProviderModel.is_default.desc(), ChannelProviderModel.priority.desc())
        )
        result = await self._session.execute(stmt)
        return [
            AIProvider(
                id=row.id,
                type=row.type,
                category=row.category,
                channel_id=row.channel_id,
                is_active=row.is_active,
                is_default=row.is_default,
                priority=row.priority,
            )
            for row in result.scalars().all()
        ]


async def increment_rule_trigger(rule_id: str, db: DatabaseManager | None = None) -> None:
    """Increment a rule's triggered count in its own session.

    Runs after the webhook response is decided, so it cannot share the
    request-scoped session.
    """
    manager = db or get_database_manager()
    async with manager.session() as session:
        await RoutingRuleRepository(session).increment_triggered_count(rule_id)
