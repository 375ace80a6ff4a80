"""
Assignment Infrastructure Repositories
=======================================

SQLAlchemy implementation of the assignment rule repository.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.assignment.application.services import IAssignmentRuleRepository
from ticketdesk.assignment.domain import RuleDefinition
from ticketdesk.assignment.infrastructure.models import AssignmentRuleModel
from ticketdesk.core.clock import utc_now


class SQLAlchemyAssignmentRuleRepository(IAssignmentRuleRepository):
    """SQLAlchemy implementation of assignment rule repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list(self, include_inactive: bool = False) -> List[AssignmentRuleModel]:
        """Rules in evaluation order: priority descending, then oldest first."""
        stmt = select(AssignmentRuleModel)
        if not include_inactive:
            stmt = stmt.where(AssignmentRuleModel.is_active.is_(True))
        stmt = stmt.order_by(
            AssignmentRuleModel.priority.desc(),
            AssignmentRuleModel.created_at,
            AssignmentRuleModel.id,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, rule_id: str) -> Optional[AssignmentRuleModel]:
        return await self._session.get(AssignmentRuleModel, rule_id)

    async def get_by_name(self, name: str) -> Optional[AssignmentRuleModel]:
        stmt = select(AssignmentRuleModel).where(AssignmentRuleModel.name == name).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, rule: RuleDefinition, is_active: bool = True) -> AssignmentRuleModel:
        model = AssignmentRuleModel(
            name=rule.name,
            priority=rule.priority,
            conditions=rule.conditions,
            assign_to_user_id=rule.assign_to_user_id,
            assign_to_role=rule.assign_to_role,
            is_active=is_active,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    async def save(self, rule: AssignmentRuleModel) -> AssignmentRuleModel:
        rule.updated_at = utc_now()
        await self._session.flush()
        return rule
