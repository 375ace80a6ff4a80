"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.clock import utc_now
from ticketdesk.sla.application.services import ISLAConfigurationRepository
from ticketdesk.sla.domain import SLAPolicyConfig
from ticketdesk.sla.infrastructure.models import SLAConfigurationModel


class SQLAlchemySLAConfigurationRepository(ISLAConfigurationRepository):
    """
    SQLAlchemy implementation of the SLA policy store.

    (category, priority) is the natural key: an upsert replaces the budgets
    of the existing row, active or not, instead of adding a duplicate.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list(self, include_inactive: bool = False) -> List[SLAConfigurationModel]:
        stmt = select(SLAConfigurationModel)
        if not include_inactive:
            stmt = stmt.where(SLAConfigurationModel.is_active.is_(True))
        stmt = stmt.order_by(
            SLAConfigurationModel.priority,
            SLAConfigurationModel.updated_at.desc(),
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_priority(self, priority: str) -> List[SLAConfigurationModel]:
        stmt = (
            select(SLAConfigurationModel)
            .where(
                SLAConfigurationModel.priority == priority,
                SLAConfigurationModel.is_active.is_(True),
            )
            .order_by(SLAConfigurationModel.updated_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, configuration_id: str) -> Optional[SLAConfigurationModel]:
        return await self._session.get(SLAConfigurationModel, configuration_id)

    async def get_by_key(self, category: Optional[str], priority: str) -> Optional[SLAConfigurationModel]:
        stmt = select(SLAConfigurationModel).where(SLAConfigurationModel.priority == priority)
        if category is None:
            stmt = stmt.where(SLAConfigurationModel.category.is_(None))
        else:
            stmt = stmt.where(SLAConfigurationModel.category == category)
        result = await self._session.execute(
            stmt.order_by(SLAConfigurationModel.updated_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert(self, config: SLAPolicyConfig) -> SLAConfigurationModel:
        model = await self.get_by_key(config.category, config.priority)
        if model is None:
            model = SLAConfigurationModel(category=config.category, priority=config.priority)
            self._session.add(model)

        model.response_time_hours = config.response_time_hours
        model.resolution_time_hours = config.resolution_time_hours
        model.auto_assign_to_role = config.auto_assign_to_role
        model.is_active = config.is_active
        model.updated_at = utc_now()

        await self._session.flush()
        return model

    async def save(self, configuration: SLAConfigurationModel) -> SLAConfigurationModel:
        configuration.updated_at = utc_now()
        await self._session.flush()
        return configuration
