"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM model for SLA policies.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, DateTime, Boolean, Float, Index
from sqlalchemy.orm import Mapped, mapped_column

from ticketdesk.core.clock import utc_now
from ticketdesk.infrastructure.database import Base


class SLAConfigurationModel(Base):
    """
    Database model for an SLA policy.

    Maps to the 'sla_configurations' table. Rows are deactivated, never
    deleted, so tickets keep a traceable origin for their snapshot.
    """
    __tablename__ = "sla_configurations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # NULL category matches every category
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)

    response_time_hours: Mapped[float] = mapped_column(Float, nullable=False)
    resolution_time_hours: Mapped[float] = mapped_column(Float, nullable=False)
    auto_assign_to_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_sla_configurations_priority_category", "priority", "category"),
    )
