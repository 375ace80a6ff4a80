"""
Assignment Infrastructure Models
=================================

SQLAlchemy ORM model for assignment rules.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import String, DateTime, Boolean, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ticketdesk.core.clock import utc_now
from ticketdesk.infrastructure.database import Base


class AssignmentRuleModel(Base):
    """
    Maps to the 'assignment_rules' table.

    Higher ``priority`` is evaluated first.
    """
    __tablename__ = "assignment_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # {"category": "billing", "priority": ["high", "urgent"]}
    conditions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    assign_to_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    assign_to_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
