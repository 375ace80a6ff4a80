"""
Ticket Infrastructure Models
=============================

SQLAlchemy ORM models for tickets, their comments, and the users that
create and work them.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, DateTime, Boolean, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ticketdesk.core.clock import utc_now
from ticketdesk.infrastructure.database import Base
from ticketdesk.config import TicketStatus, Priority, UserRole


def _new_id() -> str:
    return str(uuid4())


class UserModel(Base):
    """Maps to the 'users' table."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)


class TicketModel(Base):
    """
    Database model for a support ticket.

    Maps to the 'tickets' table. SLA budgets are snapshotted from the
    matching policy at creation; deadlines are derived, never stored.
    """
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketStatus.NEW, index=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Weak references; users may be deactivated independently
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    contact_medium: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    contact_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # SLA snapshot
    sla_response_time_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sla_resolution_time_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    response_sla_met: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    resolution_sla_met: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # Breach notification guards
    sla_breach_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    response_breach_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolution_breach_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class CommentModel(Base):
    """Maps to the 'ticket_comments' table."""
    __tablename__ = "ticket_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
