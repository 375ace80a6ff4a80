"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="ticketdesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/ticketdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA ==========
    sla_policy_path: Path = Field(
        default=Path("sla_policies.yaml"),
        description="YAML file with default SLA policies and assignment rules"
    )
    sla_scan_interval_seconds: int = Field(
        default=60,
        description="Seconds between SLA alert scans (0 disables the job)",
        ge=0
    )
    sla_warning_ratio: float = Field(
        default=0.8,
        description="Fraction of an SLA budget after which a warning is raised",
        gt=0.0,
        lt=1.0
    )

    # ========== Assignment ==========
    default_assignee_roles: List[str] = Field(
        default=["agent", "admin"],
        description="Roles eligible for load-balanced assignment when no role is given"
    )
    rebalance_threshold: int = Field(
        default=5,
        description="Load spread (max - min) above which tickets are rebalanced",
        ge=0
    )
    rebalance_interval_seconds: int = Field(
        default=0,
        description="Seconds between workload rebalances (0 disables the job)",
        ge=0
    )

    # ========== Notifications ==========
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook that relays email/WhatsApp notifications"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for notification webhook calls",
        ge=0.1,
        le=30
    )
    sla_breach_channels: List[str] = Field(
        default=["internal"],
        description="Channels that receive SLA breach notifications"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "testing", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketStatus(str):
    """Ticket lifecycle statuses."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ContactMedium(str):
    """Channel the requester used to open the ticket."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    PHONE = "phone"


class UserRole(str):
    """User roles."""
    ADMIN = "admin"
    AGENT = "agent"
    USER = "user"


class SLAStatus(str):
    """Discrete SLA status of a ticket."""
    WITHIN_SLA = "within_sla"
    RESPONSE_WARNING = "response_warning"
    RESPONSE_BREACHED = "response_breached"
    RESOLUTION_WARNING = "resolution_warning"
    RESOLUTION_BREACHED = "resolution_breached"


class SLAType(str):
    """Types of SLA clocks."""
    RESPONSE = "response"
    RESOLUTION = "resolution"


class NotificationChannel(str):
    """Notification delivery channels."""
    INTERNAL = "internal"
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class NotificationType(str):
    """Events that produce notifications."""
    TICKET_CREATED = "ticket_created"
    TICKET_ASSIGNED = "ticket_assigned"
    STATUS_CHANGED = "status_changed"
    NEW_COMMENT = "new_comment"
    SLA_WARNING = "sla_warning"
    SLA_BREACH = "sla_breach"


class NotificationStatus(str):
    """Notification delivery states."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    DELIVERED = "delivered"


# ========== Lists for validation ==========

VALID_STATUSES = [
    TicketStatus.NEW, TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
OPEN_STATUSES = [TicketStatus.NEW, TicketStatus.IN_PROGRESS]
NON_CLOSED_STATUSES = [TicketStatus.NEW, TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED]
VALID_PRIORITIES = [
    Priority.LOW, Priority.MEDIUM,
    Priority.HIGH, Priority.URGENT
]
VALID_CONTACT_MEDIUMS = [ContactMedium.WHATSAPP, ContactMedium.EMAIL, ContactMedium.PHONE]
VALID_ROLES = [UserRole.ADMIN, UserRole.AGENT, UserRole.USER]
ALERT_STATUSES = [
    SLAStatus.RESPONSE_WARNING, SLAStatus.RESPONSE_BREACHED,
    SLAStatus.RESOLUTION_WARNING, SLAStatus.RESOLUTION_BREACHED
]
BREACH_STATUSES = [SLAStatus.RESPONSE_BREACHED, SLAStatus.RESOLUTION_BREACHED]
VALID_CHANNELS = [
    NotificationChannel.INTERNAL, NotificationChannel.EMAIL,
    NotificationChannel.WHATSAPP
]
