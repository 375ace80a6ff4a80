"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool),
a frozen clock and recording notification senders.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from ticketdesk.config import Settings
from ticketdesk.core.exceptions import NotificationDispatchException
from ticketdesk.dependencies import build_dispatcher, build_ticket_service
from ticketdesk.infrastructure.database import Database
from ticketdesk.notifications.application import INotificationSender

# Imported for their side effect of registering tables on Base.metadata
from ticketdesk.assignment.infrastructure.models import AssignmentRuleModel  # noqa: F401
from ticketdesk.notifications.infrastructure.models import NotificationModel  # noqa: F401
from ticketdesk.sla.infrastructure.models import SLAConfigurationModel  # noqa: F401
from ticketdesk.tickets.infrastructure.models import TicketModel, UserModel

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingSender(INotificationSender):
    """Sender that accepts everything and remembers it."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    async def send(
        self,
        recipient_user_id: str,
        channel: str,
        type: str,
        message: str,
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self.sent.append({
            "recipient_user_id": recipient_user_id,
            "channel": channel,
            "type": type,
            "message": message,
            "subject": subject,
            "metadata": metadata or {},
        })

    def of_type(self, type: str) -> List[Dict[str, Any]]:
        return [item for item in self.sent if item["type"] == type]


class FailingSender(INotificationSender):
    """Sender whose transport is always down."""

    async def send(self, recipient_user_id, channel, type, message, subject=None, metadata=None):
        raise NotificationDispatchException(channel, "relay unavailable")


def _enable_savepoints(engine) -> None:
    # pysqlite's implicit transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        environment="testing",
        database_url="sqlite+aiosqlite:///:memory:",
        sla_policy_path=tmp_path / "sla_policies.yaml",
        sla_scan_interval_seconds=0,
        rebalance_interval_seconds=0,
        default_assignee_roles=["agent", "admin"],
        rebalance_threshold=5,
    )


@pytest.fixture
async def database():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_savepoints(engine)
    db = Database(engine)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
async def session(database):
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


def seed_users() -> Dict[str, UserModel]:
    """Requester, two agents and an admin; ids sort agent-a < agent-b."""
    return {
        "requester": UserModel(
            id="user-1", email="customer@example.com", full_name="Casey Customer", role="user"
        ),
        "agent_a": UserModel(
            id="agent-a", email="ana@example.com", full_name="Ana Agent", role="agent"
        ),
        "agent_b": UserModel(
            id="agent-b", email="ben@example.com", full_name="Ben Agent", role="agent"
        ),
        "admin": UserModel(
            id="admin-1", email="ada@example.com", full_name="Ada Admin", role="admin"
        ),
    }


@pytest.fixture
async def users(session) -> Dict[str, UserModel]:
    records = seed_users()
    session.add_all(records.values())
    await session.flush()
    return records


@pytest.fixture
def ticket_factory(session, clock):
    """Insert tickets directly, bypassing assignment and policy lookup."""
    numbers = itertools.count(1)

    async def create(**fields) -> TicketModel:
        number = next(numbers)
        values = {
            "ticket_number": number,
            "title": f"Ticket {number}",
            "status": "new",
            "priority": "medium",
            "created_by": "user-1",
            "created_at": clock(),
            "updated_at": clock(),
        }
        values.update(fields)
        ticket = TicketModel(**values)
        session.add(ticket)
        await session.flush()
        return ticket

    return create


@pytest.fixture
def dispatcher(session, sender, app_settings, clock):
    return build_dispatcher(session, sender, app_settings, clock)


@pytest.fixture
def ticket_service(session, dispatcher, app_settings, clock):
    return build_ticket_service(session, dispatcher, app_settings, clock)
