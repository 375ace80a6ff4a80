"""Policy file loading, the SLA monitor and the scheduler wrapper."""

import asyncio
from datetime import timedelta

import pytest

from ticketdesk.assignment.application import AssignmentRuleService
from ticketdesk.assignment.infrastructure import SQLAlchemyAssignmentRuleRepository
from ticketdesk.core.exceptions import ConfigurationException
from ticketdesk.dependencies import build_scanner
from ticketdesk.main import _policy_sync
from ticketdesk.sla.application import SLAPolicyService
from ticketdesk.sla.infrastructure import (
    PolicyDocument,
    PolicyFileManager,
    SLAMonitor,
    SLAScheduler,
    SQLAlchemySLAConfigurationRepository,
)
from ticketdesk.tickets.infrastructure import TicketModel

from tests.conftest import NOW, seed_users

POLICY_YAML = """
sla_policies:
  - priority: high
    response_time_hours: 4
    resolution_time_hours: 24
  - category: billing
    priority: high
    response_time_hours: 2
    resolution_time_hours: 12
    auto_assign_to_role: admin
assignment_rules:
  - name: urgent-to-agents
    priority: 100
    conditions:
      priority: urgent
    assign_to_role: agent
"""


class TestPolicyFile:
    def test_read_parses_document(self, tmp_path):
        path = tmp_path / "policies.yaml"
        path.write_text(POLICY_YAML)

        document = PolicyFileManager(path, sync=None).read()

        assert [(p.category, p.priority) for p in document.sla_policies] == [
            (None, "high"), ("billing", "high")
        ]
        assert document.assignment_rules[0]["name"] == "urgent-to-agents"

    def test_missing_file_is_empty(self, tmp_path):
        document = PolicyFileManager(tmp_path / "absent.yaml", sync=None).read()

        assert document == PolicyDocument()

    @pytest.mark.parametrize("content", [
        "sla_policies: [",
        "sla_policies:\n  - priority: critical\n    response_time_hours: 1\n    resolution_time_hours: 2\n",
        "sla_policies:\n  - priority: high\n    response_time_hours: 0\n    resolution_time_hours: 2\n",
    ])
    def test_invalid_file_rejected(self, tmp_path, content):
        path = tmp_path / "policies.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationException):
            PolicyFileManager(path, sync=None).read()

    async def test_load_hands_document_to_sync(self, tmp_path):
        path = tmp_path / "policies.yaml"
        path.write_text(POLICY_YAML)
        received = []

        async def sync(document):
            received.append(document)

        manager = PolicyFileManager(path, sync)
        document = await manager.load()

        assert received == [document]
        assert manager.document is document

    async def test_reload_only_seeds_unknown_entries(self, tmp_path, database):
        path = tmp_path / "policies.yaml"
        path.write_text(POLICY_YAML)
        manager = PolicyFileManager(path, _policy_sync(database))

        await manager.load()
        path.write_text(
            POLICY_YAML.replace("response_time_hours: 4", "response_time_hours: 6")
            + "  - name: vip\n    priority: 10\n    conditions:\n      category: vip\n    assign_to_role: admin\n"
        )
        await manager.load()

        async with database.session() as session:
            policies = await SLAPolicyService(SQLAlchemySLAConfigurationRepository(session)).list_configurations()
            rules = await AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session)).list_rules()

        assert sorted((p.category or "*", p.response_time_hours) for p in policies) == [
            ("*", 4.0), ("billing", 2.0)
        ]
        assert [r.name for r in rules] == ["urgent-to-agents", "vip"]

    async def test_deactivated_policy_stays_inactive_after_reload(self, tmp_path, database):
        path = tmp_path / "policies.yaml"
        path.write_text(POLICY_YAML)
        manager = PolicyFileManager(path, _policy_sync(database))
        await manager.load()

        async with database.session() as session:
            service = SLAPolicyService(SQLAlchemySLAConfigurationRepository(session))
            wildcard = next(p for p in await service.list_configurations() if p.category is None)
            await service.deactivate(wildcard.id)
            rule_service = AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session))
            rule = (await rule_service.list_rules())[0]
            await rule_service.deactivate_rule(rule.id)

        await manager.load()

        async with database.session() as session:
            service = SLAPolicyService(SQLAlchemySLAConfigurationRepository(session))
            assert await service.lookup("anything", "high") is None
            assert len(await service.list_configurations(include_inactive=True)) == 2
            rules = await AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session)).list_rules()
            assert rules == []

    async def test_reload_keeps_previous_document_on_bad_file(self, tmp_path):
        path = tmp_path / "policies.yaml"
        path.write_text(POLICY_YAML)

        async def sync(document):
            return None

        manager = PolicyFileManager(path, sync)
        original = await manager.load()
        path.write_text("sla_policies: [")

        assert manager.reload() is False
        assert manager.document is original


async def _seed_breached_ticket(database):
    async with database.session() as session:
        session.add_all(seed_users().values())
        session.add(TicketModel(
            ticket_number=1,
            title="Charged twice",
            status="new",
            priority="high",
            created_by="user-1",
            assigned_to="agent-a",
            created_at=NOW - timedelta(hours=9),
            updated_at=NOW - timedelta(hours=9),
            sla_response_time_hours=8,
            sla_resolution_time_hours=48,
        ))


class TestSLAMonitor:
    @pytest.fixture
    def monitor(self, database, sender, app_settings, clock):
        return SLAMonitor(
            database,
            lambda session: build_scanner(session, sender, app_settings, clock),
            clock,
        )

    async def test_run_once_keeps_latest_alerts(self, database, monitor, sender, clock):
        await _seed_breached_ticket(database)

        alerts = await monitor.run_once()
        await monitor.run_once()

        assert [a.alert_type for a in alerts] == ["response_breached"]
        assert [a.alert_type for a in monitor.last_alerts] == ["response_breached"]
        assert monitor.last_scan_at == clock()
        assert len(sender.of_type("sla_breach")) == 1

    async def test_overlapping_tick_is_skipped(self, database, monitor):
        await _seed_breached_ticket(database)

        async with monitor._lock:
            assert await monitor.run_once() is None
        assert monitor.last_scan_at is None

    async def test_refresh_waits_for_running_scan(self, database, monitor):
        await _seed_breached_ticket(database)

        first, second = await asyncio.gather(monitor.refresh(), monitor.run_once())

        assert [a.alert_type for a in first] == ["response_breached"]
        assert second is None

    async def test_stopped_monitor_does_nothing(self, monitor):
        monitor.stop()

        assert await monitor.run_once() is None

    async def test_scan_failure_is_contained(self, database, sender, clock):
        def broken_factory(session):
            raise RuntimeError("scanner unavailable")

        monitor = SLAMonitor(database, broken_factory, clock)

        assert await monitor.run_once() is None
        with pytest.raises(RuntimeError):
            await monitor.refresh()


class TestScheduler:
    async def test_disabled_jobs_are_not_registered(self):
        scheduler = SLAScheduler()

        async def job():
            return None

        scheduler.add_interval_job(job, 0, job_id="off", name="Disabled")
        scheduler.add_interval_job(job, 60, job_id="on", name="Enabled")
        await scheduler.start()
        try:
            assert scheduler.is_running
            assert [j.id for j in scheduler._scheduler.get_jobs()] == ["on"]
        finally:
            await scheduler.stop()

        assert not scheduler.is_running
