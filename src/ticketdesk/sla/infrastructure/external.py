"""
SLA External Service Integrations
==================================

Background machinery for SLA monitoring:
- APScheduler wrapper for interval jobs
- SLA monitor running the alert scanner as a scheduled job
- YAML policy file loader with watchdog hot-reload
"""

import asyncio
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ticketdesk.core.clock import Clock, utc_now
from ticketdesk.core.exceptions import ConfigurationException
from ticketdesk.infrastructure.database import Database
from ticketdesk.shared.infrastructure.logging import get_logger
from ticketdesk.sla.application.services import SLAAlertScanner
from ticketdesk.sla.domain import SLAPolicyConfig, TicketAlert

logger = get_logger(__name__)


# ========== Scheduling ==========

class SLAScheduler:
    """
    Wrapper for APScheduler running the service's interval jobs.

    Every job runs with ``max_instances=1`` so a slow tick is never stacked
    on top of a running one.
    """

    def __init__(self):
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: List[Dict[str, Any]] = []
        self._running = False

    def add_interval_job(
        self,
        func: Callable[[], Awaitable[Any]],
        seconds: int,
        job_id: str,
        name: str
    ) -> None:
        """Register a job; a non-positive interval disables it."""
        if seconds <= 0:
            logger.info("Scheduled job disabled", extra={"job_id": job_id})
            return
        self._jobs.append({"func": func, "seconds": seconds, "id": job_id, "name": name})

    async def start(self) -> None:
        """Start the scheduler with every registered job."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        for job in self._jobs:
            self._scheduler.add_job(
                job["func"],
                "interval",
                seconds=job["seconds"],
                id=job["id"],
                name=job["name"],
                misfire_grace_time=job["seconds"],
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"jobs": [job["id"] for job in self._jobs]}
        )

    async def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running


ScannerFactory = Callable[[AsyncSession], SLAAlertScanner]


class SLAMonitor:
    """
    Runs alert scans in their own session and keeps the latest result.

    Scheduled ticks skip when a pass is still running; a manual refresh
    waits for it instead. ``stop()`` cancels an in-flight pass.
    """

    def __init__(
        self,
        database: Database,
        scanner_factory: ScannerFactory,
        clock: Clock = utc_now
    ):
        self._database = database
        self._scanner_factory = scanner_factory
        self._clock = clock
        self._lock = asyncio.Lock()
        self._current_task: Optional[asyncio.Task] = None
        self._stopped = False
        self._last_alerts: List[TicketAlert] = []
        self._last_scan_at: Optional[datetime] = None

    @property
    def last_alerts(self) -> List[TicketAlert]:
        return list(self._last_alerts)

    @property
    def last_scan_at(self) -> Optional[datetime]:
        return self._last_scan_at

    async def run_once(self) -> Optional[List[TicketAlert]]:
        """Scheduled tick; returns None when skipped or failed."""
        if self._stopped:
            return None
        if self._lock.locked():
            logger.info("SLA scan still running, skipping tick")
            return None
        try:
            return await self._scan()
        except asyncio.CancelledError:
            logger.info("SLA scan cancelled")
            return None
        except Exception:
            logger.exception("SLA scan failed")
            return None

    async def refresh(self) -> List[TicketAlert]:
        """Manual trigger: run a pass now and return its alerts."""
        return await self._scan()

    async def _scan(self) -> List[TicketAlert]:
        async with self._lock:
            self._current_task = asyncio.current_task()
            try:
                async with self._database.session() as session:
                    alerts = await self._scanner_factory(session).scan()
            finally:
                self._current_task = None

            self._last_alerts = alerts
            self._last_scan_at = self._clock()
            return list(alerts)

    def stop(self) -> None:
        self._stopped = True
        if self._current_task is not None and not self._current_task.done():
            self._current_task.cancel()


# ========== Policy file ==========

class PolicyDocument(BaseModel):
    """Contents of the YAML seed file."""
    sla_policies: List[SLAPolicyConfig] = Field(default_factory=list)
    # Validated by the assignment service when synced
    assignment_rules: List[Dict[str, Any]] = Field(default_factory=list)


PolicySync = Callable[[PolicyDocument], Awaitable[None]]


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for policy file changes."""

    def __init__(self, manager: "PolicyFileManager", path: Path):
        self.manager = manager
        self.path = path
        super().__init__()

    def _matches(self, event) -> bool:
        return not event.is_directory and Path(event.src_path).resolve() == self.path.resolve()

    def on_modified(self, event):
        if self._matches(event):
            logger.info("Policy file changed", extra={"path": event.src_path})
            self.manager.reload()

    def on_created(self, event):
        self.on_modified(event)


class PolicyFileManager:
    """
    Loads default SLA policies and assignment rules from YAML.

    The parsed document is handed to ``sync`` (which seeds the entries the
    store does not know yet) at startup and again whenever the watched file changes. Watchdog
    calls back on its own thread, so reloads are scheduled onto the
    application's event loop.
    """

    def __init__(self, path: Path, sync: PolicySync):
        self._path = path
        self._sync = sync
        self._lock = threading.Lock()
        self._document: Optional[PolicyDocument] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer = None

    def read(self) -> PolicyDocument:
        """Parse the file; a missing file is an empty document."""
        if not self._path.exists():
            logger.warning("Policy file not found, no defaults loaded", extra={"path": str(self._path)})
            return PolicyDocument()

        try:
            with open(self._path, "r") as f:
                data = yaml.safe_load(f) or {}
            return PolicyDocument(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid policy file {self._path}: {e}",
                {"path": str(self._path)}
            ) from e

    async def load(self) -> PolicyDocument:
        """Initial load, synced before the application starts serving."""
        self._loop = asyncio.get_running_loop()
        document = self.read()
        await self._sync(document)
        with self._lock:
            self._document = document
        logger.info(
            "Policy file loaded",
            extra={
                "sla_policies": len(document.sla_policies),
                "assignment_rules": len(document.assignment_rules),
            }
        )
        return document

    def reload(self) -> bool:
        """Re-read the file and schedule a sync; a broken file keeps the old state."""
        if self._loop is None:
            return False

        try:
            document = self.read()
        except ConfigurationException as e:
            logger.error("Failed to reload policy file", extra={"error": e.message})
            return False

        with self._lock:
            self._document = document
        future = asyncio.run_coroutine_threadsafe(self._sync(document), self._loop)
        future.add_done_callback(self._log_sync_result)
        return True

    @staticmethod
    def _log_sync_result(future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Policy file sync failed", extra={"error": str(error)})
        else:
            logger.info("Policy file reloaded")

    def start_watching(self) -> None:
        """Watch the file's directory; skipped when the file does not exist."""
        if not self._path.exists():
            logger.info("Policy file doesn't exist, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                PolicyFileHandler(self, self._path),
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching policy file", extra={"path": str(self._path)})
        except OSError as e:
            # inotify is unavailable in some containers
            logger.warning("File watching not available, using static policies", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def document(self) -> Optional[PolicyDocument]:
        return self._document
