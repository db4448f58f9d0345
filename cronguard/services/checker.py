"""Background checker for overdue monitors.

This module schedules two periodic jobs with APScheduler:

- the overdue check, which marks monitors LATE once a ping is overdue and
  DOWN once the grace period has also passed, opening an incident and
  sending an alert on the transition to DOWN,
- the archive cleanup, which deletes archived monitors whose retention
  period has ended.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.config import get_settings
from cronguard.database import async_session_maker
from cronguard.models.enums import AlertEvent, IncidentType, MonitorStatus
from cronguard.models.incident import Incident
from cronguard.models.monitor import Monitor
from cronguard.services.alerts import AlertNotifier, build_payload, get_alert_notifier
from cronguard.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

# Job IDs for the scheduled jobs
CHECK_JOB_ID = "overdue_check_job"
CLEANUP_JOB_ID = "archive_cleanup_job"

# Archive cleanup runs daily at this UTC hour
CLEANUP_HOUR_UTC = 2


class CheckerStatus(BaseModel):
    """Status information for the monitor checker.

    Attributes:
        is_running: Whether the scheduler is currently running.
        check_interval_seconds: Seconds between overdue checks.
        next_check_time: The next scheduled overdue check, if any.
        next_cleanup_time: The next scheduled archive cleanup, if any.
        last_check: Summary of the most recent overdue check, if any.
    """
    is_running: bool = Field(default=False, description="Whether the checker is running")
    check_interval_seconds: int = Field(default=60, description="Seconds between checks")
    next_check_time: Optional[datetime] = Field(default=None, description="Next overdue check")
    next_cleanup_time: Optional[datetime] = Field(default=None, description="Next archive cleanup")
    last_check: Optional["CheckResult"] = Field(default=None, description="Last check summary")


class CheckResult(BaseModel):
    """Result of one overdue check.

    Attributes:
        started_at: When the check started.
        completed_at: When the check completed.
        checked: Number of overdue monitors examined.
        marked_late: Number of monitors moved to LATE.
        marked_down: Number of monitors moved to DOWN.
        alerts_sent: Number of down alerts delivered.
        errors: Number of monitors that could not be processed.
    """
    started_at: datetime = Field(..., description="Check start time")
    completed_at: datetime = Field(..., description="Check completion time")
    checked: int = Field(default=0)
    marked_late: int = Field(default=0)
    marked_down: int = Field(default=0)
    alerts_sent: int = Field(default=0)
    errors: int = Field(default=0)


CheckerStatus.model_rebuild()


class CheckerConfigError(Exception):
    """Raised when checker configuration is invalid."""
    pass


def evaluate_monitor(monitor: Monitor, now: datetime) -> Optional[MonitorStatus]:
    """Decide the status a monitor should move to at ``now``.

    Returns:
        LATE or DOWN if the monitor must transition, otherwise None. Paused
        and archived monitors, monitors without an expected ping and
        monitors that are not overdue never transition.
    """
    if monitor.status == MonitorStatus.PAUSED.value or monitor.archived_at is not None:
        return None
    if monitor.next_expected_at is None or monitor.next_expected_at > now:
        return None

    grace_end = monitor.next_expected_at + timedelta(seconds=monitor.grace_period or 0)
    if now < grace_end:
        if monitor.status in (MonitorStatus.LATE.value, MonitorStatus.DOWN.value):
            return None
        return MonitorStatus.LATE

    if monitor.status == MonitorStatus.DOWN.value:
        return None
    return MonitorStatus.DOWN


class MonitorChecker:
    """Service running the overdue check and archive cleanup.

    Usage:
        checker = MonitorChecker(notifier=notifier)
        checker.start()
        result = await checker.run_check()
        status = checker.get_status()
        checker.shutdown()
    """

    def __init__(
        self,
        notifier: Optional[AlertNotifier] = None,
        clock: Clock = utc_now,
        check_interval_seconds: Optional[int] = None,
    ):
        """Initialize the MonitorChecker.

        Raises:
            CheckerConfigError: If the check interval is not positive.
        """
        interval = check_interval_seconds
        if interval is None:
            interval = get_settings().check_interval_seconds
        if interval <= 0:
            raise CheckerConfigError("Check interval must be a positive number of seconds.")

        self._scheduler: AsyncIOScheduler = AsyncIOScheduler(timezone="UTC")
        self._is_started: bool = False
        self._notifier = notifier
        self._clock = clock
        self._check_interval_seconds = interval
        self._last_check: Optional[CheckResult] = None

    def start(self) -> None:
        """Start the scheduler and register both jobs.

        Must be called from within a running event loop.
        """
        if self._is_started:
            return

        self._scheduler.add_job(
            self._execute_check,
            trigger=IntervalTrigger(seconds=self._check_interval_seconds),
            id=CHECK_JOB_ID,
            name="Overdue monitor check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self._execute_cleanup,
            trigger=CronTrigger(hour=CLEANUP_HOUR_UTC, minute=0, timezone="UTC"),
            id=CLEANUP_JOB_ID,
            name="Archived monitor cleanup",
            replace_existing=True,
        )
        self._scheduler.start()
        self._is_started = True
        logger.info(f"Monitor checker started, checking every {self._check_interval_seconds}s")

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler and remove its jobs.

        Args:
            wait: Whether to wait for running jobs to complete.
        """
        if not self._is_started:
            return

        for job_id in (CHECK_JOB_ID, CLEANUP_JOB_ID):
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        self._scheduler.shutdown(wait=wait)
        self._is_started = False
        logger.info("Monitor checker shut down")

    def get_status(self) -> CheckerStatus:
        """Get the current checker status."""
        status = CheckerStatus(
            is_running=self._is_started and self._scheduler.running,
            check_interval_seconds=self._check_interval_seconds,
            last_check=self._last_check,
        )

        check_job = self._scheduler.get_job(CHECK_JOB_ID)
        if check_job:
            status.next_check_time = check_job.next_run_time
        cleanup_job = self._scheduler.get_job(CLEANUP_JOB_ID)
        if cleanup_job:
            status.next_cleanup_time = cleanup_job.next_run_time

        return status

    async def run_check(self, db_session: Optional[AsyncSession] = None) -> CheckResult:
        """Run one overdue check.

        Args:
            db_session: Optional database session. If not provided, a new
                session is created and committed.

        Returns:
            CheckResult summarising the transitions made.
        """
        own_session = db_session is None
        session = async_session_maker() if own_session else db_session

        started_at = self._clock()
        marked_late = marked_down = alerts_sent = errors = 0
        down_monitors: List[Monitor] = []

        try:
            result = await session.execute(
                select(Monitor).where(
                    Monitor.status != MonitorStatus.PAUSED.value,
                    Monitor.archived_at.is_(None),
                    Monitor.next_expected_at <= started_at,
                )
            )
            monitors = list(result.scalars().all())
            logger.info(f"Found {len(monitors)} potentially overdue monitors")

            for monitor in monitors:
                try:
                    transition = evaluate_monitor(monitor, started_at)
                    if transition is None:
                        continue

                    monitor.status = transition.value
                    if transition == MonitorStatus.LATE:
                        marked_late += 1
                        logger.info(f"Monitor {monitor.slug} is LATE")
                        continue

                    session.add(Incident(
                        monitor_id=monitor.id,
                        started_at=started_at,
                        resolved_at=None,
                        type=IncidentType.MISSED.value,
                    ))
                    marked_down += 1
                    down_monitors.append(monitor)
                    logger.warning(f"Monitor {monitor.slug} is DOWN")
                except Exception as e:
                    errors += 1
                    logger.error(f"Failed to evaluate monitor {monitor.slug}: {e}", exc_info=True)

            await session.commit()

            # Alerts go out only after the DOWN status is persisted
            if self._notifier is not None:
                for monitor in down_monitors:
                    payload = build_payload(
                        monitor,
                        AlertEvent.DOWN,
                        started_at,
                        last_ping_at=monitor.last_ping_at.isoformat() if monitor.last_ping_at else None,
                        expected_at=monitor.next_expected_at.isoformat(),
                    )
                    if await self._notifier.send(monitor, payload):
                        alerts_sent += 1

            check_result = CheckResult(
                started_at=started_at,
                completed_at=self._clock(),
                checked=len(monitors),
                marked_late=marked_late,
                marked_down=marked_down,
                alerts_sent=alerts_sent,
                errors=errors,
            )
            self._last_check = check_result
            logger.info(
                f"Check completed: {check_result.checked} checked, "
                f"{marked_late} late, {marked_down} down"
            )
            return check_result

        except Exception:
            await session.rollback()
            raise

        finally:
            if own_session:
                await session.close()

    async def cleanup_archived(self, db_session: Optional[AsyncSession] = None) -> int:
        """Delete archived monitors whose retention period has ended.

        Returns:
            The number of monitors deleted.
        """
        own_session = db_session is None
        session = async_session_maker() if own_session else db_session
        now = self._clock()

        try:
            result = await session.execute(
                select(Monitor).where(
                    Monitor.archived_at.isnot(None),
                    Monitor.delete_after <= now,
                )
            )
            monitors = list(result.scalars().all())
            for monitor in monitors:
                await session.delete(monitor)
                logger.info(f"Deleting archived monitor {monitor.name} ({monitor.id})")
            await session.commit()

            logger.info(f"Deleted {len(monitors)} archived monitors")
            return len(monitors)

        except Exception:
            await session.rollback()
            raise

        finally:
            if own_session:
                await session.close()

    async def _execute_check(self) -> None:
        """Internal method called by APScheduler to run a check."""
        try:
            await self.run_check()
        except Exception as e:
            logger.error(f"Scheduled overdue check failed: {e}", exc_info=True)

    async def _execute_cleanup(self) -> None:
        """Internal method called by APScheduler to run the cleanup."""
        try:
            await self.cleanup_archived()
        except Exception as e:
            logger.error(f"Scheduled archive cleanup failed: {e}", exc_info=True)


# Global checker instance
_checker_instance: Optional[MonitorChecker] = None


def get_monitor_checker() -> MonitorChecker:
    """Get or create the global MonitorChecker instance."""
    global _checker_instance
    if _checker_instance is None:
        _checker_instance = MonitorChecker(notifier=get_alert_notifier())
    return _checker_instance


def reset_monitor_checker() -> None:
    """Shut down and discard the global checker instance.

    This is primarily useful for testing and application shutdown.
    """
    global _checker_instance
    if _checker_instance is not None:
        _checker_instance.shutdown()
        _checker_instance = None
