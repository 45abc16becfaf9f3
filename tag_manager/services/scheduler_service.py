# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Scheduled alert checks.

Runs the enabled alert rules of each frequency on a cron schedule:
daily, weekly on Mondays and monthly on the 1st, all at the same time
of day.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..models.alert import AlertOutcome
from ..models.enums import AlertFrequency
from ..services.alert_service import AlertService

logger = logging.getLogger(__name__)

# Extra cron fields per frequency, on top of hour and minute
FREQUENCY_CRON_FIELDS: dict[AlertFrequency, dict[str, Any]] = {
    AlertFrequency.DAILY: {},
    AlertFrequency.WEEKLY: {"day_of_week": "mon"},
    AlertFrequency.MONTHLY: {"day": 1},
}


def _job_id(frequency: AlertFrequency) -> str:
    return f"{frequency.value}_alert_checks"


class AlertSchedulerService:
    """Manages scheduled alert checks using APScheduler.

    Scheduled runs have no caller, so the bearer token comes from an
    injected async ``token_provider``.

    Usage::

        scheduler = AlertSchedulerService(
            alert_service=alert_service,
            token_provider=get_service_token,
            schedule_hour=9,
        )
        await scheduler.start()
        # ... application runs ...
        await scheduler.stop()
    """

    def __init__(
        self,
        alert_service: AlertService,
        token_provider: Callable[[], Awaitable[str]],
        schedule_hour: int = 9,
        schedule_minute: int = 0,
        schedule_timezone: str = "UTC",
        enabled: bool = True,
    ):
        """Initialize the scheduler service.

        Args:
            alert_service: Service that runs the alerts
            token_provider: Async function returning a bearer token.
                          Signature: async () -> str
            schedule_hour: Hour the checks run (0-23, default: 9)
            schedule_minute: Minute the checks run (0-59, default: 0)
            schedule_timezone: Timezone for the schedule (default: "UTC")
            enabled: Whether the scheduler is active (default: True)
        """
        self._alert_service = alert_service
        self._token_provider = token_provider
        self._schedule_hour = schedule_hour
        self._schedule_minute = schedule_minute
        self._schedule_timezone = schedule_timezone
        self._enabled = enabled
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._last_run: Optional[datetime] = None
        self._last_status: Optional[str] = None
        self._last_error: Optional[str] = None
        self._run_count: int = 0

    def _trigger(self, frequency: AlertFrequency) -> CronTrigger:
        return CronTrigger(
            hour=self._schedule_hour,
            minute=self._schedule_minute,
            timezone=self._schedule_timezone,
            **FREQUENCY_CRON_FIELDS[frequency],
        )

    async def start(self) -> bool:
        """Start the scheduler.

        Returns:
            True if started successfully, False if disabled or failed.
        """
        if not self._enabled:
            logger.info("AlertSchedulerService: disabled via configuration")
            return False

        try:
            self._scheduler = AsyncIOScheduler()

            for frequency in AlertFrequency:
                self._scheduler.add_job(
                    self._run_checks,
                    trigger=self._trigger(frequency),
                    args=[frequency],
                    id=_job_id(frequency),
                    name=f"{frequency.value.capitalize()} Alert Checks",
                    replace_existing=True,
                    misfire_grace_time=3600,  # Allow up to 1 hour late
                )

            self._scheduler.start()
            self._running = True

            logger.info(
                f"AlertSchedulerService: started alert checks "
                f"(schedule: {self._schedule_hour:02d}:{self._schedule_minute:02d} "
                f"{self._schedule_timezone})"
            )
            return True

        except Exception as e:
            logger.error(f"AlertSchedulerService: failed to start: {e}")
            self._running = False
            return False

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._running:
            try:
                self._scheduler.shutdown(wait=False)
                self._running = False
                logger.info("AlertSchedulerService: stopped")
            except Exception as e:
                logger.warning(f"AlertSchedulerService: error during shutdown: {e}")

    async def _run_checks(self, frequency: AlertFrequency) -> Optional[list[AlertOutcome]]:
        """Run the enabled alerts of one frequency.

        This is the job function called by APScheduler.

        Returns:
            The alert outcomes, or None if the run could not start
        """
        start_time = datetime.now(timezone.utc)
        logger.info(f"AlertSchedulerService: starting {frequency.value} alert checks")

        try:
            token = await self._token_provider()
            outcomes = await self._alert_service.run_all_enabled(token, frequency)
        except Exception as e:
            elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
            self._last_run = start_time
            self._last_status = "error"
            self._last_error = str(e)

            logger.error(
                f"AlertSchedulerService: {frequency.value} checks failed "
                f"after {elapsed:.1f}s: {e}"
            )
            return None

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        failed = [o for o in outcomes if o.error]
        self._last_run = start_time
        self._last_status = "partial" if failed else "success"
        self._last_error = failed[0].error if failed else None
        self._run_count += 1

        logger.info(
            f"AlertSchedulerService: {frequency.value} checks complete "
            f"(alerts={len(outcomes)}, "
            f"violations={sum(o.violations_found or 0 for o in outcomes)}, "
            f"failed={len(failed)}, "
            f"elapsed={elapsed:.1f}s)"
        )
        return outcomes

    async def run_now(self, frequency: AlertFrequency) -> Optional[list[AlertOutcome]]:
        """Trigger the checks of one frequency immediately."""
        logger.info(f"AlertSchedulerService: manual {AlertFrequency(frequency).value} run triggered")
        return await self._run_checks(AlertFrequency(frequency))

    @property
    def is_running(self) -> bool:
        """Whether the scheduler is currently running."""
        return self._running

    @property
    def is_enabled(self) -> bool:
        """Whether the scheduler is configured as enabled."""
        return self._enabled

    @property
    def last_run(self) -> Optional[datetime]:
        """Start time of the most recent run."""
        return self._last_run

    @property
    def last_status(self) -> Optional[str]:
        """Status of the most recent run: success, partial or error."""
        return self._last_status

    @property
    def last_error(self) -> Optional[str]:
        """Error of the most recent run, if any."""
        return self._last_error

    @property
    def run_count(self) -> int:
        """Number of completed runs since start."""
        return self._run_count

    def get_status(self) -> dict:
        """Get scheduler status.

        Returns:
            Dictionary with scheduler state and the next run of each job.
        """
        time_of_day = (
            f"{self._schedule_hour:02d}:{self._schedule_minute:02d} {self._schedule_timezone}"
        )
        status = {
            "enabled": self._enabled,
            "running": self._running,
            "schedules": {
                AlertFrequency.DAILY.value: f"daily at {time_of_day}",
                AlertFrequency.WEEKLY.value: f"Mondays at {time_of_day}",
                AlertFrequency.MONTHLY.value: f"1st of the month at {time_of_day}",
            },
            "run_count": self._run_count,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_status": self._last_status,
            "last_error": self._last_error,
        }

        if self._scheduler and self._running:
            next_runs = {}
            for frequency in AlertFrequency:
                job = self._scheduler.get_job(_job_id(frequency))
                if job and job.next_run_time:
                    next_runs[frequency.value] = job.next_run_time.isoformat()
            status["next_runs"] = next_runs

        return status
