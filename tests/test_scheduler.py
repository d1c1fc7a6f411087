"""Tests for scheduler job registration and the scheduled job wrappers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthbridge.services.scheduler import (
    create_scheduler,
    run_scheduled_daily,
    run_scheduled_intraday,
)
from healthbridge.services.sync import WorkerResult, WorkerStatus


def _services(**overrides):
    settings = SimpleNamespace(
        intraday_interval_minutes=60,
        daily_interval_hours=6,
        daily_window_days=14,
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return SimpleNamespace(
        settings=settings,
        run_and_log=AsyncMock(),
        daily_worker=MagicMock(return_value="daily-worker"),
        intraday_worker=MagicMock(return_value="intraday-worker"),
    )


class TestCreateScheduler:

    def test_registers_both_jobs(self):
        scheduler = create_scheduler(_services())
        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"intraday_sync", "daily_sync"}
        assert jobs["intraday_sync"].func is run_scheduled_intraday
        assert jobs["daily_sync"].func is run_scheduled_daily

    def test_jobs_never_overlap(self):
        scheduler = create_scheduler(_services())
        for job in scheduler.get_jobs():
            assert job.max_instances == 1
            assert job.coalesce is True

    def test_intervals_follow_settings(self):
        scheduler = create_scheduler(_services(intraday_interval_minutes=15, daily_interval_hours=3))
        assert scheduler.get_job("intraday_sync").trigger.interval.total_seconds() == 15 * 60
        assert scheduler.get_job("daily_sync").trigger.interval.total_seconds() == 3 * 3600


class TestScheduledJobs:

    @pytest.mark.asyncio
    async def test_daily_job_runs_daily_worker(self):
        services = _services()
        services.run_and_log.return_value = WorkerResult("daily", WorkerStatus.SUCCESS)

        await run_scheduled_daily(services)

        services.run_and_log.assert_awaited_once_with("daily-worker")

    @pytest.mark.asyncio
    async def test_intraday_job_runs_intraday_worker(self):
        services = _services()
        services.run_and_log.return_value = WorkerResult("intraday", WorkerStatus.RETRY)

        await run_scheduled_intraday(services)

        services.run_and_log.assert_awaited_once_with("intraday-worker")

    @pytest.mark.asyncio
    async def test_crash_does_not_escape_the_job(self):
        services = _services()
        services.run_and_log.side_effect = RuntimeError("database is locked")

        await run_scheduled_daily(services)
        await run_scheduled_intraday(services)

        assert services.run_and_log.await_count == 2
