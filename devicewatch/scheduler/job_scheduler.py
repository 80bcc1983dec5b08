"""Job scheduler using APScheduler."""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from devicewatch.monitor.device_monitor import CHECK_INTERVAL_SECONDS, DeviceMonitor

logger = logging.getLogger(__name__)

MONITOR_JOB_ID = "device_check"

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def _job_listener(event: JobExecutionEvent) -> None:
    """Listen for job execution events."""
    if event.code == EVENT_JOB_MAX_INSTANCES:
        logger.warning("Job %s skipped, previous cycle still running", event.job_id)
    elif getattr(event, "exception", None):
        logger.error(
            "Job %s failed with exception: %s",
            event.job_id,
            event.exception,
        )
    else:
        logger.debug("Job %s executed successfully", event.job_id)


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler.

    Jobs are kept in memory; nothing survives a restart.

    Returns:
        Configured AsyncIOScheduler instance.
    """
    job_defaults = {
        "coalesce": True,  # Combine missed runs into one
        "max_instances": 1,  # Cycles never overlap
        "misfire_grace_time": CHECK_INTERVAL_SECONDS,
    }

    return AsyncIOScheduler(
        job_defaults=job_defaults,
        timezone="UTC",
    )


def start_scheduler(monitor: DeviceMonitor) -> AsyncIOScheduler:
    """Start the scheduler with the monitoring job.

    Must be called from within a running event loop. The first cycle runs
    immediately, then every CHECK_INTERVAL_SECONDS.

    Args:
        monitor: Monitor whose run_cycle() is scheduled.

    Returns:
        The started scheduler.
    """
    global scheduler

    scheduler = create_scheduler()
    scheduler.add_listener(
        _job_listener,
        EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES,
    )

    scheduler.add_job(
        monitor.run_cycle,
        trigger=IntervalTrigger(seconds=CHECK_INTERVAL_SECONDS),
        id=MONITOR_JOB_ID,
        name="Device Reachability Check",
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True,
    )
    logger.info("Scheduled device check every %d seconds", CHECK_INTERVAL_SECONDS)

    scheduler.start()
    logger.info(
        "Scheduler started with %d jobs",
        len(scheduler.get_jobs()),
    )
    return scheduler


def shutdown_scheduler() -> None:
    """Shutdown the scheduler without waiting for a running cycle."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
    scheduler = None
