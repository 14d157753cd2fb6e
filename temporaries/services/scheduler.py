"""
Sweep Scheduler Service using APScheduler.
Runs the temporaries sweeper at a fixed interval.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.base import JobLookupError
from typing import Dict, Optional

from temporaries.core.logging import get_logger
from .sweeper import TemporarySweeper

logger = get_logger(__name__)

SWEEP_JOB_ID = "temporaries-sweep"

_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone="UTC")
    return _scheduler


def start_scheduler():
    """Start the scheduler if not already running.

    Must be called from within a running event loop.
    """
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    global _scheduler
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown")
    _scheduler = None


def register_sweep_job(
    sweeper: TemporarySweeper,
    interval: int,
    job_id: str = SWEEP_JOB_ID,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> str:
    """
    Register a periodic sweep.

    Args:
        sweeper: Sweeper whose sweep() is awaited on every run
        interval: Seconds between runs
        job_id: Unique identifier for the job
        scheduler: Scheduler to use (default: the singleton)

    Returns:
        The job_id
    """
    scheduler = scheduler or get_scheduler()

    scheduler.add_job(
        sweeper.sweep,
        trigger=IntervalTrigger(seconds=interval, timezone="UTC"),
        id=job_id,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info("Registered sweep job", job_id=job_id, interval=interval)
    return job_id


def remove_sweep_job(job_id: str = SWEEP_JOB_ID,
                     scheduler: Optional[AsyncIOScheduler] = None) -> bool:
    """Remove a sweep job. Returns False if it was not registered."""
    scheduler = scheduler or get_scheduler()
    try:
        scheduler.remove_job(job_id)
        logger.info("Removed sweep job", job_id=job_id)
        return True
    except JobLookupError:
        logger.warning("Sweep job not found", job_id=job_id)
        return False


def get_job_info(job_id: str = SWEEP_JOB_ID,
                 scheduler: Optional[AsyncIOScheduler] = None) -> Optional[Dict]:
    """Get information about a scheduled job, None if not found."""
    scheduler = scheduler or get_scheduler()
    job = scheduler.get_job(job_id)
    if job:
        # Jobs added before the scheduler starts have no next run yet
        next_run_time = getattr(job, "next_run_time", None)
        return {
            "id": job.id,
            "next_run_time": next_run_time.isoformat() if next_run_time else None,
            "trigger": str(job.trigger)
        }
    return None
