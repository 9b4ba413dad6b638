"""
Scheduler service for deferred work.

Features:
- One-shot delayed jobs (removal of broken quotes after a short grace period)
"""
import os
import logging
from datetime import datetime, timedelta, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "UTC")

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=TIMEZONE)


def schedule_once(func, delay_seconds: float, *args):
    """Run `func(*args)` once after `delay_seconds`. Coroutine functions are awaited by the scheduler."""
    run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
    job = scheduler.add_job(func, "date", run_date=run_date, args=list(args), misfire_grace_time=60)
    logger.info(f"Scheduled {getattr(func, '__name__', func)} at {run_date.isoformat()}")
    return job


def start_scheduler():
    """Start the scheduler."""
    if not scheduler.running:
        scheduler.start()
        logger.info(f"Scheduler started ({TIMEZONE})")


def stop_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
