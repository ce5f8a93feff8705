# File: app/core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def start_scheduler():
    """Start all scheduled jobs"""
    from app.core.otp_store import otp_store

    try:
        scheduler.add_job(
            otp_store.sweep,
            trigger=IntervalTrigger(seconds=settings.OTP_SWEEP_INTERVAL_SECONDS),
            id="otp_sweep",
            name="Drop expired OTP codes and verification tokens",
            replace_existing=True,
        )

        if not scheduler.running:
            scheduler.start()
        logger.info("✅ Scheduler started successfully")
        logger.info(f"Active jobs: {len(scheduler.get_jobs())}")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop scheduler gracefully"""
    try:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
