# milkflow/services/scheduler_service.py
"""
In-app job scheduler (APScheduler).

Jobs:
- daily_summary: every day at DAILY_SUMMARY_HOUR:DAILY_SUMMARY_MINUTE in APP_TIMEZONE
"""
from __future__ import annotations

import atexit
import logging
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .daily_summary import send_daily_summaries

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def run_with_context(app, func):
    """Wrap a job so it runs inside an app context and logs instead of dying."""
    def wrapper():
        with app.app_context():
            try:
                return func()
            except Exception:
                app.logger.exception("Scheduler error in %s", func.__name__)
                return None
    wrapper.__name__ = func.__name__
    return wrapper


def daily_summary_job():
    logger.info("[SCHEDULER] Starting daily_summary_job...")
    run = send_daily_summaries()
    logger.info("[SCHEDULER] daily_summary_job: total=%d sent=%d", run.total, run.sent)
    return run


def init_scheduler(app) -> None:
    """Called from create_app() when SCHEDULER_ENABLED is set."""
    # Avoid a second scheduler under the reloader
    if scheduler.running:
        return

    tz = ZoneInfo(app.config.get("APP_TIMEZONE") or "UTC")
    scheduler.add_job(
        func=run_with_context(app, daily_summary_job),
        trigger=CronTrigger(
            hour=app.config["DAILY_SUMMARY_HOUR"],
            minute=app.config["DAILY_SUMMARY_MINUTE"],
            timezone=tz,
        ),
        id="daily_summary",
        name="Daily supplier SMS summary",
        replace_existing=True,
    )
    scheduler.start()
    atexit.register(shutdown_scheduler)
    app.logger.info(
        "Scheduler started: daily_summary at %02d:%02d %s",
        app.config["DAILY_SUMMARY_HOUR"],
        app.config["DAILY_SUMMARY_MINUTE"],
        tz.key,
    )


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
