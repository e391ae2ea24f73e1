"""
Scheduler Service for Periodic Jobs

Uses APScheduler to run background jobs. Currently:
- Monthly financial report email, 1st of each month at 6:00 AM (REPORT_TIMEZONE)
"""

import logging
from typing import Optional
import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.modules.reports.jobs import send_monthly_financial_report

logger = logging.getLogger(__name__)


class ReportScheduler:
    """Manages scheduled report jobs."""

    def __init__(self):
        self.timezone = pytz.timezone(settings.REPORT_TIMEZONE)
        self.scheduler = BackgroundScheduler(timezone=self.timezone)
        self.scheduler.start()
        logger.info("Report scheduler started")

    def setup_schedules(self):
        """Set up all scheduled jobs."""
        self.scheduler.add_job(
            self.run_monthly_financial_report,
            trigger=CronTrigger(
                day=1,
                hour=6,
                minute=0,
                timezone=self.timezone
            ),
            id='monthly_financial_report',
            name='Monthly financial report email (1st of month, 6:00 AM)',
            replace_existing=True,
            misfire_grace_time=60 * 60,
        )

        logger.info("Scheduled jobs configured")

    def run_monthly_financial_report(self):
        """Generate last month's financial report and email it to the configured recipients."""
        recipients = settings.FINANCIAL_REPORT_RECIPIENTS
        if not recipients:
            logger.warning("FINANCIAL_REPORT_RECIPIENTS is empty, skipping monthly financial report")
            return

        db: Session = SessionLocal()
        try:
            send_monthly_financial_report(db, recipients)
        except Exception as e:
            logger.error(f"Monthly financial report failed: {e}", exc_info=True)
        finally:
            db.close()

    def shutdown(self):
        """Shutdown the scheduler."""
        self.scheduler.shutdown()
        logger.info("Report scheduler stopped")


# Global scheduler instance
_scheduler: Optional[ReportScheduler] = None


def start_scheduler():
    """Start the report scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReportScheduler()
        _scheduler.setup_schedules()
        logger.info("Report scheduler started and configured")
    else:
        logger.info("Report scheduler already running")


def stop_scheduler():
    """Stop the report scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown()
        _scheduler = None
        logger.info("Report scheduler stopped")
