"""
Monthly financial report delivery.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.modules.reports.financial_report import FinancialReportCsvService
from app.shared.services.notifications import NotificationService, get_notification_service

logger = logging.getLogger(__name__)


def previous_month_range(today: date) -> tuple[date, date]:
    """First and last day of the calendar month before `today`."""
    end_date = today.replace(day=1) - timedelta(days=1)
    return end_date.replace(day=1), end_date


def send_monthly_financial_report(
    db: Session,
    recipients: List[str],
    today: Optional[date] = None,
    notifier: Optional[NotificationService] = None,
) -> bool:
    """Email last month's four financial report CSVs to the recipients."""
    start_date, end_date = previous_month_range(today or date.today())

    attachments = FinancialReportCsvService(db, start_date, end_date).generate()
    subject = f"Monthly financial report - {start_date.strftime('%B %Y')}"

    notifier = notifier or get_notification_service()
    sent = notifier.send_email(recipients, subject, "Attached", attachments=attachments)
    if sent:
        logger.info(f"Sent {subject} to {len(recipients)} recipients")
    return sent
