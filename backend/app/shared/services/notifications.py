"""
Email Notification Service

Sends plain-text emails, optionally with text attachments (CSV reports),
over SMTP. Configure via SMTP_* settings; when SMTP isn't configured the
service logs a warning and reports the message as not sent.
"""

import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class NotificationService:
    """SMTP email sender."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.email_enabled = bool(self.config.SMTP_HOST and self.config.SMTP_USER)

        if self.email_enabled:
            logger.info(f"Email notifications enabled via {self.config.SMTP_HOST}")
        else:
            logger.warning("SMTP is not configured. Set SMTP_HOST and SMTP_USER to enable email.")

    def send_email(
        self,
        to: List[str],
        subject: str,
        body: str,
        attachments: Optional[Dict[str, str]] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient addresses
            subject: Subject line
            body: Plain text body
            attachments: filename -> text content (sent as text/csv)

        Returns:
            True if the message was handed to the SMTP server.
        """
        if not self.email_enabled:
            logger.warning(f"Email not sent (SMTP disabled): {subject}")
            return False
        if not to:
            logger.warning(f"Email not sent (no recipients): {subject}")
            return False

        msg = self._build_message(to, subject, body, attachments or {})

        try:
            server = smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT)
            server.starttls()
            if self.config.SMTP_PASSWORD:
                server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
            server.send_message(msg)
            server.quit()

            logger.info(f"Email sent to {len(to)} recipients: {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return False

    def _build_message(self, to: List[str], subject: str, body: str, attachments: Dict[str, str]) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = self.config.SMTP_FROM or self.config.SMTP_USER
        msg['To'] = ", ".join(to)
        msg['Subject'] = subject

        msg.attach(MIMEText(body, 'plain'))

        for filename, content in attachments.items():
            part = MIMEApplication(content.encode("utf-8"), _subtype="csv")
            part.add_header("Content-Disposition", "attachment", filename=filename)
            msg.attach(part)

        return msg


# Global instance
_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Get or create the global notification service instance."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
