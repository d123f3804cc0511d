# =======================================================================================
# gatekeeper/services/notification_service.py - Outbound Visitor Alerts
# =======================================================================================
import smtplib
from email.message import EmailMessage
from typing import Optional
from loguru import logger
from ..config import config


class EmailNotifier:
    """
    Sends the "visitor at the gate" alert to a resident.

    Falls back to logging the alert when no SMTP host is configured, so local
    setups still show what would have been sent. Delivery errors propagate to
    the caller; the notification worker is what keeps them off the gate path.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None):
        self.host = host or config.SMTP_HOST
        self.port = port or config.SMTP_PORT

    def notify(self, to_email: str, recipient_name: str, subject_name: str, context: Optional[str]) -> None:
        message = self.build_message(to_email, recipient_name, subject_name, context)

        if not self.host:
            logger.info("[notify] SMTP not configured; alert for {} -> {}: {}", subject_name, to_email, message["Subject"])
            return

        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            if config.SMTP_USE_TLS:
                smtp.starttls()
            if config.SMTP_USERNAME:
                smtp.login(config.SMTP_USERNAME, config.SMTP_PASSWORD or "")
            smtp.send_message(message)
        logger.info("[notify] visitor alert sent to {}", to_email)

    @staticmethod
    def build_message(to_email: str, recipient_name: str, subject_name: str, context: Optional[str]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = config.MAIL_FROM
        message["To"] = to_email
        message["Subject"] = f"Visitor Arrival Alert - {subject_name}"
        message.set_content(
            f"Hello {recipient_name or 'Resident'},\n\n"
            f"Visitor: {subject_name}\n"
            f"Purpose: {context or 'Not specified'}\n"
            f"Location: {config.DEFAULT_GATE}\n\n"
            "If you were not expecting this visitor, please contact the security gate immediately.\n"
        )
        return message
