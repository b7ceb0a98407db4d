"""
Email Service for the prediction league

Sends operational email over SMTP. Player-facing summary emails are produced
by the email endpoint of the web app; see app/services/summary_email_service.py.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

from app.utils.timezone_utils import format_local

logger = logging.getLogger(__name__)


class EmailService:
    """Handles SMTP email sending"""

    def __init__(self):
        self.smtp_server = current_app.config.get("MAIL_SERVER") or "localhost"
        self.smtp_port = current_app.config.get("MAIL_PORT", 587)
        self.smtp_username = current_app.config.get("MAIL_USERNAME")
        self.smtp_password = current_app.config.get("MAIL_PASSWORD")
        self.from_email = current_app.config.get(
            "FROM_EMAIL"
        ) or current_app.config.get("MAIL_USERNAME", "noreply@example.com")
        self.from_name = current_app.config.get("FROM_NAME", "Prediction League")
        self.use_tls = current_app.config.get("MAIL_USE_TLS", True)

    def _create_message(self, recipients, subject, body_text, body_html=None):
        """Create email message"""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = ", ".join(recipients)

        msg.attach(MIMEText(body_text, "plain"))

        if body_html:
            msg.attach(MIMEText(body_html, "html"))

        return msg

    def _send_email(self, message, recipients):
        """Send email message"""
        try:
            if not self.smtp_username or not self.smtp_password:
                logger.warning("SMTP credentials not configured. Email not sent.")
                return False

            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, recipients, message.as_string())

            logger.info(f"Email sent successfully to {message['To']}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {message['To']}: {str(e)}")
            return False

    def send_cron_alert(self, event, recipients):
        """Send a cron job alert to the operators

        Args:
            event: alert dict built by CronAlertingService
            recipients: list of email addresses
        """
        if not recipients:
            return False

        subject = (
            f"[{event['severity'].upper()}] Cron Job Alert: {event['job_name']}"
        )

        details = "\n".join(
            f"        {key}: {value}" for key, value in event.get("details", {}).items()
        )

        body_text = f"""
        Cron job alert ({event['type']})

        Job: {event['job_name']}
        Severity: {event['severity']}
        Time: {format_local(event['timestamp'])}

        {event['message']}

        Details:
{details}
        """

        message = self._create_message(recipients, subject, body_text)
        return self._send_email(message, recipients)

    def test_email_configuration(self):
        """Test email configuration"""
        try:
            if not self.smtp_username or not self.smtp_password:
                return False, "SMTP credentials not configured"

            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_username, self.smtp_password)

            return True, "Email configuration is working"

        except (smtplib.SMTPException, OSError) as e:
            return False, f"Email configuration error: {str(e)}"
