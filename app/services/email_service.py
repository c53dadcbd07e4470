"""
Email service for sending import notifications.
"""

import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader

from app.services.config_service import config_service

logger = logging.getLogger("app.email")


class EmailService:
    def __init__(self, template_dir: Optional[str] = None):
        self.smtp_host = config_service.get_setting("SMTP_HOST", "mailhog")
        self.smtp_port = config_service.get_int("SMTP_PORT", 1025)
        self.smtp_user = config_service.get_setting("SMTP_USER", "")
        self.smtp_password = config_service.get_setting("SMTP_PASSWORD", "")
        self.from_email = config_service.get_setting("FROM_EMAIL", "noreply@droxstock.local")
        self.from_name = config_service.get_setting("FROM_NAME", "Droxstock")

        # Absolute path so workers started from any directory find the templates
        if template_dir is None:
            app_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            template_dir = os.path.join(app_dir, "ui", "templates")
        self.jinja_env = Environment(loader=FileSystemLoader(template_dir), autoescape=True)

    def _send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> bool:
        """
        Send email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML email content
            text_content: Plain text email content (optional)

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, "plain", "utf-8"))
            msg.attach(MIMEText(html_content, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)

                server.send_message(msg)

            logger.info(f"Email sent successfully to {to_email}, subject: {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def render_import_completion(self, details: Dict[str, Any]) -> str:
        template = self.jinja_env.get_template("email/csv_processing_complete.html")
        return template.render(**details)

    def render_import_failure(self, details: Dict[str, Any]) -> str:
        template = self.jinja_env.get_template("email/csv_processing_failed.html")
        return template.render(**details)

    def send_import_completion(self, user_email: str, details: Dict[str, Any]) -> bool:
        """
        Send the report of a finished CSV import.

        Args:
            user_email: Recipient
            details: File info, processing stats, quality and business figures

        Returns:
            bool: True if email sent successfully
        """
        html_content = self.render_import_completion(details)
        subject = f"CSV Processing Complete - {details.get('file_name', '')}"
        return self._send_email(user_email, subject, html_content)

    def send_import_failure(self, user_email: str, details: Dict[str, Any]) -> bool:
        """
        Send notice that a CSV import job failed.

        Args:
            user_email: Recipient
            details: file_name, error and failed_at

        Returns:
            bool: True if email sent successfully
        """
        html_content = self.render_import_failure(details)
        subject = f"CSV Processing Failed - {details.get('file_name', '')}"
        return self._send_email(user_email, subject, html_content)
