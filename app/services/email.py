"""Outgoing email over SMTP.

Messages are rendered from the Jinja2 templates in ``app/templates/email``
and sent with a plain-text alternative part.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import Settings, get_settings

logger = logging.getLogger("propease")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailSendError(Exception):
    """Raised when a message could not be handed to the SMTP server."""


class EmailService:
    """Sends transactional emails (password reset, welcome, password changed)."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.templates = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        timeout = s.EMAIL_TIMEOUT_SECONDS
        if s.EMAIL_PORT == 465:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                s.EMAIL_HOST, s.EMAIL_PORT, timeout=timeout, context=ssl.create_default_context()
            )
        else:
            server = smtplib.SMTP(s.EMAIL_HOST, s.EMAIL_PORT, timeout=timeout)
        try:
            if s.EMAIL_PORT != 465:
                server.starttls(context=ssl.create_default_context())
            if s.EMAIL_USER:
                server.login(s.EMAIL_USER, s.EMAIL_PASS)
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def render(self, template: str, **context) -> str:
        context.setdefault("app_name", self.settings.APP_NAME)
        return self.templates.get_template(template).render(**context)

    def send_email(self, to: str, subject: str, html: str, text: str) -> None:
        """Send one message. Raises EmailSendError on any SMTP or network failure."""
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"{self.settings.APP_NAME} <{self.settings.EMAIL_FROM}>"
        message["To"] = to
        message.set_content(text)
        message.add_alternative(html, subtype="html")

        try:
            with self._connect() as server:
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email '%s': %s", subject, e)
            raise EmailSendError(str(e)) from e
        logger.info("Email sent: %s", subject)

    def send_password_reset_email(self, to: str, first_name: str, token: str) -> None:
        reset_url = f"{self.settings.APP_URL}/reset-password?token={token}"
        expires = self.settings.PASSWORD_RESET_EXPIRE_MINUTES
        subject = f"Reset your {self.settings.APP_NAME} password"
        html = self.render(
            "password_reset.html",
            subject=subject,
            first_name=first_name,
            reset_url=reset_url,
            expires_minutes=expires,
        )
        text = (
            f"Hi {first_name},\n\n"
            f"Reset your password by opening this link:\n{reset_url}\n\n"
            f"The link expires in {expires} minutes. If you did not request a reset, ignore this email."
        )
        self.send_email(to, subject, html, text)

    def send_welcome_email(self, to: str, first_name: str) -> None:
        login_url = f"{self.settings.APP_URL}/login"
        subject = f"Welcome to {self.settings.APP_NAME}"
        html = self.render("welcome.html", subject=subject, first_name=first_name, login_url=login_url)
        text = f"Welcome, {first_name}!\n\nYour account is ready. Sign in at {login_url}"
        self.send_email(to, subject, html, text)

    def send_password_changed_email(self, to: str, first_name: str) -> None:
        forgot_url = f"{self.settings.APP_URL}/forgot-password"
        subject = f"Your {self.settings.APP_NAME} password was changed"
        html = self.render("password_changed.html", subject=subject, first_name=first_name, forgot_url=forgot_url)
        text = (
            f"Hi {first_name},\n\n"
            "Your password was just changed and all devices were signed out.\n"
            f"If this was not you, reset your password at {forgot_url}"
        )
        self.send_email(to, subject, html, text)

    def verify_connection(self) -> bool:
        """Check SMTP connectivity and credentials without sending anything."""
        try:
            with self._connect() as server:
                server.noop()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP connection check failed: %s", e)
            return False
        return True


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService(get_settings())
    return _email_service
