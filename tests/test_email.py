"""Tests for the SMTP email service."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.config import Settings
from app.services.email import EmailSendError, EmailService


@pytest.fixture(name="email_settings")
def email_settings_fixture() -> Settings:
    return Settings(
        EMAIL_HOST="smtp.test",
        EMAIL_PORT=587,
        EMAIL_USER="mailer",
        EMAIL_PASS="secret",
        EMAIL_FROM="noreply@propease.test",
        APP_URL="https://app.propease.test",
    )


@pytest.fixture(name="smtp")
def smtp_fixture():
    """Patch smtplib.SMTP and yield the connection mock used inside ``with``."""
    with patch("app.services.email.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value = server
        server.__enter__.return_value = server
        yield server


class TestEmailService:
    """Tests for EmailService."""

    def test_password_reset_email(self, email_settings: Settings, smtp: MagicMock):
        service = EmailService(email_settings)
        service.send_password_reset_email("tenant@example.com", "Terry", "abc123")

        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "secret")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "tenant@example.com"
        assert message["From"] == "PropEase <noreply@propease.test>"
        assert "Reset your PropEase password" == message["Subject"]

        link = "https://app.propease.test/reset-password?token=abc123"
        assert link in message.get_body(preferencelist=("plain",)).get_content()
        html = message.get_body(preferencelist=("html",)).get_content()
        assert link in html
        assert "Terry" in html

    def test_welcome_and_password_changed(self, email_settings: Settings, smtp: MagicMock):
        service = EmailService(email_settings)
        service.send_welcome_email("pm@example.com", "Pat")
        service.send_password_changed_email("pm@example.com", "Pat")
        subjects = [call.args[0]["Subject"] for call in smtp.send_message.call_args_list]
        assert subjects == ["Welcome to PropEase", "Your PropEase password was changed"]

    def test_template_escapes_names(self, email_settings: Settings, smtp: MagicMock):
        EmailService(email_settings).send_welcome_email("pm@example.com", "<script>")
        html = smtp.send_message.call_args.args[0].get_body(preferencelist=("html",)).get_content()
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_smtp_failure_raises(self, email_settings: Settings, smtp: MagicMock):
        smtp.send_message.side_effect = smtplib.SMTPException("rejected")
        with pytest.raises(EmailSendError):
            EmailService(email_settings).send_welcome_email("pm@example.com", "Pat")

    def test_login_failure_closes_connection(self, email_settings: Settings, smtp: MagicMock):
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with pytest.raises(EmailSendError):
            EmailService(email_settings).send_welcome_email("pm@example.com", "Pat")
        smtp.close.assert_called_once()
        smtp.send_message.assert_not_called()

    def test_connection_failure_raises(self, email_settings: Settings):
        with patch("app.services.email.smtplib.SMTP", side_effect=ConnectionRefusedError("no server")):
            with pytest.raises(EmailSendError):
                EmailService(email_settings).send_welcome_email("pm@example.com", "Pat")

    def test_implicit_tls_port(self, email_settings: Settings):
        email_settings.EMAIL_PORT = 465
        with patch("app.services.email.smtplib.SMTP_SSL") as ssl_cls:
            server = MagicMock()
            ssl_cls.return_value = server
            server.__enter__.return_value = server
            EmailService(email_settings).send_welcome_email("pm@example.com", "Pat")
        ssl_cls.assert_called_once()
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()

    def test_verify_connection(self, email_settings: Settings, smtp: MagicMock):
        service = EmailService(email_settings)
        assert service.verify_connection() is True
        smtp.noop.side_effect = smtplib.SMTPServerDisconnected("gone")
        assert service.verify_connection() is False


class TestStartupCheck:
    """Tests for the SMTP check run when the app starts."""

    def test_skipped_without_credentials(self, monkeypatch: pytest.MonkeyPatch):
        import main

        service = MagicMock()
        monkeypatch.setattr(main.settings, "EMAIL_USER", "")
        monkeypatch.setattr(main, "get_email_service", lambda: service)
        main.check_email_configuration()
        service.verify_connection.assert_not_called()

    def test_runs_with_credentials(self, monkeypatch: pytest.MonkeyPatch):
        import main

        service = MagicMock()
        service.verify_connection.return_value = False
        monkeypatch.setattr(main.settings, "EMAIL_USER", "mailer")
        monkeypatch.setattr(main, "get_email_service", lambda: service)
        main.check_email_configuration()
        service.verify_connection.assert_called_once()
