"""
Tests for outgoing email backends.
"""

import smtplib
import pytest
from unittest.mock import MagicMock, patch
from jobzworld.config import settings
from jobzworld.mailer import ConsoleMailer, EmailDeliveryError, Mailer, SmtpMailer, build_mailer


@pytest.fixture
def smtp_settings():
    return settings.model_copy(update={
        "EMAIL_BACKEND": "smtp",
        "SMTP_HOST": "smtp.example.com",
        "SMTP_PORT": 2525,
        "SMTP_USER": "mailer",
        "SMTP_PASSWORD": "secret",
        "FRONTEND_URL": "https://app.example.com/",
    })


def test_build_mailer_selects_backend(smtp_settings):
    assert isinstance(build_mailer(settings), ConsoleMailer)
    assert isinstance(build_mailer(smtp_settings), SmtpMailer)


def test_mailer_backends_must_implement_send():
    class Incomplete(Mailer):
        pass

    with pytest.raises(TypeError):
        Incomplete(settings)
    with pytest.raises(TypeError):
        Mailer(settings)


@pytest.mark.asyncio
async def test_console_mailer_logs():
    with patch("jobzworld.mailer.logger") as mock_logger:
        await ConsoleMailer(settings).send_verification_email("alice@example.com", 7)

    logged = mock_logger.info.call_args[0][0]
    assert "alice@example.com" in logged
    assert "Verify your Jobzworld account" in logged


@pytest.mark.asyncio
async def test_verification_link(mailer):
    await mailer.send_verification_email("alice@example.com", 42)

    message = mailer.sent[0]
    assert message["to"] == "alice@example.com"
    assert f"{settings.FRONTEND_URL}/verify-email?userId=42" in message["html"]


@pytest.mark.asyncio
async def test_reset_link(mailer):
    await mailer.send_password_reset_email("alice@example.com", "abc123")

    message = mailer.sent[0]
    assert message["subject"] == "Reset your Jobzworld password"
    assert f"{settings.FRONTEND_URL}/reset-password?token=abc123" in message["html"]
    assert "expire in 1 hour" in message["html"]


@pytest.mark.asyncio
async def test_smtp_mailer_delivers(smtp_settings):
    client = MagicMock()
    with patch("jobzworld.mailer.smtplib.SMTP") as mock_smtp:
        mock_smtp.return_value.__enter__.return_value = client
        await SmtpMailer(smtp_settings).send_password_reset_email("alice@example.com", "tok")

    mock_smtp.assert_called_once_with("smtp.example.com", 2525, timeout=smtp_settings.SMTP_TIMEOUT)
    client.starttls.assert_called_once()
    client.login.assert_called_once_with("mailer", "secret")
    sent = client.send_message.call_args[0][0]
    assert sent["To"] == "alice@example.com"
    assert sent["Subject"] == "Reset your Jobzworld password"
    # Trailing slash on the frontend URL is not doubled
    assert "https://app.example.com/reset-password?token=tok" in sent.get_body(("html",)).get_content()


@pytest.mark.asyncio
async def test_smtp_failure_raises_delivery_error(smtp_settings):
    with patch("jobzworld.mailer.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
        with pytest.raises(EmailDeliveryError):
            await SmtpMailer(smtp_settings).send("alice@example.com", "Hi", "<p>Hi</p>")


@pytest.mark.asyncio
async def test_smtp_network_error_raises_delivery_error(smtp_settings):
    with patch("jobzworld.mailer.smtplib.SMTP", side_effect=ConnectionRefusedError()):
        with pytest.raises(EmailDeliveryError):
            await SmtpMailer(smtp_settings).send("alice@example.com", "Hi", "<p>Hi</p>")
