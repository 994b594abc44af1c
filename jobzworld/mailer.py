"""Outgoing email: verification and password-reset messages."""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from .config import settings, Settings
from .logger import logger


class EmailDeliveryError(Exception):
    """Raised when a message could not be handed to the mail transport."""


def _layout(heading: str, intro: str, link: str, button: str, footer: str, note: str = "") -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3b82f6;">{heading}</h2>
        <p>{intro}</p>
        <div style="text-align: center; margin: 30px 0;">
          <a href="{link}"
             style="background-color: #3b82f6; color: white; padding: 12px 24px;
                    text-decoration: none; border-radius: 6px; display: inline-block;">
            {button}
          </a>
        </div>
        <p style="color: #6b7280; font-size: 14px;">
          {note}If the button doesn't work, copy and paste this link into your browser:<br>
          <a href="{link}">{link}</a>
        </p>
        <hr style="margin: 30px 0; border: 1px solid #e5e7eb;">
        <p style="color: #6b7280; font-size: 12px;">{footer}</p>
      </div>
    """


class Mailer(ABC):
    """Base mailer; backends implement ``send``."""

    def __init__(self, config: Settings = settings):
        self.sender = config.EMAIL_FROM
        self.frontend_url = config.FRONTEND_URL.rstrip("/")

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> None:
        """Deliver one HTML message or raise EmailDeliveryError."""

    async def send_verification_email(self, email: str, user_id: int) -> None:
        link = f"{self.frontend_url}/verify-email?userId={user_id}"
        html = _layout(
            heading="Welcome to Jobzworld!",
            intro="Thank you for creating your account. Please verify your email address to get started.",
            link=link,
            button="Verify Email Address",
            footer="If you didn't create an account with Jobzworld, please ignore this email.",
        )
        await self.send(email, "Verify your Jobzworld account", html)

    async def send_password_reset_email(self, email: str, reset_token: str) -> None:
        link = f"{self.frontend_url}/reset-password?token={reset_token}"
        html = _layout(
            heading="Password Reset Request",
            intro="We received a request to reset your Jobzworld account password.",
            link=link,
            button="Reset Password",
            note="This link will expire in 1 hour. ",
            footer=(
                "If you didn't request a password reset, please ignore this email. "
                "Your password will remain unchanged."
            ),
        )
        await self.send(email, "Reset your Jobzworld password", html)


class ConsoleMailer(Mailer):
    """Logs messages instead of delivering them (local development)."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info(f"[email] to={to} subject='{subject}'")
        logger.debug(html)


class SmtpMailer(Mailer):
    """Delivers through an SMTP relay; the blocking client runs in a worker thread."""

    def __init__(self, config: Settings = settings):
        super().__init__(config)
        self.host = config.SMTP_HOST
        self.port = config.SMTP_PORT
        self.user = config.SMTP_USER
        self.password = config.SMTP_PASSWORD
        self.use_tls = config.SMTP_USE_TLS
        self.timeout = config.SMTP_TIMEOUT

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.user:
                client.login(self.user, self.password or "")
            client.send_message(message)

    async def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email sending failed to {to}: {str(e)}")
            raise EmailDeliveryError("Failed to send email") from e
        logger.info(f"Email sent successfully to {to}")


def build_mailer(config: Settings = settings) -> Mailer:
    if config.EMAIL_BACKEND == "smtp":
        return SmtpMailer(config)
    return ConsoleMailer(config)
