"""Email service for sending login codes and welcome emails."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
import httpx

from academy.config import Settings, settings

logger = logging.getLogger(__name__)


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text content (optional)
            reply_to: Reply-To address (optional)

        Returns:
            True if sent successfully
        """
        pass


class ConsoleEmailBackend(EmailBackend):
    """Email backend that logs to console (for development)."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Log email to console instead of sending."""
        logger.info(
            f"\n{'='*60}\n"
            f"EMAIL (console backend - not sent)\n"
            f"{'='*60}\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"{'='*60}\n"
            f"{text or html}\n"
            f"{'='*60}\n"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Send email via SMTP."""
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        if reply_to:
            message["Reply-To"] = reply_to

        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
            logger.info(f"Email sent via SMTP to {to}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e}")
            return False


class ResendEmailBackend(EmailBackend):
    """Email backend using Resend API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Send email via Resend API."""
        payload: dict[str, object] = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    timeout=30.0,
                )
                response.raise_for_status()
                logger.info(f"Email sent via Resend to {to}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Failed to send email via Resend to {to}: {e}")
                return False


def get_email_backend(config: Settings | None = None) -> EmailBackend:
    """Get the configured email backend."""
    config = config or settings
    if config.email_backend == "console":
        return ConsoleEmailBackend()
    elif config.email_backend == "smtp":
        return SMTPEmailBackend(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_address=config.email_from,
        )
    elif config.email_backend == "resend":
        return ResendEmailBackend(
            api_key=config.resend_api_key,
            from_address=config.email_from,
        )
    else:
        raise ValueError(f"Unknown email backend: {config.email_backend}")


class EmailService:
    """High-level email service for sending application emails.

    Delivery is best effort: every public method returns False instead of
    raising, so a mail outage never undoes a code or purchase that has
    already been stored.
    """

    def __init__(self, backend: EmailBackend | None = None, config: Settings | None = None):
        self._backend = backend
        self.config = config or settings

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend(self.config)
        return self._backend

    async def _deliver(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        reply_to: str | None = None,
    ) -> bool:
        try:
            sent = await self.backend.send(
                to=to, subject=subject, html=html, text=text, reply_to=reply_to
            )
        except Exception:
            logger.exception(f"Email backend raised while sending to {to}")
            return False
        if not sent:
            logger.warning(f"Email to {to} was not delivered: {subject!r}")
        return sent

    async def send_login_code(self, to: str, code: str, expires_minutes: int) -> bool:
        """Send a one-time login code.

        Args:
            to: Recipient email address
            code: The six digit code
            expires_minutes: Minutes until the code expires

        Returns:
            True if sent successfully
        """
        subject = f"Your login code: {code}"

        html = f"""
<div style="font-family: sans-serif; max-width: 400px; margin: 0 auto; padding: 40px 20px;">
    <h2 style="color: #1e1b4b;">Your login code</h2>
    <p style="font-size: 36px; font-weight: bold; letter-spacing: 8px; color: #7c3aed; margin: 24px 0;">{code}</p>
    <p style="color: #64748b;">This code expires in {expires_minutes} minutes.</p>
    <p style="color: #64748b; font-size: 14px;">If you didn't request this email, you can safely ignore it.</p>
</div>
"""

        text = f"""
Your login code
===============

{code}

This code expires in {expires_minutes} minutes.

If you didn't request this email, you can safely ignore it.
"""

        return await self._deliver(to=to, subject=subject, html=html, text=text)

    async def send_welcome(self, to: str, code: str, course_slug: str, expires_hours: int) -> bool:
        """Send the post-purchase welcome email with a login code."""
        course_title = self.config.course_title(course_slug)
        login_url = f"{self.config.app_url}/login"
        subject = f"Welcome to the {course_title}!"

        html = f"""
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; max-width: 500px; margin: 0 auto; padding: 40px 20px;">
    <h1 style="color: #1e1b4b; font-size: 24px;">Welcome aboard!</h1>
    <p style="color: #374151; font-size: 16px; line-height: 1.6;">
        Thank you for purchasing the <strong>{course_title}</strong>.
    </p>
    <p style="color: #374151; font-size: 16px; line-height: 1.6;">
        To access your course, log in at <a href="{login_url}" style="color: #7c3aed;">{login_url}</a>
        with this email address. Your one-time login code:
    </p>
    <p style="font-size: 36px; font-weight: bold; letter-spacing: 8px; color: #7c3aed; margin: 24px 0; text-align: center;">{code}</p>
    <p style="color: #6b7280; font-size: 14px;">
        This code expires in {expires_hours} hours. You can always request a new one on the login page.
    </p>
    <div style="margin-top: 32px; padding-top: 24px; border-top: 1px solid #e5e7eb;">
        <a href="{login_url}"
           style="display: inline-block; background: #7c3aed; color: white; padding: 12px 32px; border-radius: 999px; text-decoration: none; font-weight: 600;">
            Go to your course
        </a>
    </div>
</div>
"""

        text = f"""
Welcome to the {course_title}!
{'=' * (len(course_title) + 16)}

Thank you for your purchase. Log in at {login_url} with this email address.

Your one-time login code: {code}

This code expires in {expires_hours} hours. You can always request a new one on the login page.
"""

        return await self._deliver(
            to=to,
            subject=subject,
            html=html,
            text=text,
            reply_to=self.config.email_reply_to or None,
        )


# Global email service instance
email_service = EmailService()
