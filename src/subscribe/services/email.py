"""Email service for sending confirmation emails."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib

from subscribe.config import Settings
from subscribe.strings import DEFAULT_LANGUAGE, UIStrings, get_strings

logger = logging.getLogger(__name__)


class EmailError(Exception):
    """An email could not be sent."""

    pass


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> None:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text content (optional)

        Raises:
            EmailError: If the email could not be handed to the transport
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
    ) -> None:
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
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host and self.port and self.username and self.password)

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> None:
        """Send email via SMTP."""
        if not self.configured:
            logger.error("SMTP configuration missing. Cannot send email.")
            raise EmailError("Email configuration missing")

        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject

        # Add plain text part
        if text:
            message.attach(MIMEText(text, "plain", "utf-8"))

        # Add HTML part
        message.attach(MIMEText(html, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e}")
            raise EmailError(str(e)) from e
        logger.info(f"Email sent via SMTP to {to}")


def get_email_backend(settings: Settings) -> EmailBackend:
    """Get the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.smtp_from,
            timeout=settings.smtp_timeout,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


class EmailService:
    """High-level email service for sending confirmation emails."""

    def __init__(
        self,
        backend: EmailBackend,
        ui_strings: dict[str, UIStrings],
        list_description: str = "",
    ):
        self.backend = backend
        self.ui_strings = ui_strings
        self.list_description = list_description

    async def send_confirmation(
        self,
        to: str,
        action: str,
        confirm_url: str,
        lang: str = DEFAULT_LANGUAGE,
    ) -> None:
        """Send a subscribe or unsubscribe confirmation email.

        Args:
            to: Recipient email address
            action: "subscribe" or "unsubscribe", selects the templates
            confirm_url: The full confirmation link
            lang: UI language of the request

        Raises:
            EmailError: If sending failed
        """
        emails = get_strings(self.ui_strings, lang)["emails"]
        subject = emails[f"{action}_subject"].format(list_name=self.list_description)
        text = emails[f"{action}_body_text"].format(email=to, url=confirm_url)
        html = emails[f"{action}_body_html"].format(
            email=escape(to), url=escape(confirm_url, quote=True)
        )

        logger.info(f"Sending {action} confirmation email to: {to}")
        await self.backend.send(to=to, subject=subject, html=html, text=text)
        logger.info(f"{action} confirmation email sent to {to}")
