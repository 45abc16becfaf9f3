"""SMTP email transport for alert notifications."""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the SMTP server."""

    pass


class EmailSender(ABC):
    """Anything that can deliver a multipart text/HTML email."""

    @abstractmethod
    async def send(
        self,
        recipients: list[str],
        subject: str,
        text_body: str,
        html_body: str,
    ) -> bool:
        """
        Deliver an email.

        Returns:
            True if the email was sent, False if delivery was skipped

        Raises:
            EmailDeliveryError: If delivery was attempted and failed
        """


class SmtpEmailClient(EmailSender):
    """
    Sends email through an SMTP server using STARTTLS.

    Delivery is skipped, with a warning, when no SMTP user or password
    is configured.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_address: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address or user
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def _build_message(
        self,
        recipients: list[str],
        subject: str,
        text_body: str,
        html_body: str,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send(
        self,
        recipients: list[str],
        subject: str,
        text_body: str,
        html_body: str,
    ) -> bool:
        if not self.is_configured:
            logger.warning("Email service not configured - skipping email send")
            return False

        message = self._build_message(recipients, subject, text_body, html_body)

        try:
            # smtplib blocks, run it in the default thread pool
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {str(e)}")
            raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e

        logger.info(f"Email '{subject}' sent to {len(recipients)} recipient(s)")
        return True
