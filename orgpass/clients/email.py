"""Email delivery providers (Resend API in production, SMTP for development)."""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

import httpx
import structlog

from orgpass.config import settings
from orgpass.errors import EmailDeliveryError

logger = structlog.get_logger(__name__)


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    """Decoded JSON object body, or an empty dict for empty or non-JSON bodies"""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class EmailProvider(ABC):
    """Capability to send a single HTML email."""

    @abstractmethod
    async def send_email(self, to: str, from_email: str, subject: str, html: str) -> None:
        """
        Send an email.

        Raises:
            EmailDeliveryError: If the message could not be handed off
        """
        ...


class ResendEmailProvider(EmailProvider):
    """Email provider using the Resend API."""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None, timeout: float = 10.0):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        """Check if Resend is configured."""
        return bool(self.api_key)

    async def send_email(self, to: str, from_email: str, subject: str, html: str) -> None:
        if not self.enabled:
            logger.warning("resend_not_configured", to_email=to)
            raise EmailDeliveryError("RESEND_API_KEY not set, email not sent", details={"to": to})

        payload = {
            "from": from_email or settings.EMAIL_FROM,
            "to": [to],
            "subject": subject,
            "html": html,
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    timeout=self.timeout,
                )
        except httpx.TimeoutException as e:
            logger.error("resend_timeout", to_email=to)
            raise EmailDeliveryError("Request to Resend timed out", details={"to": to}, original_error=e) from e
        except httpx.HTTPError as e:
            logger.error("resend_error", error=str(e), to_email=to)
            raise EmailDeliveryError("Request to Resend failed", details={"to": to}, original_error=e) from e

        if response.status_code >= 400:
            error_data = _json_body(response)
            message = error_data.get("message") or response.text
            logger.error(
                "resend_email_failed",
                status_code=response.status_code,
                error=message,
                to_email=to,
            )
            raise EmailDeliveryError(
                f"Resend rejected the email: {message}",
                details={"to": to, "status_code": response.status_code},
            )

        logger.info(
            "resend_email_sent",
            to_email=to,
            subject=subject,
            message_id=_json_body(response).get("id"),
        )


class SMTPEmailProvider(EmailProvider):
    """Email provider using plain SMTP (Mailhog, Mailtrap, etc.)."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    def _build_message(self, to: str, from_email: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_email
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))
        return msg

    def _send(self, to: str, from_email: str, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            if self.use_tls:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(from_email, [to], msg.as_string())

    async def send_email(self, to: str, from_email: str, subject: str, html: str) -> None:
        from_email = from_email or settings.EMAIL_FROM
        msg = self._build_message(to, from_email, subject, html)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send, to, from_email, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("smtp_email_failed", error=str(e), to_email=to, smtp_host=self.host)
            raise EmailDeliveryError("SMTP delivery failed", details={"to": to}, original_error=e) from e

        logger.info("smtp_email_sent", to_email=to, subject=subject, smtp_host=self.host)


def get_email_provider() -> EmailProvider:
    """Build the provider selected by EMAIL_BACKEND"""
    if settings.EMAIL_BACKEND == "smtp":
        return SMTPEmailProvider()
    return ResendEmailProvider()
