"""Outbound email transports used by the reminder engine."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Tuple

import requests

from reminder_sync.core.config import SyncConfig
from reminder_sync.core.errors import ConfigurationError, DeliveryFailure

logger = logging.getLogger(__name__)

GMAIL_HOST = "smtp.gmail.com"
GMAIL_PORT = 465
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class SmtpTransport:
    """Send plain-text mail through an SMTP relay (SSL on 465, STARTTLS otherwise)."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str,
        sender_name: str = "",
        use_ssl: bool | None = None,
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.sender_name = sender_name
        self.use_ssl = port == 465 if use_ssl is None else use_ssl
        self.timeout = timeout

    def _message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.sender_name, self.sender)) if self.sender_name else self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str) -> None:
        message = self._message(to, subject, body)
        try:
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
                    server.login(self.user, self.password)
                    server.send_message(message)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls()
                    server.login(self.user, self.password)
                    server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailure(str(exc) or exc.__class__.__name__) from exc
        logger.debug("SMTP delivered %r to %s via %s", subject, to, self.host)


class SendGridTransport:
    """Send plain-text mail through the SendGrid v3 REST API."""

    def __init__(self, api_key: str, sender: str, sender_name: str = "", timeout: int = 30) -> None:
        self.api_key = api_key
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self.session = requests.Session()

    def send(self, to: str, subject: str, body: str) -> None:
        sender = {"email": self.sender}
        if self.sender_name:
            sender["name"] = self.sender_name
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": sender,
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        try:
            response = self.session.post(
                SENDGRID_URL,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            detail = exc.response.text[:200] if exc.response is not None else ""
            raise DeliveryFailure(f"SendGrid rejected message: {exc} {detail}".strip()) from exc
        except requests.RequestException as exc:
            raise DeliveryFailure(f"SendGrid request failed: {exc}") from exc
        logger.debug("SendGrid accepted %r for %s", subject, to)


class DryRunTransport:
    """Log messages instead of sending them; every send succeeds."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info("[DRY-RUN] Would send to %s | subject=%s", to, subject)
        self.sent.append((to, subject, body))


def build_transport(config: SyncConfig):
    """Create the transport selected by ``config.email_provider``."""

    provider = config.email_provider
    if provider == "dry-run":
        return DryRunTransport()
    if provider == "gmail":
        return SmtpTransport(
            GMAIL_HOST,
            GMAIL_PORT,
            config.email_user,
            config.email_pass,
            sender=config.email_user,
            sender_name=config.sender_name,
        )
    if provider == "smtp":
        return SmtpTransport(
            config.smtp_host,
            config.smtp_port,
            config.email_user,
            config.email_pass,
            sender=config.email_from,
            sender_name=config.sender_name,
            use_ssl=True if config.smtp_secure else None,
        )
    if provider == "sendgrid":
        return SendGridTransport(config.sendgrid_api_key, config.email_from, config.sender_name)
    raise ConfigurationError(f"Unknown EMAIL_PROVIDER: {provider}")
