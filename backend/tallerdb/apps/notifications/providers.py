from __future__ import annotations

import os
import smtplib
from email.message import EmailMessage
from typing import Optional, Tuple


class EmailProvider:
    def send(
        self,
        *,
        recipient: str,
        subject: str,
        html: str,
        correlation_id: Optional[str],
    ) -> None:
        raise NotImplementedError


class NoopProvider(EmailProvider):
    def send(
        self,
        *,
        recipient: str,
        subject: str,
        html: str,
        correlation_id: Optional[str],
    ) -> None:
        return None


class SmtpProvider(EmailProvider):
    """Plain SMTP delivery configured from SMTP_* environment variables."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        starttls: bool = True,
        timeout: int = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.starttls = starttls
        self.timeout = timeout

    def send(
        self,
        *,
        recipient: str,
        subject: str,
        html: str,
        correlation_id: Optional[str],
    ) -> None:
        if not self.sender:
            raise ValueError("SMTP_FROM (or SMTP_USER) must be set to send email")

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        if correlation_id:
            msg["X-Correlation-ID"] = correlation_id
        msg.set_content("Este mensaje requiere un cliente de correo compatible con HTML.")
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            if self.starttls:
                s.starttls()
            if self.user and self.password:
                s.login(self.user, self.password)
            s.send_message(msg)


def _smtp_from_env() -> SmtpProvider:
    host = os.getenv("SMTP_HOST")
    if not host:
        raise ValueError("SMTP_HOST is not set; define SMTP_* to enable email delivery")
    return SmtpProvider(
        host=host,
        port=int(os.getenv("SMTP_PORT", "587")),
        user=os.getenv("SMTP_USER"),
        password=os.getenv("SMTP_PASS"),
        sender=os.getenv("SMTP_FROM"),
        starttls=os.getenv("SMTP_STARTTLS", "true").strip().lower() not in {"0", "false", "no"},
    )


def get_email_provider() -> Tuple[EmailProvider, bool]:
    provider_name = (
        os.getenv("NOTIFICATIONS_EMAIL_PROVIDER")
        or os.getenv("EMAIL_PROVIDER")
        or ""
    ).strip().lower()
    if not provider_name or provider_name in {"none", "noop", "disabled"}:
        return NoopProvider(), False
    if provider_name == "smtp":
        return _smtp_from_env(), True
    raise ValueError(f"Unsupported email provider: {provider_name}")
