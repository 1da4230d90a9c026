"""
Email delivery for bulletin notifications.

Two transports are supported behind the same connect/send seam:
- SMTP (preferred when SMTP_HOST/PORT/USERNAME/PASSWORD are all set)
- Resend API (when RESEND_API_KEY is set)

A transport is connected once per dispatch pass and the resulting session is
reused for every recipient.
"""

import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any

import resend
from pydantic import BaseModel, Field

from notifications.bulletin_html import render_bulletin_html
from shared.config import Settings


class MailConfigurationError(Exception):
    """Mail delivery is not configured (no transport or no sender)."""


class MailSendError(Exception):
    """A single message could not be delivered."""


class OutgoingEmail(BaseModel):
    """A fully composed message for one recipient."""

    from_address: str
    to: str
    subject: str
    text: str
    html: str
    headers: dict[str, str] = Field(default_factory=dict)


class MailSession(ABC):
    """Connected transport session, reused across recipients."""

    @abstractmethod
    def deliver(self, message: OutgoingEmail) -> str | None:
        """
        Deliver one message.

        Returns:
            Provider message id, if any

        Raises:
            MailSendError: If delivery failed
        """
        pass

    def send(self, message: OutgoingEmail) -> dict[str, Any]:
        """
        Send one message without raising.

        Returns:
            Dictionary with 'success' (bool), 'email_id' (str if success), 'error' (str if failed)
        """
        try:
            email_id = self.deliver(message)
            return {"success": True, "email_id": email_id}
        except Exception as e:
            return {"success": False, "error": str(e) or e.__class__.__name__}

    def close(self) -> None:
        pass


class MailTransport(ABC):
    """Factory for mail sessions."""

    name: str = ""

    @abstractmethod
    def connect(self) -> MailSession:
        """
        Open a session.

        Raises:
            MailSendError: If the connection or login fails
        """
        pass


class SmtpSession(MailSession):
    def __init__(self, server: smtplib.SMTP):
        self.server = server

    def deliver(self, message: OutgoingEmail) -> str | None:
        mime = build_mime_message(message)
        try:
            self.server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            raise MailSendError(str(e)) from e
        return mime["Message-ID"]

    def close(self) -> None:
        try:
            self.server.quit()
        except (smtplib.SMTPException, OSError) as e:
            print(f"  ⚠️  SMTP session did not close cleanly: {e}")


class SmtpTransport(MailTransport):
    """SMTP with implicit TLS (port 465 or SMTP_SECURE) or STARTTLS."""

    name = "smtp"

    def __init__(self, settings: Settings):
        self.settings = settings

    def connect(self) -> MailSession:
        s = self.settings
        try:
            server: smtplib.SMTP
            if s.use_implicit_tls:
                server = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=s.request_timeout)
            else:
                server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.request_timeout)
                if s.smtp_starttls:
                    server.starttls()
            server.login(s.smtp_username, s.smtp_password)
        except (smtplib.SMTPException, OSError) as e:
            raise MailSendError(f"SMTP connection failed: {e}") from e
        return SmtpSession(server)


class ResendSession(MailSession):
    def deliver(self, message: OutgoingEmail) -> str | None:
        params: dict[str, Any] = {
            "from": message.from_address,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        if message.headers:
            params["headers"] = message.headers
        try:
            response = resend.Emails.send(params)
        except Exception as e:
            raise MailSendError(str(e)) from e
        return response.get("id") if response else None


class ResendTransport(MailTransport):
    """Resend HTTP API; there is no connection to hold, only the API key."""

    name = "resend"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def connect(self) -> MailSession:
        resend.api_key = self.api_key
        return ResendSession()


def get_mail_transport(settings: Settings) -> MailTransport | None:
    """Pick the configured transport, SMTP first, or None."""
    if settings.smtp_configured:
        return SmtpTransport(settings)
    if settings.resend_api_key:
        return ResendTransport(settings.resend_api_key)
    return None


def mail_configuration_error(settings: Settings, transport: MailTransport | None) -> str | None:
    """Describe why mail cannot be sent, or None when it can."""
    if not settings.sender:
        return "SENDER not configured."
    if transport is None:
        return "No mail transport available (missing SMTP settings and RESEND_API_KEY)."
    return None


def build_mime_message(message: OutgoingEmail) -> EmailMessage:
    """multipart/alternative message with text and HTML parts."""
    mime = EmailMessage()
    mime["From"] = message.from_address
    mime["To"] = message.to
    mime["Subject"] = message.subject
    mime["Date"] = formatdate(localtime=False, usegmt=True)
    mime["Message-ID"] = make_msgid()
    for name, value in message.headers.items():
        mime[name] = value
    mime.set_content(message.text, charset="utf-8")
    mime.add_alternative(message.html, subtype="html", charset="utf-8")
    return mime


def _build_text_body(canonical_text: str, unsubscribe_url: str | None) -> str:
    if not unsubscribe_url:
        return canonical_text
    return (
        f"{canonical_text}\n"
        f"{'-' * 60}\n"
        f"You are receiving this because you subscribed to AFDBRO bulletin updates.\n"
        f"Unsubscribe: {unsubscribe_url}\n"
    )


def _build_html_footer(unsubscribe_url: str | None) -> str:
    if not unsubscribe_url:
        return ""
    return f"""
<div style="margin-top:24px;padding-top:12px;border-top:1px solid #2a3546;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;font-size:12px;color:#9ca3af;text-align:center;">
    You are receiving this because you subscribed to AFDBRO bulletin updates.
    <br>
    <a href="{unsubscribe_url}" style="color:#93c5fd;">Unsubscribe</a>
</div>
"""


def compose_bulletin_email(
    settings: Settings,
    to: str,
    canonical_text: str,
    unsubscribe_url: str | None = None,
) -> OutgoingEmail:
    """
    Build the notification message for one recipient.

    Args:
        settings: Configuration (sender, subject)
        to: Recipient address
        canonical_text: Normalized bulletin text
        unsubscribe_url: Personalized unsubscribe link, embedded in both
            bodies and the List-Unsubscribe header when given

    Returns:
        OutgoingEmail ready to send

    Raises:
        MailConfigurationError: If SENDER is not configured
    """
    if not settings.sender:
        raise MailConfigurationError("SENDER not configured.")

    headers = {}
    if unsubscribe_url:
        headers["List-Unsubscribe"] = f"<{unsubscribe_url}>"

    return OutgoingEmail(
        from_address=settings.sender,
        to=to,
        subject=settings.email_subject,
        text=_build_text_body(canonical_text, unsubscribe_url),
        html=render_bulletin_html(canonical_text, _build_html_footer(unsubscribe_url)),
        headers=headers,
    )
