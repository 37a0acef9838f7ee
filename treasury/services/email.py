import logging
import smtplib
import ssl
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Optional, Tuple

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail

from ..config import settings

logger = logging.getLogger(__name__)

MAX_SUBJECT_PREVIEW = 12


@dataclass
class SendResult:
    backend: str
    status_code: Optional[int]
    request_id: Optional[str]
    error: Optional[str]


class EmailDeliveryError(RuntimeError):
    pass


def mask_email(value: str) -> str:
    if "@" not in value:
        return "***"
    name, domain = value.split("@", 1)
    if not name:
        masked = "***"
    elif len(name) <= 2:
        masked = f"{name[0]}***"
    else:
        masked = f"{name[0]}***{name[-1]}"
    return f"{masked}@{domain}"


def _mask_subject(subject: str) -> str:
    if not subject:
        return ""
    preview = subject[:MAX_SUBJECT_PREVIEW]
    return f"{preview}... (len={len(subject)})"


def _backend_name() -> str:
    return (settings.email_backend or "local").strip().strip("'\"").lower()


def _resolve_sender() -> Tuple[str, str]:
    from_address = settings.email_from_address or "no-reply@kas.local"
    display_name = settings.email_from_name or "Kas App"
    return str(from_address), display_name


def _write_local_email(recipient: str, subject: str, html: str) -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
    safe_subject = "".join(ch for ch in subject if ch.isalnum() or ch in (" ", "_", "-")).strip() or "email"
    filename = f"{timestamp}_{safe_subject.replace(' ', '_')}.html"
    output_dir = Path(settings.email_output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_text(
        "\n".join(
            [
                f"<!-- Subject: {subject} -->",
                f"<!-- To: {recipient} -->",
                html,
            ]
        ),
        encoding="utf-8",
    )
    logger.info("[LOCAL EMAIL] %s", path)
    return str(path)


def _send_via_sendgrid(recipient: str, subject: str, html: str) -> SendResult:
    from_address, display_name = _resolve_sender()
    if not settings.sendgrid_api_key:
        raise EmailDeliveryError("SendGrid backend requires SENDGRID_API_KEY.")

    message = Mail(
        from_email=Email(email=from_address, name=display_name),
        to_emails=[recipient],
        subject=subject,
        html_content=html,
    )
    reply_to = settings.email_reply_to or from_address
    if reply_to:
        message.reply_to = Email(email=str(reply_to))
    client = SendGridAPIClient(settings.sendgrid_api_key)
    try:
        response = client.send(message)
    except Exception as exc:
        status_code = getattr(exc, "status_code", None)
        logger.error("SendGrid dispatch failed (status=%s) for %s.", status_code, mask_email(recipient))
        raise EmailDeliveryError(f"SendGrid rejected the message (status={status_code}).") from exc

    request_id = None
    if isinstance(response.headers, dict):
        request_id = response.headers.get("X-Message-Id") or response.headers.get("X-Request-Id")
    return SendResult(backend="sendgrid", status_code=response.status_code, request_id=request_id, error=None)


def _send_via_smtp(recipient: str, subject: str, html: str) -> SendResult:
    if not settings.email_host:
        raise EmailDeliveryError("SMTP backend requires EMAIL_HOST.")
    from_address, display_name = _resolve_sender()

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = formataddr((display_name, from_address))
    message["To"] = recipient
    reply_to = settings.email_reply_to or from_address
    if reply_to:
        message["Reply-To"] = str(reply_to)
    message.set_content("This message requires an HTML-capable mail client.")
    message.add_alternative(html, subtype="html")

    port = settings.email_port or 587
    context = ssl.create_default_context()
    with smtplib.SMTP(settings.email_host, port) as connection:
        connection.ehlo()
        if settings.email_use_tls:
            connection.starttls(context=context)
            connection.ehlo()
        if settings.email_host_user and settings.email_host_password:
            connection.login(settings.email_host_user, settings.email_host_password)
        connection.send_message(message)
    return SendResult(backend="smtp", status_code=250, request_id=None, error=None)


def send_email(recipient: str, subject: str, html: str) -> SendResult:
    """Deliver one HTML email through the configured backend.

    Raises on any delivery failure; callers that batch sends decide whether to continue.
    """
    if not recipient or not recipient.strip():
        raise ValueError("Recipient email required")
    recipient = recipient.strip()
    backend = _backend_name()
    logger.info(
        "Dispatching email backend=%s to=%s subject=%s",
        backend,
        mask_email(recipient),
        _mask_subject(subject),
    )

    if backend == "sendgrid":
        return _send_via_sendgrid(recipient, subject, html)
    if backend in {"smtp", "sendgrid_smtp"}:
        return _send_via_smtp(recipient, subject, html)
    if backend != "local":
        logger.warning("Unknown EMAIL_BACKEND '%s'. Defaulting to local stub.", backend)
    _write_local_email(recipient, subject, html)
    return SendResult(backend="local", status_code=200, request_id=None, error=None)
