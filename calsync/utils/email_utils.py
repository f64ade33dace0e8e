import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from calsync.base.config import AppConfig, get_settings
from calsync.base.metrics import email_counter

logger = logging.getLogger("email")


def send_email(to_email: str, subject: str, html: str, settings: Optional[AppConfig] = None) -> bool:
    """
    Sends an HTML email through the configured SMTP relay.

    Returns False without sending when SMTP is not configured. Raises on
    delivery failure; callers decide whether that is fatal.
    """
    settings = settings or get_settings()
    if not settings.SMTP_ENABLED:
        logger.warning(f"[Email] SMTP not configured, skipping '{subject}' to {to_email}")
        email_counter.labels(outcome="skipped").inc()
        return False

    message = MIMEMultipart("alternative")
    message["From"] = settings.DEFAULT_SENDER
    message["To"] = to_email
    message["Subject"] = subject
    message.attach(MIMEText(html, "html"))

    with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=settings.HTTP_TIMEOUT_SECONDS) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(message)

    logger.info(f"[Email] '{subject}' sent to {to_email}")
    email_counter.labels(outcome="sent").inc()
    return True


def _send_best_effort(to_email: str, subject: str, html: str, settings: Optional[AppConfig]) -> bool:
    try:
        return send_email(to_email, subject, html, settings)
    except Exception as e:
        logger.error(f"[Email] ❌ Email sending error to {to_email}: {e}")
        email_counter.labels(outcome="failed").inc()
        return False


# === Meeting Notifications ===

def notify_attendee_of_proposal(
    attendee_email: str,
    attendee_name: str,
    organizer_email: str,
    slot_count: int,
    link: str,
    settings: Optional[AppConfig] = None,
) -> bool:
    html = f"""
<p>Hi {escape(attendee_name)},</p>
<p>{escape(organizer_email)} has offered you {slot_count} time slots for a meeting.</p>
<p>Please select a slot here: <a href="{escape(link, quote=True)}">Pick a slot</a></p>
"""
    return _send_best_effort(attendee_email, f"Meeting Request from {organizer_email}", html, settings)


def notify_meeting_confirmed(
    attendee_email: str,
    attendee_name: str,
    organizer_email: str,
    selected_slot: str,
    settings: Optional[AppConfig] = None,
) -> bool:
    """Confirms the chosen slot to both parties. True only if both emails went out."""
    attendee_ok = _send_best_effort(
        attendee_email,
        "Meeting Confirmed",
        f"<p>Your meeting has been confirmed for {escape(selected_slot)}</p>",
        settings,
    )
    organizer_ok = _send_best_effort(
        organizer_email,
        "Meeting Confirmed",
        f"<p>{escape(attendee_name or attendee_email)} has selected a meeting slot for {escape(selected_slot)}</p>",
        settings,
    )
    return attendee_ok and organizer_ok
