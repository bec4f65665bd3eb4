"""Best-effort email notification for new leads.

Sending happens after the response (FastAPI background task); any failure is
logged and otherwise ignored.
"""
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from . import config

logger = logging.getLogger(__name__)


def lead_summary(lead) -> dict:
    # plain values, so the task does not touch the request's session
    return {
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "message": lead.message,
        "business_id": lead.business_id,
        "timestamp": lead.timestamp.isoformat() if lead.timestamp else None,
        "submitted_by": lead.submitted_by,
    }


def build_message(summary: dict, sender: Optional[str], to: str) -> MIMEText:
    body = "\n".join([
        "A new lead was submitted:",
        "",
        f"Name: {summary.get('name') or '-'}",
        f"Email: {summary.get('email') or '-'}",
        f"Phone: {summary.get('phone') or '-'}",
        f"Message: {summary.get('message') or '-'}",
        f"Business ID: {summary.get('business_id') or '-'}",
        f"Time: {summary.get('timestamp') or '-'}",
        f"SubmittedBy: {summary.get('submitted_by') or '-'}",
    ])
    msg = MIMEText(body)
    msg["Subject"] = f"New lead for business {summary.get('business_id') or ''}"
    if sender:
        msg["From"] = sender
    msg["To"] = to
    return msg


def send_lead_notification(summary: dict) -> bool:
    """Send the notification email. Returns True when a message went out."""
    settings = config.get_settings()
    if not config.mailer_enabled() or not settings.notify_email:
        return False
    msg = build_message(summary, settings.from_email, settings.notify_email)
    try:
        smtp_cls = smtplib.SMTP_SSL if settings.smtp_secure else smtplib.SMTP
        with smtp_cls(settings.smtp_host, settings.smtp_port, timeout=10) as s:
            if not settings.smtp_secure:
                s.starttls()
            s.login(settings.smtp_user, settings.smtp_pass or "")
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send lead notification: %s", e)
        return False
    return True
