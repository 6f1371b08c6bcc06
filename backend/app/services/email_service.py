"""SMTP delivery of rendered report workbooks."""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Sequence
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from app.config import settings

logger = logging.getLogger(__name__)


class EmailNotConfigured(RuntimeError):
    """SMTP host, credentials or sender address are missing."""


def can_send_email() -> bool:
    """True only if SMTP is configured well enough to attempt sending."""
    return all(
        [settings.smtp_host, settings.smtp_user, settings.smtp_password, settings.smtp_from_email]
    )


def normalize_recipients(recipients: str | Sequence[str]) -> list[str]:
    """Split a comma-separated string or clean a list of addresses."""
    if isinstance(recipients, str):
        recipients = recipients.split(",")
    return [r.strip() for r in recipients if r and r.strip()]


def build_message(
    recipients: list[str],
    subject: str,
    body: str,
    attachment: bytes,
    filename: str,
) -> MIMEMultipart:
    msg = MIMEMultipart()
    msg["From"] = formataddr((settings.smtp_from_name, settings.smtp_from_email))
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain", "utf-8"))

    part = MIMEApplication(attachment, _subtype="vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    part.add_header("Content-Disposition", "attachment", filename=filename)
    msg.attach(part)
    return msg


def send_report_email(
    recipients: str | Sequence[str],
    subject: str,
    body: str,
    attachment: bytes,
    filename: str,
) -> list[str]:
    """Send *attachment* to every recipient in one message.

    SMTP failures propagate unchanged.  Returns the normalized recipient list.
    """
    if not can_send_email():
        raise EmailNotConfigured("SMTP not configured (missing SMTP_* settings)")

    to_addrs = normalize_recipients(recipients)
    if not to_addrs:
        raise ValueError("At least one recipient is required")

    msg = build_message(to_addrs, subject, body, attachment, filename)
    context = ssl.create_default_context()
    timeout = settings.smtp_timeout_seconds

    if settings.smtp_ssl:
        # Implicit TLS (usually port 465)
        with smtplib.SMTP_SSL(
            settings.smtp_host, settings.smtp_port, timeout=timeout, context=context
        ) as server:
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from_email, to_addrs, msg.as_string())
    else:
        # STARTTLS (usually port 587)
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=timeout) as server:
            server.ehlo()
            server.starttls(context=context)
            server.ehlo()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from_email, to_addrs, msg.as_string())

    logger.info("Sent '%s' (%s) to %d recipients", subject, filename, len(to_addrs))
    return to_addrs
