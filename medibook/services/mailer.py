# medibook/services/mailer.py
from __future__ import annotations
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from ..config import settings
from ..errors import ConfigurationError, UpstreamDegraded

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASS)


def _check_config() -> None:
    missing = [
        name for name, value in (
            ("SMTP_HOST", settings.SMTP_HOST),
            ("SMTP_USER", settings.SMTP_USER),
            ("SMTP_PASS", settings.SMTP_PASS),
        ) if not value
    ]
    if missing:
        raise ConfigurationError(f"SMTP configuration incomplete. Missing: {', '.join(missing)}")


def send_email(to: str, subject: str, html_body: str, text_body: str) -> dict:
    """
    Sends a multipart (text + html) message through the configured SMTP server.
    Port 465 uses implicit TLS, anything else STARTTLS.
    Returns {"success": True, "messageId": ...}.
    """
    _check_config()
    from_address = settings.FROM_EMAIL or settings.SMTP_USER

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = to
    msg["Message-ID"] = make_msgid()
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    host, port = settings.SMTP_HOST, settings.SMTP_PORT
    context = ssl.create_default_context()
    try:
        if port == 465:
            server = smtplib.SMTP_SSL(host, port, context=context, timeout=settings.SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(host, port, timeout=settings.SMTP_TIMEOUT_SECONDS)
            server.starttls(context=context)
        with server:
            server.login(settings.SMTP_USER, settings.SMTP_PASS)
            server.sendmail(from_address.split("<")[-1].rstrip(">"), [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("SMTP send failed: host=%s to=%s err=%s", host, to, e)
        raise UpstreamDegraded(f"Email delivery failed: {e}")

    logger.info("Email sent: to=%s subject=%s message_id=%s", to, subject, msg["Message-ID"])
    return {"success": True, "messageId": msg["Message-ID"]}
