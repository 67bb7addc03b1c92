# backend/app/services/email_service.py
"""
Transactional mail over SMTP.

Delivery is best-effort: a missing configuration or an SMTP failure is logged
and reported as False, it never fails the request that triggered the mail.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..config import settings

log = logging.getLogger("utleieskade.email")


def _configured() -> bool:
    return bool(settings.email_host and settings.email_user and settings.email_password)


def _connect() -> smtplib.SMTP:
    port = int(settings.email_port)
    if port == 465:
        return smtplib.SMTP_SSL(settings.email_host, port, context=ssl.create_default_context(), timeout=15)
    conn = smtplib.SMTP(settings.email_host, port, timeout=15)
    conn.starttls(context=ssl.create_default_context())
    return conn


def build_message(
    *,
    to: str,
    subject: str,
    html: str,
    attachment: Optional[bytes] = None,
    attachment_name: str = "attachment.pdf",
) -> MIMEMultipart:
    msg = MIMEMultipart()
    msg["From"] = f"Utleieskade <{settings.email_from or settings.email_user or 'no-reply@utleieskade.no'}>"
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(html, "html"))
    if attachment is not None:
        part = MIMEApplication(attachment, Name=attachment_name)
        part["Content-Disposition"] = f'attachment; filename="{attachment_name}"'
        msg.attach(part)
    return msg


def send_email(
    *,
    to: str,
    subject: str,
    html: str,
    attachment: Optional[bytes] = None,
    attachment_name: str = "attachment.pdf",
) -> bool:
    if not _configured():
        log.warning("email not configured; skipping '%s' to %s", subject, to)
        return False

    msg = build_message(to=to, subject=subject, html=html, attachment=attachment, attachment_name=attachment_name)
    try:
        with _connect() as conn:
            conn.login(settings.email_user, settings.email_password)
            conn.sendmail(msg["From"], [to], msg.as_string())
    except (smtplib.SMTPException, OSError):
        log.exception("failed to send '%s' to %s", subject, to)
        return False

    log.info("email sent: %s -> %s", subject, to)
    return True


def send_otp_email(to: str, otp_code: str, first_name: str = "") -> bool:
    html = f"""
    <p>Hi {first_name or 'there'},</p>
    <p>Your verification code is:</p>
    <h2 style="letter-spacing:4px">{otp_code}</h2>
    <p>The code expires in {int(settings.otp_ttl_minutes)} minutes.</p>
    """
    return send_email(to=to, subject="Your Utleieskade verification code", html=html)


def send_inspector_welcome_email(to: str, first_name: str, password: str) -> bool:
    html = f"""
    <p>Hi {first_name},</p>
    <p>An inspector account has been created for you on Utleieskade.</p>
    <p>Email: <b>{to}</b><br/>Temporary password: <b>{password}</b></p>
    <p>Please log in and change your password.</p>
    """
    return send_email(to=to, subject="Welcome to Utleieskade", html=html)


def send_sub_admin_email(to: str, first_name: str, password: str) -> bool:
    html = f"""
    <p>Hi {first_name},</p>
    <p>You have been added as an administrator on Utleieskade.</p>
    <p>Email: <b>{to}</b><br/>Password: <b>{password}</b></p>
    """
    return send_email(to=to, subject="Utleieskade admin access", html=html)
