"""
Email service for transactional messages (password reset, subscription receipts).
"""
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from travelbuddy.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html: str) -> None:
    """
    Send an HTML email through the configured SMTP server.
    Raises on SMTP failure; callers decide whether that is fatal.
    """
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(html, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info(f"Email '{subject}' sent to {to_email}")


def send_password_reset_email(to_email: str, otp: str) -> None:
    send_email(
        to_email,
        "Reset your password",
        f"<p>Your OTP code is <b>{otp}</b>. "
        f"It expires in {settings.OTP_EXPIRE_MINUTES} minutes.</p>"
    )


def send_subscription_email(to_email: str, name: str, expires_at: datetime) -> None:
    send_email(
        to_email,
        f"Your {settings.APP_NAME} subscription is active",
        f"<p>Hi {name},</p>"
        f"<p>Thanks for your purchase. Your subscription is active until "
        f"<b>{expires_at.strftime('%Y-%m-%d')}</b>.</p>"
    )
