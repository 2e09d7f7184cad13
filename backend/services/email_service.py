"""Email service — SMTP delivery of transactional emails."""

import logging
import smtplib
import ssl
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from backend.core.config import Settings

logger = logging.getLogger("saraha.email")


def render_otp_email(receiver_name: str, otp: str, expire_minutes: int, title: str) -> str:
    """HTML body for verification and password reset codes."""
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #1f2933;">
  <div style="max-width: 520px; margin: 0 auto; padding: 24px;">
    <p style="color: #7b8794; font-size: 12px;">{date.today().isoformat()}</p>
    <h2>{title}</h2>
    <p>Hi {receiver_name},</p>
    <p>Use the code below. It expires in {expire_minutes} minutes.</p>
    <p style="font-size: 28px; letter-spacing: 6px; font-weight: bold;">{otp}</p>
    <p style="color: #7b8794; font-size: 12px;">If you did not request this, ignore this email.</p>
  </div>
</body>
</html>
"""


class EmailService:
    """Sends emails over SMTP; logs them instead when no host is configured."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.timeout = settings.SMTP_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_email)

    @staticmethod
    def _redact(email: str) -> str:
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send an email. Returns True on success, False otherwise."""
        if not self.is_configured:
            logger.info("Email dev mode, not sent: to=%s subject=%s", self._redact(to), subject)
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))

        context = ssl.create_default_context()
        try:
            if self.use_tls:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    if self.user and self.password:
                        server.login(self.user, self.password)
                    server.sendmail(self.from_email, to, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                    if self.user and self.password:
                        server.login(self.user, self.password)
                    server.sendmail(self.from_email, to, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error("Email to %s failed: %s: %s", self._redact(to), type(e).__name__, e)
            return False

        logger.info("Email sent: to=%s subject=%s", self._redact(to), subject)
        return True
