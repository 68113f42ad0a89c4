"""Outbound email delivery over SMTP."""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import get_settings
from app.errors import DeliveryError

logger = logging.getLogger("user_management")


class EmailService:
    """Sends transactional emails. Any failure surfaces as DeliveryError."""

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "User Management",
        timeout: float = 30,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return bool(self.smtp_host and self.from_email)

    @staticmethod
    def redact(email: str) -> str:
        """Redact an email address for logging."""
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        """Send one message. Raises DeliveryError if it could not be handed to the SMTP server."""
        if not self.is_configured:
            logger.error("Email delivery is not configured; dropping message to %s", self.redact(to_email))
            raise DeliveryError("There was an error sending the email. Try again later!")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    self._login(server)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=self.timeout) as server:
                    self._login(server)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as exc:
            logger.error(
                "Email to %s failed via %s:%s (%s: %s)",
                self.redact(to_email),
                self.smtp_host,
                self.smtp_port,
                type(exc).__name__,
                exc,
            )
            raise DeliveryError("There was an error sending the email. Try again later!") from exc

        logger.info("Email sent to %s: %s", self.redact(to_email), subject)

    def _login(self, server: smtplib.SMTP) -> None:
        if self.smtp_user and self.smtp_password:
            server.login(self.smtp_user, self.smtp_password)

    def send_password_reset(self, to_email: str, reset_url: str, expire_minutes: int = 10) -> None:
        """Send the password reset link."""
        subject = f"Your password reset token (valid for {expire_minutes} minutes)"
        text_body = (
            "Forgot your password? Submit a PATCH request with your new password to:\n"
            f"{reset_url}\n\n"
            "If you didn't forget your password, please ignore this email!"
        )
        html_body = f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
  <h2>Password Reset Request</h2>
  <p>You recently requested to reset your password. Use the link below to reset it:</p>
  <p><a href="{reset_url}">Reset Password</a></p>
  <p>If you didn't request this, please ignore this email.</p>
  <p style="font-size: 0.8em; color: #718096;">This link will expire in {expire_minutes} minutes.</p>
</div>
"""
        self.send(to_email, subject, text_body, html_body)


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        settings = get_settings()
        _email_service = EmailService(
            smtp_host=settings.EMAIL_HOST,
            smtp_port=settings.EMAIL_PORT,
            smtp_user=settings.EMAIL_USERNAME,
            smtp_password=settings.EMAIL_PASSWORD,
            smtp_use_tls=settings.EMAIL_USE_TLS,
            from_email=settings.EMAIL_FROM,
            from_name=settings.EMAIL_FROM_NAME,
        )
    return _email_service
