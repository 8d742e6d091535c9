"""SMTP delivery of one-time passwords."""
from __future__ import annotations
import logging
import smtplib
from email.message import EmailMessage

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your Entra ID OTP Code"


class MailDeliveryError(Exception):
    """The OTP message could not be submitted to the SMTP server."""
    pass


class SmtpMailer:
    """Send plaintext OTP messages through an authenticated STARTTLS relay."""

    def __init__(
        self,
        host: str = "smtp.office365.com",
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    @classmethod
    def from_settings(cls, cfg) -> "SmtpMailer":
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            username=cfg.smtp_user,
            password=cfg.smtp_password,
            sender=cfg.smtp_from,
            timeout=cfg.request_timeout,
        )

    def build_message(self, to: str, otp: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = OTP_SUBJECT
        message.set_content(f"Your OTP for login is: {otp}")
        return message

    def send_otp(self, to: str, otp: str) -> None:
        """Deliver the OTP to the recipient.

        Raises:
            MailDeliveryError: On any SMTP or socket failure
        """
        message = self.build_message(to, otp)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send OTP email: %s", e)
            raise MailDeliveryError("Failed to send OTP") from e
        logger.info("OTP sent to %s", to)
