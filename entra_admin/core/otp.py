"""One-time-password challenge for operator login."""
from __future__ import annotations
import logging
import secrets
from typing import Callable, Optional

from entra_admin import audit
from entra_admin.console import Reporter

from .graph.users import OPERATION_ERRORS, UserService
from .mailer import MailDeliveryError
from .session import SessionTokenIssuer

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Return a random six digit code in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


class OtpChallengeService:
    """Verify an operator by mailing a code to their LocalAccount address.

    Each verify_login() call owns its own challenge store, so a code never
    survives past the call that generated it.
    """

    def __init__(
        self,
        users: UserService,
        mailer,
        issuer: SessionTokenIssuer,
        prompt_otp: Callable[[str], str],
        reporter: Optional[Reporter] = None,
    ):
        """Initialize the challenge service.

        Args:
            users: Directory lookups
            mailer: Object exposing send_otp(to, otp)
            issuer: Session token issuer
            prompt_otp: Asks the operator for the code sent to an email
            reporter: Presentation layer
        """
        self.users = users
        self.mailer = mailer
        self.issuer = issuer
        self.prompt_otp = prompt_otp
        self.reporter = reporter or users.reporter

    def verify_login(self, email: str) -> Optional[str]:
        """Run the challenge for email and return a session token, or None."""
        otp_store: dict[str, str] = {}
        self.users.client.ensure_token()

        with self.reporter.spinner(f"Checking Entra ID for {email}...") as spinner:
            try:
                matched = self.users.find_local_account_by_email(email)
            except OPERATION_ERRORS as e:
                spinner.fail("Error during authentication.")
                logger.error("verify_login error: %s", e)
                audit.safe_log_event("login", email, details={"error": str(e)}, success=False)
                return None

            if not matched:
                spinner.fail("User not found in Entra ID LocalAccounts.")
                audit.safe_log_event("login", email, details={"reason": "not_found"}, success=False)
                return None

            spinner.succeed("User found. Sending OTP...")

        otp_store[email] = generate_otp()
        try:
            self.mailer.send_otp(email, otp_store[email])
        except MailDeliveryError as e:
            logger.error("Failed to send OTP email: %s", e)
            audit.safe_log_event("login", email, details={"reason": "mail_failed"}, success=False)
            return None

        entered = self.prompt_otp(email)
        expected = otp_store.pop(email)
        if entered != expected:
            logger.error("Invalid OTP.")
            audit.safe_log_event("login", email, details={"reason": "invalid_otp"}, success=False)
            return None

        token = self.issuer.issue(matched)
        logger.info("Login successful. Session token issued.")
        audit.safe_log_event(
            "login", email, operator=matched.email or email,
            details={"webportal_id": matched.webportal_id}, success=True,
        )
        return token
