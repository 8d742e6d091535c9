"""Command-line interface for managing Entra ID LocalAccount users.

Runs one sub-command when given, otherwise an interactive menu. Every action
is gated on an OTP-verified operator session.
"""
from __future__ import annotations
import argparse
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from entra_admin import __version__
from entra_admin.config import AppConfig, load_settings
from entra_admin.console import Reporter, configure_logging
from entra_admin.core.graph import GraphClient, GraphError, UserService
from entra_admin.core.mailer import SmtpMailer
from entra_admin.core.otp import OtpChallengeService
from entra_admin.core.session import SessionTokenIssuer
from entra_admin.core.validators import parse_webportal_ids, validate_email, validate_otp

logger = logging.getLogger(__name__)

ID_COMMANDS = ("delete-multiple", "restore-multiple")

MENU_CHOICES = [
    ("list", "List - all active users"),
    ("list-deleted", "List - all deleted users"),
    ("delete-multiple", "Delete - single/multiple users"),
    ("delete-all-local", "Delete - all local account users"),
    ("restore-multiple", "Restore - single/multiple users"),
    ("clear-history", "Clear history"),
    ("exit", "Exit"),
]


def prompt_validated(console: Console, message: str, validator: Callable[[str], object]):
    """Ask until validator accepts the answer; returns the validated value."""
    while True:
        raw = Prompt.ask(message, console=console)
        try:
            return validator(raw)
        except ValueError as e:
            console.print(f"[red]>> {escape(str(e))}[/red]")


@dataclass
class CliContext:
    """Services shared by every command handler."""
    settings: AppConfig
    reporter: Reporter
    users: UserService
    otp: OtpChallengeService
    issuer: SessionTokenIssuer

    @property
    def console(self) -> Console:
        return self.reporter.console


def build_context(cfg: AppConfig, console: Optional[Console] = None) -> CliContext:
    """Wire services from settings.

    Raises:
        GraphConfigurationError: When directory credentials are missing
    """
    reporter = Reporter(console)
    client = GraphClient.from_settings(cfg)
    users = UserService(
        client,
        reporter,
        extension_attribute=cfg.extension_attribute,
        page_size=cfg.page_size,
    )
    issuer = SessionTokenIssuer.from_settings(cfg)
    otp = OtpChallengeService(
        users,
        SmtpMailer.from_settings(cfg),
        issuer,
        prompt_otp=lambda email: prompt_validated(
            reporter.console, f"Enter the 6-digit OTP sent to {email}", validate_otp
        ),
        reporter=reporter,
    )
    return CliContext(cfg, reporter, users, otp, issuer)


class CliSession:
    """Operator session state: Unauthenticated until an OTP challenge succeeds."""

    def __init__(self):
        self.authenticated = False
        self.token: Optional[str] = None

    def authenticate(self, ctx: CliContext) -> bool:
        """Prompt for an email and run the OTP challenge."""
        email = prompt_validated(ctx.console, "Enter your work email", validate_email)
        try:
            token = ctx.otp.verify_login(email)
        except (GraphError, requests.RequestException) as e:
            logger.error("Error in authentication: %s", e)
            token = None

        if token:
            ctx.reporter.succeed("Authenticated!")
            self.authenticated = True
            self.token = token
            claims = ctx.issuer.get_current_session() or {}
            ctx.users.operator = claims.get("username") or email
        else:
            ctx.reporter.fail("Authentication failed.")
            self.authenticated = False
            self.token = None
        return self.authenticated

    def ensure_authenticated(self, ctx: CliContext) -> bool:
        """Gate a command: re-run the challenge when absent or expired."""
        if self.authenticated and ctx.issuer.get_current_session() is None:
            logger.warning("Session expired. Please authenticate again.")
            self.authenticated = False
            self.token = None
        if not self.authenticated:
            self.authenticate(ctx)
        return self.authenticated

    def sign_out(self, ctx: CliContext) -> None:
        self.authenticated = False
        self.token = None
        ctx.issuer.clear()
        ctx.users.operator = "cli"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="entra-user-manager", description="CLI to manage Entra ID users")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: search from cwd)")

    sub = parser.add_subparsers(dest="cmd")
    sub.add_parser("list", help="List all active users")
    sub.add_parser("list-deleted", help="List all deleted users")

    dm = sub.add_parser("delete-multiple", help="Delete multiple LocalAccount users (comma-separated IDs)")
    dm.add_argument("webportal_ids")

    sub.add_parser("delete-all-local", help="Delete ALL users with creationType 'LocalAccount'")

    rm = sub.add_parser("restore-multiple", help="Restore multiple deleted users (comma-separated IDs)")
    rm.add_argument("webportal_ids")
    return parser


def run_command(cmd: str, ctx: CliContext, session: CliSession, ids: Optional[list[int]] = None) -> None:
    """Dispatch one action once the operator session is established."""
    if not session.ensure_authenticated(ctx):
        return

    if cmd == "list":
        ctx.users.list_users()
    elif cmd == "list-deleted":
        ctx.users.list_deleted_users()
    elif cmd == "delete-multiple":
        ctx.users.delete_multiple_users(ids or [])
    elif cmd == "delete-all-local":
        ctx.users.delete_all_local_account_users()
    elif cmd == "restore-multiple":
        ctx.users.restore_multiple_users(ids or [])
    else:
        raise ValueError(f"Unknown command: {cmd}")


def show_menu(ctx: CliContext, session: CliSession) -> bool:
    """Run one menu action; returns False when the operator chose to exit."""
    for index, (_, label) in enumerate(MENU_CHOICES, start=1):
        ctx.console.print(f"  {index}) {label}")
    answer = Prompt.ask(
        "Select an action",
        choices=[str(i) for i in range(1, len(MENU_CHOICES) + 1)],
        console=ctx.console,
    )
    option = MENU_CHOICES[int(answer) - 1][0]

    if option in ID_COMMANDS:
        verb = "delete" if option == "delete-multiple" else "restore"
        ids = prompt_validated(ctx.console, f"Enter comma-separated Webportal IDs to {verb}", parse_webportal_ids)
        run_command(option, ctx, session, ids)
    elif option == "clear-history":
        with ctx.reporter.spinner("Clearing history...") as spinner:
            time.sleep(1)
            spinner.succeed("History cleared")
        logger.info("cleared")
        ctx.reporter.clear()
    elif option == "exit":
        session.sign_out(ctx)
        logger.info("Goodbye!")
        return False
    else:
        run_command(option, ctx, session)
    return True


def run_interactive(ctx: CliContext, session: CliSession) -> int:
    """Authenticate, then loop over the menu until the operator leaves."""
    ctx.reporter.clear()
    session.authenticate(ctx)
    if not session.authenticated:
        logger.error("Authentication failed. Exiting...")
        return 1

    while session.authenticated:
        if not show_menu(ctx, session) or not session.authenticated:
            break
        if not Confirm.ask("Return to main menu?", default=True, console=ctx.console):
            logger.info("Goodbye!")
            break
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    ids = None
    if args.cmd in ID_COMMANDS:
        try:
            ids = parse_webportal_ids(args.webportal_ids)
        except ValueError as e:
            parser.error(str(e))

    configure_logging()
    try:
        cfg = load_settings(args.env_file)
        configure_logging(cfg.log_level)
        ctx = build_context(cfg)
        session = CliSession()
        if args.cmd:
            run_command(args.cmd, ctx, session, ids)
            code = 0
        else:
            code = run_interactive(ctx, session)
    except (KeyboardInterrupt, EOFError):
        logger.info("Exiting...")
        sys.exit(0)
    except Exception as e:
        logger.error("An unexpected error occurred: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
