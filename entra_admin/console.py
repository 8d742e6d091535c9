"""Terminal presentation: spinners, user tables and logging setup."""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

LOG_FORMAT = "%(message)s"
LOG_DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Route stdlib logging through rich, once per process."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )
    # requests/urllib3 chatter is not useful to an operator
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def format_timestamp(value: Optional[str]) -> str:
    """Render a Graph ISO-8601 timestamp in local time, or '-' when absent."""
    if not value:
        return "-"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


class Spinner:
    """Status spinner that ends with a success or failure line."""

    def __init__(self, console: Console, text: str):
        self.console = console
        self.text = text
        self._status = console.status(escape(text), spinner="dots")

    def __enter__(self) -> "Spinner":
        self._status.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._status.stop()
        return False

    def succeed(self, text: str) -> None:
        self._status.stop()
        self.console.print(f"[green]✔[/green] {escape(text)}")

    def fail(self, text: str) -> None:
        self._status.stop()
        self.console.print(f"[red]✖[/red] {escape(text)}")


class Reporter:
    """Presentation layer shared by the OTP flow, user operations and the CLI."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def spinner(self, text: str) -> Spinner:
        return Spinner(self.console, text)

    def succeed(self, text: str) -> None:
        self.console.print(f"[green]✔[/green] {escape(text)}")

    def fail(self, text: str) -> None:
        self.console.print(f"[red]✖[/red] {escape(text)}")

    def render_users(
        self,
        users: Iterable,
        *,
        title: str,
        type_header: str,
        timestamp_header: str,
        timestamp_attr: str,
    ) -> Table:
        """Print users as a table indexed 1..N and return the table.

        Args:
            users: DirectoryUser instances
            title: Table title
            type_header: Header of the creation type column
            timestamp_header: Header of the timestamp column
            timestamp_attr: DirectoryUser attribute rendered in that column
        """
        table = Table(title=title)
        table.add_column("ID", justify="right")
        table.add_column("Name")
        table.add_column("Email")
        table.add_column("Webportal_ID")
        table.add_column(type_header)
        table.add_column(timestamp_header)
        for index, user in enumerate(users, start=1):
            table.add_row(
                str(index),
                escape(user.display_name or "-"),
                escape(user.email or "-"),
                str(user.webportal_id) if user.webportal_id is not None else "-",
                escape(user.creation_type or "-"),
                format_timestamp(getattr(user, timestamp_attr)),
            )
        self.console.print(table)
        return table

    def clear(self) -> None:
        self.console.clear()
