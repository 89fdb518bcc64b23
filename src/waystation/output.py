"""Terminal output for the waystation CLI.

stdout carries only what scripts consume: the access token, the sign-in
URL, a settings path, or the session/settings records. Everything meant
for the person at the keyboard (progress, warnings, errors, next steps)
goes to stderr.

The format is chosen once per invocation: ``--json`` and ``--plain`` force
one, otherwise Rich tables on an interactive terminal and tab-separated
lines when piped. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` turn
colour off.
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from waystation.models import Credential


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def describe_user(credential: Credential) -> str:
    """Best human label for the signed-in user."""
    user = credential.user_info
    if user is None:
        return "unknown user"
    return user.display_name or user.email or user.subject_id


def describe_expiry(credential: Credential) -> str:
    """ISO timestamp of ``expires_at`` with the time left, e.g. ``(in 1h 5m)``."""
    if credential.expires_at is None:
        return "unknown"
    when = datetime.fromtimestamp(credential.expires_at, timezone.utc).isoformat()
    remaining = credential.seconds_until_expiry()
    if remaining is None or remaining <= 0:
        return f"{when} (expired)"
    hours, rest = divmod(remaining, 3600)
    return f"{when} (in {hours}h {rest // 60}m)"


class OutputManager:
    """Routes CLI output to stdout or stderr in the resolved format.

    Args:
        format: ``AUTO`` resolves to ``RICH`` on a colour TTY, else ``PLAIN``.
        no_color: Disable colour and Rich markup.
        quiet: Drop info, success and suggestion messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_value(self, text: str) -> None:
        """Write a single value (token, URL, path) to stdout, unformatted."""
        print(text, file=sys.stdout, flush=True)

    def print_session(self, credential: Optional[Credential]) -> None:
        """Render the stored session for ``auth status``.

        JSON mode always prints a record, ``{"signed_in": false}`` included.
        Plain and Rich modes print nothing when signed out; the caller
        reports that on stderr.
        """
        if self._format == OutputFormat.JSON:
            if credential is None:
                self._print_json({"signed_in": False})
                return
            user = credential.user_info
            self._print_json(
                {
                    "signed_in": True,
                    "user": user.model_dump(by_alias=True) if user else None,
                    "expires_at": credential.expires_at,
                    "expired": credential.is_expired(),
                    "has_refresh_token": credential.refresh_token is not None,
                }
            )
            return
        if credential is None:
            return

        user = credential.user_info
        rows = [
            ("User", describe_user(credential)),
            ("Email", (user.email if user else None) or "-"),
            ("Subject", user.subject_id if user else "-"),
            ("Expires", describe_expiry(credential)),
            ("Refresh token", "yes" if credential.refresh_token else "no"),
        ]
        self._print_pairs(rows, title="WayStation session")

    def print_settings(self, settings: dict[str, Any]) -> None:
        """Render effective settings for ``config show``.

        List values are space-joined in plain and Rich modes, mirroring how
        ``config set scopes`` takes them.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(settings)
            return
        rows = []
        for key, value in settings.items():
            if value is None:
                value = ""
            elif isinstance(value, list):
                value = " ".join(str(v) for v in value)
            rows.append((key, str(value)))
        self._print_pairs(rows, title="Settings")

    def _print_json(self, data: Any) -> None:
        self.print_value(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _print_pairs(self, rows: list[tuple[str, str]], title: str) -> None:
        if self._format == OutputFormat.PLAIN:
            for label, value in rows:
                self.print_value(f"{label}\t{value}")
            return
        table = Table(title=title, show_header=False)
        table.add_column(style="bold cyan")
        table.add_column()
        for label, value in rows:
            table.add_row(label, value)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        """Never suppressed by ``--quiet``."""
        self._diagnostic(message, label="Warning:", label_style="yellow")

    def error(self, message: str) -> None:
        """Never suppressed by ``--quiet``."""
        self._diagnostic(message, label="Error:", label_style="bold red")

    def suggest(self, message: str) -> None:
        """Next step for the user, e.g. ``→ Sign in: waystation auth login``."""
        if not self._quiet:
            self._diagnostic(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", style="dim")

    def _diagnostic(
        self,
        message: str,
        style: Optional[str] = None,
        label: Optional[str] = None,
        label_style: Optional[str] = None,
    ) -> None:
        if self._no_color:
            print(f"{label} {message}" if label else message, file=sys.stderr, flush=True)
        elif label:
            self._stderr.print(f"[{label_style}]{label}[/{label_style}] {escape(message)}")
        else:
            self._stderr.print(escape(message), style=style, highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb`` (clig.dev)."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None


def print_value(text: str) -> None:
    get_output().print_value(text)


def print_session(credential: Optional[Credential]) -> None:
    get_output().print_session(credential)


def print_settings(settings: dict[str, Any]) -> None:
    get_output().print_settings(settings)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
