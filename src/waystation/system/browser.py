"""Browser launcher capability.

Opening the user's browser differs per platform, so the session
controller only sees the :class:`BrowserLauncher` interface. One
implementation is chosen at startup by :func:`default_browser_launcher`.
Every launcher returns as soon as the browser has been asked to open the
URL; none waits for the user.
"""

from __future__ import annotations

import logging
import platform
import subprocess
import webbrowser
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from waystation.exceptions import BrowserLaunchError

logger = logging.getLogger(__name__)


class BrowserLauncher(ABC):
    """Opens a URL in the user's default browser (fire-and-forget)."""

    @abstractmethod
    def open(self, url: str) -> None:
        """Ask the browser to open *url* and return immediately.

        Raises:
            BrowserLaunchError: If the browser could not be started.
        """


class WebBrowserLauncher(BrowserLauncher):
    """Launcher backed by the standard library :mod:`webbrowser` registry."""

    def open(self, url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            raise BrowserLaunchError(f"Could not open browser: {exc}") from exc
        if not opened:
            raise BrowserLaunchError("No usable browser found")


class CommandBrowserLauncher(BrowserLauncher):
    """Launcher that hands the URL to the platform's opener command.

    Args:
        argv_prefix: Command to run with the URL appended, e.g.
            ``["xdg-open"]`` or ``["open"]``.
    """

    def __init__(self, argv_prefix: Sequence[str]) -> None:
        self._argv_prefix = list(argv_prefix)

    @property
    def command(self) -> list[str]:
        return list(self._argv_prefix)

    def open(self, url: str) -> None:
        argv = [*self._argv_prefix, url]
        logger.debug("Launching browser via %s", self._argv_prefix[0])
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise BrowserLaunchError(
                f"Could not run {self._argv_prefix[0]}: {exc}"
            ) from exc


class NullBrowserLauncher(BrowserLauncher):
    """Launcher that only records URLs.

    Used for ``--no-browser`` (the URL is printed instead) and in tests.
    """

    def __init__(self) -> None:
        self.opened: list[str] = []

    def open(self, url: str) -> None:
        self.opened.append(url)


def default_browser_launcher(system: Optional[str] = None) -> BrowserLauncher:
    """Select the browser launcher for the running platform.

    * macOS: ``open``
    * Windows: ``cmd /c start ""``
    * Linux/BSD and anything else: :mod:`webbrowser`, which already
      consults ``$BROWSER`` and ``xdg-open``.

    Args:
        system: Override for :func:`platform.system` (tests).
    """
    system = system or platform.system()
    if system == "Darwin":
        return CommandBrowserLauncher(["open"])
    if system == "Windows":
        return CommandBrowserLauncher(["cmd", "/c", "start", ""])
    return WebBrowserLauncher()
