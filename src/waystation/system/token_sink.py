"""Token sink capability: publishing the access token to other integrations.

The WayStation MCP server and other local tools read the current bearer
token from ``~/.waystation/token``. Publishing it is a best-effort side
effect of login and refresh; sinks raise
:class:`~waystation.exceptions.TokenForwardError` and the session
controller absorbs it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from waystation.config import atomic_write, token_file_path
from waystation.exceptions import TokenForwardError

logger = logging.getLogger(__name__)


class TokenSink(ABC):
    """Destination that makes the access token available to other tools."""

    @abstractmethod
    def write(self, access_token: str) -> None:
        """Publish *access_token*.

        Raises:
            TokenForwardError: If the token could not be published.
        """

    def clear(self) -> None:
        """Withdraw any published token. No-op by default."""


class FileTokenSink(TokenSink):
    """Writes ``Bearer <token>`` to a file with ``0o600`` permissions.

    Args:
        path: Token file. Defaults to :func:`~waystation.config.token_file_path`.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else token_file_path()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, access_token: str) -> None:
        try:
            atomic_write(self._path, f"Bearer {access_token}", mode=0o600)
        except OSError as exc:
            raise TokenForwardError(
                f"Could not write token file {self._path}: {exc}"
            ) from exc
        logger.debug("Published access token to %s", self._path)

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise TokenForwardError(
                f"Could not remove token file {self._path}: {exc}"
            ) from exc


class NullTokenSink(TokenSink):
    """Sink that publishes nothing."""

    def write(self, access_token: str) -> None:
        return None
