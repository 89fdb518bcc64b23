"""Persistent store for the single WayStation credential record.

Stores the :class:`~waystation.models.Credential` in
``~/.local/share/waystation/credentials.json`` (XDG) or the
platform-equivalent directory. Files are written atomically via
:func:`~waystation.config.atomic_write` with ``0o600`` permissions so that
tokens are never world-readable, even momentarily.

There is exactly one record per installation; :meth:`CredentialStore.save`
replaces it wholesale.

See Also:
    :class:`~waystation.auth.session.AuthSessionController` -- the only
    writer of this record.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from waystation.config import atomic_write, credentials_path
from waystation.exceptions import CorruptCredential
from waystation.models import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read/write the credential record.

    All writes are atomic: content is written to a temporary file in the
    same directory, fsynced, then renamed into place. This prevents
    partial writes from corrupting stored credentials.

    Args:
        path: Location of the credential file. Defaults to
            :func:`~waystation.config.credentials_path`.

    Example::

        store = CredentialStore(tmp_path / "credentials.json")
        store.save(Credential(access_token="tok123"))
        assert store.load().access_token == "tok123"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else credentials_path()

    @property
    def path(self) -> Path:
        """The filesystem path to the credential file."""
        return self._path

    def exists(self) -> bool:
        """Whether a credential file is present (readable or not)."""
        return self._path.is_file()

    def save(self, credential: Credential) -> None:
        """Persist *credential* atomically with ``0o600`` permissions.

        Any previous record is fully overwritten.

        Args:
            credential: The record to write.

        Raises:
            OSError: If the file cannot be written (permissions, disk full, etc.).
        """
        text = json.dumps(credential.to_wire(), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)
        logger.debug("Saved credential to %s", self._path)

    def load(self) -> Optional[Credential]:
        """Load the stored credential from disk.

        Returns:
            The deserialised :class:`~waystation.models.Credential`, or
            ``None`` if no file exists.

        Raises:
            CorruptCredential: If the file exists but cannot be read, is not
                JSON, or does not match the credential schema.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Credential.model_validate(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Credential file %s is unreadable: %s", self._path, exc)
            raise CorruptCredential(
                f"Stored credential at {self._path} is unreadable: {exc}"
            ) from exc

    def clear(self) -> None:
        """Delete the credential file if it exists.

        This is a no-op when the file has already been removed.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        logger.info("Cleared stored credential")
