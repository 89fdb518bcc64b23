"""PKCE (:rfc:`7636`) verifier, challenge and state generation.

The verifier and the state are independent random strings drawn with
:mod:`secrets`; the state is used only for CSRF binding of the callback
and is unrelated to the verifier.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

_ALPHABET = string.ascii_letters + string.digits

VERIFIER_LENGTH = 64
STATE_LENGTH = 32


def _random_alphanumeric(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_verifier() -> str:
    """Return a 64-character alphanumeric ``code_verifier`` (~381 bits of entropy)."""
    return _random_alphanumeric(VERIFIER_LENGTH)


def derive_challenge(verifier: str) -> str:
    """Return the S256 ``code_challenge`` for *verifier*.

    base64url without padding of the SHA-256 digest of the verifier's
    ASCII bytes. Pure and deterministic.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """Return a 32-character alphanumeric ``state`` value."""
    return _random_alphanumeric(STATE_LENGTH)


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    verifier = generate_verifier()
    return verifier, derive_challenge(verifier)
