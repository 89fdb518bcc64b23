"""OAuth2 + PKCE authentication for the WayStation desktop companion.

The main entry points are:

- :class:`AuthSessionController` -- drives login, callback handling,
  refresh and logout, and owns the single in-flight login attempt.
- :func:`create_controller` -- factory wiring the controller to the
  file-backed :class:`CredentialStore`, an httpx-backed
  :class:`TokenExchangeClient` and the platform capabilities.
- :mod:`waystation.auth.pkce` -- verifier, challenge and state generation.
- :mod:`waystation.auth.callback` -- parsing of redirect callback URIs.

Typical usage::

    from waystation.auth import create_controller

    with create_controller() as controller:
        controller.login()
        credential = controller.handle_redirect(callback_uri)
"""

from waystation.auth.callback import (
    CallbackParams,
    DeepLink,
    classify_deep_link,
    parse_callback,
)
from waystation.auth.credential_store import CredentialStore
from waystation.auth.pkce import (
    derive_challenge,
    generate_pkce_pair,
    generate_state,
    generate_verifier,
)
from waystation.auth.session import AuthSessionController, create_controller
from waystation.auth.token_client import TokenExchangeClient

__all__ = [
    "AuthSessionController",
    "CallbackParams",
    "CredentialStore",
    "DeepLink",
    "TokenExchangeClient",
    "classify_deep_link",
    "create_controller",
    "derive_challenge",
    "generate_pkce_pair",
    "generate_state",
    "generate_verifier",
    "parse_callback",
]
