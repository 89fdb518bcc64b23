"""Canonical Pydantic models shared across all waystation modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration** -- :class:`OAuthSettings`, loaded from ``config.json``
and environment variables by :func:`waystation.config.load_settings`.

**Transient protocol records** -- :class:`PendingAuthorization` (the
in-memory correlation between ``login()`` and the callback),
:class:`TokenResponse` and :class:`UserInfo` (parsed server replies).

**Persisted record** -- :class:`Credential`, serialised as JSON by
:class:`~waystation.auth.credential_store.CredentialStore`.

All models use Pydantic v2. :class:`UserInfo` keeps descriptive Python
attribute names and maps them to the OpenID Connect claim names (``sub``,
``name``, ``picture``) on the wire; always dump with ``by_alias=True``.
"""

from __future__ import annotations

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_AUTHORIZATION_URL = "https://clerk.waystation.ai/oauth/authorize"
DEFAULT_TOKEN_URL = "https://clerk.waystation.ai/oauth/token"
DEFAULT_USERINFO_URL = "https://clerk.waystation.ai/oauth/userinfo"
DEFAULT_CLIENT_ID = "5xEs1bi3TY8JNVHx"
DEFAULT_REDIRECT_URI = "waystation://oauth/callback"
DEFAULT_SCOPES = ["profile", "email"]


# --- Configuration ---


class OAuthSettings(BaseModel):
    """OAuth client configuration for the WayStation authorization server.

    Every field has a production default, so an empty ``config.json`` is
    valid. Values can be overridden per field in the config file or via
    ``WAYSTATION_*`` environment variables (see :mod:`waystation.config`).

    Example::

        OAuthSettings(client_id="test-client", scopes=["profile"])
    """

    authorization_url: str = Field(
        default=DEFAULT_AUTHORIZATION_URL,
        description="Authorization endpoint the browser is sent to",
    )
    token_url: str = Field(
        default=DEFAULT_TOKEN_URL,
        description="Token endpoint for code and refresh-token exchanges",
    )
    userinfo_url: str = Field(
        default=DEFAULT_USERINFO_URL,
        description="OpenID Connect user-info endpoint",
    )
    client_id: str = Field(default=DEFAULT_CLIENT_ID, min_length=1)
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI,
        description="Custom-scheme URI the authorization server redirects to",
    )
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = Field(
        default=30.0, gt=0, description="HTTP timeout in seconds for token requests"
    )
    refresh_margin: int = Field(
        default=300,
        ge=0,
        description="Seconds before expiry at which ensure_fresh() refreshes",
    )


# --- Transient protocol records ---


class PendingAuthorization(BaseModel):
    """PKCE verifier and CSRF state for the single in-flight login.

    Held only in memory by
    :class:`~waystation.auth.session.AuthSessionController` and never
    persisted.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str
    state: str


class TokenResponse(BaseModel):
    """A successful token-endpoint reply (:rfc:`6749#section-5.1`).

    Unknown fields such as ``scope`` are ignored.
    """

    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    token_type: Optional[str] = "Bearer"
    expires_in: Optional[int] = Field(default=None, ge=0)


class UserInfo(BaseModel):
    """Profile claims returned by the user-info endpoint.

    Accepts either the claim names or the attribute names on input.
    """

    model_config = ConfigDict(populate_by_name=True)

    subject_id: str = Field(alias="sub")
    display_name: Optional[str] = Field(default=None, alias="name")
    email: Optional[str] = None
    picture_url: Optional[str] = Field(default=None, alias="picture")


# --- Persisted record ---


class Credential(BaseModel):
    """The one credential record stored per installation.

    ``expires_at`` is an absolute Unix timestamp computed once from the
    token response's ``expires_in`` and never re-derived.

    Attributes:
        access_token: Bearer token for the WayStation API. Always present.
        refresh_token: Token for obtaining new access tokens, if issued.
        id_token: OpenID Connect ID token, if issued.
        expires_at: Absolute expiry in epoch seconds, if known.
        user_info: Profile claims fetched at login, if the fetch succeeded.
    """

    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    expires_at: Optional[int] = None
    user_info: Optional[UserInfo] = None

    def seconds_until_expiry(self, now: Optional[float] = None) -> Optional[int]:
        """Seconds left before ``expires_at`` (negative once expired), or ``None``."""
        if self.expires_at is None:
            return None
        current = time.time() if now is None else now
        return int(self.expires_at - current)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Whether the access token is past ``expires_at``.

        A credential without ``expires_at`` is never considered expired.
        """
        remaining = self.seconds_until_expiry(now)
        return remaining is not None and remaining <= 0

    def needs_refresh(self, margin: int = 300, now: Optional[float] = None) -> bool:
        """Whether the credential is refreshable and expires within *margin* seconds."""
        if not self.refresh_token:
            return False
        remaining = self.seconds_until_expiry(now)
        return remaining is not None and remaining <= margin

    def to_wire(self) -> dict:
        """Return the JSON-ready dict written to the credential file."""
        return self.model_dump(mode="json", by_alias=True)
