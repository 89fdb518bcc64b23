"""Parsing of ``waystation://`` deep links delivered by the redirect listener.

The operating system hands every ``waystation://`` URI to the app. Only
those under the configured redirect URI are OAuth callbacks; the others
are navigation links (``waystation://home``, ``waystation://onboarding``)
that the caller routes elsewhere.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

from waystation.exceptions import InvalidCallback

HOME_URI = "waystation://home"
ONBOARDING_URI = "waystation://onboarding"


class DeepLink(str, enum.Enum):
    """Kinds of ``waystation://`` URIs the app can receive."""

    OAUTH_CALLBACK = "oauth_callback"
    HOME = "home"
    ONBOARDING = "onboarding"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CallbackParams:
    """Query parameters of a redirect callback (first value of each)."""

    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


def parse_callback(uri: str) -> CallbackParams:
    """Extract ``code``, ``state`` and any OAuth error from a callback URI.

    Blank values are kept as empty strings; only absent parameters become
    ``None``.

    Args:
        uri: The raw URI, e.g. ``waystation://oauth/callback?code=abc&state=S``.

    Returns:
        The parsed :class:`CallbackParams`.

    Raises:
        InvalidCallback: If *uri* is malformed or has no scheme.
    """
    try:
        parsed = urlparse(uri.strip())
    except ValueError as exc:
        raise InvalidCallback(f"Malformed callback URI {uri!r}: {exc}") from exc
    if not parsed.scheme:
        raise InvalidCallback(f"Not a callback URI: {uri!r}")

    params = parse_qs(parsed.query, keep_blank_values=True)

    def first(name: str) -> Optional[str]:
        values = params.get(name)
        return values[0] if values else None

    return CallbackParams(
        code=first("code"),
        state=first("state"),
        error=first("error"),
        error_description=first("error_description"),
    )


def classify_deep_link(uri: str, redirect_uri: str) -> DeepLink:
    """Decide which handler a ``waystation://`` URI belongs to.

    Args:
        uri: The URI received from the operating system.
        redirect_uri: The configured OAuth redirect URI.
    """
    uri = uri.strip()
    if uri.startswith(redirect_uri):
        return DeepLink.OAUTH_CALLBACK
    if uri == HOME_URI:
        return DeepLink.HOME
    if uri == ONBOARDING_URI:
        return DeepLink.ONBOARDING
    return DeepLink.UNKNOWN
