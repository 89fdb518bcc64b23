"""Exception hierarchy for waystation.

All exceptions inherit from :class:`WaystationError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`waystation.exit_codes`.
The top-level error handler in :func:`waystation.app.main` catches
``WaystationError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    WaystationError (exit 1)
    +-- ConfigurationError        (exit 2)
    +-- TransportError            (exit 6)
    +-- ProtocolError             (exit 5)
    |   +-- TokenExchangeFailed
    |   +-- TokenRefreshFailed
    +-- CallbackError             (exit 3)
    |   +-- InvalidCallback
    |   +-- MissingCode
    |   +-- MissingState
    |   +-- NoPendingAuthorization
    |   +-- StateMismatch
    +-- SessionError              (exit 3)
    |   +-- NoCredential
    |   +-- NoRefreshToken
    +-- CorruptCredential         (exit 7)
    +-- CapabilityError           (exit 8)
        +-- BrowserLaunchError
        +-- TokenForwardError

Nothing in :mod:`waystation.auth` retries on any of these; the retry
decision always belongs to the caller.
"""

from __future__ import annotations

from waystation.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CAPABILITY_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_CORRUPT_CREDENTIAL,
    EXIT_GENERIC_FAILURE,
    EXIT_PROTOCOL_ERROR,
)


class WaystationError(Exception):
    """Base exception for all waystation errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`waystation.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(WaystationError):
    """Raised for a malformed authorization endpoint or an invalid config file. Never retried."""

    exit_code = EXIT_CONFIG_ERROR


class TransportError(WaystationError):
    """Raised when the token or user-info endpoint cannot be reached.

    Wraps the underlying :class:`httpx.TransportError` (timeout, DNS
    failure, connection refused) as ``__cause__``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ProtocolError(WaystationError):
    """Raised when the authorization server answers with something unusable.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the response, if any.
        body: The response body, verbatim, for diagnostics.
    """

    exit_code = EXIT_PROTOCOL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExchangeFailed(ProtocolError):
    """The token endpoint rejected an authorization-code exchange."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Token request failed: {body}", status_code=status_code, body=body
        )


class TokenRefreshFailed(ProtocolError):
    """The token endpoint rejected a refresh-token exchange."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Token refresh failed: {body}", status_code=status_code, body=body
        )


class CallbackError(WaystationError):
    """Base class for malformed or replayed redirect callbacks. Always rejected."""

    exit_code = EXIT_AUTH_FAILURE


class InvalidCallback(CallbackError):
    """The callback URI could not be parsed at all."""


class MissingCode(CallbackError):
    """The callback carries no ``code`` parameter (including server error callbacks)."""


class MissingState(CallbackError):
    """The callback carries no ``state`` parameter."""


class NoPendingAuthorization(CallbackError):
    """A callback arrived but no login is in flight (or it was already consumed)."""


class StateMismatch(CallbackError):
    """The callback's ``state`` does not match the pending login. Possible CSRF."""


class SessionError(WaystationError):
    """Base class for refresh attempts without a usable stored session.

    The caller should route the user back to ``login()``.
    """

    exit_code = EXIT_AUTH_FAILURE


class NoCredential(SessionError):
    """No credential record is stored."""


class NoRefreshToken(SessionError):
    """The stored credential has no refresh token."""


class CorruptCredential(WaystationError):
    """The credential file exists but cannot be read or parsed.

    Recovery is ``logout()``, which deletes the file.
    """

    exit_code = EXIT_CORRUPT_CREDENTIAL


class CapabilityError(WaystationError):
    """Base class for failures of a platform capability."""

    exit_code = EXIT_CAPABILITY_ERROR


class BrowserLaunchError(CapabilityError):
    """The browser launcher could not open the authorization URL."""


class TokenForwardError(CapabilityError):
    """The token sink could not publish the access token.

    Raised by :class:`~waystation.system.token_sink.TokenSink` implementations
    and absorbed by the session controller's best-effort forwarding step.
    """
