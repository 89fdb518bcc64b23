"""Auth session controller -- the login, callback, refresh and logout lifecycle.

:class:`AuthSessionController` is a small state machine over one slot,
the pending authorization::

    Idle --login()--> AwaitingCallback --handle_redirect()--> Idle

``login()`` and ``handle_redirect()`` may be called from different
threads (a UI action and a deep-link delivery). The slot is guarded by a
lock that is held only to set, or to read-and-clear, the slot and never
across a network call, so a slow token exchange never blocks a retried
``login()``. A second ``login()`` replaces an unfinished one.

Every collaborator is injected: settings, the credential store, the
token exchange client, the browser launcher and the token sink. Nothing
lives in module globals, so independent controllers can coexist in one
process (and in one test).

See Also:
    :func:`create_controller` -- wires the production collaborators.
"""

from __future__ import annotations

import hmac
import logging
import threading
import time
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from waystation.auth.callback import parse_callback
from waystation.auth.credential_store import CredentialStore
from waystation.auth.pkce import derive_challenge, generate_state, generate_verifier
from waystation.auth.token_client import TokenExchangeClient
from waystation.exceptions import (
    ConfigurationError,
    MissingCode,
    MissingState,
    NoCredential,
    NoPendingAuthorization,
    NoRefreshToken,
    StateMismatch,
    TransportError,
)
from waystation.models import (
    Credential,
    OAuthSettings,
    PendingAuthorization,
    TokenResponse,
    UserInfo,
)
from waystation.system.browser import BrowserLauncher, default_browser_launcher
from waystation.system.token_sink import FileTokenSink, TokenSink

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[Credential]], None]


class AuthSessionController:
    """Orchestrates PKCE login, callback validation, persistence and refresh.

    Args:
        settings: OAuth client configuration.
        store: Where the credential record is persisted.
        token_client: Performs the token and user-info requests.
        browser: Opens the authorization URL.
        token_sink: Optional destination for the best-effort token
            forwarding step after login and refresh.
        clock: Returns the current Unix time; used to turn ``expires_in``
            into ``expires_at``.

    Example::

        controller = create_controller()
        controller.login()
        # ... the redirect listener receives the callback ...
        credential = controller.handle_redirect(callback_uri)
    """

    def __init__(
        self,
        settings: OAuthSettings,
        store: CredentialStore,
        token_client: TokenExchangeClient,
        browser: BrowserLauncher,
        token_sink: Optional[TokenSink] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._store = store
        self._token_client = token_client
        self._browser = browser
        self._token_sink = token_sink
        self._clock = clock
        self._pending: Optional[PendingAuthorization] = None
        self._lock = threading.Lock()
        self._listeners: list[AuthListener] = []

    def __enter__(self) -> AuthSessionController:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the token client's HTTP connections."""
        self._token_client.close()

    @property
    def settings(self) -> OAuthSettings:
        return self._settings

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def awaiting_callback(self) -> bool:
        """``True`` between ``login()`` and the callback that consumes it."""
        with self._lock:
            return self._pending is not None

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def authorization_url(self) -> str:
        """Start a login attempt without opening a browser.

        Generates a fresh verifier, challenge and state, records the
        pending authorization (replacing any unfinished one) and returns
        the URL the user must visit.

        Raises:
            ConfigurationError: If ``authorization_url`` is not an absolute
                http(s) URL.
        """
        verifier = generate_verifier()
        state = generate_state()
        url = self._build_authorization_url(derive_challenge(verifier), state)

        with self._lock:
            if self._pending is not None:
                logger.info("Replacing unfinished login attempt")
            self._pending = PendingAuthorization(code_verifier=verifier, state=state)
        return url

    def login(self) -> str:
        """Start a login attempt and open the authorization URL in the browser.

        Returns as soon as the browser has been asked to open the URL; the
        result arrives later through :meth:`handle_redirect`.

        Returns:
            The authorization URL, so callers can show it if the browser
            does not appear.

        Raises:
            ConfigurationError: If the authorization endpoint is malformed.
            BrowserLaunchError: If the browser could not be opened. The
                login attempt stays pending.
        """
        url = self.authorization_url()
        self._browser.open(url)
        logger.info("Opened authorization URL in browser")
        return url

    def _build_authorization_url(self, challenge: str, state: str) -> str:
        endpoint = self._settings.authorization_url
        try:
            parts = urlsplit(endpoint)
        except ValueError as exc:
            raise ConfigurationError(
                f"Malformed authorization endpoint {endpoint!r}: {exc}"
            ) from exc
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigurationError(
                f"Authorization endpoint must be an absolute http(s) URL: {endpoint!r}"
            )

        query = parse_qsl(parts.query, keep_blank_values=True)
        query.extend(
            [
                ("client_id", self._settings.client_id),
                ("redirect_uri", self._settings.redirect_uri),
                ("response_type", "code"),
                ("scope", " ".join(self._settings.scopes)),
                ("code_challenge", challenge),
                ("code_challenge_method", "S256"),
                ("state", state),
            ]
        )
        return urlunsplit(parts._replace(query=urlencode(query)))

    # ------------------------------------------------------------------ #
    # Callback
    # ------------------------------------------------------------------ #

    def _take_pending(self) -> Optional[PendingAuthorization]:
        with self._lock:
            pending, self._pending = self._pending, None
        return pending

    def handle_redirect(self, callback_uri: str) -> Credential:
        """Complete a login from the redirect callback URI.

        The pending authorization is consumed exactly once, whether the
        callback then succeeds or fails. The token exchange only happens
        after the state has matched.

        Args:
            callback_uri: The raw URI handed over by the redirect listener.

        Returns:
            The newly persisted :class:`~waystation.models.Credential`.

        Raises:
            InvalidCallback: If the URI cannot be parsed.
            MissingCode: If there is no ``code`` (including error callbacks).
            MissingState: If there is no ``state``.
            NoPendingAuthorization: If no login is in flight.
            StateMismatch: If ``state`` differs from the pending one.
            TokenExchangeFailed: If the token endpoint rejects the code.
            TransportError: If the token endpoint cannot be reached.
        """
        params = parse_callback(callback_uri)
        if not params.code:
            if params.error:
                detail = params.error
                if params.error_description:
                    detail += f" - {params.error_description}"
                raise MissingCode(f"Authorization failed: {detail}")
            raise MissingCode("No authorization code found in redirect URI")
        if not params.state:
            raise MissingState("No state found in redirect URI")

        pending = self._take_pending()
        if pending is None:
            raise NoPendingAuthorization("No login in progress for this callback")
        if not hmac.compare_digest(
            params.state.encode("utf-8"), pending.state.encode("utf-8")
        ):
            logger.warning("Rejected callback with mismatched state")
            raise StateMismatch("State mismatch, possible CSRF attack")

        tokens = self._token_client.exchange_code(params.code, pending.code_verifier)
        credential = Credential(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            id_token=tokens.id_token,
            expires_at=self._expires_at(tokens),
            user_info=self._fetch_user_info(tokens.access_token),
        )
        self._store.save(credential)
        logger.info("Login completed")
        self.forward_token(credential.access_token)
        self._notify(credential)
        return credential

    def _fetch_user_info(self, access_token: str) -> Optional[UserInfo]:
        try:
            return self._token_client.fetch_user_info(access_token)
        except TransportError as exc:
            logger.warning("Continuing without user info: %s", exc)
            return None

    def _expires_at(self, tokens: TokenResponse) -> Optional[int]:
        if tokens.expires_in is None:
            return None
        return int(self._clock()) + tokens.expires_in

    # ------------------------------------------------------------------ #
    # Stored session
    # ------------------------------------------------------------------ #

    def get_credential(self) -> Optional[Credential]:
        """Return the stored credential, re-read from disk, or ``None``.

        Raises:
            CorruptCredential: If the stored file is unreadable.
        """
        return self._store.load()

    def logout(self) -> None:
        """Delete the stored credential and withdraw the published token.

        Idempotent. A corrupt credential file is removed as well.
        """
        self._store.clear()
        if self._token_sink is not None:
            try:
                self._token_sink.clear()
            except Exception as exc:
                logger.warning("Could not withdraw published token: %s", exc)
        logger.info("Logged out")
        self._notify(None)

    def refresh(self) -> Credential:
        """Exchange the stored refresh token for new tokens and persist them.

        ``refresh_token`` and ``id_token`` keep their previous values when
        the server omits them; ``user_info`` is carried over.

        Raises:
            NoCredential: If nothing is stored.
            NoRefreshToken: If the stored credential has no refresh token.
            CorruptCredential: If the stored file is unreadable.
            TokenRefreshFailed: If the token endpoint rejects the refresh.
            TransportError: If the token endpoint cannot be reached.
        """
        current = self._store.load()
        if current is None:
            raise NoCredential("No auth data found")
        if not current.refresh_token:
            raise NoRefreshToken("No refresh token available")

        tokens = self._token_client.exchange_refresh_token(current.refresh_token)
        credential = Credential(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or current.refresh_token,
            id_token=tokens.id_token or current.id_token,
            expires_at=self._expires_at(tokens),
            user_info=current.user_info,
        )
        self._store.save(credential)
        logger.info("Refreshed access token")
        self.forward_token(credential.access_token)
        self._notify(credential)
        return credential

    def ensure_fresh(self, margin: Optional[int] = None) -> Optional[Credential]:
        """Return the stored credential, refreshing it first if it is about to expire.

        Args:
            margin: Seconds before ``expires_at`` that count as "about to
                expire". Defaults to ``settings.refresh_margin``.

        Returns:
            The current credential, or ``None`` if not signed in.
        """
        credential = self._store.load()
        if credential is None:
            return None
        if margin is None:
            margin = self._settings.refresh_margin
        if credential.needs_refresh(margin, now=self._clock()):
            logger.debug("Access token expires within %ss, refreshing", margin)
            return self.refresh()
        return credential

    # ------------------------------------------------------------------ #
    # Post-steps
    # ------------------------------------------------------------------ #

    def forward_token(self, access_token: str) -> bool:
        """Publish *access_token* to the token sink, best effort.

        Failure is logged and reported through the return value only; it
        never changes the outcome of the login or refresh that called it.

        Returns:
            ``True`` if the sink accepted the token.
        """
        if self._token_sink is None:
            return False
        try:
            self._token_sink.write(access_token)
        except Exception as exc:
            logger.warning("Could not forward access token: %s", exc)
            return False
        return True

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register *listener* for credential changes.

        The listener is called once right away with the stored credential
        (or ``None``), then with the new credential after each login and
        refresh, and with ``None`` after logout.

        Returns:
            A function that removes the listener.

        Raises:
            CorruptCredential: If the stored file is unreadable. The
                listener is not registered.
        """
        current = self._store.load()
        self._listeners.append(listener)
        self._call_listener(listener, current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, credential: Optional[Credential]) -> None:
        for listener in list(self._listeners):
            self._call_listener(listener, credential)

    @staticmethod
    def _call_listener(listener: AuthListener, credential: Optional[Credential]) -> None:
        try:
            listener(credential)
        except Exception:
            logger.exception("Auth listener failed")


def create_controller(
    settings: Optional[OAuthSettings] = None,
    *,
    store: Optional[CredentialStore] = None,
    browser: Optional[BrowserLauncher] = None,
    token_sink: Optional[TokenSink] = None,
    http_client: Optional[httpx.Client] = None,
) -> AuthSessionController:
    """Build an :class:`AuthSessionController` wired to the production collaborators.

    Any collaborator can be replaced; the rest default to the file-backed
    credential store, an httpx-backed token client, the platform browser
    launcher and the ``~/.waystation/token`` sink.

    Args:
        settings: OAuth settings. Defaults to
            :func:`~waystation.config.load_settings`.
        store: Credential store override.
        browser: Browser launcher override.
        token_sink: Token sink override.
        http_client: Transport for the token client.
    """
    if settings is None:
        from waystation.config import load_settings

        settings = load_settings()

    return AuthSessionController(
        settings=settings,
        store=store or CredentialStore(),
        token_client=TokenExchangeClient(settings, http_client=http_client),
        browser=browser or default_browser_launcher(),
        token_sink=token_sink if token_sink is not None else FileTokenSink(),
    )
