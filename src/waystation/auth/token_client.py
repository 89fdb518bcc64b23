"""HTTP exchanges with the WayStation authorization server.

This module provides :class:`TokenExchangeClient`, which performs the
three network operations of the login lifecycle:

1. ``authorization_code`` grant -- code + PKCE verifier for tokens.
2. ``refresh_token`` grant -- refresh token for new tokens.
3. User-info fetch with bearer authentication.

Requests go through an :class:`httpx.Client`, injected by the caller or
created with the configured timeout. Nothing here retries. Any
:class:`httpx.HTTPError` (network failure, redirect loop, undecodable
body) surfaces as :class:`~waystation.exceptions.TransportError`, and
non-2xx token replies as
:class:`~waystation.exceptions.TokenExchangeFailed` /
:class:`~waystation.exceptions.TokenRefreshFailed` carrying the response
body verbatim.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from waystation.exceptions import (
    ProtocolError,
    TokenExchangeFailed,
    TokenRefreshFailed,
    TransportError,
)
from waystation.models import OAuthSettings, TokenResponse, UserInfo

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """Client for the token and user-info endpoints.

    Can be used as a context manager; only an :class:`httpx.Client` created
    here is closed on exit, an injected one is left to its owner.

    Args:
        settings: Endpoint URLs, client id, redirect URI and timeout.
        http_client: Optional transport. Tests pass one built on
            :class:`httpx.MockTransport`.

    Example::

        with TokenExchangeClient(settings) as client:
            tokens = client.exchange_code(code, verifier)
    """

    def __init__(
        self,
        settings: OAuthSettings,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=settings.timeout)

    def __enter__(self) -> TokenExchangeClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------ #
    # Token endpoint
    # ------------------------------------------------------------------ #

    def exchange_code(self, code: str, verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            code: The ``code`` parameter from the redirect callback.
            verifier: The PKCE ``code_verifier`` generated at login.

        Returns:
            The parsed :class:`~waystation.models.TokenResponse`.

        Raises:
            TokenExchangeFailed: On any non-2xx response.
            TransportError: If no usable response arrives (network, redirects, decoding).
            ProtocolError: If a 2xx body is not a valid token response.
        """
        data = {
            "client_id": self._settings.client_id,
            "code": code,
            "code_verifier": verifier,
            "grant_type": "authorization_code",
            "redirect_uri": self._settings.redirect_uri,
        }
        logger.info("Exchanging authorization code at %s", self._settings.token_url)
        response = self._post_form(data)
        if not response.is_success:
            logger.error("Token exchange failed with status %s", response.status_code)
            raise TokenExchangeFailed(response.status_code, response.text)
        return self._parse_tokens(response)

    def exchange_refresh_token(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for new tokens.

        No PKCE parameters are sent; the ``refresh_token`` grant does not
        use them.

        Raises:
            TokenRefreshFailed: On any non-2xx response.
            TransportError: If no usable response arrives (network, redirects, decoding).
            ProtocolError: If a 2xx body is not a valid token response.
        """
        data = {
            "client_id": self._settings.client_id,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        logger.info("Refreshing tokens at %s", self._settings.token_url)
        response = self._post_form(data)
        if not response.is_success:
            logger.error("Token refresh failed with status %s", response.status_code)
            raise TokenRefreshFailed(response.status_code, response.text)
        return self._parse_tokens(response)

    # ------------------------------------------------------------------ #
    # User info
    # ------------------------------------------------------------------ #

    def fetch_user_info(self, access_token: str) -> Optional[UserInfo]:
        """Fetch the signed-in user's profile claims.

        Args:
            access_token: Bearer token from the code exchange.

        Returns:
            The parsed :class:`~waystation.models.UserInfo`, or ``None`` when
            the endpoint answers with a non-2xx status or an unparseable
            body. Profile data is optional enrichment.

        Raises:
            TransportError: If no usable response arrives.
        """
        try:
            response = self._client.get(
                self._settings.userinfo_url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"User info request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("User info unavailable (status %s)", response.status_code)
            return None
        try:
            return UserInfo.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("User info response could not be parsed: %s", exc)
            return None

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _post_form(self, data: dict[str, str]) -> httpx.Response:
        try:
            return self._client.post(
                self._settings.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Token request failed: {exc}") from exc

    @staticmethod
    def _parse_tokens(response: httpx.Response) -> TokenResponse:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProtocolError(
                "Token response is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        try:
            return TokenResponse.model_validate(payload)
        except ValidationError as exc:
            raise ProtocolError(
                f"Token response missing required fields: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc
