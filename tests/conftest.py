"""Shared test fixtures for waystation.

Provides reusable fixtures for isolated config environments, OAuth
settings, fake authorization servers built on :class:`httpx.MockTransport`,
managing output state, and running CLI commands. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from waystation.auth.credential_store import CredentialStore
from waystation.auth.session import AuthSessionController
from waystation.auth.token_client import TokenExchangeClient
from waystation.models import OAuthSettings
from waystation.output import reset_output
from waystation.system.browser import NullBrowserLauncher
from waystation.system.token_sink import FileTokenSink


TOKEN_URL = "https://auth.example.test/oauth/token"
USERINFO_URL = "https://auth.example.test/oauth/userinfo"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    points the shared token file into tmp_path, forces the XDG layout and
    clears all other WAYSTATION_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("waystation.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "WAYSTATION_AUTHORIZATION_URL",
        "WAYSTATION_TOKEN_URL",
        "WAYSTATION_USERINFO_URL",
        "WAYSTATION_CLIENT_ID",
        "WAYSTATION_REDIRECT_URI",
        "WAYSTATION_SCOPES",
        "WAYSTATION_CREDENTIALS_FILE",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("WAYSTATION_TOKEN_FILE", str(tmp_path / "waystation" / "token"))

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# OAuth fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> OAuthSettings:
    """Settings pointing at a fake authorization server."""
    return OAuthSettings(
        authorization_url="https://auth.example.test/oauth/authorize",
        token_url=TOKEN_URL,
        userinfo_url=USERINFO_URL,
        client_id="test-client",
        redirect_uri="waystation://oauth/callback",
        scopes=["profile", "email"],
    )


class FakeAuthServer:
    """Scriptable token and user-info endpoints for httpx.MockTransport.

    Every request is recorded in :attr:`requests`. Set :attr:`token_reply`
    and :attr:`userinfo_reply` to ``(status, json_or_text)`` tuples, or
    assign an exception to :attr:`raise_on` to simulate a transport error.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_reply: tuple[int, Any] = (
            200,
            {
                "access_token": "a1",
                "refresh_token": "r1",
                "id_token": "i1",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )
        self.userinfo_reply: tuple[int, Any] = (
            200,
            {"sub": "user_1", "name": "Ada", "email": "ada@example.test"},
        )
        self.raise_on: dict[str, Exception] = {}

    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == TOKEN_URL]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.raise_on:
            raise self.raise_on[url]
        status, body = self.token_reply if url == TOKEN_URL else self.userinfo_reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(
            status,
            content=json.dumps(body).encode(),
            headers={"content-type": "application/json"},
        )


@pytest.fixture
def auth_server() -> FakeAuthServer:
    return FakeAuthServer()


@pytest.fixture
def http_client(auth_server: FakeAuthServer) -> httpx.Client:
    client = httpx.Client(transport=httpx.MockTransport(auth_server.handler))
    yield client
    client.close()


@pytest.fixture
def clock() -> Callable[[], float]:
    """A fixed clock at 1_700_000_000."""
    return lambda: 1_700_000_000.0


@pytest.fixture
def controller_factory(
    tmp_path: Path,
    settings: OAuthSettings,
    http_client: httpx.Client,
    clock: Callable[[], float],
) -> Callable[..., AuthSessionController]:
    """Build controllers wired to tmp_path storage and the fake server."""

    def _make(**overrides: Any) -> AuthSessionController:
        kwargs: dict[str, Any] = {
            "settings": settings,
            "store": CredentialStore(tmp_path / "credentials.json"),
            "token_client": TokenExchangeClient(settings, http_client=http_client),
            "browser": NullBrowserLauncher(),
            "token_sink": FileTokenSink(tmp_path / "token"),
            "clock": clock,
        }
        kwargs.update(overrides)
        return AuthSessionController(**kwargs)

    return _make


@pytest.fixture
def controller(
    controller_factory: Callable[..., AuthSessionController],
) -> AuthSessionController:
    return controller_factory()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
