"""Tests for the ``waystation auth`` command group via CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from waystation.app import app
from waystation.auth.session import AuthSessionController
from waystation.exceptions import BrowserLaunchError
from waystation.models import Credential, UserInfo
from waystation.system.browser import BrowserLauncher, NullBrowserLauncher

STATE = "S" * 32
CALLBACK = f"waystation://oauth/callback?code=abc&state={STATE}"
FAR_FUTURE = 4_102_444_800


class _NoBrowser(BrowserLauncher):
    def open(self, url: str) -> None:
        raise BrowserLaunchError("No usable browser found")


@pytest.fixture()
def use_controller(
    isolated_config: Path,
    monkeypatch: pytest.MonkeyPatch,
    controller_factory: Callable[..., AuthSessionController],
) -> Callable[..., AuthSessionController]:
    """Make the commands use a controller wired to the fake server.

    Returns a function that installs a controller built with the given
    overrides and returns it.
    """
    monkeypatch.setattr("waystation.auth.session.generate_state", lambda: STATE)

    def _install(**overrides: Any) -> AuthSessionController:
        controller = controller_factory(**overrides)
        monkeypatch.setattr(
            "waystation.auth.session.create_controller", lambda *a, **kw: controller
        )
        return controller

    return _install


def _store_credential(controller: AuthSessionController, **fields: Any) -> Credential:
    values: dict[str, Any] = {
        "access_token": "a1",
        "refresh_token": "r1",
        "expires_at": FAR_FUTURE,
        "user_info": UserInfo(subject_id="user_1", display_name="Ada", email="ada@example.test"),
    }
    values.update(fields)
    credential = Credential(**values)
    controller.store.save(credential)
    return credential


class TestLogin:
    def test_login_with_pasted_callback(self, cli_runner, use_controller) -> None:
        browser = NullBrowserLauncher()
        controller = use_controller(browser=browser)

        result = cli_runner.invoke(app, ["auth", "login"], input=f"{CALLBACK}\n")

        assert result.exit_code == 0, result.output
        assert "Signed in as Ada" in result.output
        assert len(browser.opened) == 1
        assert f"state={STATE}" in browser.opened[0]
        stored = controller.get_credential()
        assert stored is not None
        assert stored.access_token == "a1"

    def test_non_callback_links_ignored(self, cli_runner, use_controller) -> None:
        use_controller()

        result = cli_runner.invoke(
            app, ["auth", "login"], input=f"waystation://home\n{CALLBACK}\n"
        )

        assert result.exit_code == 0, result.output
        assert "Ignoring home link" in result.output

    def test_no_browser_prints_url(self, cli_runner, use_controller) -> None:
        browser = NullBrowserLauncher()
        use_controller(browser=browser)

        result = cli_runner.invoke(app, ["auth", "login", "--no-browser"], input=f"{CALLBACK}\n")

        assert result.exit_code == 0, result.output
        assert browser.opened == []
        assert "https://auth.example.test/oauth/authorize?" in result.output

    def test_browser_failure_falls_back_to_url(self, cli_runner, use_controller) -> None:
        use_controller(browser=_NoBrowser())

        result = cli_runner.invoke(app, ["auth", "login"], input=f"{CALLBACK}\n")

        assert result.exit_code == 0, result.output
        assert "No usable browser found" in result.output
        assert "https://auth.example.test/oauth/authorize?" in result.output

    def test_state_mismatch_exits_3(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        forged = CALLBACK.replace(STATE, "X" * 32)

        result = cli_runner.invoke(app, ["auth", "login"], input=f"{forged}\n")

        assert result.exit_code == 3
        assert "State mismatch" in result.output
        assert controller.get_credential() is None

    def test_exchange_rejected_exits_5(self, cli_runner, use_controller, auth_server) -> None:
        use_controller()
        auth_server.token_reply = (400, {"error": "invalid_grant"})

        result = cli_runner.invoke(app, ["auth", "login"], input=f"{CALLBACK}\n")

        assert result.exit_code == 5
        assert "invalid_grant" in result.output

    def test_without_profile_warns(self, cli_runner, use_controller, auth_server) -> None:
        use_controller()
        auth_server.userinfo_reply = (500, "boom")

        result = cli_runner.invoke(app, ["auth", "login"], input=f"{CALLBACK}\n")

        assert result.exit_code == 0, result.output
        assert "Signed in as unknown user" in result.output


class TestStatus:
    def test_not_signed_in(self, cli_runner, use_controller) -> None:
        use_controller()

        result = cli_runner.invoke(app, ["auth", "status"])

        assert result.exit_code == 3
        assert "Not signed in" in result.output

    def test_json(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        _store_credential(controller)

        result = cli_runner.invoke(app, ["--json", "auth", "status"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["signed_in"] is True
        assert data["user"]["sub"] == "user_1"
        assert data["expires_at"] == FAR_FUTURE
        assert data["expired"] is False
        assert data["has_refresh_token"] is True

    def test_plain_table(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        _store_credential(controller, refresh_token=None)

        result = cli_runner.invoke(app, ["--plain", "auth", "status"])

        assert result.exit_code == 0, result.output
        assert "User\tAda" in result.output
        assert "Refresh token\tno" in result.output

    def test_corrupt_credential_exits_7(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        controller.store.path.write_text("{not json")

        result = cli_runner.invoke(app, ["auth", "status"])

        assert result.exit_code == 7
        assert "waystation auth logout" in result.output


class TestToken:
    def test_prints_token(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        _store_credential(controller)

        result = cli_runner.invoke(app, ["auth", "token"])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "a1"

    def test_not_signed_in(self, cli_runner, use_controller) -> None:
        use_controller()

        result = cli_runner.invoke(app, ["auth", "token"])
        assert result.exit_code == 3

    def test_ensure_fresh_refreshes(self, cli_runner, use_controller, auth_server, clock) -> None:
        controller = use_controller()
        _store_credential(controller, expires_at=int(clock()) + 60)
        auth_server.token_reply = (200, {"access_token": "a2", "expires_in": FAR_FUTURE})

        result = cli_runner.invoke(app, ["auth", "token", "--ensure-fresh"])

        assert result.exit_code == 0, result.output
        assert "a2" in result.output.splitlines()
        assert len(auth_server.token_requests()) == 1


class TestRefresh:
    def test_refresh(self, cli_runner, use_controller, auth_server) -> None:
        controller = use_controller()
        _store_credential(controller)
        auth_server.token_reply = (200, {"access_token": "a2", "expires_in": 3600})

        result = cli_runner.invoke(app, ["auth", "refresh"])

        assert result.exit_code == 0, result.output
        assert "Access token refreshed" in result.output
        stored = controller.get_credential()
        assert stored is not None
        assert stored.access_token == "a2"
        assert stored.refresh_token == "r1"

    def test_not_signed_in(self, cli_runner, use_controller) -> None:
        use_controller()

        result = cli_runner.invoke(app, ["auth", "refresh"])

        assert result.exit_code == 3
        assert "No auth data found" in result.output

    def test_without_refresh_token(self, cli_runner, use_controller) -> None:
        controller = use_controller()
        _store_credential(controller, refresh_token=None)

        result = cli_runner.invoke(app, ["auth", "refresh"])

        assert result.exit_code == 3
        assert "No refresh token available" in result.output


class TestLogout:
    def test_logout(self, cli_runner, use_controller, tmp_path: Path) -> None:
        controller = use_controller()
        _store_credential(controller)
        controller.forward_token("a1")

        result = cli_runner.invoke(app, ["auth", "logout"])

        assert result.exit_code == 0, result.output
        assert "Signed out." in result.output
        assert controller.get_credential() is None
        assert not (tmp_path / "token").exists()

    def test_logout_when_signed_out(self, cli_runner, use_controller) -> None:
        use_controller()

        result = cli_runner.invoke(app, ["auth", "logout"])
        assert result.exit_code == 0
