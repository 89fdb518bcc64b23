"""Tests for the ``waystation config`` command group via CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

from waystation.app import app
from waystation.config import config_file_path, load_settings
from waystation.models import DEFAULT_CLIENT_ID


class TestConfigShow:
    def test_defaults(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "config", "show"])

        assert result.exit_code == 0, result.output
        assert f"client_id\t{DEFAULT_CLIENT_ID}" in result.output
        assert "token_file\t" in result.output

    def test_invalid_file(self, cli_runner, isolated_config: Path) -> None:
        config_file_path().write_text("{broken")

        result = cli_runner.invoke(app, ["config", "show"])
        assert result.exit_code == 2


class TestConfigPath:
    def test_path(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert result.output.strip() == str(config_file_path())


class TestConfigSet:
    def test_set_string(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "client_id", "dev-client"])

        assert result.exit_code == 0, result.output
        assert json.loads(config_file_path().read_text())["client_id"] == "dev-client"
        assert load_settings().client_id == "dev-client"

    def test_set_scopes_space_separated(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["config", "set", "scopes", "profile email offline_access"]
        )

        assert result.exit_code == 0, result.output
        assert load_settings().scopes == ["profile", "email", "offline_access"]

    def test_set_scopes_json_list(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "scopes", '["openid"]'])

        assert result.exit_code == 0, result.output
        assert load_settings().scopes == ["openid"]

    def test_set_number(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "refresh_margin", "120"])

        assert result.exit_code == 0, result.output
        assert load_settings().refresh_margin == 120

    def test_unknown_key(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "colour", "blue"])

        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_invalid_value(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "timeout", "0"])

        assert result.exit_code == 2
        assert not config_file_path().exists()

    def test_malformed_scope_list(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "scopes", "[oops"])
        assert result.exit_code == 2

    def test_keeps_other_keys(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "client_id", "dev-client"])
        cli_runner.invoke(app, ["config", "set", "timeout", "10"])

        settings = load_settings()
        assert settings.client_id == "dev-client"
        assert settings.timeout == 10


class TestConfigReset:
    def test_confirmed(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "client_id", "dev-client"])

        result = cli_runner.invoke(app, ["config", "reset"], input="y\n")

        assert result.exit_code == 0, result.output
        assert load_settings().client_id == DEFAULT_CLIENT_ID

    def test_cancelled(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "client_id", "dev-client"])

        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert load_settings().client_id == "dev-client"

    def test_force(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "client_id", "dev-client"])

        result = cli_runner.invoke(app, ["--force", "config", "reset"])

        assert result.exit_code == 0, result.output
        assert load_settings().client_id == DEFAULT_CLIENT_ID
