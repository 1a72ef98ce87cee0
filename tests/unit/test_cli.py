"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from factorio_mcp import rcon as rcon_module
from factorio_mcp.cli import main
from factorio_mcp.errors import RconConnectionError

ENV = {
    "FACTORIO_RCON_HOST": "factorio.example",
    "FACTORIO_RCON_PORT": "27015",
    "FACTORIO_RCON_PASSWORD": "hunter2",
}


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch, tmp_path) -> CliRunner:
    """Runner in an empty directory with no RCON settings inherited."""
    monkeypatch.chdir(tmp_path)
    for name in (*ENV, "FACTORIO_RCON_TIMEOUT", "MCP_SERVER_NAME", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


class FakeClient:
    """Stand-in for FactorioRconClient used by the exec command."""

    reply: str | Exception = ""
    commands: list[str] = []

    def __init__(self, config, **kwargs) -> None:
        self.config = config

    async def __aenter__(self) -> FakeClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        return None

    async def execute(self, command: str) -> str:
        FakeClient.commands.append(command)
        if isinstance(FakeClient.reply, Exception):
            raise FakeClient.reply
        return FakeClient.reply


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[FakeClient]:
    FakeClient.reply = ""
    FakeClient.commands = []
    monkeypatch.setattr(rcon_module, "FactorioRconClient", FakeClient)
    return FakeClient


class TestToolsCommand:
    def test_lists_tools(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["tools"])

        assert result.exit_code == 0
        assert "execute_command" in result.output
        assert "get_factorio_docs" in result.output

    def test_json(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["tools", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data) == 8
        assert data[0]["name"] == "execute_command"
        assert data[0]["input_schema"]["required"] == ["command"]

    def test_needs_no_configuration(self, runner: CliRunner) -> None:
        assert runner.invoke(main, ["tools"]).exit_code == 0


class TestConfigCommand:
    def test_masks_password(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["config"], env=ENV)

        assert result.exit_code == 0
        assert "factorio.example:27015" in result.output
        assert "hunter2" not in result.output
        assert "********" in result.output

    def test_json(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["config", "--json"], env={**ENV, "LOG_LEVEL": "warn"})

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["rcon"]["password"] == "********"
        assert data["log_level"] == "WARNING"

    def test_missing_settings_is_usage_error(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["config"], env={"FACTORIO_RCON_HOST": "localhost"})

        assert result.exit_code == 2
        assert "Missing required environment variables" in result.output
        assert "FACTORIO_RCON_PASSWORD" in result.output

    def test_reads_dotenv_file(self, runner: CliRunner, tmp_path) -> None:
        (tmp_path / ".env").write_text(
            "\n".join(f"{key}={value}" for key, value in ENV.items()) + "\n"
        )

        # None entries are removed again after the run, undoing load_dotenv
        result = runner.invoke(main, ["config", "--json"], env={key: None for key in ENV})

        assert result.exit_code == 0
        assert json.loads(result.output)["rcon"]["host"] == "factorio.example"


class TestExecCommand:
    def test_prints_output(self, runner: CliRunner, fake_client) -> None:
        fake_client.reply = "1234"

        result = runner.invoke(main, ["exec", "/time"], env=ENV)

        assert result.exit_code == 0
        assert result.output.strip() == "1234"
        assert fake_client.commands == ["/time"]

    def test_empty_output(self, runner: CliRunner, fake_client) -> None:
        result = runner.invoke(main, ["exec", "/save"], env=ENV)

        assert result.exit_code == 0
        assert result.output.strip() == "(no output)"

    def test_rcon_error_exits_nonzero(self, runner: CliRunner, fake_client) -> None:
        fake_client.reply = RconConnectionError("Authentication failed: Invalid password")

        result = runner.invoke(main, ["exec", "/time"], env=ENV)

        assert result.exit_code == 1
        assert "Error: Authentication failed: Invalid password" in result.output
