"""Tests for the ado-mcp CLI and the setup/check/call commands."""
import http.client
import json
from datetime import datetime

import pytest
from click.testing import CliRunner

from ado_mcp.cli import cli
from commands import setup as setup_cmd

ENV = {"ADO_ORG": "contoso", "ADO_PAT": "secret-pat", "ADO_PROJECT": "Fabrikam Fiber"}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("ado_mcp.cli.configure_logging", lambda level: None)


@pytest.fixture
def runner(clean_env):
    return CliRunner()


@pytest.fixture
def fixed_command(monkeypatch):
    monkeypatch.setattr("commands.setup.shutil.which", lambda name: "/usr/local/bin/ado-mcp")


class TestSetupConfig:
    def test_entry_without_project(self, fixed_command):
        entry = setup_cmd.build_server_entry("contoso", "p")
        assert entry == {
            "command": "/usr/local/bin/ado-mcp",
            "args": ["serve"],
            "env": {"ADO_ORG": "contoso", "ADO_PAT": "p"},
        }

    def test_entry_with_project(self, fixed_command):
        entry = setup_cmd.build_server_entry("contoso", "p", "Web")
        assert entry["env"]["ADO_PROJECT"] == "Web"

    def test_fallback_to_python_module(self, monkeypatch):
        monkeypatch.setattr("commands.setup.shutil.which", lambda name: None)
        command = setup_cmd.server_command()
        assert command[1:] == ["-m", "ado_mcp.cli", "serve"]

    def test_write_new_file(self, tmp_path):
        path = tmp_path / ".cursor" / "mcp.json"
        backup = setup_cmd.write_client_config(path, {"command": "x"})
        assert backup is None
        assert json.loads(path.read_text()) == {"mcpServers": {"azure-devops": {"command": "x"}}}

    def test_merge_keeps_other_servers_and_backs_up(self, tmp_path):
        path = tmp_path / "mcp.json"
        original = {"mcpServers": {"github": {"command": "gh"}, "azure-devops": {"command": "old"}}}
        path.write_text(json.dumps(original))

        backup = setup_cmd.write_client_config(path, {"command": "new"}, now=datetime(2026, 1, 2, 3, 4, 5))

        assert backup == tmp_path / "mcp.json.backup.20260102_030405"
        assert json.loads(backup.read_text()) == original
        servers = json.loads(path.read_text())["mcpServers"]
        assert servers == {"github": {"command": "gh"}, "azure-devops": {"command": "new"}}

    def test_invalid_existing_file_is_replaced(self, tmp_path):
        path = tmp_path / "mcp.json"
        path.write_text("{not json")
        backup = setup_cmd.write_client_config(path, {"command": "x"})
        assert backup.read_text() == "{not json"
        assert json.loads(path.read_text()) == {"mcpServers": {"azure-devops": {"command": "x"}}}


class TestCli:
    def test_tools_lists_names(self, runner):
        result = runner.invoke(cli, ["tools"], obj={})
        assert result.exit_code == 0
        assert "work_item_create" in result.output
        assert "board_move" in result.output

    def test_tools_json(self, runner):
        result = runner.invoke(cli, ["tools", "--json"], obj={})
        assert result.exit_code == 0
        defs = json.loads(result.output)
        assert len(defs) == 13
        assert all("inputSchema" in d for d in defs)

    def test_call_without_config_fails(self, runner):
        result = runner.invoke(cli, ["call", "list_projects"], obj={})
        assert result.exit_code == 1
        assert "ADO_ORG" in result.output

    def test_call_prints_result(self, runner, urlopen):
        urlopen.queue({"id": 5, "fields": {"System.Title": "Hello"}})
        result = runner.invoke(cli, ["call", "work_item_get", "--args", '{"id": 5}'], obj={}, env=ENV)
        assert result.exit_code == 0
        assert json.loads(result.output)["id"] == 5
        assert urlopen.last.full_url.endswith("/Fabrikam%20Fiber/_apis/wit/workitems/5?api-version=6.0")

    def test_call_invalid_params_exits_1(self, runner, urlopen):
        result = runner.invoke(cli, ["call", "work_item_get", "--args", "{}"], obj={}, env=ENV)
        assert result.exit_code == 1
        assert urlopen.requests == []

    def test_call_bad_json_exits_1(self, runner, urlopen):
        result = runner.invoke(cli, ["call", "work_item_get", "--args", "{"], obj={}, env=ENV)
        assert result.exit_code == 1

    def test_check_success(self, runner, urlopen):
        urlopen.queue({"count": 2, "value": [{"name": "Fabrikam Fiber"}, {"name": "Other"}]})
        result = runner.invoke(cli, ["check"], obj={}, env=ENV)
        assert result.exit_code == 0
        assert "2 projects visible" in result.output
        assert "not found" not in result.output

    def test_check_unauthorized(self, runner, urlopen):
        urlopen.queue(401)
        result = runner.invoke(cli, ["check"], obj={}, env=ENV)
        assert result.exit_code == 1
        assert "401 GET" in result.output

    def test_check_connection_dropped(self, runner, urlopen):
        urlopen.queue(http.client.RemoteDisconnected("Remote end closed connection without response"))
        result = runner.invoke(cli, ["check"], obj={}, env=ENV)
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Remote end closed connection" in result.output

    def test_setup_writes_client_config(self, runner, tmp_path, fixed_command):
        path = tmp_path / "mcp.json"
        result = runner.invoke(
            cli,
            ["setup", "--client-config", str(path), "--org", "contoso", "--project", "", "--pat", "p"],
            obj={},
        )
        assert result.exit_code == 0, result.output
        entry = json.loads(path.read_text())["mcpServers"]["azure-devops"]
        assert entry["env"] == {"ADO_ORG": "contoso", "ADO_PAT": "p"}

    def test_setup_prompts(self, runner, tmp_path, fixed_command):
        path = tmp_path / "mcp.json"
        result = runner.invoke(
            cli, ["setup", "--client-config", str(path)], obj={}, input="contoso\nWeb\nsecret\n",
        )
        assert result.exit_code == 0, result.output
        entry = json.loads(path.read_text())["mcpServers"]["azure-devops"]
        assert entry["env"] == {"ADO_ORG": "contoso", "ADO_PAT": "secret", "ADO_PROJECT": "Web"}
