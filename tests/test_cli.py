"""
Tests for CLI commands: exit codes, JSON output, and the sub-groups.

Every invocation uses a throwaway config dir and the fake runner, so no
real tool is ever spawned.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cliverge.core.persistence.version_db import (
    ToolVersionInfo,
    VersionDatabase,
    default_version_db_path,
)
from cliverge.main import cli

from conftest import tool_data

VERSION = ["demo", "--version"]


@pytest.fixture
def home(tmp_path: Path) -> Path:
    d = tmp_path / "home"
    d.mkdir()
    (d / "tools.json").write_text(json.dumps({
        "version": "1.0",
        "tools": [tool_data("demo"), tool_data("other")],
    }))
    return d


@pytest.fixture
def invoke(home, fake_runner):
    def _invoke(*args: str):
        return CliRunner().invoke(
            cli, ["--config-dir", str(home), *args], obj={"runner": fake_runner},
        )
    return _invoke


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "CLIverge" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_malformed_registry(self, home, fake_runner):
        (home / "tools.json").write_text("{broken")
        result = CliRunner().invoke(
            cli, ["--config-dir", str(home), "list"], obj={"runner": fake_runner},
        )
        assert result.exit_code == 1
        assert "tools.json" in result.output


class TestListAndStatus:
    def test_list_spawns_nothing(self, invoke, fake_runner):
        result = invoke("list", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["id"] for t in data] == ["demo", "other"]
        assert data[0]["status"]["state"] == "unknown"
        assert fake_runner.calls == []

    def test_status_json(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="demo version 1.2.3")
        result = invoke("status", "demo", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"demo": {"state": "installed", "version": "1.2.3"}}

    def test_status_all(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        result = invoke("status")
        assert result.exit_code == 0
        assert "✓ demo" in result.output
        assert "✗ other" in result.output

    def test_status_is_cached_across_invocations(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        invoke("status", "demo")
        invoke("status", "demo")
        assert fake_runner.count(VERSION) == 1

        invoke("status", "demo", "--refresh")
        assert fake_runner.count(VERSION) == 2

    def test_status_unknown_tool(self, invoke):
        result = invoke("status", "nope")
        assert result.exit_code == 1
        assert "Tool 'nope' not found" in result.output


class TestLifecycleCommands:
    def test_install(self, invoke, fake_runner):
        fake_runner.on(["npm", "install", "-g", "demo-cli"])
        result = invoke("install", "demo")
        assert result.exit_code == 0
        assert "Demo installed" in result.output

    def test_install_already_installed(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        result = invoke("install", "demo")
        assert result.exit_code == 0
        assert "already installed" in result.output
        assert fake_runner.count(["npm", "install", "-g", "demo-cli"]) == 0

    def test_install_failure(self, invoke, fake_runner):
        fake_runner.on(["npm", "install", "-g", "demo-cli"], returncode=1, stderr="EACCES")
        result = invoke("install", "demo")
        assert result.exit_code == 1
        assert "Failed to install Demo" in result.output

    def test_unknown_tool(self, invoke):
        result = invoke("uninstall", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_update_pinned(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        fake_runner.on(["npm", "install", "-g", "demo-cli@2.0.0"])
        result = invoke("update", "demo", "--version", "2.0.0")
        assert result.exit_code == 0
        assert "Demo updated" in result.output

    def test_update_not_installed(self, invoke):
        result = invoke("update", "demo")
        assert result.exit_code == 1
        assert "not installed" in result.output


class TestExec:
    def test_passes_exit_code_and_output(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        fake_runner.on(["demo", "run", "--fast"], returncode=3, stdout="hello\n")
        result = invoke("exec", "demo", "run", "--fast")
        assert result.exit_code == 3
        assert "hello" in result.output

    def test_not_installed(self, invoke):
        result = invoke("exec", "demo", "run")
        assert result.exit_code == 1
        assert "not installed" in result.output


class TestVersionsAndHelp:
    def test_versions_local_database(self, home, invoke, fake_runner):
        db = VersionDatabase(default_version_db_path(home))
        db.update_tool_version("demo", ToolVersionInfo(latest_version="2.0.0"))
        db.save()
        fake_runner.on(VERSION, stdout="1.0.0")

        result = invoke("versions", "demo", "--strategy", "local-database", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["latest"] == "2.0.0"
        assert data["updateAvailable"] is True
        assert data["checkMethod"] == "local-database"

    def test_tool_help(self, invoke, fake_runner):
        fake_runner.on(["demo", "--help"], stdout="usage: demo\n")
        result = invoke("tool-help", "demo")
        assert result.exit_code == 0
        assert "usage: demo" in result.output

    def test_tool_help_missing(self, invoke):
        result = invoke("tool-help", "demo")
        assert result.exit_code == 1
        assert "Could not get help information for Demo" in result.output


class TestRefresh:
    def test_reports_every_tool(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        fake_runner.on(["other", "--version"], returncode=127)
        result = invoke("refresh")
        assert result.exit_code == 0
        assert "✓ demo" in result.output
        assert "✓ other" in result.output
        assert "installed (1.0.0)" in result.output
        assert "not installed" in result.output


class TestCacheGroup:
    def test_stats_after_status(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        invoke("status", "demo")
        result = invoke("cache", "stats", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"status": 1, "help": 0}

    def test_clear(self, invoke, fake_runner):
        fake_runner.on(VERSION, stdout="1.0.0")
        invoke("status", "demo")
        assert invoke("cache", "clear", "demo").exit_code == 0
        assert json.loads(invoke("cache", "stats", "--json").output)["status"] == 0

    def test_clear_unknown(self, invoke):
        assert invoke("cache", "clear", "nope").exit_code == 1


class TestRegistryGroup:
    def test_show(self, invoke):
        result = invoke("registry", "show", "demo")
        assert result.exit_code == 0
        assert json.loads(result.output)["id"] == "demo"

    def test_add_and_remove(self, home, invoke, tmp_path):
        path = tmp_path / "extra.json"
        path.write_text(json.dumps(tool_data("extra")))

        assert invoke("registry", "add", str(path)).exit_code == 0
        saved = json.loads((home / "tools.json").read_text())
        assert [t["id"] for t in saved["tools"]] == ["demo", "other", "extra"]

        assert invoke("registry", "remove", "extra").exit_code == 0
        saved = json.loads((home / "tools.json").read_text())
        assert "extra" not in [t["id"] for t in saved["tools"]]

    def test_add_duplicate(self, invoke, tmp_path):
        path = tmp_path / "demo.json"
        path.write_text(json.dumps(tool_data("demo")))
        result = invoke("registry", "add", str(path))
        assert result.exit_code == 1
        assert "demo" in result.output

        assert invoke("registry", "add", str(path), "--replace").exit_code == 0

    def test_add_invalid(self, invoke, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"id": "bad"}))
        result = invoke("registry", "add", str(path))
        assert result.exit_code == 1
        assert "Invalid tool definition" in result.output

    def test_remove_unknown(self, invoke):
        assert invoke("registry", "remove", "nope").exit_code == 1
