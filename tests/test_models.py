"""
Tests for domain models: tool configs, status, cache entries, settings.
"""

import pytest
from pydantic import ValidationError

from cliverge.core.models import (
    AppSettings,
    CacheEntry,
    InstallMethod,
    OperationKind,
    PackageManager,
    Platform,
    ProgressEvent,
    ProgressPhase,
    StatusKind,
    ToolConfig,
    ToolsConfig,
    ToolStatus,
    VersionInfo,
)
from conftest import tool_data


class TestLegacySchema:
    def test_flat_version_check_is_broadcast(self):
        tool = ToolConfig.model_validate(tool_data(versionCheck=["--version"]))
        assert tool.version_check == {
            Platform.WINDOWS: ["--version"],
            Platform.MACOS: ["--version"],
            Platform.LINUX: ["--version"],
        }

    def test_flat_update_check_is_broadcast(self):
        tool = ToolConfig.model_validate(tool_data(updateCheck=["demo", "update", "--check-only"]))
        for p in Platform:
            assert tool.update_check_for(p) == ["demo", "update", "--check-only"]

    def test_platform_map_is_kept(self):
        tool = ToolConfig.model_validate(tool_data(versionCheck={"linux": ["-V"]}))
        assert tool.version_check_for(Platform.LINUX) == ["-V"]
        assert tool.version_check_for(Platform.WINDOWS) is None

    def test_absent_update_check_means_no_self_update(self):
        tool = ToolConfig.model_validate(tool_data())
        assert tool.update_check is None
        assert tool.update_check_for(Platform.LINUX) is None

    def test_null_update_check(self):
        tool = ToolConfig.model_validate(tool_data(updateCheck=None))
        assert tool.update_check is None

    def test_empty_flat_list(self):
        tool = ToolConfig.model_validate(tool_data(versionCheck=[]))
        assert tool.version_check_for(Platform.MACOS) == []

    def test_snake_case_keys_accepted(self):
        data = tool_data()
        data["version_check"] = data.pop("versionCheck")
        tool = ToolConfig.model_validate(data)
        assert tool.version_check_for(Platform.LINUX) == ["--version"]

    def test_serializes_as_platform_map(self):
        tool = ToolConfig.model_validate(tool_data(versionCheck=["--version"]))
        out = tool.to_json()
        assert out["versionCheck"]["linux"] == ["--version"]
        assert "version_check" not in out

    def test_unknown_fields_ignored(self):
        tool = ToolConfig.model_validate(tool_data(futureField={"x": 1}))
        assert tool.id == "demo"

    def test_missing_version_check_rejected(self):
        data = tool_data()
        del data["versionCheck"]
        with pytest.raises(ValidationError):
            ToolConfig.model_validate(data)

    def test_unknown_platform_key_rejected(self):
        with pytest.raises(ValidationError):
            ToolConfig.model_validate(tool_data(versionCheck={"beos": ["--version"]}))


class TestToolConfigLookups:
    def test_uninstall_falls_back_to_install(self, make_tool):
        tool = make_tool()
        assert tool.uninstall_method_for(Platform.LINUX).package_name == "demo-cli"

    def test_explicit_update_method_wins(self, make_tool):
        tool = make_tool(update={"linux": {"method": "pip", "packageName": "demo"}})
        assert tool.update_method_for(Platform.LINUX).method == "pip"
        assert tool.update_method_for(Platform.MACOS).method == "npm"

    def test_self_update_map(self, make_tool):
        tool = make_tool(selfUpdate=["demo", "upgrade"])
        assert tool.self_update_for(Platform.WINDOWS) == ["demo", "upgrade"]


class TestInstallMethod:
    def test_known_manager(self):
        assert InstallMethod(method="Brew").package_manager == PackageManager.BREW

    def test_unknown_manager_is_data_not_error(self):
        m = InstallMethod(method="nix")
        assert m.package_manager is None

    def test_package_name_from_command(self):
        m = InstallMethod(method="npm", command=["npm", "install", "-g", "@scope/pkg"])
        assert m.resolved_package_name() == "@scope/pkg"

    def test_package_name_preferred(self):
        m = InstallMethod(method="npm", packageName="a", command=["npm", "i", "b"])
        assert m.resolved_package_name() == "a"


class TestToolsConfig:
    def test_defaults(self):
        cfg = ToolsConfig()
        assert cfg.version == "1.0"
        assert cfg.tools == []

    def test_null_tools(self):
        assert ToolsConfig.model_validate({"version": "1.0", "tools": None}).tools == []


class TestToolStatus:
    def test_default_is_unknown(self):
        assert ToolStatus().state == StatusKind.UNKNOWN

    def test_installed(self):
        s = ToolStatus.installed("1.2.3")
        assert s.is_installed
        assert s.version == "1.2.3"
        assert s.label() == "installed (1.2.3)"

    def test_error(self):
        s = ToolStatus.error("boom")
        assert not s.is_installed
        assert s.label() == "error: boom"

    def test_not_installed_label(self):
        assert ToolStatus.not_installed().label() == "not installed"

    def test_json_round_trip(self):
        s = ToolStatus.installed("2.0.0")
        assert ToolStatus.model_validate(s.model_dump(mode="json")) == s


class TestCacheEntry:
    def test_not_expired_at_creation(self):
        e = CacheEntry[str](data="x", created_at=1000.0, ttl_seconds=1)
        assert not e.is_expired(1000.0)

    def test_expired_after_ttl(self):
        e = CacheEntry[str](data="x", created_at=1000.0, ttl_seconds=1)
        assert e.is_expired(1002.0)

    def test_boundary_is_not_expired(self):
        e = CacheEntry[str](data="x", created_at=1000.0, ttl_seconds=1)
        assert not e.is_expired(1001.0)

    def test_camel_case_dump(self):
        e = CacheEntry[str](data="x", created_at=5.0, ttl_seconds=10)
        assert e.model_dump(by_alias=True) == {"data": "x", "createdAt": 5.0, "ttlSeconds": 10}


class TestSettings:
    def test_defaults(self):
        s = AppSettings()
        assert s.appearance.theme == "dark"
        assert s.appearance.font_size == 14.0
        assert s.appearance.window_size == [1200.0, 800.0]
        assert s.behavior.auto_check_updates is True
        assert s.behavior.check_interval_minutes == 30
        assert s.paths.tools_config_path == "tools.json"

    def test_partial_document(self):
        s = AppSettings.model_validate({"appearance": {"theme": "light"}})
        assert s.appearance.theme == "light"
        assert s.appearance.font_size == 14.0
        assert s.behavior.show_notifications is True


class TestVersionInfo:
    def test_alias_dump(self):
        info = VersionInfo(current="1.0.0", latest="1.1.0", update_available=True, check_method="local-database")
        d = info.model_dump(mode="json", by_alias=True)
        assert d["updateAvailable"] is True
        assert d["checkMethod"] == "local-database"
        assert "lastChecked" in d


class TestProgressEvent:
    def test_terminal(self):
        e = ProgressEvent(tool_id="a", operation=OperationKind.STATUS, phase=ProgressPhase.FAILED)
        assert e.is_terminal
        assert e.key == ("a", OperationKind.STATUS)

    def test_in_progress_not_terminal(self):
        e = ProgressEvent(tool_id="a", operation=OperationKind.INSTALL, phase=ProgressPhase.IN_PROGRESS)
        assert not e.is_terminal
