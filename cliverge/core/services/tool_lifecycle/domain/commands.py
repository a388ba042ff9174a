"""
L1 Domain: turn an InstallMethod into a concrete argv.

An explicit ``command`` on the method always wins and runs verbatim.
Otherwise the argv is synthesized from the per-method template table.
"""

from __future__ import annotations

from cliverge.core.errors import ConfigError, NotSupportedError
from cliverge.core.models.tool import InstallMethod, PackageManager, Platform
from cliverge.core.services.tool_lifecycle.data.method_templates import (
    INSTALL_COMMANDS,
    LATEST_VERSION_QUERIES,
    SCRIPT_COMMANDS,
    UNINSTALL_COMMANDS,
    UPDATE_COMMANDS,
)

_TABLES = {
    "install": INSTALL_COMMANDS,
    "uninstall": UNINSTALL_COMMANDS,
    "update": UPDATE_COMMANDS,
}

SELF_UPDATE_CHECK_FLAG = "--check-only"
SELF_UPDATE_FLAG = "--update"


def _fill(template: list[str], **values: str) -> list[str]:
    return [part.format(**values) for part in template]


def build_method_command(
    operation: str,
    method: InstallMethod,
    platform: Platform,
    *,
    is_root: bool = False,
) -> list[str]:
    """Build the argv for ``operation`` (install, uninstall or update).

    Raises:
        NotSupportedError: Unknown method, or no template for this operation.
        ConfigError: The template needs a package name (or URL) that is missing.
    """
    if method.command:
        return list(method.command)

    manager = method.package_manager
    if manager is None:
        raise NotSupportedError(f"Unsupported install method: {method.method}")

    if manager == PackageManager.SCRIPT:
        if operation == "uninstall":
            raise NotSupportedError("Script installs cannot be uninstalled automatically")
        if not method.url:
            raise ConfigError("script install requires url")
        key = "windows" if platform == Platform.WINDOWS else "posix"
        return _fill(SCRIPT_COMMANDS[key], url=method.url)

    spec = _TABLES[operation].get(manager)
    if spec is None:
        raise NotSupportedError(f"{manager.value} does not support {operation}")

    package = method.package_name
    if not package:
        raise ConfigError(f"{manager.value} {operation} requires packageName")

    argv = _fill(spec["command"], package=package)
    if spec["needs_sudo"] and not is_root and platform != Platform.WINDOWS:
        argv = ["sudo"] + argv
    return argv


# Managers that can pin an exact version, and how the package spec is written.
_PINNED_SPEC = {
    PackageManager.NPM: "{package}@{version}",
    PackageManager.PIP: "{package}=={version}",
    PackageManager.GO: "{package}@{version}",
}


def build_pinned_update_command(
    method: InstallMethod,
    platform: Platform,
    version: str,
    *,
    is_root: bool = False,
) -> list[str]:
    """Install an exact ``version`` over the existing one.

    Raises:
        NotSupportedError: The method cannot pin versions.
        ConfigError: No package name configured.
    """
    manager = method.package_manager
    if method.command or manager not in _PINNED_SPEC:
        raise NotSupportedError(
            f"Installing a specific version is not supported for method '{method.method}'"
        )
    if not method.package_name:
        raise ConfigError(f"{manager.value} update requires packageName")
    spec = _PINNED_SPEC[manager].format(package=method.package_name, version=version)
    pinned = method.model_copy(update={"package_name": spec})
    return build_method_command("install", pinned, platform, is_root=is_root)


def build_latest_version_query(method: InstallMethod) -> tuple[PackageManager, list[str]]:
    """Argv that asks the package manager for the newest published version.

    Raises:
        NotSupportedError: The method has no metadata query.
        ConfigError: No package name can be determined.
    """
    manager = method.package_manager
    if manager is None or manager not in LATEST_VERSION_QUERIES:
        raise NotSupportedError(
            f"Package manager '{method.method}' does not support version queries"
        )
    package = method.resolved_package_name()
    if not package:
        raise ConfigError(f"{manager.value} version query requires packageName")
    return manager, _fill(LATEST_VERSION_QUERIES[manager], package=package)


def derive_self_update_command(update_check: list[str] | None) -> list[str] | None:
    """Turn ``tool update --check-only`` into ``tool update --update``.

    Returns None when the probe carries no check-only flag to swap.
    """
    if not update_check or SELF_UPDATE_CHECK_FLAG not in update_check:
        return None
    return [SELF_UPDATE_FLAG if a == SELF_UPDATE_CHECK_FLAG else a for a in update_check]


def display_command(argv: list[str]) -> str:
    """Human-readable form of an argv for progress messages."""
    return " ".join(argv)
