"""
L0 Data: command templates for each install method.

Maps a package manager to the argv used to install, uninstall and
update a package.  Templates use ``{package}`` and ``{url}``
placeholders resolved when the command is built.  ``needs_sudo``
entries get a ``sudo`` prefix unless the process already runs as root.

A method missing from a table is not supported for that operation.
"""

from __future__ import annotations

from cliverge.core.models.tool import PackageManager

INSTALL_COMMANDS: dict[PackageManager, dict] = {
    PackageManager.NPM: {
        "command": ["npm", "install", "-g", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.BREW: {
        "command": ["brew", "install", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.PIP: {
        "command": ["pip", "install", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.APT: {
        "command": ["apt", "install", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.YUM: {
        "command": ["yum", "install", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.DNF: {
        "command": ["dnf", "install", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.PACMAN: {
        "command": ["pacman", "-S", "--noconfirm", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.WINGET: {
        "command": [
            "winget", "install", "{package}",
            "--accept-source-agreements", "--accept-package-agreements",
        ],
        "needs_sudo": False,
    },
    PackageManager.CHOCO: {
        "command": ["choco", "install", "{package}", "-y"],
        "needs_sudo": False,
    },
    PackageManager.SCOOP: {
        "command": ["scoop", "install", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.CARGO: {
        "command": ["cargo", "install", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.GO: {
        "command": ["go", "install", "{package}"],
        "needs_sudo": False,
    },
}

UNINSTALL_COMMANDS: dict[PackageManager, dict] = {
    PackageManager.NPM: {
        "command": ["npm", "uninstall", "-g", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.BREW: {
        "command": ["brew", "uninstall", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.PIP: {
        "command": ["pip", "uninstall", "-y", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.APT: {
        "command": ["apt", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.YUM: {
        "command": ["yum", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.DNF: {
        "command": ["dnf", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.PACMAN: {
        "command": ["pacman", "-R", "--noconfirm", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.WINGET: {
        "command": ["winget", "uninstall", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.CHOCO: {
        "command": ["choco", "uninstall", "{package}", "-y"],
        "needs_sudo": False,
    },
    PackageManager.SCOOP: {
        "command": ["scoop", "uninstall", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.CARGO: {
        "command": ["cargo", "uninstall", "{package}"],
        "needs_sudo": False,
    },
}

UPDATE_COMMANDS: dict[PackageManager, dict] = {
    PackageManager.NPM: {
        "command": ["npm", "update", "-g", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.BREW: {
        "command": ["brew", "upgrade", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.PIP: {
        "command": ["pip", "install", "--upgrade", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.APT: {
        "command": ["apt", "install", "--only-upgrade", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.YUM: {
        "command": ["yum", "update", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.DNF: {
        "command": ["dnf", "upgrade", "-y", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.PACMAN: {
        "command": ["pacman", "-S", "--noconfirm", "{package}"],
        "needs_sudo": True,
    },
    PackageManager.WINGET: {
        "command": [
            "winget", "upgrade", "{package}",
            "--accept-source-agreements", "--accept-package-agreements",
        ],
        "needs_sudo": False,
    },
    PackageManager.CHOCO: {
        "command": ["choco", "upgrade", "{package}", "-y"],
        "needs_sudo": False,
    },
    PackageManager.SCOOP: {
        "command": ["scoop", "update", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.CARGO: {
        "command": ["cargo", "install", "--force", "{package}"],
        "needs_sudo": False,
    },
    PackageManager.GO: {
        "command": ["go", "install", "{package}"],
        "needs_sudo": False,
    },
}

# Script installers pipe a remote script into the platform shell.
SCRIPT_COMMANDS: dict[str, list[str]] = {
    "posix": ["sh", "-c", "curl -fsSL {url} | sh"],
    "windows": [
        "powershell", "-NoProfile", "-ExecutionPolicy", "Bypass",
        "-Command", "irm {url} | iex",
    ],
}

# Latest-version queries used by the package-manager strategy.
LATEST_VERSION_QUERIES: dict[PackageManager, list[str]] = {
    PackageManager.NPM: ["npm", "view", "{package}", "version"],
    PackageManager.BREW: ["brew", "info", "{package}", "--json=v1"],
    PackageManager.PIP: ["pip", "index", "versions", "{package}"],
    PackageManager.CARGO: ["cargo", "search", "{package}", "--limit", "1"],
}
