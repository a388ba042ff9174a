"""
Config context: where CLIverge keeps its files for this process.

The directory is set ONCE at startup by whichever entry point launches
the app:

    - CLI:    main.py   -> context.set_config_dir(path)
    - Tests:  fixtures  -> context.set_config_dir(tmp_path)

When nothing has been set, ``CLIVERGE_CONFIG_DIR`` is consulted, then
``~/.cliverge``.

Design notes:
    - Module-level singleton (not a class).
    - Reads are a plain reference lookup, safe from any worker thread.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

ENV_CONFIG_DIR = "CLIVERGE_CONFIG_DIR"
DEFAULT_DIR_NAME = ".cliverge"

_config_dir: Optional[Path] = None


def set_config_dir(path: Path | None) -> None:
    """Register the config directory for the current process (None resets)."""
    global _config_dir
    _config_dir = Path(path).expanduser() if path is not None else None


def get_config_dir() -> Path:
    """Return the active config directory."""
    if _config_dir is not None:
        return _config_dir
    env = os.environ.get(ENV_CONFIG_DIR)
    if env:
        return Path(env).expanduser()
    return Path.home() / DEFAULT_DIR_NAME
