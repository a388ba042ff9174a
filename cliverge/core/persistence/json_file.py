"""
JSON file persistence: atomic read/write for every engine document.

Writes are atomic (write to a temp file in the same directory, then
rename) so a crash mid-write leaves the previous file intact, never a
truncated one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from cliverge.core.errors import ConfigError, ToolIOError

logger = logging.getLogger(__name__)


def read_json(path: Path) -> Any | None:
    """Read and parse a JSON document.

    Returns:
        The parsed document, or None when the file does not exist.

    Raises:
        ConfigError: The file exists but is not valid JSON.
        ToolIOError: The file exists but cannot be read.
    """
    if not path.is_file():
        return None

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ToolIOError(f"Cannot read {path}: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def write_json_atomic(path: Path, data: Any, *, prefix: str = ".tmp_") -> None:
    """Write ``data`` as pretty JSON via temp-file-then-rename.

    Raises:
        ToolIOError: The directory cannot be created or the write fails.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ToolIOError(f"Cannot create {path.parent}: {e}") from e

    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp, path)
        logger.debug("Wrote %s", path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to write %s: %s", path, e)
        raise ToolIOError(f"Cannot write {path}: {e}") from e
