"""
Tool cache store: persisted status and help text with TTLs.

Lives at ``<config_dir>/cache/tool_cache.json``::

    {
      "statusCache": {"<id>": {"data": {...}, "createdAt": 1.0, "ttlSeconds": 86400}},
      "helpCache":   {"<id>": {"data": "...", "createdAt": 1.0, "ttlSeconds": 604800}}
    }

Design notes:
    - The in-memory maps are the source of truth between saves.  Reads
      never touch disk.
    - One lock guards both maps.  It is held only for the map access;
      ``save()`` snapshots under the lock and writes outside it.
    - A missing or corrupt cache file is not an error: the store starts
      empty and logs a warning.  Caching must never block an operation.
    - Expired entries are pruned on ``load()`` and treated as absent on
      read.  They are not rewritten on read.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cliverge.core.errors import ToolError
from cliverge.core.models.cache import HELP_TTL_SECONDS, STATUS_TTL_SECONDS, CacheEntry
from cliverge.core.models.status import ToolStatus
from cliverge.core.observability.logging_config import CACHE_THREAD_PREFIX
from cliverge.core.persistence.json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)

CACHE_DIR = "cache"
CACHE_FILE = "tool_cache.json"

StatusEntry = CacheEntry[ToolStatus]
HelpEntry = CacheEntry[str]


def default_cache_path(config_dir: Path) -> Path:
    """Get the default cache file path under a config directory."""
    return config_dir / CACHE_DIR / CACHE_FILE


class ToolCacheStore:
    """TTL cache for tool status and help text, persisted as one JSON file."""

    def __init__(
        self,
        path: Path,
        *,
        status_ttl: int = STATUS_TTL_SECONDS,
        help_ttl: int = HELP_TTL_SECONDS,
        clock=time.time,
    ) -> None:
        self.path = path
        self.status_ttl = status_ttl
        self.help_ttl = help_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._status: dict[str, StatusEntry] = {}
        self._help: dict[str, HelpEntry] = {}
        self._writer: ThreadPoolExecutor | None = None
        self._writer_guard = threading.Lock()

    # ── Load / save ─────────────────────────────────────────────

    def load(self) -> None:
        """Replace the in-memory maps with the file contents, minus expired entries."""
        try:
            raw = read_json(self.path)
        except ToolError as e:
            logger.warning("Ignoring unreadable cache %s: %s", self.path, e)
            raw = None

        status: dict[str, StatusEntry] = {}
        help_: dict[str, HelpEntry] = {}
        if isinstance(raw, dict):
            status = self._parse_section(raw.get("statusCache"), StatusEntry)
            help_ = self._parse_section(raw.get("helpCache"), HelpEntry)

        now = self._clock()
        status = {k: v for k, v in status.items() if not v.is_expired(now)}
        help_ = {k: v for k, v in help_.items() if not v.is_expired(now)}

        with self._lock:
            self._status = status
            self._help = help_

        logger.debug(
            "Loaded cache %s (status=%d, help=%d)", self.path, len(status), len(help_),
        )

    @staticmethod
    def _parse_section(section: Any, entry_type: type) -> dict:
        if not isinstance(section, dict):
            return {}
        parsed = {}
        for tool_id, value in section.items():
            try:
                parsed[tool_id] = entry_type.model_validate(value)
            except ValidationError as e:
                logger.warning("Dropping bad cache entry for %s: %s", tool_id, e)
        return parsed

    def snapshot(self) -> dict[str, Any]:
        """Serializable copy of both maps, taken under the lock."""
        with self._lock:
            status = dict(self._status)
            help_ = dict(self._help)
        return {
            "statusCache": {
                k: v.model_dump(mode="json", by_alias=True) for k, v in status.items()
            },
            "helpCache": {
                k: v.model_dump(mode="json", by_alias=True) for k, v in help_.items()
            },
        }

    def save(self) -> None:
        """Write the current snapshot to disk.

        Raises:
            ToolIOError: The write failed.
        """
        write_json_atomic(self.path, self.snapshot(), prefix=".cache_")

    def save_async(self) -> Future:
        """Persist on the background writer thread.

        Failures are logged, never raised to the caller.  Concurrent saves
        are last-writer-wins on a consistent snapshot.
        """
        with self._writer_guard:
            if self._writer is None:
                self._writer = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix=CACHE_THREAD_PREFIX,
                )
            writer = self._writer
        return writer.submit(self._save_logged)

    def _save_logged(self) -> bool:
        try:
            self.save()
            return True
        except ToolError as e:
            logger.warning("Cache save failed: %s", e)
            return False

    def close(self) -> None:
        """Wait for pending background saves and stop the writer."""
        with self._writer_guard:
            writer, self._writer = self._writer, None
        if writer is not None:
            writer.shutdown(wait=True)

    # ── Status ──────────────────────────────────────────────────

    def get_status(self, tool_id: str) -> ToolStatus | None:
        with self._lock:
            entry = self._status.get(tool_id)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.data

    def set_status(self, tool_id: str, status: ToolStatus) -> None:
        """Record a status. ``Unknown`` carries no information and is ignored."""
        if status.is_unknown:
            return
        entry = StatusEntry(data=status, created_at=self._clock(), ttl_seconds=self.status_ttl)
        with self._lock:
            self._status[tool_id] = entry

    # ── Help ────────────────────────────────────────────────────

    def get_help(self, tool_id: str) -> str | None:
        with self._lock:
            entry = self._help.get(tool_id)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.data

    def set_help(self, tool_id: str, text: str) -> None:
        entry = HelpEntry(data=text, created_at=self._clock(), ttl_seconds=self.help_ttl)
        with self._lock:
            self._help[tool_id] = entry

    # ── Maintenance ─────────────────────────────────────────────

    def invalidate(self, tool_id: str) -> None:
        """Drop both the status and help entries for one tool."""
        with self._lock:
            self._status.pop(tool_id, None)
            self._help.pop(tool_id, None)

    def invalidate_status(self, tool_id: str) -> None:
        with self._lock:
            self._status.pop(tool_id, None)

    def clear_all(self) -> None:
        with self._lock:
            self._status.clear()
            self._help.clear()

    def stats(self) -> tuple[int, int]:
        """``(status_count, help_count)`` including not-yet-pruned entries."""
        with self._lock:
            return len(self._status), len(self._help)
