"""
Logging for the CLIverge engine.

Work runs on three kinds of thread: the CLI's main thread, the
coordinator's ``tool-worker_N`` pool and the cache store's single
``cache-writer``.  Every record is tagged with a short ``origin``
(``main``, ``w3``, ``cache``) so interleaved status checks can be told
apart in the output.

Level, first match wins:
    --debug / --verbose / --quiet  >  CLIVERGE_LOG_LEVEL  >  WARNING

File output goes to CLIVERGE_LOG_FILE at CLIVERGE_LOG_FILE_LEVEL
(default: the console level).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "CLIVERGE_LOG_LEVEL"
ENV_LOG_FILE = "CLIVERGE_LOG_FILE"
ENV_LOG_FILE_LEVEL = "CLIVERGE_LOG_FILE_LEVEL"

# Thread name prefixes of the coordinator pool and the cache writer.
WORKER_THREAD_PREFIX = "tool-worker"
CACHE_THREAD_PREFIX = "cache-writer"

# Handlers installed here carry this name; foreign root handlers are left alone.
HANDLER_NAME = "cliverge"

_DETAILED = "%(asctime)s %(levelname)-5s [%(origin)s] %(name)s:%(lineno)d: %(message)s"

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: (_DETAILED, "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(origin)s] %(message)s", "%H:%M:%S"),
}
_CONSOLE_QUIET = ("%(levelname)s: %(message)s", None)


class ThreadOriginFilter(logging.Filter):
    """Adds ``record.origin``: ``main``, ``w<N>`` for pool workers, ``cache``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.origin = thread_origin(record.threadName or "")
        return True


def thread_origin(thread_name: str) -> str:
    if thread_name.startswith(WORKER_THREAD_PREFIX):
        return "w" + thread_name.rsplit("_", 1)[-1]
    if thread_name.startswith(CACHE_THREAD_PREFIX):
        return "cache"
    return "main"


def cli_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str | None:
    """Level implied by the CLI flags, or None to defer to the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return None


def setup_logging(
    level: str | None = None,
    *,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> int:
    """Configure the root logger for one CLI process.

    Arguments left as None fall back to the ``CLIVERGE_LOG_*`` variables.
    Handlers from an earlier call are closed and replaced, so calling
    this once per CLI invocation (CliRunner runs many per process) never leaks
    file handles.

    Returns:
        The effective console level.
    """
    console_level = _parse_level(level or os.environ.get(ENV_LOG_LEVEL))
    log_file = log_file or os.environ.get(ENV_LOG_FILE)
    log_file_level = log_file_level or os.environ.get(ENV_LOG_FILE_LEVEL)

    origin = ThreadOriginFilter()
    fmt, datefmt = _CONSOLE_FORMATS.get(console_level, _CONSOLE_QUIET)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(origin)
    handlers: list[logging.Handler] = [console]

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
        fh.addFilter(origin)
        handlers.append(fh)

    root = logging.getLogger()
    for old in list(root.handlers):
        if old.get_name() == HANDLER_NAME:
            root.removeHandler(old)
            old.close()
    for h in handlers:
        h.set_name(HANDLER_NAME)
        root.addHandler(h)
    root.setLevel(root_level)

    # Handler errors (a closed stderr pipe) are dropped, not printed.
    logging.raiseExceptions = False
    return console_level


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
