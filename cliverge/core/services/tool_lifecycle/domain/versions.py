"""
L1 Domain: version string extraction and comparison.

Pure functions: parse version numbers out of free-form tool output
and decide whether one version is newer than another.
"""

from __future__ import annotations

import json
import re

UNKNOWN_VERSION = "unknown"
# Latest-version sentinel meaning "the installed version is the newest".
CURRENT_VERSION = "current"

_NUM = r"(\d+\.\d+\.\d+(?:\.\d+)?)"

# Priority order: an explicit "version X", then "vX", then any bare X.Y.Z.
_VERSION_PATTERNS = (
    re.compile(r"version\s+v?" + _NUM, re.IGNORECASE),
    re.compile(r"\bv" + _NUM),
    re.compile(_NUM),
)

_UP_TO_DATE_PHRASES = ("up to date", "up-to-date", "already latest")

# Greedy: "Update available 1.0.0 -> 1.1.0" names the target version last.
# The lookbehind keeps a match from starting mid-number ("1.2.3.4").
_LATEST_PATTERNS = (
    re.compile(r"update.*available.*(?<![\d.])v?" + _NUM, re.IGNORECASE),
    re.compile(r"new.*version.*(?<![\d.])v?" + _NUM, re.IGNORECASE),
    re.compile(r"latest.*(?<![\d.])v?" + _NUM, re.IGNORECASE),
)

_PIP_HEADER = re.compile(r"^\S+\s+\(" + _NUM + r"\)")
_CARGO_LINE = re.compile(r'^\S+\s*=\s*"v?' + _NUM)


def parse_version_string(output: str) -> str:
    """Extract the first version number from tool output.

    Returns:
        The version (``"1.2.3"``), or ``"unknown"`` when nothing matches.
    """
    for pattern in _VERSION_PATTERNS:
        m = pattern.search(output)
        if m:
            return m.group(1)
    return UNKNOWN_VERSION


def parse_latest_version_from_output(output: str) -> str:
    """Interpret the output of a tool's own update check.

    Returns ``"current"`` when the tool reports it is up to date,
    otherwise the advertised version, falling back to the first version
    number in the output (or ``"unknown"``).
    """
    lowered = output.lower()
    if any(phrase in lowered for phrase in _UP_TO_DATE_PHRASES):
        return CURRENT_VERSION

    for pattern in _LATEST_PATTERNS:
        m = pattern.search(output)
        if m:
            return m.group(1)

    return parse_version_string(output)


def version_tuple(version: str) -> tuple[int, ...]:
    """``"v1.2.3-beta"`` -> ``(1, 2, 3)``. Non-numeric parts are dropped."""
    v = version.strip()
    if v[:1] in ("v", "V"):
        v = v[1:]
    parts: list[int] = []
    for piece in v.split("."):
        m = re.match(r"\d+", piece)
        if m:
            parts.append(int(m.group(0)))
    return tuple(parts)


def compare_versions(a: str, b: str) -> int:
    """Three-way compare: -1 if a < b, 0 if equal, 1 if a > b.

    Missing trailing components count as zero, so ``1.2`` == ``1.2.0``.
    """
    ta, tb = version_tuple(a), version_tuple(b)
    width = max(len(ta), len(tb))
    ta = ta + (0,) * (width - len(ta))
    tb = tb + (0,) * (width - len(tb))
    if ta == tb:
        return 0
    return 1 if ta > tb else -1


def is_newer(latest: str | None, current: str | None) -> bool:
    """True when ``latest`` is strictly greater than ``current``.

    Unknown values and the ``"current"`` sentinel never count as newer.
    """
    if not latest or not current:
        return False
    if latest in (CURRENT_VERSION, UNKNOWN_VERSION) or current == UNKNOWN_VERSION:
        return False
    if not version_tuple(latest) or not version_tuple(current):
        return False
    return compare_versions(latest, current) > 0


# ── Package-manager query output ────────────────────────────────


def parse_npm_view(output: str) -> str | None:
    """``npm view <pkg> version`` prints the bare version."""
    text = output.strip()
    if not text:
        return None
    version = parse_version_string(text)
    return None if version == UNKNOWN_VERSION else version


def parse_brew_info(output: str) -> str | None:
    """``brew info <pkg> --json=v1``: ``[0].versions.stable``."""
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, dict):
        return None
    stable = (first.get("versions") or {}).get("stable")
    return str(stable) if stable else None


def parse_pip_index(output: str) -> str | None:
    """``pip index versions <pkg>``.

    Reads the ``pkg (X.Y.Z)`` header, else the first entry after
    ``Available versions:``.
    """
    for line in output.splitlines():
        line = line.strip()
        m = _PIP_HEADER.match(line)
        if m:
            return m.group(1)
        if line.startswith("Available versions:"):
            rest = line.split(":", 1)[1].strip()
            first = rest.split(",")[0].strip()
            if first:
                return first
    return None


def parse_cargo_search(output: str) -> str | None:
    """``cargo search <pkg> --limit 1``: ``pkg = "X.Y.Z"    # description``."""
    for line in output.splitlines():
        m = _CARGO_LINE.match(line.strip())
        if m:
            return m.group(1)
    return None
