"""
Bundled data: the default tool catalog shipped with the package.

The registry seeds ``tools.json`` from the first readable catalog
among a few working-directory-relative ``configs/tools.json`` paths
(so a checkout can override the defaults) and finally the copy in
``cliverge/core/data/catalogs/``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from cliverge.core.models.tool import ToolsConfig

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent

BUNDLED_CATALOG = _DATA_DIR / "catalogs" / "tools.json"

_RELATIVE_CANDIDATES = (
    Path("configs") / "tools.json",
    Path("..") / "configs" / "tools.json",
    Path("..") / ".." / "configs" / "tools.json",
)


def catalog_candidates(cwd: Path | None = None) -> list[Path]:
    """Search order for the default catalog."""
    base = cwd or Path.cwd()
    return [base / rel for rel in _RELATIVE_CANDIDATES] + [BUNDLED_CATALOG]


def load_default_catalog(cwd: Path | None = None) -> ToolsConfig:
    """Return the first readable catalog, or an empty one."""
    for path in catalog_candidates(cwd):
        if not path.is_file():
            continue
        try:
            with open(path, encoding="utf-8") as f:
                catalog = ToolsConfig.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.debug("Skipping catalog %s: %s", path, e)
            continue
        logger.debug("Loaded %d tools from catalog %s", len(catalog.tools), path)
        return catalog

    logger.warning("No tool catalog found, starting with an empty registry")
    return ToolsConfig()
