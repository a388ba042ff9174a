"""
Domain models: Pydantic types for the lifecycle engine.

All models are re-exported here for convenient access:

    from cliverge.core.models import ToolConfig, ToolStatus, VersionInfo
"""

from cliverge.core.models.cache import HELP_TTL_SECONDS, STATUS_TTL_SECONDS, CacheEntry
from cliverge.core.models.progress import (
    TERMINAL_PHASES,
    OperationKind,
    ProgressEvent,
    ProgressPhase,
)
from cliverge.core.models.settings import (
    AppearanceSettings,
    AppSettings,
    BehaviorSettings,
    PathSettings,
)
from cliverge.core.models.status import (
    StatusKind,
    ToolInfo,
    ToolStatus,
    VersionCheckStrategy,
    VersionInfo,
)
from cliverge.core.models.tool import (
    ConfigField,
    InstallMethod,
    PackageManager,
    Platform,
    ToolConfig,
    ToolsConfig,
    current_platform,
)

__all__ = [
    # settings.py
    "AppSettings",
    "AppearanceSettings",
    "BehaviorSettings",
    # cache.py
    "CacheEntry",
    "ConfigField",
    "HELP_TTL_SECONDS",
    # tool.py
    "InstallMethod",
    # progress.py
    "OperationKind",
    "PackageManager",
    "PathSettings",
    "Platform",
    "ProgressEvent",
    "ProgressPhase",
    "STATUS_TTL_SECONDS",
    # status.py
    "StatusKind",
    "TERMINAL_PHASES",
    "ToolConfig",
    "ToolInfo",
    "ToolStatus",
    "ToolsConfig",
    "VersionCheckStrategy",
    "VersionInfo",
    "current_platform",
]
