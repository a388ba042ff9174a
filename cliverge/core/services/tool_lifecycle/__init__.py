"""
Tool lifecycle service: package re-exports.

    from cliverge.core.services.tool_lifecycle import ToolManager

Layers, innermost first: data (command tables) -> domain (pure parsing
and command building) -> execution (subprocess) -> services (manager,
version resolver, background coordinator).
"""

from cliverge.core.services.tool_lifecycle.coordinator import (  # noqa: F401
    BackgroundCoordinator,
    ProgressBoard,
)
from cliverge.core.services.tool_lifecycle.domain.versions import (  # noqa: F401
    compare_versions,
    is_newer,
    parse_latest_version_from_output,
    parse_version_string,
)
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import (  # noqa: F401
    CommandResult,
    run_command,
)
from cliverge.core.services.tool_lifecycle.manager import (  # noqa: F401
    LifecycleResult,
    ToolManager,
)
from cliverge.core.services.tool_lifecycle.version_resolver import (  # noqa: F401
    VersionResolver,
)
