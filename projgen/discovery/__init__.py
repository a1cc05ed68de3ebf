"""projgen tool discovery.

Finds the external scaffolding tools on the host, classifies them against
minimum versions, and caches what it learns.

Key classes:
    ToolCache      - TTL cache of ToolDescriptors with per-tool locks
    ToolDiscovery  - Concurrent, timeout-bounded version probes
    Version        - Semver ordering for probed version strings
"""

from .cache import ToolCache
from .discovery import ToolDiscovery, catalogue_requirements, merge_requirements
from .tools import TOOLS, ToolInfo, get_tool, has_fallback, install_instructions, tools_for_kind
from .versions import Version, parse_version, satisfies

__all__ = [
    # Cache
    "ToolCache",
    # Probing
    "ToolDiscovery",
    "catalogue_requirements",
    "merge_requirements",
    # Catalogue
    "TOOLS",
    "ToolInfo",
    "get_tool",
    "has_fallback",
    "install_instructions",
    "tools_for_kind",
    # Versions
    "Version",
    "parse_version",
    "satisfies",
]
