"""projgen executors.

Runs the official scaffolding tool for each component kind and maps kinds to
their executor, fallback and required tool.

Key classes:
    SubprocessRunner   - asyncio subprocess spawning with timeout and kill
    BootstrapExecutor  - Uniform contract around one scaffolding tool
    ExecutorRegistry   - kind -> {executor, fallback, tool} table
"""

from .bootstrap import BootstrapExecutor, GoExecutor, GradleExecutor, NextJSExecutor, SwiftExecutor
from .registry import ExecutorRegistry, RegistryEntry, default_registry
from .runner import CommandResult, CommandRunner, SubprocessRunner

__all__ = [
    # Runner
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    # Executors
    "BootstrapExecutor",
    "GoExecutor",
    "GradleExecutor",
    "NextJSExecutor",
    "SwiftExecutor",
    # Registry
    "ExecutorRegistry",
    "RegistryEntry",
    "default_registry",
]
