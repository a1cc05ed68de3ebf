"""Exception types raised or recorded by the generation orchestrator.

Only ``PlanInvalid`` and ``CacheError`` ever escape ``Coordinator.generate``;
both are raised before the first filesystem mutation. The remaining types are
raised inside executors, fallbacks, the mapper and the journal, and are caught
and converted into outcome data by the coordinator.
"""

from __future__ import annotations

from typing import Optional


class ProjgenError(Exception):
    """Base class for every projgen error."""

    def __init__(self, message: str, *, kind: Optional[str] = None, details: Optional[list[str]] = None):
        self.kind = kind
        self.details = list(details or [])
        super().__init__(message)


class PlanInvalid(ProjgenError):
    """The requested components cannot form an execution plan.

    Raised for dependency cycles, unknown kinds, dependencies on kinds that are
    not part of the request, duplicate kinds, and kinds the layout has no
    canonical directory for.
    """


class CacheError(ProjgenError):
    """The tool descriptor cache could not be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class ProbeFailed(ProjgenError):
    """A tool's version could not be determined (timeout, bad output, spawn error)."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class ExecutorFailed(ProjgenError):
    """A bootstrap executor's subprocess failed, timed out or produced nothing."""

    def __init__(self, message: str, *, kind: Optional[str] = None, exit_code: int = -1, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message, kind=kind)


class FallbackFailed(ProjgenError):
    """A fallback generator could not render or write its template set."""


class MappingFailed(ProjgenError):
    """Produced output could not be normalized into the canonical layout."""

    def __init__(self, message: str, *, kind: Optional[str] = None, path: Optional[str] = None):
        self.path = path
        super().__init__(message, kind=kind)


class RollbackIncomplete(ProjgenError):
    """One or more undo steps could not restore the prior filesystem state."""


class Cancelled(ProjgenError):
    """The caller's cancellation signal or deadline fired mid-run."""
