"""projgen: multi-component project generator.

Scaffolds frontends, a backend API, mobile apps and infrastructure into one
canonical directory layout, preferring each ecosystem's official tool and
falling back to built-in templates. Every filesystem mutation is journaled so a
failed or cancelled run can be rolled back.

Key classes:
    Coordinator        - Plans, discovers, executes, maps, commits or rolls back
    ToolCache          - TTL cache of probed tool descriptors
    ExecutorRegistry   - kind -> {executor, fallback, tool} table
    RollbackJournal    - Ordered undo log of filesystem mutations
    StructureMapper    - Moves produced output into the canonical layout
"""

__version__ = "0.1.0"

from .config import BuildConfig, CacheConfig, Config, DiscoveryConfig
from .coordinator import CancellationToken, Coordinator, discover_tools, generate
from .discovery import ToolCache, ToolDiscovery
from .errors import (
    CacheError,
    Cancelled,
    ExecutorFailed,
    FallbackFailed,
    MappingFailed,
    PlanInvalid,
    ProbeFailed,
    ProjgenError,
    RollbackIncomplete,
)
from .executors import ExecutorRegistry, default_registry
from .journal import JournaledFileSystem, RollbackJournal
from .layout import CanonicalLayout, StructureMapper
from .models import (
    AtomicityPolicy,
    ComponentKind,
    ComponentSpec,
    ExecutionOutcome,
    ExecutionPlan,
    GenerationResult,
    ProjectRequest,
    RunStatus,
    Strategy,
    ToolAvailability,
    ToolDescriptor,
    ToolRequirement,
)
from .planner import build_plan
from .progress import ConsoleReporter, EventType, ProgressEvent, RecordingReporter

__all__ = [
    "__version__",
    # Orchestration
    "Coordinator",
    "CancellationToken",
    "generate",
    "discover_tools",
    "build_plan",
    # Configuration
    "Config",
    "CacheConfig",
    "DiscoveryConfig",
    "BuildConfig",
    # Collaborators
    "ToolCache",
    "ToolDiscovery",
    "ExecutorRegistry",
    "default_registry",
    "RollbackJournal",
    "JournaledFileSystem",
    "CanonicalLayout",
    "StructureMapper",
    "ConsoleReporter",
    "RecordingReporter",
    "EventType",
    "ProgressEvent",
    # Models
    "AtomicityPolicy",
    "ComponentKind",
    "ComponentSpec",
    "ExecutionOutcome",
    "ExecutionPlan",
    "GenerationResult",
    "ProjectRequest",
    "RunStatus",
    "Strategy",
    "ToolAvailability",
    "ToolDescriptor",
    "ToolRequirement",
    # Errors
    "ProjgenError",
    "PlanInvalid",
    "CacheError",
    "ProbeFailed",
    "ExecutorFailed",
    "FallbackFailed",
    "MappingFailed",
    "RollbackIncomplete",
    "Cancelled",
]
