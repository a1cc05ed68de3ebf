"""Pydantic v2 models for the projgen generation orchestrator.

Defines the request side (component specs, project requests, plans), the tool
side (requirements and cached descriptors), and the result side (per-component
outcomes, journal entries, and the final generation result).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from projgen.utils import sanitize_name, to_pascal


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ComponentKind(str, Enum):
    """Kinds of component a project can be made of."""
    FRONTEND_APP = "frontend-app"
    FRONTEND_HOME = "frontend-home"
    FRONTEND_ADMIN = "frontend-admin"
    BACKEND_API = "backend-api"
    MOBILE_ANDROID = "mobile-android"
    MOBILE_IOS = "mobile-ios"
    MOBILE_SHARED = "mobile-shared"
    INFRA_DOCKER = "infra-docker"
    INFRA_K8S = "infra-k8s"
    INFRA_TERRAFORM = "infra-terraform"


class ToolAvailability(str, Enum):
    """Classification of a probed external tool."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    VERSION_TOO_OLD = "version-too-old"
    PROBE_FAILED = "probe-failed"


class Strategy(str, Enum):
    """How a component was (or was not) produced."""
    TOOL_EXECUTOR = "tool-executor"
    FALLBACK = "fallback"
    NONE = "none"


class AtomicityPolicy(str, Enum):
    """What happens to the rest of the run when one component fails."""
    ALL_OR_NOTHING = "all-or-nothing"
    BEST_EFFORT = "best-effort"


class RunStatus(str, Enum):
    """Final status of a generation run."""
    COMMITTED = "committed"
    ROLLED_BACK = "rolled-back"
    PARTIALLY_ROLLED_BACK = "partially-rolled-back"


class JournalOperation(str, Enum):
    """Filesystem mutations the rollback journal knows how to undo."""
    CREATE_DIR = "create-dir"
    WRITE_FILE = "write-file"
    MOVE = "move"
    DELETE = "delete"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ComponentSpec(BaseModel):
    """Declarative request for one scaffolded component.

    Frozen: once a plan is built from a set of specs, none of them change.
    Enrichment (e.g. pinned tool versions) produces a new instance through
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ComponentKind = Field(..., description="Component kind")
    name: str = Field(..., min_length=1, description="Component / project name")
    organization: str = Field(default="example", description="Organization or vendor name")
    module: str = Field(
        default="",
        description="Go module path, Android package or iOS bundle id (derived when empty)",
    )
    tool_versions: dict[str, str] = Field(
        default_factory=dict,
        description="Minimum version overrides keyed by tool name",
    )
    options: dict[str, str] = Field(default_factory=dict, description="Free-form generator options")
    depends_on: tuple[ComponentKind, ...] = Field(
        default=(), description="Kinds this component must be generated after"
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("component name must not be blank")
        return value

    def template_context(self) -> dict[str, Any]:
        """Variables shared by fallback templates and executor argument builders."""
        slug = sanitize_name(self.name) or "app"
        org_slug = sanitize_name(self.organization).replace("-", "") or "example"
        package = self.module or f"com.{org_slug}.{slug.replace('-', '')}"
        go_module = self.module or f"github.com/{org_slug}/{slug}"
        return {
            "kind": self.kind.value,
            "name": self.name,
            "name_slug": slug,
            "name_pascal": to_pascal(self.name) or "App",
            "organization": self.organization,
            "package": package,
            "package_path": package.replace(".", "/"),
            "bundle_id": self.module or package,
            "go_module": go_module,
            "options": dict(self.options),
        }


class ProjectRequest(BaseModel):
    """A validated set of component specs, typically loaded from YAML or JSON."""

    name: str = Field(..., min_length=1)
    organization: str = Field(default="example")
    components: list[ComponentSpec] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "ProjectRequest":
        """Load a request file. ``.yaml``/``.yml`` are parsed as YAML, anything else as JSON.

        Components that omit ``name`` or ``organization`` inherit the project's.
        """
        file_path = Path(path)
        raw = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(raw) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"invalid YAML in {file_path}: {exc}") from exc
        else:
            data = json.loads(raw)
        try:
            return cls.from_dict(data)
        except TypeError as exc:
            raise ValueError(f"{file_path}: {exc}") from exc

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectRequest":
        """Build a request from parsed file content.

        Raises:
            TypeError: If *data*, its ``components`` or any component is the wrong shape.
            ValidationError: If a field fails validation.
        """
        if not isinstance(data, dict):
            raise TypeError(f"top level must be a mapping, got {type(data).__name__}")
        raw_components = data.get("components") or []
        if not isinstance(raw_components, list):
            raise TypeError(f"'components' must be a list, got {type(raw_components).__name__}")
        project_name = data.get("name", "")
        organization = data.get("organization", "example")
        components = []
        for index, item in enumerate(raw_components):
            if not isinstance(item, dict):
                raise TypeError(f"component #{index + 1} must be a mapping, got {type(item).__name__}")
            entry = dict(item)
            entry.setdefault("name", project_name)
            entry.setdefault("organization", organization)
            components.append(entry)
        return cls.model_validate(
            {"name": project_name, "organization": organization, "components": components}
        )


class ExecutionPlan(BaseModel):
    """Dependency-ordered, immutable sequence of component specs for one run."""

    model_config = ConfigDict(frozen=True)

    components: tuple[ComponentSpec, ...] = ()

    def kinds(self) -> list[ComponentKind]:
        return [c.kind for c in self.components]

    def get(self, kind: ComponentKind) -> Optional[ComponentSpec]:
        for component in self.components:
            if component.kind == kind:
                return component
        return None

    def dependencies_of(self, kind: ComponentKind) -> tuple[ComponentKind, ...]:
        spec = self.get(kind)
        return spec.depends_on if spec else ()

    def __len__(self) -> int:
        return len(self.components)


# ---------------------------------------------------------------------------
# Tool models
# ---------------------------------------------------------------------------

class ToolRequirement(BaseModel):
    """An external tool some component needs, with its minimum version ("" = any)."""

    model_config = ConfigDict(frozen=True)

    name: str
    min_version: str = ""


class ToolDescriptor(BaseModel):
    """Probed knowledge about one external tool."""

    name: str
    min_version: str = ""
    path: Optional[str] = None
    version: Optional[str] = None
    availability: ToolAvailability = ToolAvailability.UNAVAILABLE
    checked_at: datetime = Field(default_factory=utc_now)
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.availability == ToolAvailability.AVAILABLE

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or utc_now()
        return (now - self.checked_at).total_seconds()


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class ExecutionOutcome(BaseModel):
    """Result of attempting one component."""

    kind: ComponentKind
    strategy: Strategy = Strategy.NONE
    succeeded: bool = False
    produced_paths: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0
    tool_used: Optional[str] = None
    attempts: int = 0
    manual_steps: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rolled_back: bool = False


class JournalEntry(BaseModel):
    """One recorded filesystem mutation and the prior state needed to undo it."""

    seq: int = 0
    operation: JournalOperation
    target: str
    source: Optional[str] = None
    scope: str = "run"
    existed_before: bool = False
    backup: Optional[str] = None
    recorded_at: datetime = Field(default_factory=utc_now)


class GenerationResult(BaseModel):
    """Final result of one ``generate`` call."""

    status: RunStatus
    outcomes: list[ExecutionOutcome] = Field(default_factory=list)
    duration_seconds: float = 0.0
    output_root: str = ""
    rollback_errors: list[str] = Field(default_factory=list)
    validation: Optional[dict[str, Any]] = None
    cancelled: bool = False
    dry_run: bool = False

    def outcome(self, kind: ComponentKind) -> Optional[ExecutionOutcome]:
        for outcome in self.outcomes:
            if outcome.kind == kind:
                return outcome
        return None

    def succeeded(self, kind: ComponentKind) -> bool:
        """True when *kind* was produced and is still on disk."""
        outcome = self.outcome(kind)
        return bool(outcome and outcome.succeeded and not outcome.rolled_back)

    def summary(self) -> str:
        """Return a human-readable summary of the run."""
        lines = [
            f"Status: {self.status.value}",
            f"Duration: {self.duration_seconds:.1f}s",
        ]
        for o in self.outcomes:
            state = "ok" if o.succeeded else "FAILED"
            line = f"  {o.kind.value}: {state} via {o.strategy.value}"
            if o.error:
                line += f" ({o.error[:200]})"
            lines.append(line)
        if self.rollback_errors:
            lines.append(f"Rollback errors: {len(self.rollback_errors)}")
        return "\n".join(lines)
