"""Narrow interfaces the coordinator consumes, with default implementations.

The coordinator trusts these collaborators but does not interpret their
findings: validation results are attached to the ``GenerationResult`` as-is.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from projgen.layout import CanonicalLayout
from projgen.models import ComponentSpec, ExecutionPlan


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


@runtime_checkable
class VersionProvider(Protocol):
    """Supplies pinned or recommended tool versions before planning."""

    def enrich(self, spec: ComponentSpec) -> ComponentSpec: ...


@runtime_checkable
class Validator(Protocol):
    """Audits a committed output root. Must not modify it."""

    def validate(self, output_root: Path, plan: ExecutionPlan) -> "ValidationReport": ...


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class StaticVersionProvider:
    """Applies configured minimum versions to components that do not set their own."""

    def __init__(self, pinned: Optional[dict[str, str]] = None) -> None:
        self.pinned = dict(pinned or {})

    def enrich(self, spec: ComponentSpec) -> ComponentSpec:
        if not self.pinned:
            return spec
        merged = {**self.pinned, **spec.tool_versions}
        if merged == spec.tool_versions:
            return spec
        return spec.model_copy(update={"tool_versions": merged})


class ComponentValidation(BaseModel):
    kind: str
    path: str
    valid: bool = True
    errors: list[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    components: dict[str, ComponentValidation] = Field(default_factory=dict)


class StructureValidator:
    """Checks that each component present in the output root has its required files.

    Components whose canonical directory is absent are skipped, so a
    best-effort run that dropped a component does not fail validation twice.
    """

    def __init__(self, layout: Optional[CanonicalLayout] = None) -> None:
        self.layout = layout or CanonicalLayout()

    def validate(self, output_root: Path, plan: ExecutionPlan) -> ValidationReport:
        report = ValidationReport()
        for spec in plan.components:
            path = self.layout.path_for(Path(output_root), spec.kind)
            if not path.is_dir():
                continue
            missing = self.layout.missing_files(spec.kind, path)
            component = ComponentValidation(
                kind=spec.kind.value,
                path=str(path),
                valid=not missing,
                errors=[f"missing {m}" for m in missing],
            )
            report.components[spec.kind.value] = component
            if missing:
                report.valid = False
                report.errors.extend(f"{spec.kind.value}: missing {m}" for m in missing)
        return report
