"""Canonical project layout and the structure mapper that enforces it.

Executors and fallbacks write into a private staging directory and each tool
shapes its output differently (create-next-app nests everything one level
down in ``<name>/``; ``go mod init`` writes in place). ``StructureMapper``
looks the shape up in a static ``MappingRule`` table, checks the component's
required files, and moves the result to its canonical directory through the
journaled filesystem. Supporting a new tool means adding a rule, not code.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from projgen.errors import MappingFailed
from projgen.journal import JournaledFileSystem
from projgen.models import ComponentKind, ComponentSpec, ExecutionOutcome, Strategy
from projgen.utils import dir_is_empty, is_within, list_files

# Each requirement is a group of alternatives; one existing member satisfies it.
Requirement = tuple[str, ...]


# ---------------------------------------------------------------------------
# Canonical layout
# ---------------------------------------------------------------------------

_DIRECTORIES: dict[ComponentKind, str] = {
    ComponentKind.FRONTEND_APP: "App",
    ComponentKind.FRONTEND_HOME: "Home",
    ComponentKind.FRONTEND_ADMIN: "Admin",
    ComponentKind.BACKEND_API: "CommonServer",
    ComponentKind.MOBILE_ANDROID: "Mobile/android",
    ComponentKind.MOBILE_IOS: "Mobile/ios",
    ComponentKind.MOBILE_SHARED: "Mobile/shared",
    ComponentKind.INFRA_DOCKER: "Deploy/docker",
    ComponentKind.INFRA_K8S: "Deploy/k8s",
    ComponentKind.INFRA_TERRAFORM: "Deploy/terraform",
}

_NEXTJS_REQUIRED: tuple[Requirement, ...] = (
    ("package.json",),
    ("src/app", "app", "src/pages", "pages"),
)

_REQUIRED: dict[ComponentKind, tuple[Requirement, ...]] = {
    ComponentKind.FRONTEND_APP: _NEXTJS_REQUIRED,
    ComponentKind.FRONTEND_HOME: _NEXTJS_REQUIRED,
    ComponentKind.FRONTEND_ADMIN: _NEXTJS_REQUIRED,
    ComponentKind.BACKEND_API: (("go.mod",), ("main.go", "cmd")),
    ComponentKind.MOBILE_ANDROID: (("settings.gradle.kts", "settings.gradle"), ("app",)),
    ComponentKind.MOBILE_IOS: (("Package.swift", "*.xcodeproj"),),
    ComponentKind.MOBILE_SHARED: (("README.md",),),
    ComponentKind.INFRA_DOCKER: (("Dockerfile",), ("docker-compose.yml",)),
    ComponentKind.INFRA_K8S: (("kustomization.yaml",),),
    ComponentKind.INFRA_TERRAFORM: (("main.tf",),),
}


@dataclass
class CanonicalLayout:
    """Where each component kind lives in the final project, and what it must contain."""

    directories: dict[ComponentKind, str] = field(default_factory=lambda: dict(_DIRECTORIES))
    required: dict[ComponentKind, tuple[Requirement, ...]] = field(
        default_factory=lambda: dict(_REQUIRED)
    )

    def directory(self, kind: ComponentKind) -> str:
        try:
            return self.directories[kind]
        except KeyError:
            raise MappingFailed(f"no canonical directory for {kind.value}", kind=kind.value) from None

    def path_for(self, output_root: Path, kind: ComponentKind) -> Path:
        return Path(output_root) / self.directory(kind)

    def required_files(self, kind: ComponentKind) -> tuple[Requirement, ...]:
        return self.required.get(kind, ())

    def shared_parents(self, kinds: list[ComponentKind]) -> list[str]:
        """Intermediate directories (``Mobile``, ``Deploy``) the given kinds live under."""
        parents: list[str] = []
        for kind in kinds:
            parts = Path(self.directory(kind)).parts
            for depth in range(1, len(parts)):
                parent = Path(*parts[:depth]).as_posix()
                if parent not in parents:
                    parents.append(parent)
        return parents

    def missing_files(self, kind: ComponentKind, root: Path) -> list[str]:
        """Requirements of *kind* not satisfied beneath *root*, as ``a|b`` strings."""
        missing: list[str] = []
        for alternatives in self.required_files(kind):
            if not any(_exists(root, alt) for alt in alternatives):
                missing.append("|".join(alternatives))
        return missing


def _exists(root: Path, rel: str) -> bool:
    if any(ch in rel for ch in "*?["):
        return any(root.glob(rel))
    return (root / rel).exists()


# ---------------------------------------------------------------------------
# Mapping rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MappingRule:
    """Where a strategy leaves its output inside the staging directory.

    ``pattern`` is formatted with the component's template context, so
    ``"{name_slug}"`` resolves to the directory create-next-app creates.
    ``"."`` means the staging directory itself is the component root.
    """

    kind: ComponentKind
    strategy: Strategy
    pattern: str


_FRONTENDS = (ComponentKind.FRONTEND_APP, ComponentKind.FRONTEND_HOME, ComponentKind.FRONTEND_ADMIN)

MAPPING_RULES: tuple[MappingRule, ...] = (
    *(MappingRule(k, Strategy.TOOL_EXECUTOR, "{name_slug}") for k in _FRONTENDS),
    MappingRule(ComponentKind.BACKEND_API, Strategy.TOOL_EXECUTOR, "."),
    MappingRule(ComponentKind.MOBILE_ANDROID, Strategy.TOOL_EXECUTOR, "."),
    MappingRule(ComponentKind.MOBILE_IOS, Strategy.TOOL_EXECUTOR, "."),
    *(MappingRule(k, Strategy.FALLBACK, ".") for k in ComponentKind),
)


# ---------------------------------------------------------------------------
# StructureMapper
# ---------------------------------------------------------------------------


class StructureMapper:
    """Relocates staged component output into the canonical layout."""

    def __init__(self, rules: tuple[MappingRule, ...] = MAPPING_RULES) -> None:
        self._rules: dict[tuple[ComponentKind, Strategy], str] = {}
        for rule in rules:
            self.add_rule(rule)

    def add_rule(self, rule: MappingRule) -> None:
        self._rules[(rule.kind, rule.strategy)] = rule.pattern

    def rule_for(self, kind: ComponentKind, strategy: Strategy) -> Optional[str]:
        return self._rules.get((kind, strategy))

    def locate_output(self, spec: ComponentSpec, strategy: Strategy, work_dir: Path) -> Path:
        """Find the component root the strategy produced inside *work_dir*.

        Without a rule, a staging directory holding exactly one sub-directory
        and nothing else is treated as one level of nesting.
        """
        pattern = self.rule_for(spec.kind, strategy)
        if pattern is not None:
            return (work_dir / pattern.format_map(spec.template_context())).resolve()
        children = list(work_dir.iterdir()) if work_dir.is_dir() else []
        if len(children) == 1 and children[0].is_dir():
            return children[0].resolve()
        return work_dir.resolve()

    def normalize(
        self,
        outcome: ExecutionOutcome,
        layout: CanonicalLayout,
        work_dir: Path,
        spec: ComponentSpec,
        fs: JournaledFileSystem,
        output_root: Path,
    ) -> ExecutionOutcome:
        """Move a successful outcome's output to its canonical directory.

        Failures come back as a failed outcome carrying the ``MappingFailed``
        message; unsuccessful input outcomes are returned unchanged.
        """
        if not outcome.succeeded:
            return outcome
        started = time.monotonic()
        try:
            produced = self._relocate(outcome, layout, Path(work_dir), spec, fs, Path(output_root))
        except MappingFailed as exc:
            return outcome.model_copy(
                update={
                    "succeeded": False,
                    "error": f"mapping failed: {exc}",
                    "duration_seconds": outcome.duration_seconds + (time.monotonic() - started),
                }
            )
        return outcome.model_copy(
            update={
                "produced_paths": [str(p) for p in produced],
                "duration_seconds": outcome.duration_seconds + (time.monotonic() - started),
            }
        )

    def _relocate(
        self,
        outcome: ExecutionOutcome,
        layout: CanonicalLayout,
        work_dir: Path,
        spec: ComponentSpec,
        fs: JournaledFileSystem,
        output_root: Path,
    ) -> list[Path]:
        kind = spec.kind.value
        source = self.locate_output(spec, outcome.strategy, work_dir)
        if not source.is_dir() or dir_is_empty(source):
            raise MappingFailed(f"no output found at {source}", kind=kind, path=str(source))
        if not is_within(source, work_dir):
            raise MappingFailed(f"output {source} is outside the staging directory", kind=kind, path=str(source))

        missing = layout.missing_files(spec.kind, source)
        if missing:
            raise MappingFailed(
                f"missing required files: {', '.join(missing)}", kind=kind, path=str(source)
            )

        target = layout.path_for(output_root, spec.kind)
        if not is_within(target, output_root):
            raise MappingFailed(f"canonical path {target} escapes the output root", kind=kind, path=str(target))
        if target.exists():
            if not target.is_dir() or not dir_is_empty(target):
                raise MappingFailed(f"target {target} already exists and is not empty", kind=kind, path=str(target))
            try:
                fs.delete(target)
            except OSError as exc:
                raise MappingFailed(f"cannot replace empty {target}: {exc}", kind=kind, path=str(target)) from exc

        try:
            fs.move(source, target)
        except OSError as exc:
            raise MappingFailed(f"cannot move {source} to {target}: {exc}", kind=kind, path=str(target)) from exc

        produced = list_files(target)
        escaped = [p for p in produced if not is_within(p, output_root)]
        if escaped:
            raise MappingFailed(
                f"produced path {escaped[0]} is outside the output root", kind=kind, path=str(escaped[0])
            )
        return produced
