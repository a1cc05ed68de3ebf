"""Execution plan construction: validation plus a deterministic topological sort."""

from __future__ import annotations

from typing import Iterable

from projgen.discovery.versions import parse_minimum
from projgen.errors import PlanInvalid
from projgen.models import ComponentKind, ComponentSpec, ExecutionPlan


def build_plan(
    specs: Iterable[ComponentSpec], known_kinds: Iterable[ComponentKind] | None = None
) -> ExecutionPlan:
    """Order *specs* so every component follows its dependencies.

    Kahn's algorithm; among components that are ready at the same time the
    one declared first goes first, so equal input always yields equal plans.

    Raises:
        PlanInvalid: On duplicate kinds, kinds missing from *known_kinds*,
            dependencies on kinds that are not requested, unparseable version
            constraints, or a dependency cycle.
    """
    specs = list(specs)
    known = set(known_kinds) if known_kinds is not None else None
    errors: list[str] = []

    by_kind: dict[ComponentKind, ComponentSpec] = {}
    for spec in specs:
        if spec.kind in by_kind:
            errors.append(f"duplicate component kind: {spec.kind.value}")
        by_kind[spec.kind] = spec
        if known is not None and spec.kind not in known:
            errors.append(f"no executor or fallback registered for {spec.kind.value}")
        for tool, minimum in spec.tool_versions.items():
            try:
                parse_minimum(minimum)
            except ValueError:
                errors.append(f"{spec.kind.value}: invalid minimum version for {tool}: {minimum!r}")

    for spec in specs:
        for dep in spec.depends_on:
            if dep == spec.kind:
                errors.append(f"{spec.kind.value} depends on itself")
            elif dep not in by_kind:
                errors.append(f"{spec.kind.value} depends on {dep.value}, which is not requested")

    if errors:
        raise PlanInvalid(errors[0], details=errors)

    order = [s.kind for s in specs]
    remaining = {kind: set(by_kind[kind].depends_on) for kind in order}
    planned: list[ComponentSpec] = []
    while remaining:
        ready = next((k for k in order if k in remaining and not remaining[k]), None)
        if ready is None:
            cycle = sorted(k.value for k in remaining)
            raise PlanInvalid(f"dependency cycle among: {', '.join(cycle)}", details=cycle)
        planned.append(by_kind[ready])
        del remaining[ready]
        for deps in remaining.values():
            deps.discard(ready)

    return ExecutionPlan(components=tuple(planned))


def dependency_waves(plan: ExecutionPlan) -> list[list[ComponentSpec]]:
    """Group a plan into waves whose members depend only on earlier waves."""
    level: dict[ComponentKind, int] = {}
    for spec in plan.components:
        level[spec.kind] = 1 + max((level[d] for d in spec.depends_on), default=-1)
    waves: list[list[ComponentSpec]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for spec in plan.components:
        waves[level[spec.kind]].append(spec)
    return waves
