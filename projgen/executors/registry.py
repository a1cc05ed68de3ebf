"""Registration table from component kind to executor, fallback and tool.

New kinds are supported by registering an entry; the coordinator never
branches on a kind. Kinds without an executor (infrastructure manifests, the
shared mobile module) are fallback-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from projgen.config import BuildConfig
from projgen.discovery.tools import get_tool
from projgen.executors.bootstrap import (
    BootstrapExecutor,
    GoExecutor,
    GradleExecutor,
    NextJSExecutor,
    SwiftExecutor,
)
from projgen.executors.runner import CommandRunner
from projgen.fallback.generator import FallbackGenerator, default_fallback
from projgen.fallback.templates import TemplateRenderer
from projgen.models import ComponentKind, ComponentSpec, ToolRequirement


@dataclass
class RegistryEntry:
    """What can produce one component kind."""

    kind: ComponentKind
    executor: Optional[BootstrapExecutor] = None
    fallback: Optional[FallbackGenerator] = None
    tool: Optional[ToolRequirement] = None

    def requirement_for(self, spec: ComponentSpec) -> Optional[ToolRequirement]:
        """The entry's tool requirement with the component's version override applied."""
        if self.tool is None:
            return None
        minimum = spec.tool_versions.get(self.tool.name, self.tool.min_version)
        return ToolRequirement(name=self.tool.name, min_version=minimum)


class ExecutorRegistry:
    def __init__(self) -> None:
        self._entries: dict[ComponentKind, RegistryEntry] = {}

    def register(
        self,
        kind: ComponentKind,
        executor: Optional[BootstrapExecutor] = None,
        fallback: Optional[FallbackGenerator] = None,
        tool: Optional[ToolRequirement] = None,
    ) -> RegistryEntry:
        """Register (or replace) the entry for *kind*.

        Raises:
            ValueError: If neither an executor nor a fallback is given, or an
                executor is given without the tool it needs.
        """
        if executor is None and fallback is None:
            raise ValueError(f"{kind.value}: an executor or a fallback is required")
        if executor is not None and tool is None:
            raise ValueError(f"{kind.value}: an executor needs a tool requirement")
        entry = RegistryEntry(kind=kind, executor=executor, fallback=fallback, tool=tool)
        self._entries[kind] = entry
        return entry

    def get(self, kind: ComponentKind) -> Optional[RegistryEntry]:
        return self._entries.get(kind)

    def kinds(self) -> list[ComponentKind]:
        return list(self._entries)

    def has_fallback(self, kind: ComponentKind) -> bool:
        entry = self._entries.get(kind)
        return bool(entry and entry.fallback is not None)

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _catalogue_requirement(tool: str) -> ToolRequirement:
    return ToolRequirement(name=tool, min_version=get_tool(tool).min_version)


def default_registry(
    runner: Optional[CommandRunner] = None,
    build: Optional[BuildConfig] = None,
    renderer: Optional[TemplateRenderer] = None,
) -> ExecutorRegistry:
    """Registry with every built-in kind: official tools where one exists, templates always."""
    build = build or BuildConfig()
    renderer = renderer or TemplateRenderer()
    timeout = build.executor_timeout
    registry = ExecutorRegistry()

    for kind in (ComponentKind.FRONTEND_APP, ComponentKind.FRONTEND_HOME, ComponentKind.FRONTEND_ADMIN):
        registry.register(
            kind,
            executor=NextJSExecutor(runner, timeout),
            fallback=default_fallback(kind, renderer),
            tool=_catalogue_requirement("npx"),
        )

    registry.register(
        ComponentKind.BACKEND_API,
        executor=GoExecutor(runner, timeout, renderer=renderer),
        fallback=default_fallback(ComponentKind.BACKEND_API, renderer),
        tool=_catalogue_requirement("go"),
    )
    registry.register(
        ComponentKind.MOBILE_ANDROID,
        executor=GradleExecutor(runner, timeout),
        fallback=default_fallback(ComponentKind.MOBILE_ANDROID, renderer),
        tool=_catalogue_requirement("gradle"),
    )
    registry.register(
        ComponentKind.MOBILE_IOS,
        executor=SwiftExecutor(runner, timeout),
        fallback=default_fallback(ComponentKind.MOBILE_IOS, renderer),
        tool=_catalogue_requirement("swift"),
    )

    for kind in (
        ComponentKind.MOBILE_SHARED,
        ComponentKind.INFRA_DOCKER,
        ComponentKind.INFRA_K8S,
        ComponentKind.INFRA_TERRAFORM,
    ):
        registry.register(kind, fallback=default_fallback(kind, renderer))

    return registry
