"""Concurrent, cache-aware probing of external scaffolding tools.

``ToolDiscovery.discover`` resolves every requirement to a ``ToolDescriptor``
and never raises for an individual tool: a missing binary is ``unavailable``,
an old one is ``version-too-old``, and a probe that times out, exits non-zero
or prints no recognisable version is ``probe-failed``. Only cache
infrastructure errors (``CacheError``) escape.
"""

from __future__ import annotations

import asyncio
import shutil
from typing import Callable, Iterable, Optional

from projgen.discovery.cache import ToolCache
from projgen.discovery.tools import TOOLS, get_tool
from projgen.discovery.versions import Version, max_minimum, parse_version, satisfies
from projgen.errors import ProbeFailed
from projgen.executors.runner import CommandRunner, SubprocessRunner
from projgen.models import ToolAvailability, ToolDescriptor, ToolRequirement


def merge_requirements(requirements: Iterable[ToolRequirement]) -> list[ToolRequirement]:
    """Collapse duplicate tool names, keeping the strictest minimum version.

    Order of first appearance is preserved so results are deterministic.
    """
    merged: dict[str, str] = {}
    for req in requirements:
        if req.name not in merged:
            merged[req.name] = req.min_version
            continue
        try:
            merged[req.name] = max_minimum(merged[req.name], req.min_version)
        except ValueError:
            # An unparseable constraint is kept; the probe reports it.
            merged[req.name] = merged[req.name] or req.min_version
    return [ToolRequirement(name=name, min_version=minimum) for name, minimum in merged.items()]


def catalogue_requirements(names: Optional[Iterable[str]] = None) -> list[ToolRequirement]:
    """Requirements at the catalogue's default minimum versions (all tools when *names* is empty)."""
    selected = list(names) if names else list(TOOLS)
    return [ToolRequirement(name=n, min_version=get_tool(n).min_version) for n in selected]


class ToolDiscovery:
    """Probe tools concurrently through a ``CommandRunner``, consulting a ``ToolCache`` first."""

    def __init__(
        self,
        cache: ToolCache,
        runner: Optional[CommandRunner] = None,
        probe_timeout: float = 10.0,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.cache = cache
        self.runner = runner or SubprocessRunner()
        self.probe_timeout = probe_timeout
        self._which = which
        self.probe_count = 0

    async def discover(self, requirements: Iterable[ToolRequirement]) -> dict[str, ToolDescriptor]:
        """Resolve every requirement; probes for distinct tools run concurrently.

        Returns:
            Mapping of tool name to descriptor, in first-seen requirement order.

        Raises:
            CacheError: If the persistent cache cannot be written.
        """
        merged = merge_requirements(requirements)
        descriptors = await asyncio.gather(*(self._resolve(req) for req in merged))
        self.cache.flush()
        return {d.name: d for d in descriptors}

    async def _resolve(self, req: ToolRequirement) -> ToolDescriptor:
        cached = self.cache.get(req.name, req.min_version)
        if cached is not None:
            return cached

        if self.cache.offline:
            return ToolDescriptor(
                name=req.name,
                min_version=req.min_version,
                availability=ToolAvailability.UNAVAILABLE,
                checked_at=self.cache.now(),
                error="not in cache and offline mode is active",
            )

        try:
            descriptor = await asyncio.wait_for(self.probe(req), timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            descriptor = ToolDescriptor(
                name=req.name,
                min_version=req.min_version,
                availability=ToolAvailability.PROBE_FAILED,
                checked_at=self.cache.now(),
                error=f"probe timed out after {self.probe_timeout}s",
            )
        self.cache.put(req.name, descriptor)
        return descriptor

    async def probe(self, req: ToolRequirement) -> ToolDescriptor:
        """Probe one tool on the host, bypassing the cache."""
        self.probe_count += 1
        info = get_tool(req.name)
        base = {"name": req.name, "min_version": req.min_version, "checked_at": self.cache.now()}

        path = self._which(info.command)
        if not path:
            return ToolDescriptor(
                **base,
                availability=ToolAvailability.UNAVAILABLE,
                error=f"'{info.command}' not found on PATH",
            )

        try:
            version = await self._read_version(req.name, [path, *info.version_args], info.version_pattern)
        except ProbeFailed as exc:
            return ToolDescriptor(
                **base, path=path, availability=ToolAvailability.PROBE_FAILED, error=str(exc)
            )

        try:
            ok = satisfies(str(version), req.min_version)
        except ValueError as exc:
            return ToolDescriptor(
                **base,
                path=path,
                version=str(version),
                availability=ToolAvailability.PROBE_FAILED,
                error=str(exc),
            )

        return ToolDescriptor(
            **base,
            path=path,
            version=str(version),
            availability=ToolAvailability.AVAILABLE if ok else ToolAvailability.VERSION_TOO_OLD,
            error=None if ok else f"version {version} is older than required {req.min_version}",
        )

    async def _read_version(self, tool: str, argv: list[str], pattern: str = "") -> Version:
        result = await self.runner.run(argv, timeout=self.probe_timeout)
        if not result.ok:
            raise ProbeFailed(tool, result.summary())
        version = parse_version(result.output, pattern)
        if version is None:
            output = result.output.strip()
            first_line = output.splitlines()[0][:120] if output else ""
            raise ProbeFailed(tool, f"unparseable version output: {first_line!r}")
        return version
