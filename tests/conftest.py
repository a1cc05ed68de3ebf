"""Shared pytest fixtures for the projgen test suite.

Provides reusable fixtures for:
- A scripted command runner (no real processes are spawned)
- A fake ``shutil.which`` with a configurable set of installed tools
- Isolated, memory-only tool caches with a controllable clock
- Output roots and component specs
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Optional, Sequence, Union

import pytest

from projgen.config import BuildConfig, Config
from projgen.discovery.cache import ToolCache
from projgen.discovery.discovery import ToolDiscovery
from projgen.executors.runner import CommandResult
from projgen.models import ComponentKind, ComponentSpec

Action = Callable[[list[str], Path], Optional[CommandResult]]


# ---------------------------------------------------------------------------
# Fake process layer
# ---------------------------------------------------------------------------


class FakeRunner:
    """``CommandRunner`` returning scripted results.

    Calls without ``cwd`` are version probes and answer from ``versions``;
    calls with ``cwd`` are executor runs and invoke the matching ``actions``
    callable, which may create files in the work directory. Both are keyed by
    the basename of ``argv[0]``.
    """

    def __init__(self) -> None:
        self.versions: dict[str, Union[str, CommandResult]] = {}
        self.actions: dict[str, Action] = {}
        self.delays: dict[str, float] = {}
        self.probe_calls: list[list[str]] = []
        self.exec_calls: list[list[str]] = []
        self.cancelled: list[list[str]] = []

    async def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: float = 60.0,
        env: Optional[dict[str, str]] = None,
    ) -> CommandResult:
        cmd = [str(a) for a in argv]
        name = Path(cmd[0]).name
        (self.probe_calls if cwd is None else self.exec_calls).append(cmd)

        delay = self.delays.get(name, 0.0)
        if delay:
            try:
                await asyncio.wait_for(asyncio.sleep(delay), timeout=timeout)
            except asyncio.TimeoutError:
                return CommandResult(argv=cmd, timed_out=True, duration_seconds=timeout)
            except asyncio.CancelledError:
                self.cancelled.append(cmd)
                raise

        if cwd is None:
            scripted = self.versions.get(name)
            if scripted is None:
                return CommandResult(argv=cmd, exit_code=127, stderr=f"{name}: not scripted")
            if isinstance(scripted, CommandResult):
                return scripted
            return CommandResult(argv=cmd, exit_code=0, stdout=scripted)

        action = self.actions.get(name)
        if action is None:
            return CommandResult(argv=cmd, exit_code=1, stderr=f"{name}: no action scripted")
        result = action(cmd, Path(cwd))
        return result or CommandResult(argv=cmd, exit_code=0, stdout="done")

    def exec_count(self, name: str) -> int:
        return sum(1 for c in self.exec_calls if Path(c[0]).name == name)


class FakeWhich:
    """``shutil.which`` stand-in: tools in ``installed`` resolve to ``/usr/bin/<name>``."""

    def __init__(self, installed: Sequence[str] = ()) -> None:
        self.installed = set(installed)

    def __call__(self, command: str) -> Optional[str]:
        return f"/usr/bin/{command}" if command in self.installed else None


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Scripted tool actions
# ---------------------------------------------------------------------------


def write_files(files: dict[str, str]) -> Action:
    """Action that writes *files* (relative to the work directory) and succeeds."""

    def _action(argv: list[str], cwd: Path) -> None:
        for rel, content in files.items():
            path = cwd / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return None

    return _action


def fail_with(exit_code: int = 1, stderr: str = "boom", partial: Optional[dict[str, str]] = None) -> Action:
    """Action that optionally leaves partial output behind, then fails."""

    def _action(argv: list[str], cwd: Path) -> CommandResult:
        if partial:
            write_files(partial)(argv, cwd)
        return CommandResult(argv=argv, exit_code=exit_code, stderr=stderr)

    return _action


def time_out(argv: list[str], cwd: Path) -> CommandResult:
    return CommandResult(argv=argv, timed_out=True, duration_seconds=300.0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_which() -> FakeWhich:
    return FakeWhich()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tool_cache(clock: FakeClock) -> ToolCache:
    """Isolated memory-only cache with a 300s TTL and a controllable clock."""
    return ToolCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def discovery(tool_cache: ToolCache, fake_runner: FakeRunner, fake_which: FakeWhich) -> ToolDiscovery:
    return ToolDiscovery(tool_cache, fake_runner, probe_timeout=2.0, which=fake_which)


@pytest.fixture
def output_root(tmp_path: Path) -> Path:
    """Output directory that does not exist yet."""
    return tmp_path / "out"


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(output_dir=tmp_path / "out", build=BuildConfig(executor_timeout=5.0))


@pytest.fixture
def frontend_spec() -> ComponentSpec:
    return ComponentSpec(kind=ComponentKind.FRONTEND_APP, name="Acme Store", organization="Acme")


@pytest.fixture
def backend_spec() -> ComponentSpec:
    return ComponentSpec(kind=ComponentKind.BACKEND_API, name="Acme Store", organization="Acme")


def snapshot(root: Path) -> set[str]:
    """Every path beneath *root*, relative and POSIX-style."""
    if not root.exists():
        return set()
    return {p.relative_to(root).as_posix() for p in root.rglob("*")}


@pytest.fixture
def actions() -> SimpleNamespace:
    """Scripted executor behaviours for ``FakeRunner.actions``."""
    return SimpleNamespace(write_files=write_files, fail_with=fail_with, time_out=time_out)


@pytest.fixture
def tree() -> Callable[[Path], set[str]]:
    return snapshot
