"""Subprocess execution for tool probes and bootstrap executors.

Everything that spawns a process goes through a ``CommandRunner`` so tests can
substitute a scripted runner and never touch real binaries.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Sequence, runtime_checkable


@dataclass
class CommandResult:
    """Structured result of one subprocess invocation."""

    argv: list[str] = field(default_factory=list)
    exit_code: int = -1
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False
    spawn_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.spawn_error is None

    @property
    def output(self) -> str:
        """stdout and stderr joined; some tools print their version on stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def summary(self) -> str:
        """Return a one-line description suitable for an outcome error."""
        cmd = " ".join(self.argv)
        if self.spawn_error:
            return f"could not start '{cmd}': {self.spawn_error}"
        if self.timed_out:
            return f"'{cmd}' timed out after {self.duration_seconds:.1f}s"
        if self.exit_code != 0:
            detail = (self.stderr or self.stdout).strip().splitlines()
            tail = detail[-1][:200] if detail else "no output"
            return f"'{cmd}' exited with code {self.exit_code}: {tail}"
        return f"'{cmd}' succeeded in {self.duration_seconds:.1f}s"


@runtime_checkable
class CommandRunner(Protocol):
    """Narrow interface for spawning external processes."""

    async def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: float = 60.0,
        env: Optional[dict[str, str]] = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """``CommandRunner`` backed by ``asyncio.create_subprocess_exec``.

    Never raises for process-level failures: a missing binary, a non-zero exit
    and a timeout are all reported through the returned ``CommandResult``. The
    child is killed on timeout and when the awaiting task is cancelled, in
    which case ``asyncio.CancelledError`` is re-raised after the kill.
    """

    def __init__(self, kill_grace_seconds: float = 10.0):
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: float = 60.0,
        env: Optional[dict[str, str]] = None,
    ) -> CommandResult:
        cmd = [str(a) for a in argv]
        merged_env = {**os.environ, **env} if env else None
        start_time = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            return CommandResult(argv=cmd, spawn_error=str(exc))

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            return CommandResult(
                argv=cmd,
                exit_code=-1,
                duration_seconds=time.monotonic() - start_time,
                timed_out=True,
                stderr=f"Process timed out after {timeout}s",
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        return CommandResult(
            argv=cmd,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=(stdout_bytes or b"").decode("utf-8", errors="replace").strip(),
            stderr=(stderr_bytes or b"").decode("utf-8", errors="replace").strip(),
            duration_seconds=time.monotonic() - start_time,
        )

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            # The kill was delivered; the zombie is reaped by the event loop's child watcher.
            return
