"""Unit tests for SubprocessRunner and CommandResult (projgen.executors.runner).

Tests cover:
- CommandResult.ok / output / summary()
- SubprocessRunner success (mock subprocess)
- Binary not found / permission denied
- Timeout kills the process
- Cancellation kills the process and re-raises
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from projgen.executors.runner import CommandResult, CommandRunner, SubprocessRunner

pytestmark = pytest.mark.unit


def _mock_process(stdout=b"", stderr=b"", returncode=0):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    process.kill = MagicMock()
    process.wait = AsyncMock(return_value=returncode)
    return process


class TestCommandResult:
    def test_defaults_are_not_ok(self):
        assert CommandResult().ok is False

    def test_ok(self):
        assert CommandResult(argv=["go"], exit_code=0).ok

    def test_output_joins_streams(self):
        result = CommandResult(stdout="a", stderr="b")
        assert result.output == "a\nb"
        assert CommandResult(stderr="only").output == "only"

    def test_summary_variants(self):
        assert "could not start" in CommandResult(argv=["x"], spawn_error="nope").summary()
        assert "timed out" in CommandResult(argv=["x"], timed_out=True).summary()
        failed = CommandResult(argv=["go", "mod"], exit_code=1, stderr="line one\nline two")
        assert failed.summary() == "'go mod' exited with code 1: line two"
        assert "succeeded" in CommandResult(argv=["x"], exit_code=0).summary()


class TestSubprocessRunner:
    def test_satisfies_protocol(self):
        assert isinstance(SubprocessRunner(), CommandRunner)

    @pytest.mark.asyncio
    async def test_success(self, tmp_path):
        process = _mock_process(stdout=b"go version go1.24.1\n")
        with patch("asyncio.create_subprocess_exec", return_value=process) as spawn:
            result = await SubprocessRunner().run(["go", "version"], cwd=tmp_path, env={"CI": "1"})

        assert result.ok
        assert result.stdout == "go version go1.24.1"
        args, kwargs = spawn.call_args
        assert args == ("go", "version")
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["env"]["CI"] == "1"
        assert kwargs["stdin"] == asyncio.subprocess.DEVNULL

    @pytest.mark.asyncio
    async def test_nonzero_exit(self):
        process = _mock_process(stderr=b"fatal", returncode=3)
        with patch("asyncio.create_subprocess_exec", return_value=process):
            result = await SubprocessRunner().run(["gradle", "init"])
        assert not result.ok
        assert result.exit_code == 3
        assert result.stderr == "fatal"

    @pytest.mark.asyncio
    async def test_binary_not_found(self):
        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("no such file")):
            result = await SubprocessRunner().run(["missing-tool"])
        assert result.spawn_error == "no such file"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_permission_denied(self):
        with patch("asyncio.create_subprocess_exec", side_effect=PermissionError("denied")):
            result = await SubprocessRunner().run(["locked"])
        assert "denied" in result.spawn_error

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        process = _mock_process()
        process.returncode = None

        async def _hang():
            await asyncio.sleep(10)

        process.communicate = AsyncMock(side_effect=_hang)
        with patch("asyncio.create_subprocess_exec", return_value=process):
            result = await SubprocessRunner().run(["npx", "create-next-app"], timeout=0.05)

        assert result.timed_out
        assert not result.ok
        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancellation_kills_process(self):
        process = _mock_process()
        process.returncode = None

        async def _hang():
            await asyncio.sleep(10)

        process.communicate = AsyncMock(side_effect=_hang)
        with patch("asyncio.create_subprocess_exec", return_value=process):
            task = asyncio.ensure_future(SubprocessRunner().run(["go", "mod", "init", "x"], timeout=30))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        process.kill.assert_called_once()
