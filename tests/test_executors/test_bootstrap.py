"""Unit tests for the bootstrap executors (projgen.executors.bootstrap).

Tests cover:
- Command lines for create-next-app, go mod init, gradle init, swift package init
- Failed outcomes (never exceptions) for unavailable tools, non-zero exit,
  timeouts, empty output and non-empty work directories
- GoExecutor post-processing adds an entry point without overwriting
- Manual steps
"""

from __future__ import annotations

import pytest

from projgen.executors.bootstrap import GoExecutor, GradleExecutor, NextJSExecutor, SwiftExecutor
from projgen.models import ComponentKind, ComponentSpec, Strategy, ToolAvailability, ToolDescriptor

pytestmark = pytest.mark.unit


def _tool(name, availability=ToolAvailability.AVAILABLE):
    return ToolDescriptor(name=name, path=f"/usr/bin/{name}", version="99.0.0", availability=availability)


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


class TestCommands:
    def test_nextjs_args(self, frontend_spec):
        cmd = NextJSExecutor().command(frontend_spec, _tool("npx"))
        assert cmd[:3] == ["/usr/bin/npx", "--yes", "create-next-app@latest"]
        assert cmd[3] == "acme-store"
        assert "--skip-install" in cmd
        assert "--typescript" in cmd

    def test_nextjs_env(self, frontend_spec):
        assert NextJSExecutor().env(frontend_spec)["NEXT_TELEMETRY_DISABLED"] == "1"

    def test_go_module_derived(self, backend_spec):
        cmd = GoExecutor().command(backend_spec, _tool("go"))
        assert cmd == ["/usr/bin/go", "mod", "init", "github.com/acme/acme-store"]

    def test_go_module_explicit(self):
        spec = ComponentSpec(kind=ComponentKind.BACKEND_API, name="api", module="example.org/api")
        assert GoExecutor().default_args(spec) == ["mod", "init", "example.org/api"]

    def test_gradle_args(self):
        spec = ComponentSpec(kind=ComponentKind.MOBILE_ANDROID, name="Acme Store", organization="Acme")
        args = GradleExecutor().default_args(spec)
        assert args[:5] == ["init", "--type", "kotlin-application", "--dsl", "kotlin"]
        assert args[args.index("--package") + 1] == "com.acme.acmestore"

    def test_swift_args(self):
        spec = ComponentSpec(kind=ComponentKind.MOBILE_IOS, name="acme store")
        assert SwiftExecutor().default_args(spec) == [
            "package", "init", "--type", "executable", "--name", "AcmeStore",
        ]

    def test_descriptor_without_path_uses_tool_name(self, backend_spec):
        descriptor = ToolDescriptor(name="go", availability=ToolAvailability.AVAILABLE)
        assert GoExecutor().command(backend_spec, descriptor)[0] == "go"


class TestExecute:
    @pytest.mark.asyncio
    async def test_success(self, fake_runner, actions, frontend_spec, work_dir):
        fake_runner.actions["npx"] = actions.write_files(
            {"acme-store/package.json": "{}", "acme-store/src/app/page.tsx": ""}
        )
        outcome = await NextJSExecutor(fake_runner, timeout=5).execute(frontend_spec, _tool("npx"), work_dir)

        assert outcome.succeeded
        assert outcome.strategy == Strategy.TOOL_EXECUTOR
        assert outcome.tool_used == "npx"
        assert outcome.attempts == 1
        assert len(outcome.produced_paths) == 2
        assert outcome.manual_steps
        assert fake_runner.exec_calls[0][0] == "/usr/bin/npx"

    @pytest.mark.asyncio
    async def test_unavailable_tool_never_runs(self, fake_runner, backend_spec, work_dir):
        descriptor = _tool("go", ToolAvailability.VERSION_TOO_OLD)
        outcome = await GoExecutor(fake_runner).execute(backend_spec, descriptor, work_dir)

        assert not outcome.succeeded
        assert "version-too-old" in outcome.error
        assert fake_runner.exec_calls == []

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, fake_runner, actions, backend_spec, work_dir):
        fake_runner.actions["go"] = actions.fail_with(exit_code=1, stderr="go: cannot determine module path")
        outcome = await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), work_dir)

        assert not outcome.succeeded
        assert "cannot determine module path" in outcome.error

    @pytest.mark.asyncio
    async def test_timeout(self, fake_runner, actions, backend_spec, work_dir):
        fake_runner.actions["go"] = actions.time_out
        outcome = await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), work_dir)

        assert not outcome.succeeded
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_no_output(self, fake_runner, actions, frontend_spec, work_dir):
        fake_runner.actions["npx"] = actions.write_files({})
        outcome = await NextJSExecutor(fake_runner).execute(frontend_spec, _tool("npx"), work_dir)

        assert not outcome.succeeded
        assert "produced no output" in outcome.error

    @pytest.mark.asyncio
    async def test_refuses_non_empty_work_dir(self, fake_runner, backend_spec, work_dir):
        (work_dir / "go.mod").write_text("module stale\n", encoding="utf-8")
        outcome = await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), work_dir)

        assert not outcome.succeeded
        assert "not empty" in outcome.error
        assert fake_runner.exec_calls == []
        assert (work_dir / "go.mod").read_text(encoding="utf-8") == "module stale\n"

    @pytest.mark.asyncio
    async def test_missing_work_dir(self, fake_runner, backend_spec, tmp_path):
        outcome = await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), tmp_path / "nope")
        assert not outcome.succeeded
        assert "does not exist" in outcome.error


class TestGoPostProcess:
    @pytest.mark.asyncio
    async def test_adds_entry_point(self, fake_runner, actions, backend_spec, work_dir):
        fake_runner.actions["go"] = actions.write_files({"go.mod": "module github.com/acme/acme-store\n"})
        outcome = await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), work_dir)

        assert outcome.succeeded
        main_go = (work_dir / "main.go").read_text(encoding="utf-8")
        assert "package main" in main_go
        assert (work_dir / "README.md").exists()
        assert (work_dir / ".gitignore").exists()

    @pytest.mark.asyncio
    async def test_keeps_existing_files(self, fake_runner, actions, backend_spec, work_dir):
        fake_runner.actions["go"] = actions.write_files({"go.mod": "module x\n", "main.go": "// mine\n"})
        await GoExecutor(fake_runner).execute(backend_spec, _tool("go"), work_dir)

        assert (work_dir / "main.go").read_text(encoding="utf-8") == "// mine\n"
