"""Bootstrap executors: one official scaffolding tool per component kind.

Every executor follows the same contract. ``execute`` runs the tool inside a
work directory through the ``CommandRunner`` and converts every failure
(non-zero exit, timeout, missing binary, no output, a work directory that
already holds files) into a failed ``ExecutionOutcome``. The coordinator
decides what happens next; nothing here raises for a tool failure.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional

from jinja2 import TemplateError

from projgen.errors import ExecutorFailed
from projgen.executors.runner import CommandRunner, SubprocessRunner
from projgen.fallback.templates import TemplateRenderer
from projgen.models import ComponentSpec, ExecutionOutcome, Strategy, ToolDescriptor
from projgen.utils import dir_is_empty, list_files


class BootstrapExecutor:
    """Base class: subclasses provide ``tool``, ``default_args`` and optionally ``post_process``."""

    tool: str = ""

    def __init__(self, runner: Optional[CommandRunner] = None, timeout: float = 300.0) -> None:
        self.runner = runner or SubprocessRunner()
        self.timeout = timeout

    def default_args(self, spec: ComponentSpec) -> list[str]:
        """Arguments passed after the tool binary."""
        raise NotImplementedError

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        return []

    def env(self, spec: ComponentSpec) -> Optional[dict[str, str]]:
        return None

    def command(self, spec: ComponentSpec, descriptor: ToolDescriptor) -> list[str]:
        return [descriptor.path or self.tool, *self.default_args(spec)]

    async def post_process(self, spec: ComponentSpec, work_dir: Path) -> None:
        """Hook run after the tool succeeded, e.g. to add an entry point."""

    async def execute(
        self, spec: ComponentSpec, descriptor: ToolDescriptor, work_dir: Path
    ) -> ExecutionOutcome:
        started = time.monotonic()
        work_dir = Path(work_dir)
        outcome = ExecutionOutcome(
            kind=spec.kind,
            strategy=Strategy.TOOL_EXECUTOR,
            tool_used=descriptor.name,
            attempts=1,
        )

        try:
            if not descriptor.available:
                raise ExecutorFailed(
                    f"{descriptor.name} is {descriptor.availability.value}", kind=spec.kind.value
                )
            if not work_dir.is_dir():
                raise ExecutorFailed(f"work directory {work_dir} does not exist", kind=spec.kind.value)
            if not dir_is_empty(work_dir):
                raise ExecutorFailed(
                    f"work directory {work_dir} is not empty; refusing to scaffold over existing files",
                    kind=spec.kind.value,
                )

            result = await self.runner.run(
                self.command(spec, descriptor), cwd=work_dir, timeout=self.timeout, env=self.env(spec)
            )
            if not result.ok:
                raise ExecutorFailed(
                    result.summary(),
                    kind=spec.kind.value,
                    exit_code=result.exit_code,
                    stderr=result.stderr,
                )
            await self.post_process(spec, work_dir)
            if dir_is_empty(work_dir):
                raise ExecutorFailed(f"{descriptor.name} produced no output", kind=spec.kind.value)
        except ExecutorFailed as exc:
            return outcome.model_copy(
                update={"error": str(exc), "duration_seconds": time.monotonic() - started}
            )
        except (OSError, TemplateError) as exc:
            return outcome.model_copy(
                update={
                    "error": f"{descriptor.name} post-processing failed: {exc}",
                    "duration_seconds": time.monotonic() - started,
                }
            )

        return outcome.model_copy(
            update={
                "succeeded": True,
                "produced_paths": [str(p) for p in list_files(work_dir)],
                "manual_steps": self.manual_steps(spec),
                "duration_seconds": time.monotonic() - started,
            }
        )


# ---------------------------------------------------------------------------
# Concrete executors
# ---------------------------------------------------------------------------


class NextJSExecutor(BootstrapExecutor):
    """``npx create-next-app`` for the frontend kinds. Output nests in ``<name_slug>/``."""

    tool = "npx"

    def default_args(self, spec: ComponentSpec) -> list[str]:
        ctx = spec.template_context()
        return [
            "--yes",
            "create-next-app@latest",
            ctx["name_slug"],
            "--typescript",
            "--eslint",
            "--app",
            "--src-dir",
            "--no-tailwind",
            "--import-alias",
            "@/*",
            "--use-npm",
            "--skip-install",
            "--disable-git",
            "--yes",
        ]

    def env(self, spec: ComponentSpec) -> Optional[dict[str, str]]:
        return {"NEXT_TELEMETRY_DISABLED": "1", "CI": "1"}

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        return ["Run 'npm install' in the frontend directory before 'npm run dev'"]


class GoExecutor(BootstrapExecutor):
    """``go mod init`` followed by a net/http entry point rendered from the go template set."""

    tool = "go"

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        timeout: float = 300.0,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        super().__init__(runner, timeout)
        self.renderer = renderer or TemplateRenderer()

    def default_args(self, spec: ComponentSpec) -> list[str]:
        return ["mod", "init", spec.template_context()["go_module"]]

    async def post_process(self, spec: ComponentSpec, work_dir: Path) -> None:
        ctx = spec.template_context()
        for name in ("main.go", ".gitignore", "README.md"):
            target = work_dir / name
            if target.exists():
                continue
            content = self.renderer.render(f"go/{name}.j2", ctx)
            await asyncio.to_thread(target.write_text, content, "utf-8")

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        return ["Run 'go mod tidy' in CommonServer/ after adding dependencies"]


class GradleExecutor(BootstrapExecutor):
    """``gradle init`` producing a Kotlin DSL application for ``mobile-android``."""

    tool = "gradle"

    def default_args(self, spec: ComponentSpec) -> list[str]:
        ctx = spec.template_context()
        return [
            "init",
            "--type",
            "kotlin-application",
            "--dsl",
            "kotlin",
            "--project-name",
            ctx["name_slug"],
            "--package",
            ctx["package"],
            "--no-split-project",
            "--use-defaults",
        ]

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        return [
            "Apply the com.android.application plugin in Mobile/android/app/build.gradle.kts",
            "Open Mobile/android in Android Studio to install the Android SDK",
        ]


class SwiftExecutor(BootstrapExecutor):
    """``swift package init`` producing an executable package for ``mobile-ios``."""

    tool = "swift"

    def default_args(self, spec: ComponentSpec) -> list[str]:
        return ["package", "init", "--type", "executable", "--name", spec.template_context()["name_pascal"]]

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        return ["Open Mobile/ios/Package.swift in Xcode to add an iOS app target"]
