"""Template-driven fallback generators.

A fallback produces a minimal skeleton for a component kind without invoking
any external tool. It renders one embedded template set and writes each file
through the journaled filesystem, so rollback sees every file it created. The
template sets produce the same required files as the matching executor, which
keeps the structure mapper and validators strategy-agnostic.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from jinja2 import TemplateError

from projgen.errors import FallbackFailed
from projgen.fallback.templates import TemplateRenderer
from projgen.journal import JournaledFileSystem
from projgen.models import ComponentKind, ComponentSpec, ExecutionOutcome, Strategy


@runtime_checkable
class FallbackGenerator(Protocol):
    async def generate(
        self, spec: ComponentSpec, work_dir: Path, fs: JournaledFileSystem
    ) -> ExecutionOutcome: ...


class TemplateFallbackGenerator:
    """Render ``templates/<template_set>/`` into the work directory.

    ``manual_steps`` are ``str.format`` templates over the component's
    template context.
    """

    def __init__(
        self,
        template_set: str,
        renderer: Optional[TemplateRenderer] = None,
        manual_steps: tuple[str, ...] = (),
    ) -> None:
        self.template_set = template_set
        self.renderer = renderer or TemplateRenderer()
        self._manual_steps = manual_steps

    def manual_steps(self, spec: ComponentSpec) -> list[str]:
        ctx = spec.template_context()
        return [step.format_map(ctx) for step in self._manual_steps]

    def expected_files(self, spec: ComponentSpec) -> list[str]:
        """Relative paths this generator would write (used by dry runs)."""
        return [f.path for f in self.renderer.render_set(self.template_set, spec.template_context())]

    async def generate(
        self, spec: ComponentSpec, work_dir: Path, fs: JournaledFileSystem
    ) -> ExecutionOutcome:
        started = time.monotonic()
        outcome = ExecutionOutcome(kind=spec.kind, strategy=Strategy.FALLBACK, attempts=0)
        try:
            written = await self._render_and_write(spec, Path(work_dir), fs)
        except FallbackFailed as exc:
            return outcome.model_copy(
                update={"error": str(exc), "duration_seconds": time.monotonic() - started}
            )
        return outcome.model_copy(
            update={
                "succeeded": True,
                "produced_paths": [str(p) for p in written],
                "manual_steps": self.manual_steps(spec),
                "duration_seconds": time.monotonic() - started,
            }
        )

    async def _render_and_write(
        self, spec: ComponentSpec, work_dir: Path, fs: JournaledFileSystem
    ) -> list[Path]:
        try:
            files = self.renderer.render_set(self.template_set, spec.template_context())
        except (TemplateError, KeyError, ValueError) as exc:
            raise FallbackFailed(
                f"cannot render template set {self.template_set!r}: {exc}", kind=spec.kind.value
            ) from exc
        if not files:
            raise FallbackFailed(f"template set {self.template_set!r} is empty", kind=spec.kind.value)

        written: list[Path] = []
        try:
            for rendered in files:
                path = await asyncio.to_thread(fs.write_file, work_dir / rendered.path, rendered.content)
                written.append(path)
        except OSError as exc:
            raise FallbackFailed(f"cannot write fallback output: {exc}", kind=spec.kind.value) from exc
        return written


# ---------------------------------------------------------------------------
# Default generators per kind
# ---------------------------------------------------------------------------

_TEMPLATE_SETS: dict[ComponentKind, tuple[str, tuple[str, ...]]] = {
    ComponentKind.FRONTEND_APP: ("nextjs", ("Run 'npm install' in the frontend directory before 'npm run dev'",)),
    ComponentKind.FRONTEND_HOME: ("nextjs", ("Run 'npm install' in the frontend directory before 'npm run dev'",)),
    ComponentKind.FRONTEND_ADMIN: ("nextjs", ("Run 'npm install' in the frontend directory before 'npm run dev'",)),
    ComponentKind.BACKEND_API: ("go", ("Run 'go mod tidy' in CommonServer/",)),
    ComponentKind.MOBILE_ANDROID: (
        "android",
        (
            "Run 'gradle wrapper' in Mobile/android/ to add the Gradle wrapper",
            "Open Mobile/android in Android Studio to install the Android SDK",
        ),
    ),
    ComponentKind.MOBILE_IOS: ("ios", ("Open Mobile/ios/Package.swift in Xcode to add an iOS app target",)),
    ComponentKind.MOBILE_SHARED: ("shared", ()),
    ComponentKind.INFRA_DOCKER: ("docker", ("Review the image tags in Deploy/docker/docker-compose.yml",)),
    ComponentKind.INFRA_K8S: ("k8s", ("Set the container image in Deploy/k8s/deployment.yaml",)),
    ComponentKind.INFRA_TERRAFORM: ("terraform", ("Run 'terraform init' in Deploy/terraform/",)),
}


def template_set_for(kind: ComponentKind) -> Optional[str]:
    entry = _TEMPLATE_SETS.get(kind)
    return entry[0] if entry else None


def default_fallback(
    kind: ComponentKind, renderer: Optional[TemplateRenderer] = None
) -> Optional[TemplateFallbackGenerator]:
    entry = _TEMPLATE_SETS.get(kind)
    if entry is None:
        return None
    template_set, steps = entry
    return TemplateFallbackGenerator(template_set, renderer=renderer, manual_steps=steps)
