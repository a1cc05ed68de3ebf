"""Generation coordinator: the state machine that ties every piece together.

One ``generate`` call walks a run through
``planning -> discovering -> executing(i) -> mapping(i) -> ... -> finalizing``
and ends ``committed``, or goes through ``rolling-back`` and ends
``rolled-back`` / ``partially-rolled-back``.

Failures of executors, fallbacks and the structure mapper are outcome data;
the atomicity policy decides what they mean for the rest of the run. Only
``PlanInvalid`` and ``CacheError`` propagate, and both happen before the first
filesystem mutation.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from projgen.collaborators import StaticVersionProvider, StructureValidator, Validator, VersionProvider
from projgen.config import Config
from projgen.discovery.cache import ToolCache
from projgen.discovery.discovery import ToolDiscovery, catalogue_requirements
from projgen.discovery.versions import satisfies
from projgen.errors import Cancelled, PlanInvalid, ProjgenError, RollbackIncomplete
from projgen.executors.registry import ExecutorRegistry, RegistryEntry, default_registry
from projgen.executors.runner import CommandRunner, SubprocessRunner
from projgen.fallback.generator import TemplateFallbackGenerator
from projgen.journal import RUN_SCOPE, JournaledFileSystem, RollbackJournal, RollbackReport
from projgen.layout import CanonicalLayout, StructureMapper
from projgen.models import (
    AtomicityPolicy,
    ComponentKind,
    ComponentSpec,
    ExecutionOutcome,
    ExecutionPlan,
    GenerationResult,
    JournalOperation,
    ProjectRequest,
    RunStatus,
    Strategy,
    ToolAvailability,
    ToolDescriptor,
    ToolRequirement,
)
from projgen.planner import build_plan, dependency_waves
from projgen.progress import EventType, NullReporter, ProgressEvent, ProgressReporter


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancellationToken:
    """Caller-controlled stop signal with an optional deadline.

    ``cancel()`` may be called from any thread; the coordinator polls the
    token while an executor subprocess is in flight and between stages.
    """

    def __init__(
        self,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = 0.05,
    ) -> None:
        self._clock = clock
        self._deadline = clock() + deadline_seconds if deadline_seconds is not None else None
        self._reason: Optional[str] = None
        self.poll_interval = poll_interval

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if self._reason is None:
            self._reason = reason

    def set_deadline(self, seconds: float) -> None:
        """Tighten the deadline to *seconds* from now (never loosens it)."""
        candidate = self._clock() + seconds
        if self._deadline is None or candidate < self._deadline:
            self._deadline = candidate

    @property
    def cancelled(self) -> bool:
        if self._reason is not None:
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._reason = "deadline exceeded"
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise Cancelled(self._reason or "cancelled")

    async def wait(self) -> None:
        """Return once the token is cancelled or its deadline passes."""
        while not self.cancelled:
            remaining = self.remaining()
            step = self.poll_interval if remaining is None else min(self.poll_interval, max(remaining, 0.001))
            await asyncio.sleep(step)


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


@dataclass
class _RunState:
    plan: ExecutionPlan
    policy: AtomicityPolicy
    output_root: Path
    staging_root: Path
    journal: RollbackJournal
    fs: JournaledFileSystem
    token: CancellationToken
    descriptors: dict[str, ToolDescriptor]
    outcomes: dict[ComponentKind, ExecutionOutcome] = field(default_factory=dict)
    rollback_errors: list[str] = field(default_factory=list)
    aborted: bool = False
    cancelled: bool = False

    def record_undo(self, report: RollbackReport) -> None:
        """Fold an undo pass into the run; failed steps become ``rollback_errors``."""
        try:
            report.raise_if_incomplete()
        except RollbackIncomplete as exc:
            self.rollback_errors.extend(exc.details)

    def failed_dependencies(self, spec: ComponentSpec) -> list[ComponentKind]:
        return [
            dep
            for dep in self.plan.dependencies_of(spec.kind)
            if dep in self.outcomes and not self.outcomes[dep].succeeded
        ]


def _not_started(kind: ComponentKind, reason: str) -> ExecutionOutcome:
    return ExecutionOutcome(kind=kind, strategy=Strategy.NONE, succeeded=False, error=reason)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class Coordinator:
    """Plans, discovers, executes, maps, and commits or rolls back one project.

    Every collaborator can be injected; the defaults are built from *config*.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        registry: Optional[ExecutorRegistry] = None,
        cache: Optional[ToolCache] = None,
        discovery: Optional[ToolDiscovery] = None,
        runner: Optional[CommandRunner] = None,
        mapper: Optional[StructureMapper] = None,
        layout: Optional[CanonicalLayout] = None,
        reporter: Optional[ProgressReporter] = None,
        version_provider: Optional[VersionProvider] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        self.config = config or Config()
        self.runner = runner or SubprocessRunner()
        self.cache = cache or (discovery.cache if discovery else ToolCache.from_config(self.config.cache))
        self.discovery = discovery or ToolDiscovery(
            self.cache, self.runner, probe_timeout=self.config.discovery.probe_timeout
        )
        self.registry = registry or default_registry(self.runner, self.config.build)
        self.layout = layout or CanonicalLayout()
        self.mapper = mapper or StructureMapper()
        self.reporter = reporter or NullReporter()
        self.version_provider = version_provider or StaticVersionProvider(self.config.pinned_versions)
        self.validator = validator if validator is not None else StructureValidator(self.layout)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def discover_tools(
        self, tool_set: Optional[Iterable[Union[str, ToolRequirement]]] = None
    ) -> dict[str, ToolDescriptor]:
        """Probe tools without generating anything (``projgen doctor``).

        Plain names use the catalogue's minimum versions; no argument probes
        the whole catalogue.
        """
        items = list(tool_set or [])
        requirements = [i for i in items if isinstance(i, ToolRequirement)]
        names = [i for i in items if isinstance(i, str)]
        if names or not items:
            requirements.extend(catalogue_requirements(names))
        return await self.discovery.discover(requirements)

    def plan(self, request: Union[ProjectRequest, Iterable[ComponentSpec]]) -> ExecutionPlan:
        """Enrich and order the requested components (the ``planning`` state)."""
        specs = request.components if isinstance(request, ProjectRequest) else list(request)
        enriched = [self.version_provider.enrich(spec) for spec in specs]
        plan = build_plan(enriched, self.registry.kinds())
        unmapped = [k.value for k in plan.kinds() if k not in self.layout.directories]
        if unmapped:
            raise PlanInvalid(f"no canonical directory for: {', '.join(unmapped)}", details=unmapped)
        return plan

    async def dry_run(
        self, request: Union[ProjectRequest, Iterable[ComponentSpec]], output_root: Optional[Path] = None
    ) -> GenerationResult:
        return await self.generate(request, output_root, dry_run=True)

    async def generate(
        self,
        request: Union[ProjectRequest, Iterable[ComponentSpec]],
        output_root: Optional[Path] = None,
        policy: Optional[AtomicityPolicy] = None,
        deadline: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
        dry_run: bool = False,
    ) -> GenerationResult:
        """Generate every requested component beneath *output_root*.

        Args:
            request: A ``ProjectRequest`` or plain component specs.
            output_root: Project directory (default: ``config.output_dir``).
            policy: Atomicity policy (default: ``config.build.policy``).
            deadline: Seconds the run may take before it is cancelled.
            cancel_token: Token the caller can ``cancel()``.
            dry_run: Plan and probe only; report strategies and expected files.

        Raises:
            PlanInvalid: The components cannot be planned.
            CacheError: The tool cache is unreadable or unwritable.
        """
        started = time.monotonic()
        policy = policy or self.config.build.policy
        root = Path(output_root or self.config.output_dir).absolute()
        token = cancel_token or CancellationToken()
        if deadline is not None:
            token.set_deadline(deadline)

        # planning
        plan = self.plan(request)
        self._emit(EventType.PLAN_BUILT, data={"kinds": [k.value for k in plan.kinds()], "plan": plan})

        # discovering
        descriptors: dict[str, ToolDescriptor] = {}
        requirements = self._requirements(plan)
        if requirements:
            descriptors = await self.discovery.discover(requirements)
        self._emit(
            EventType.DISCOVERY_COMPLETE,
            data={"tools": {name: d.model_dump(mode="json") for name, d in descriptors.items()}},
        )

        if dry_run:
            return self._finish(self._dry_run_result(plan, descriptors, root, started))

        if token.cancelled:
            outcomes = [_not_started(s.kind, f"not started: {token.reason}") for s in plan.components]
            return self._finish(
                GenerationResult(
                    status=RunStatus.ROLLED_BACK,
                    outcomes=outcomes,
                    duration_seconds=time.monotonic() - started,
                    output_root=str(root),
                    cancelled=True,
                )
            )

        journal = RollbackJournal()
        run = _RunState(
            plan=plan,
            policy=policy,
            output_root=root,
            staging_root=self.config.staging_path(root),
            journal=journal,
            fs=JournaledFileSystem(journal, RUN_SCOPE),
            token=token,
            descriptors=descriptors,
        )

        try:
            self._prepare_output(run)
        except (OSError, ProjgenError) as exc:
            reason = f"cannot prepare output root: {exc}"
            for spec in plan.components:
                run.outcomes[spec.kind] = _not_started(spec.kind, f"not started: {reason}")
            return self._finish(self._rollback(run, reason, started))

        # executing / mapping
        if self.config.build.max_parallel > 1:
            await self._execute_waves(run)
        else:
            await self._execute_sequential(run)

        for spec in plan.components:
            run.outcomes.setdefault(spec.kind, _not_started(spec.kind, "not started: run aborted"))

        if run.cancelled:
            reason = f"cancelled: {token.reason}"
            keeps_work = policy == AtomicityPolicy.BEST_EFFORT and any(
                o.succeeded for o in run.outcomes.values()
            )
            if keeps_work:
                self._emit(EventType.ROLLBACK_STARTED, data={"reason": reason, "scope": "in-flight"})
                self._cleanup(run)
                return self._finish(
                    self._result(run, RunStatus.PARTIALLY_ROLLED_BACK, started, cancelled=True)
                )
            return self._finish(self._rollback(run, reason, started))

        if run.aborted:
            failed = [k.value for k, o in run.outcomes.items() if not o.succeeded and o.strategy != Strategy.NONE]
            return self._finish(self._rollback(run, f"component failed: {', '.join(failed)}", started))

        # finalizing
        self._cleanup(run)
        result = self._result(run, RunStatus.COMMITTED, started)
        result.validation = self._validate(root, plan)
        return self._finish(result)

    # ------------------------------------------------------------------
    # Planning / discovery helpers
    # ------------------------------------------------------------------

    def _requirements(self, plan: ExecutionPlan) -> list[ToolRequirement]:
        if not self.config.build.use_external_tools:
            return []
        requirements: list[ToolRequirement] = []
        for spec in plan.components:
            entry = self.registry.get(spec.kind)
            if entry is None or entry.executor is None:
                continue
            requirement = entry.requirement_for(spec)
            if requirement is not None:
                requirements.append(requirement)
        return requirements

    def _descriptor_for(
        self, entry: RegistryEntry, spec: ComponentSpec, descriptors: dict[str, ToolDescriptor]
    ) -> Optional[ToolDescriptor]:
        """The tool descriptor classified against this component's own minimum version."""
        requirement = entry.requirement_for(spec)
        if requirement is None:
            return None
        descriptor = descriptors.get(requirement.name)
        if descriptor is None or descriptor.min_version == requirement.min_version:
            return descriptor
        probed = descriptor.availability in (ToolAvailability.AVAILABLE, ToolAvailability.VERSION_TOO_OLD)
        if not probed or not descriptor.version:
            return descriptor.model_copy(update={"min_version": requirement.min_version})
        ok = satisfies(descriptor.version, requirement.min_version)
        return descriptor.model_copy(
            update={
                "min_version": requirement.min_version,
                "availability": ToolAvailability.AVAILABLE if ok else ToolAvailability.VERSION_TOO_OLD,
                "error": None if ok else f"version {descriptor.version} is older than required {requirement.min_version}",
            }
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _prepare_output(self, run: _RunState) -> None:
        """Create the output root, staging area and shared canonical parents in the run scope."""
        run.fs.make_dirs(run.output_root)
        if run.staging_root.exists():
            # Leftovers of an interrupted run; restored if this run rolls back.
            run.fs.delete(run.staging_root)
        run.fs.make_dirs(run.staging_root)
        for parent in self.layout.shared_parents(run.plan.kinds()):
            run.fs.make_dirs(run.output_root / parent)

    async def _execute_sequential(self, run: _RunState) -> None:
        for spec in run.plan.components:
            if run.aborted or run.cancelled:
                break
            if self._skip_for_dependencies(run, spec):
                continue
            try:
                outcome = await self._run_component(run, spec)
            except Cancelled:
                run.cancelled = True
                break
            if not outcome.succeeded and run.policy == AtomicityPolicy.ALL_OR_NOTHING:
                run.aborted = True

    async def _execute_waves(self, run: _RunState) -> None:
        semaphore = asyncio.Semaphore(self.config.build.max_parallel)

        async def _one(spec: ComponentSpec) -> None:
            async with semaphore:
                if run.aborted or run.cancelled:
                    return
                try:
                    outcome = await self._run_component(run, spec)
                except Cancelled:
                    run.cancelled = True
                    return
                if not outcome.succeeded and run.policy == AtomicityPolicy.ALL_OR_NOTHING:
                    run.aborted = True

        for wave in dependency_waves(run.plan):
            if run.aborted or run.cancelled:
                break
            runnable = [spec for spec in wave if not self._skip_for_dependencies(run, spec)]
            await asyncio.gather(*(_one(spec) for spec in runnable))

    def _skip_for_dependencies(self, run: _RunState, spec: ComponentSpec) -> bool:
        failed = run.failed_dependencies(spec)
        if not failed:
            return False
        names = ", ".join(k.value for k in failed)
        run.outcomes[spec.kind] = _not_started(spec.kind, f"skipped: dependency failed ({names})")
        return True

    async def _run_component(self, run: _RunState, spec: ComponentSpec) -> ExecutionOutcome:
        """Execute, fall back and map one component; apply the per-component failure policy.

        Raises:
            Cancelled: The token fired; this component's mutations are already undone.
        """
        scope = spec.kind.value
        fs = run.fs.scoped(scope)
        checkpoint = run.journal.checkpoint(scope)
        started = time.monotonic()
        self._emit(EventType.COMPONENT_STARTED, kind=spec.kind)

        try:
            outcome = await self._produce(run, spec, fs)
        except Cancelled as exc:
            report = run.journal.undo_since(checkpoint)
            run.record_undo(report)
            outcome = ExecutionOutcome(
                kind=spec.kind,
                strategy=Strategy.NONE,
                error=f"cancelled: {exc}",
                rolled_back=True,
                duration_seconds=time.monotonic() - started,
            )
            run.outcomes[spec.kind] = outcome
            self._emit_finished(outcome)
            raise

        outcome = outcome.model_copy(update={"duration_seconds": time.monotonic() - started})
        if outcome.succeeded:
            run.journal.mark_completed(scope)
        elif run.policy == AtomicityPolicy.BEST_EFFORT:
            report = run.journal.undo_since(checkpoint)
            run.record_undo(report)
            outcome = outcome.model_copy(update={"rolled_back": True})

        run.outcomes[spec.kind] = outcome
        self._emit_finished(outcome)
        return outcome

    async def _produce(
        self, run: _RunState, spec: ComponentSpec, fs: JournaledFileSystem
    ) -> ExecutionOutcome:
        entry = self.registry.get(spec.kind)
        if entry is None:
            return _not_started(spec.kind, f"no executor or fallback registered for {spec.kind.value}")

        work_dir = run.staging_root / spec.kind.value
        errors: list[str] = []
        warnings: list[str] = []
        attempts = 0
        tried: Strategy = Strategy.NONE

        descriptor = self._descriptor_for(entry, spec, run.descriptors)
        if entry.executor is not None and descriptor is not None:
            if descriptor.available:
                tried = Strategy.TOOL_EXECUTOR
                for _ in range(1 + self.config.build.executor_retries):
                    run.token.raise_if_cancelled()
                    attempt = run.journal.checkpoint(spec.kind.value)
                    fs.make_dirs(work_dir)
                    attempts += 1
                    result = await self._guarded(
                        entry.executor.execute(spec, descriptor, work_dir), run.token
                    )
                    if result.succeeded:
                        result = self.mapper.normalize(
                            result, self.layout, work_dir, spec, fs, run.output_root
                        )
                        if result.succeeded:
                            return result.model_copy(update={"attempts": attempts, "warnings": warnings})
                    errors.append(f"executor: {result.error}")
                    report = run.journal.undo_since(attempt)
                    run.record_undo(report)
            else:
                warnings.append(
                    f"{descriptor.name} {descriptor.availability.value}"
                    + (f": {descriptor.error}" if descriptor.error else "")
                )

        if entry.fallback is not None:
            run.token.raise_if_cancelled()
            tried = Strategy.FALLBACK
            fs.make_dirs(work_dir)
            result = await entry.fallback.generate(spec, work_dir, fs)
            if result.succeeded:
                result = self.mapper.normalize(result, self.layout, work_dir, spec, fs, run.output_root)
            if result.succeeded:
                return result.model_copy(
                    update={"attempts": attempts, "warnings": warnings + errors, "tool_used": None}
                )
            errors.append(f"fallback: {result.error}")
        elif not errors:
            errors.append(f"{spec.kind.value}: tool unavailable and no fallback registered")

        return ExecutionOutcome(
            kind=spec.kind,
            strategy=tried,
            succeeded=False,
            error="; ".join(errors),
            attempts=attempts,
            warnings=warnings,
            tool_used=descriptor.name if descriptor and tried == Strategy.TOOL_EXECUTOR else None,
        )

    async def _guarded(self, coro: Any, token: CancellationToken) -> ExecutionOutcome:
        """Await *coro*, cancelling it (and its subprocess) if *token* fires first."""
        task = asyncio.ensure_future(coro)
        watcher = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)
        if task in done:
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise Cancelled(token.reason or "cancelled")

    # ------------------------------------------------------------------
    # Commit / rollback
    # ------------------------------------------------------------------

    def _rollback(self, run: _RunState, reason: str, started: float) -> GenerationResult:
        self._emit(EventType.ROLLBACK_STARTED, data={"reason": reason, "scope": "all"})
        report = run.journal.undo_all()
        run.record_undo(report)
        run.journal.discard()
        for kind, outcome in list(run.outcomes.items()):
            if outcome.strategy != Strategy.NONE and not outcome.rolled_back:
                run.outcomes[kind] = outcome.model_copy(update={"rolled_back": True})
        status = RunStatus.ROLLED_BACK if not run.rollback_errors else RunStatus.PARTIALLY_ROLLED_BACK
        return self._result(run, status, started, cancelled=run.cancelled)

    def _cleanup(self, run: _RunState) -> None:
        """Finalizing: drop staging, prune empty run directories, retire the journal."""
        if run.staging_root.exists():
            shutil.rmtree(run.staging_root)
        for entry in reversed(run.journal.entries(RUN_SCOPE)):
            if entry.operation != JournalOperation.CREATE_DIR:
                continue
            path = Path(entry.target)
            if path == run.output_root or not path.is_dir() or any(path.iterdir()):
                continue
            path.rmdir()
        if self.config.dump_journal:
            run.journal.dump(self.config.journal_path(run.output_root))
        run.journal.discard()

    def _validate(self, root: Path, plan: ExecutionPlan) -> Optional[dict[str, Any]]:
        if self.validator is None:
            return None
        try:
            report = self.validator.validate(root, plan)
        except (ProjgenError, OSError) as exc:
            return {"valid": False, "errors": [f"validator failed: {exc}"]}
        if hasattr(report, "model_dump"):
            return report.model_dump(mode="json")
        return dict(report)

    def _result(
        self, run: _RunState, status: RunStatus, started: float, cancelled: bool = False
    ) -> GenerationResult:
        return GenerationResult(
            status=status,
            outcomes=[run.outcomes[spec.kind] for spec in run.plan.components],
            duration_seconds=time.monotonic() - started,
            output_root=str(run.output_root),
            rollback_errors=list(run.rollback_errors),
            cancelled=cancelled,
        )

    def _dry_run_result(
        self,
        plan: ExecutionPlan,
        descriptors: dict[str, ToolDescriptor],
        root: Path,
        started: float,
    ) -> GenerationResult:
        outcomes: list[ExecutionOutcome] = []
        for spec in plan.components:
            entry = self.registry.get(spec.kind)
            target = self.layout.path_for(root, spec.kind)
            descriptor = self._descriptor_for(entry, spec, descriptors) if entry else None
            if entry and entry.executor and descriptor and descriptor.available:
                strategy = Strategy.TOOL_EXECUTOR
                paths = [str(target / alternatives[0]) for alternatives in self.layout.required_files(spec.kind)]
                steps = entry.executor.manual_steps(spec)
            elif entry and entry.fallback is not None:
                strategy = Strategy.FALLBACK
                if isinstance(entry.fallback, TemplateFallbackGenerator):
                    paths = [str(target / rel) for rel in entry.fallback.expected_files(spec)]
                    steps = entry.fallback.manual_steps(spec)
                else:
                    paths, steps = [str(target)], []
            else:
                outcomes.append(_not_started(spec.kind, "no usable executor or fallback"))
                continue
            outcomes.append(
                ExecutionOutcome(
                    kind=spec.kind,
                    strategy=strategy,
                    succeeded=True,
                    produced_paths=paths,
                    tool_used=descriptor.name if strategy == Strategy.TOOL_EXECUTOR and descriptor else None,
                    manual_steps=steps,
                    warnings=["dry run: nothing was written"],
                )
            )
        return GenerationResult(
            status=RunStatus.COMMITTED,
            outcomes=outcomes,
            duration_seconds=time.monotonic() - started,
            output_root=str(root),
            dry_run=True,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _emit(self, type_: EventType, **kwargs: Any) -> None:
        self.reporter.emit(ProgressEvent(type=type_, **kwargs))

    def _emit_finished(self, outcome: ExecutionOutcome) -> None:
        self._emit(
            EventType.COMPONENT_FINISHED,
            kind=outcome.kind,
            strategy=outcome.strategy,
            success=outcome.succeeded,
            data={"error": outcome.error, "produced": len(outcome.produced_paths)},
        )

    def _finish(self, result: GenerationResult) -> GenerationResult:
        self._emit(EventType.RUN_FINISHED, status=result.status, data={"result": result})
        return result


# ---------------------------------------------------------------------------
# Module-level conveniences
# ---------------------------------------------------------------------------


async def generate(
    request: Union[ProjectRequest, Iterable[ComponentSpec]],
    output_root: Path,
    policy: AtomicityPolicy = AtomicityPolicy.ALL_OR_NOTHING,
    deadline: Optional[float] = None,
    config: Optional[Config] = None,
    reporter: Optional[ProgressReporter] = None,
) -> GenerationResult:
    """One-shot generation with default collaborators."""
    coordinator = Coordinator(config, reporter=reporter)
    return await coordinator.generate(request, output_root, policy=policy, deadline=deadline)


async def discover_tools(
    tool_set: Optional[Iterable[Union[str, ToolRequirement]]] = None, config: Optional[Config] = None
) -> dict[str, ToolDescriptor]:
    """Probe tools with default collaborators (the ``doctor`` command)."""
    return await Coordinator(config).discover_tools(tool_set)
