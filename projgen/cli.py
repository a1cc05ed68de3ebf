"""Command-line interface: ``projgen generate``, ``projgen doctor``, ``projgen cache``.

Exit codes:
    0  committed with every component produced (or a viable dry run)
    1  a component failed, or the run was rolled back
    2  invalid request, plan, configuration or tool cache
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.table import Table

from projgen import __version__
from projgen.config import Config
from projgen.coordinator import CancellationToken, Coordinator
from projgen.discovery.cache import ToolCache
from projgen.discovery.tools import TOOLS, install_instructions
from projgen.errors import CacheError, PlanInvalid
from projgen.models import AtomicityPolicy, GenerationResult, ProjectRequest, RunStatus
from projgen.progress import ConsoleReporter
from projgen.utils import console, print_error, print_header, print_success, print_summary_table, print_warning

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="projgen",
        description="projgen -- multi-component project generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  projgen generate project.yaml -o ./acme\n"
            "  projgen generate project.yaml -o ./acme --policy best-effort --parallel 4\n"
            "  projgen generate project.yaml --dry-run\n"
            "  projgen doctor go npx\n"
            "  projgen cache stats\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"projgen {__version__}")
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file (default: PROJGEN_* environment variables)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use cached tool information only; never probe uncached tools",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show manual next steps")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a project from a request file")
    gen.add_argument("request", help="Path to the project request (.yaml, .yml or .json)")
    gen.add_argument("--output", "-o", default=None, help="Output directory (default: ./output)")
    gen.add_argument(
        "--policy",
        choices=[p.value for p in AtomicityPolicy],
        default=None,
        help="What a component failure means for the run (default: all-or-nothing)",
    )
    gen.add_argument("--deadline", type=float, default=None, help="Cancel the run after N seconds")
    gen.add_argument(
        "--parallel", type=int, default=None, help="Independent components generated concurrently"
    )
    gen.add_argument("--retries", type=int, default=None, help="Extra executor attempts per component")
    gen.add_argument("--dry-run", action="store_true", help="Plan and probe only; write nothing")
    gen.add_argument(
        "--no-external-tools",
        action="store_true",
        help="Skip scaffolding tools and use the built-in templates",
    )
    gen.add_argument(
        "--dump-journal",
        action="store_true",
        help="Keep the run journal in <output>/.projgen/journal.json",
    )

    doctor = sub.add_parser("doctor", help="Check which scaffolding tools are installed")
    doctor.add_argument("tools", nargs="*", help=f"Tools to check (default: {', '.join(TOOLS)})")
    doctor.add_argument("--os", default="", help="Show install instructions for this OS")

    cache = sub.add_parser("cache", help="Inspect or reset the tool cache")
    cache.add_argument("action", choices=["stats", "clear", "prune"])

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(Path(args.config)) if args.config else Config.from_env()
    if args.offline:
        config.cache.offline = True
    return config


async def _generate_with_signals(
    coordinator: Coordinator, request: ProjectRequest, args: argparse.Namespace
) -> GenerationResult:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
    except NotImplementedError:
        # Windows event loops: Ctrl-C falls back to KeyboardInterrupt.
        pass
    try:
        return await coordinator.generate(
            request,
            Path(args.output) if args.output else None,
            policy=AtomicityPolicy(args.policy) if args.policy else None,
            deadline=args.deadline,
            cancel_token=token,
            dry_run=args.dry_run,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass


def cmd_generate(args: argparse.Namespace, config: Config) -> int:
    request_path = Path(args.request)
    if not request_path.exists():
        print_error(f"Request file not found: {request_path}")
        return EXIT_INVALID

    try:
        request = ProjectRequest.load(request_path)
    except (ValueError, OSError) as exc:
        print_error(f"Invalid request file: {exc}")
        return EXIT_INVALID

    if args.parallel is not None:
        config.build.max_parallel = max(1, args.parallel)
    if args.retries is not None:
        config.build.executor_retries = max(0, args.retries)
    if args.no_external_tools:
        config.build.use_external_tools = False
    if args.dump_journal:
        config.dump_journal = True

    print_header(f"projgen: {request.name}")
    try:
        coordinator = Coordinator(config, reporter=ConsoleReporter(verbose=args.verbose))
        result = asyncio.run(_generate_with_signals(coordinator, request, args))
    except PlanInvalid as exc:
        print_error(f"Invalid plan: {exc}")
        for detail in exc.details[1:]:
            console.print(f"  - {detail}")
        return EXIT_INVALID
    except CacheError as exc:
        print_error(f"Tool cache: {exc} ({exc.path})")
        return EXIT_INVALID

    if result.dry_run:
        for outcome in result.outcomes:
            console.print(f"  [cyan]{outcome.kind.value}[/cyan] -> {outcome.strategy.value}")
            for path in outcome.produced_paths:
                console.print(f"      {path}")

    if result.validation and not result.validation.get("valid", True):
        for error in result.validation.get("errors", []):
            print_warning(f"validation: {error}")

    if result.status == RunStatus.COMMITTED and all(o.succeeded for o in result.outcomes):
        return EXIT_OK
    return EXIT_FAILED


def cmd_doctor(args: argparse.Namespace, config: Config) -> int:
    try:
        coordinator = Coordinator(config)
        descriptors = asyncio.run(coordinator.discover_tools(args.tools or None))
    except CacheError as exc:
        print_error(f"Tool cache: {exc} ({exc.path})")
        return EXIT_INVALID

    table = Table(title="Scaffolding tools", show_header=True, header_style="bold cyan")
    table.add_column("Tool", no_wrap=True)
    table.add_column("Version")
    table.add_column("Required")
    table.add_column("Status")
    table.add_column("Path", style="dim")
    for name, descriptor in descriptors.items():
        colour = "green" if descriptor.available else "yellow"
        table.add_row(
            name,
            descriptor.version or "-",
            descriptor.min_version or "any",
            f"[{colour}]{descriptor.availability.value}[/{colour}]",
            descriptor.path or "-",
        )
    console.print(table)

    missing = [d for d in descriptors.values() if not d.available]
    for descriptor in missing:
        console.print()
        if descriptor.error:
            console.print(f"[yellow]{descriptor.name}:[/yellow] {descriptor.error}")
        console.print(install_instructions(descriptor.name, args.os))
    return EXIT_FAILED if missing else EXIT_OK


def cmd_cache(args: argparse.Namespace, config: Config) -> int:
    try:
        cache = ToolCache.from_config(config.cache)
        if args.action == "clear":
            cache.clear()
            cache.save()
            print_success("Tool cache cleared.")
        elif args.action == "prune":
            removed = cache.prune()
            cache.save()
            print_success(f"Removed {removed} stale entr{'y' if removed == 1 else 'ies'}.")
        else:
            stats = cache.stats()
            print_summary_table({k: str(v) for k, v in stats.items()}, title="Tool cache")
            for name, descriptor in sorted(cache.entries().items()):
                state = "stale" if cache.is_stale(descriptor) else "fresh"
                console.print(
                    f"  {name:<12} {descriptor.availability.value:<16} "
                    f"{descriptor.version or '-':<10} {state}"
                )
    except CacheError as exc:
        print_error(f"Tool cache: {exc} ({exc.path})")
        return EXIT_INVALID
    return EXIT_OK


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for the ``projgen`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except (ValidationError, ValueError, OSError) as exc:
        print_error(f"Invalid configuration: {exc}")
        return EXIT_INVALID

    commands = {"generate": cmd_generate, "doctor": cmd_doctor, "cache": cmd_cache}
    return commands[args.command](args, config)


if __name__ == "__main__":
    sys.exit(main())
