"""projgen configuration.

Centralised, typed configuration for discovery, execution and rollback. All
settings use Pydantic v2 models so they can be validated at construction time
and serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from projgen.models import AtomicityPolicy


def _default_cache_path() -> Path:
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "projgen" / "tools.json"


class CacheConfig(BaseModel):
    """Tool descriptor cache settings."""

    ttl_seconds: float = Field(default=300.0, ge=0, description="Freshness window for cached probes")
    path: Path | None = Field(
        default=None,
        description="JSON file the cache persists to; memory-only when unset",
    )
    offline: bool = Field(
        default=False,
        description="Serve stale entries and never probe tools that are not cached",
    )


class DiscoveryConfig(BaseModel):
    """Tool probing settings."""

    probe_timeout: float = Field(default=10.0, gt=0, description="Per-probe timeout in seconds")


class BuildConfig(BaseModel):
    """Tuning knobs for component execution."""

    executor_timeout: float = Field(
        default=300.0, gt=0, description="Bootstrap tool process timeout in seconds"
    )
    executor_retries: int = Field(
        default=0, ge=0, description="Extra executor attempts before falling back"
    )
    max_parallel: int = Field(
        default=1, ge=1, description="Independent components executed concurrently"
    )
    policy: AtomicityPolicy = Field(default=AtomicityPolicy.ALL_OR_NOTHING)
    use_external_tools: bool = Field(
        default=True, description="When false every component goes straight to its fallback"
    )


class Config(BaseModel):
    """Global projgen configuration.

    Instances are typically created once by the CLI entry point and then passed
    to the ``Coordinator``.
    """

    output_dir: Path = Field(default=Path("./output"))
    metadata_dir: str = Field(default=".projgen")
    cache: CacheConfig = Field(default_factory=CacheConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)

    # Minimum tool versions applied to every component unless it overrides them.
    pinned_versions: dict[str, str] = Field(default_factory=dict)

    dump_journal: bool = Field(
        default=False, description="Write the run's journal to <metadata>/journal.json"
    )

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    def metadata_path(self, output_root: Path | None = None) -> Path:
        """Root of the ``.projgen/`` metadata directory inside an output root."""
        return Path(output_root or self.output_dir) / self.metadata_dir

    def staging_path(self, output_root: Path | None = None) -> Path:
        """Directory executors and fallbacks write into before mapping."""
        return self.metadata_path(output_root) / "staging"

    def journal_path(self, output_root: Path | None = None) -> Path:
        return self.metadata_path(output_root) / "journal.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PROJGEN_OUTPUT_DIR, PROJGEN_CACHE_PATH, PROJGEN_CACHE_TTL,
            PROJGEN_OFFLINE, PROJGEN_PROBE_TIMEOUT, PROJGEN_EXECUTOR_TIMEOUT,
            PROJGEN_EXECUTOR_RETRIES, PROJGEN_MAX_PARALLEL, PROJGEN_POLICY,
            PROJGEN_NO_EXTERNAL_TOOLS, PROJGEN_PINNED_VERSIONS
            (``tool=version,tool=version``).
        """
        cache_kwargs: dict[str, Any] = {"path": _default_cache_path()}
        if os.environ.get("PROJGEN_CACHE_PATH"):
            cache_kwargs["path"] = Path(os.environ["PROJGEN_CACHE_PATH"])
        if os.environ.get("PROJGEN_CACHE_TTL"):
            cache_kwargs["ttl_seconds"] = float(os.environ["PROJGEN_CACHE_TTL"])
        if os.environ.get("PROJGEN_OFFLINE"):
            cache_kwargs["offline"] = _truthy(os.environ["PROJGEN_OFFLINE"])

        discovery_kwargs: dict[str, Any] = {}
        if os.environ.get("PROJGEN_PROBE_TIMEOUT"):
            discovery_kwargs["probe_timeout"] = float(os.environ["PROJGEN_PROBE_TIMEOUT"])

        build_kwargs: dict[str, Any] = {}
        if os.environ.get("PROJGEN_EXECUTOR_TIMEOUT"):
            build_kwargs["executor_timeout"] = float(os.environ["PROJGEN_EXECUTOR_TIMEOUT"])
        if os.environ.get("PROJGEN_EXECUTOR_RETRIES"):
            build_kwargs["executor_retries"] = int(os.environ["PROJGEN_EXECUTOR_RETRIES"])
        if os.environ.get("PROJGEN_MAX_PARALLEL"):
            build_kwargs["max_parallel"] = int(os.environ["PROJGEN_MAX_PARALLEL"])
        if os.environ.get("PROJGEN_POLICY"):
            build_kwargs["policy"] = AtomicityPolicy(os.environ["PROJGEN_POLICY"])
        if os.environ.get("PROJGEN_NO_EXTERNAL_TOOLS"):
            build_kwargs["use_external_tools"] = not _truthy(os.environ["PROJGEN_NO_EXTERNAL_TOOLS"])

        pinned: dict[str, str] = {}
        for pair in os.environ.get("PROJGEN_PINNED_VERSIONS", "").split(","):
            if "=" in pair:
                tool, _, version = pair.partition("=")
                if tool.strip() and version.strip():
                    pinned[tool.strip()] = version.strip()

        return cls(
            output_dir=Path(os.environ.get("PROJGEN_OUTPUT_DIR", "./output")),
            cache=CacheConfig(**cache_kwargs),
            discovery=DiscoveryConfig(**discovery_kwargs),
            build=BuildConfig(**build_kwargs),
            pinned_versions=pinned,
        )


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
