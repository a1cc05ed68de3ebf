"""Tool descriptor cache with TTL freshness and optional JSON persistence.

The cache is constructed explicitly and handed to ``ToolDiscovery``; nothing
here is process-global. Each tool name has its own ``threading.Lock`` so that
concurrent probes of different tools never serialize on each other; the
short-lived guard lock only protects creation of those per-entry locks.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from projgen.config import CacheConfig
from projgen.discovery.versions import satisfies
from projgen.errors import CacheError
from projgen.models import ToolAvailability, ToolDescriptor, utc_now
from projgen.utils import save_json

CACHE_FORMAT_VERSION = 1


def _version_satisfies(version: str, min_version: str) -> bool:
    try:
        return satisfies(version, min_version)
    except ValueError:
        return False


class ToolCache:
    """Thread-safe map of tool name to ``ToolDescriptor``.

    A lookup is a hit only when the entry is fresh (younger than the TTL, or
    any age in offline mode) and either was classified against the caller's
    exact minimum version, or carries a probed version that satisfies it. In
    the second case the returned descriptor is re-labelled for the caller's
    minimum; the stored entry is left unchanged. An entry whose probed version
    fails the caller's minimum is always a miss, so an upgraded tool is
    re-probed.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        path: Optional[Path] = None,
        offline: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.path = Path(path) if path else None
        self.offline = offline
        self._clock = clock
        self._entries: dict[str, ToolDescriptor] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._dirty = False

        if self.path is not None and self.path.exists():
            self.load()

    @classmethod
    def from_config(cls, config: CacheConfig) -> "ToolCache":
        return cls(ttl_seconds=config.ttl_seconds, path=config.path, offline=config.offline)

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def lock_for(self, tool_name: str) -> threading.Lock:
        """The per-entry lock for *tool_name*, created on first use."""
        with self._guard:
            lock = self._locks.get(tool_name)
            if lock is None:
                lock = threading.Lock()
                self._locks[tool_name] = lock
            return lock

    # ------------------------------------------------------------------
    # Core contract
    # ------------------------------------------------------------------

    def get(self, tool_name: str, min_version: str = "") -> Optional[ToolDescriptor]:
        """Return a usable descriptor for *tool_name* at *min_version*, or ``None`` on a miss."""
        with self.lock_for(tool_name):
            entry = self._entries.get(tool_name)
            hit = self._resolve(entry, min_version) if entry is not None else None
            with self._guard:
                if hit is None:
                    self._misses += 1
                else:
                    self._hits += 1
            return hit

    def put(self, tool_name: str, descriptor: ToolDescriptor) -> None:
        with self.lock_for(tool_name):
            self._entries[tool_name] = descriptor
            self._dirty = True

    def invalidate(self, tool_name: str) -> bool:
        """Drop the entry for *tool_name*. Returns ``True`` if one existed."""
        with self.lock_for(tool_name):
            existed = self._entries.pop(tool_name, None) is not None
            if existed:
                self._dirty = True
            return existed

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._dirty = True

    # ------------------------------------------------------------------
    # Freshness helpers
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        """Current time on the cache's clock; discovery stamps descriptors with it."""
        return self._clock()

    def is_stale(self, descriptor: ToolDescriptor) -> bool:
        # A checked_at in the future (skewed import, foreign clock) is never trusted.
        age = descriptor.age_seconds(self.now())
        return age < 0 or age > self.ttl_seconds

    def _resolve(self, entry: ToolDescriptor, min_version: str) -> Optional[ToolDescriptor]:
        if self.is_stale(entry) and not self.offline:
            return None
        if entry.version and not _version_satisfies(entry.version, min_version):
            return None
        if entry.min_version == min_version:
            return entry
        probed = entry.availability in (ToolAvailability.AVAILABLE, ToolAvailability.VERSION_TOO_OLD)
        if probed and entry.version:
            return entry.model_copy(
                update={"min_version": min_version, "availability": ToolAvailability.AVAILABLE}
            )
        return None

    def entries(self) -> dict[str, ToolDescriptor]:
        with self._guard:
            return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._entries

    def stats(self) -> dict[str, Any]:
        snapshot = self.entries()
        stale = sum(1 for d in snapshot.values() if self.is_stale(d))
        return {
            "entries": len(snapshot),
            "fresh": len(snapshot) - stale,
            "stale": stale,
            "hits": self._hits,
            "misses": self._misses,
            "ttl_seconds": self.ttl_seconds,
            "offline": self.offline,
            "path": str(self.path) if self.path else None,
        }

    def prune(self) -> int:
        """Remove stale entries. Returns the number removed."""
        removed = 0
        for name, descriptor in self.entries().items():
            if self.is_stale(descriptor) and self.invalidate(name):
                removed += 1
        return removed

    # ------------------------------------------------------------------
    # Import / export and persistence
    # ------------------------------------------------------------------

    def export(self) -> dict[str, Any]:
        return {
            "format": CACHE_FORMAT_VERSION,
            "entries": {
                name: descriptor.model_dump(mode="json")
                for name, descriptor in sorted(self.entries().items())
            },
        }

    def import_entries(self, data: dict[str, Any], overwrite: bool = True) -> int:
        """Merge entries produced by ``export()``. Returns how many were stored.

        Raises:
            CacheError: If *data* is not a cache export.
        """
        raw_entries = data.get("entries")
        if not isinstance(raw_entries, dict):
            raise CacheError("cache data has no 'entries' mapping", path=str(self.path or ""))
        imported = 0
        for name, raw in raw_entries.items():
            try:
                descriptor = ToolDescriptor.model_validate(raw)
            except ValidationError as exc:
                raise CacheError(f"invalid cache entry for {name!r}: {exc}", path=str(self.path or "")) from exc
            if not overwrite and name in self:
                continue
            self.put(name, descriptor)
            imported += 1
        return imported

    def load(self) -> int:
        """Replace the in-memory entries with those stored at ``self.path``.

        Raises:
            CacheError: If the file cannot be read or is corrupted.
        """
        if self.path is None:
            return 0
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheError(f"cannot read tool cache: {exc}", path=str(self.path)) from exc
        if not isinstance(data, dict):
            raise CacheError("tool cache file is not a JSON object", path=str(self.path))
        with self._guard:
            self._entries.clear()
        count = self.import_entries(data)
        self._dirty = False
        return count

    def save(self) -> Optional[Path]:
        """Write all entries to ``self.path`` (no-op for a memory-only cache).

        Raises:
            CacheError: If the file cannot be written.
        """
        if self.path is None:
            return None
        try:
            save_json(self.export(), self.path)
        except OSError as exc:
            raise CacheError(f"cannot write tool cache: {exc}", path=str(self.path)) from exc
        self._dirty = False
        return self.path

    def flush(self) -> None:
        """Save only if something changed since the last load/save."""
        if self._dirty:
            self.save()
