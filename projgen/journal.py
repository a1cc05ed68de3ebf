"""Rollback journal: an append-only log of filesystem mutations and their undo.

Every mutation a generation run performs goes through ``JournaledFileSystem``,
which records a ``JournalEntry`` (with whatever prior state is needed to
restore it) before touching the disk. ``undo_all`` and ``undo_since`` replay
entries in reverse through the same ``_undo_entry`` routine.

Entries are tagged with a scope: the component kind that performed them, or
``"run"`` for shared directories the coordinator creates up front. When
components execute concurrently their entries interleave in append order, so
the global undo order is defined per scope instead: scopes that never
completed first (most recent activity first), then completed scopes in reverse
completion order, then the ``run`` scope.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from projgen.errors import RollbackIncomplete
from projgen.models import JournalEntry, JournalOperation
from projgen.utils import console, save_json

RUN_SCOPE = "run"


@dataclass(frozen=True)
class Checkpoint:
    """Position in the journal; ``undo_since`` reverts what came after it."""

    scope: Optional[str]
    seq: int


@dataclass
class RollbackReport:
    """What an undo pass did. ``errors`` lists steps that could not be restored."""

    undone: int = 0
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.errors

    def raise_if_incomplete(self) -> None:
        if self.errors:
            raise RollbackIncomplete(
                f"{len(self.errors)} undo step(s) failed", details=list(self.errors)
            )


class RollbackJournal:
    """Thread-safe journal of mutations for one generation run."""

    def __init__(self, backup_root: Optional[Path] = None, verbose: bool = False) -> None:
        self._entries: list[JournalEntry] = []
        self._lock = threading.Lock()
        self._seq = 0
        self._completed: list[str] = []
        self._backup_root = Path(backup_root) if backup_root else None
        self._backup_dir: Optional[Path] = None
        self._backup_count = 0
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, entry: JournalEntry) -> JournalEntry:
        """Append *entry*, assigning it the next sequence number."""
        with self._lock:
            self._seq += 1
            stored = entry.model_copy(update={"seq": self._seq})
            self._entries.append(stored)
            return stored

    def checkpoint(self, scope: Optional[str] = None) -> Checkpoint:
        """Mark the current end of the journal for *scope* (``None`` = every scope)."""
        with self._lock:
            return Checkpoint(scope=scope, seq=self._seq)

    def mark_completed(self, scope: str) -> None:
        with self._lock:
            if scope in self._completed:
                self._completed.remove(scope)
            self._completed.append(scope)

    def entries(self, scope: Optional[str] = None) -> list[JournalEntry]:
        with self._lock:
            return [e for e in self._entries if scope is None or e.scope == scope]

    def completed_scopes(self) -> list[str]:
        with self._lock:
            return list(self._completed)

    def __len__(self) -> int:
        return len(self._entries)

    def backup_path(self, name: str) -> Path:
        """A fresh path inside the journal's private backup directory."""
        with self._lock:
            if self._backup_dir is None:
                if self._backup_root is not None:
                    self._backup_root.mkdir(parents=True, exist_ok=True)
                self._backup_dir = Path(
                    tempfile.mkdtemp(
                        prefix="projgen-journal-",
                        dir=str(self._backup_root) if self._backup_root else None,
                    )
                )
            self._backup_count += 1
            return self._backup_dir / f"{self._backup_count:06d}-{name}"

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def undo_since(self, checkpoint: Checkpoint) -> RollbackReport:
        """Undo entries appended after *checkpoint* that belong to its scope."""
        with self._lock:
            selected = [
                e
                for e in self._entries
                if e.seq > checkpoint.seq and (checkpoint.scope is None or e.scope == checkpoint.scope)
            ]
            selected_ids = {e.seq for e in selected}
            self._entries = [e for e in self._entries if e.seq not in selected_ids]
        report = RollbackReport()
        for entry in sorted(selected, key=lambda e: e.seq, reverse=True):
            self._undo_entry(entry, report)
        return report

    def undo_all(self) -> RollbackReport:
        """Undo every entry, in reverse-of-completion scope order."""
        with self._lock:
            ordered = self._undo_order()
            self._entries = []
        report = RollbackReport()
        for entry in ordered:
            self._undo_entry(entry, report)
        return report

    def _undo_order(self) -> list[JournalEntry]:
        by_scope: dict[str, list[JournalEntry]] = {}
        for entry in self._entries:
            by_scope.setdefault(entry.scope, []).append(entry)

        incomplete = [s for s in by_scope if s != RUN_SCOPE and s not in self._completed]
        incomplete.sort(key=lambda s: by_scope[s][-1].seq, reverse=True)
        completed = [s for s in reversed(self._completed) if s in by_scope]

        ordered: list[JournalEntry] = []
        for scope in [*incomplete, *completed, RUN_SCOPE]:
            ordered.extend(reversed(by_scope.get(scope, [])))
        return ordered

    def _undo_entry(self, entry: JournalEntry, report: RollbackReport) -> None:
        target = Path(entry.target)
        try:
            if entry.operation == JournalOperation.CREATE_DIR:
                if entry.existed_before:
                    return
                if not target.exists():
                    self._skip(report, entry, "directory already gone")
                    return
                shutil.rmtree(target)

            elif entry.operation == JournalOperation.WRITE_FILE:
                if entry.existed_before and entry.backup:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(entry.backup, target)
                elif target.exists() or target.is_symlink():
                    target.unlink()
                else:
                    self._skip(report, entry, "file already gone")
                    return

            elif entry.operation == JournalOperation.MOVE:
                if not entry.source:
                    raise ValueError("move entry has no source")
                if not target.exists():
                    self._skip(report, entry, "moved path already gone")
                    return
                source = Path(entry.source)
                source.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(target), str(source))

            elif entry.operation == JournalOperation.DELETE:
                if not entry.backup or not Path(entry.backup).exists():
                    raise FileNotFoundError(f"backup missing for deleted path {target}")
                if target.exists():
                    raise FileExistsError(f"cannot restore {target}: path exists again")
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(entry.backup, str(target))

        except (OSError, ValueError) as exc:
            report.errors.append(f"{entry.operation.value} {target}: {exc}")
            return
        report.undone += 1

    def _skip(self, report: RollbackReport, entry: JournalEntry, reason: str) -> None:
        message = f"{entry.operation.value} {entry.target}: {reason}"
        report.skipped.append(message)
        if self.verbose:
            console.print(f"  [dim]undo skipped: {message}[/dim]")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def discard(self) -> None:
        """Forget every entry and delete saved backups (the run committed)."""
        with self._lock:
            self._entries = []
            self._completed = []
            backup_dir, self._backup_dir = self._backup_dir, None
        if backup_dir is not None:
            shutil.rmtree(backup_dir, ignore_errors=True)

    def dump(self, path: Path) -> Path:
        """Write the journal to *path* as JSON (a log; not used for recovery)."""
        with self._lock:
            payload = {
                "entries": [e.model_dump(mode="json") for e in self._entries],
                "completed_scopes": list(self._completed),
            }
        return save_json(payload, path)


class JournaledFileSystem:
    """Filesystem mutations that record themselves in a ``RollbackJournal``.

    Each operation is journaled before it runs, so an operation that fails half
    way is still undone (undo tolerates a missing target).
    """

    def __init__(self, journal: RollbackJournal, scope: str = RUN_SCOPE) -> None:
        self.journal = journal
        self.scope = scope

    def scoped(self, scope: str) -> "JournaledFileSystem":
        return JournaledFileSystem(self.journal, scope)

    def _record(self, operation: JournalOperation, target: Path, **kwargs) -> JournalEntry:
        return self.journal.record(
            JournalEntry(operation=operation, target=str(target), scope=self.scope, **kwargs)
        )

    def make_dirs(self, path: Path) -> Path:
        """``mkdir -p`` that journals each directory it actually creates."""
        path = Path(path).absolute()
        missing: list[Path] = []
        current = path
        while not current.exists():
            missing.append(current)
            if current.parent == current:
                break
            current = current.parent
        if current.exists() and not current.is_dir():
            raise NotADirectoryError(f"{current} exists and is not a directory")
        for directory in reversed(missing):
            self._record(JournalOperation.CREATE_DIR, directory)
            directory.mkdir()
        return path

    def write_file(self, path: Path, content: str | bytes) -> Path:
        path = Path(path).absolute()
        self.make_dirs(path.parent)
        existed = path.exists()
        backup: Optional[Path] = None
        if existed:
            if path.is_dir():
                raise IsADirectoryError(f"{path} is a directory")
            backup = self.journal.backup_path(path.name)
            shutil.copy2(path, backup)
        self._record(
            JournalOperation.WRITE_FILE,
            path,
            existed_before=existed,
            backup=str(backup) if backup else None,
        )
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def move(self, source: Path, target: Path) -> Path:
        """Move *source* to *target*, which must not exist."""
        source = Path(source).absolute()
        target = Path(target).absolute()
        if not source.exists():
            raise FileNotFoundError(f"{source} does not exist")
        if target.exists():
            raise FileExistsError(f"{target} already exists")
        self.make_dirs(target.parent)
        self._record(JournalOperation.MOVE, target, source=str(source))
        shutil.move(str(source), str(target))
        return target

    def delete(self, path: Path) -> bool:
        """Delete a file or tree, keeping a backup for undo. Returns ``False`` if absent."""
        path = Path(path).absolute()
        if not path.exists():
            return False
        backup = self.journal.backup_path(path.name)
        self._record(JournalOperation.DELETE, path, existed_before=True, backup=str(backup))
        shutil.move(str(path), str(backup))
        return True
