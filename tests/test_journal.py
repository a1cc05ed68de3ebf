"""Unit tests for RollbackJournal and JournaledFileSystem (projgen.journal).

Tests cover:
- Each mutation is journaled and undone (create-dir, write-file, move, delete)
- undo_all restores the pre-run tree exactly
- undo_since reverts one scope and leaves others intact
- Undo tolerates targets that are already gone
- Reverse-of-completion ordering for interleaved scopes
- Backups are discarded on commit; dump() writes JSON
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from projgen.errors import RollbackIncomplete
from projgen.journal import RUN_SCOPE, JournaledFileSystem, RollbackJournal
from projgen.models import JournalEntry, JournalOperation

pytestmark = pytest.mark.unit


@pytest.fixture
def journal(tmp_path_factory):
    j = RollbackJournal(backup_root=tmp_path_factory.mktemp("backups"))
    yield j
    j.discard()


@pytest.fixture
def fs(journal):
    return JournaledFileSystem(journal)


class TestMutations:
    def test_make_dirs_journals_each_created_directory(self, journal, fs, tmp_path):
        fs.make_dirs(tmp_path / "a" / "b" / "c")
        created = [e.target for e in journal.entries()]
        assert created == [str(tmp_path / "a"), str(tmp_path / "a" / "b"), str(tmp_path / "a" / "b" / "c")]

    def test_make_dirs_existing_is_not_journaled(self, journal, fs, tmp_path):
        fs.make_dirs(tmp_path)
        assert len(journal) == 0

    def test_make_dirs_through_a_file_fails(self, fs, tmp_path):
        (tmp_path / "file").write_text("x", encoding="utf-8")
        with pytest.raises(NotADirectoryError):
            fs.make_dirs(tmp_path / "file" / "sub")

    def test_write_new_file_then_undo(self, journal, fs, tmp_path, tree):
        before = tree(tmp_path)
        fs.write_file(tmp_path / "new" / "file.txt", "hello")
        assert (tmp_path / "new" / "file.txt").read_text(encoding="utf-8") == "hello"

        report = journal.undo_all()

        assert report.complete
        assert tree(tmp_path) == before

    def test_overwrite_restores_original_content(self, journal, fs, tmp_path):
        target = tmp_path / "config.yaml"
        target.write_text("original", encoding="utf-8")
        fs.write_file(target, "changed")

        journal.undo_all()

        assert target.read_text(encoding="utf-8") == "original"

    def test_move_then_undo(self, journal, fs, tmp_path):
        source = tmp_path / "staging" / "app"
        source.mkdir(parents=True)
        (source / "package.json").write_text("{}", encoding="utf-8")
        fs.move(source, tmp_path / "App")
        assert (tmp_path / "App" / "package.json").exists()

        journal.undo_all()

        assert (source / "package.json").exists()
        assert not (tmp_path / "App").exists()

    def test_move_refuses_existing_target(self, fs, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "dst").mkdir()
        with pytest.raises(FileExistsError):
            fs.move(tmp_path / "src", tmp_path / "dst")

    def test_delete_then_undo(self, journal, fs, tmp_path):
        victim = tmp_path / "old"
        victim.mkdir()
        (victim / "keep.txt").write_text("keep", encoding="utf-8")

        assert fs.delete(victim) is True
        assert not victim.exists()
        journal.undo_all()

        assert (victim / "keep.txt").read_text(encoding="utf-8") == "keep"

    def test_delete_missing_returns_false(self, journal, fs, tmp_path):
        assert fs.delete(tmp_path / "ghost") is False
        assert len(journal) == 0


class TestUndo:
    def test_undo_all_restores_tree_exactly(self, journal, fs, tmp_path, tree):
        (tmp_path / "existing.txt").write_text("pre-existing", encoding="utf-8")
        before = tree(tmp_path)

        fs.make_dirs(tmp_path / "out" / "Mobile")
        fs.write_file(tmp_path / "out" / ".projgen" / "staging" / "x" / "a.txt", "a")
        fs.move(tmp_path / "out" / ".projgen" / "staging" / "x", tmp_path / "out" / "Mobile" / "android")
        fs.write_file(tmp_path / "existing.txt", "overwritten")

        report = journal.undo_all()

        assert report.complete, report.errors
        assert tree(tmp_path) == before
        assert (tmp_path / "existing.txt").read_text(encoding="utf-8") == "pre-existing"
        assert len(journal) == 0

    def test_undo_tolerates_missing_targets(self, journal, fs, tmp_path):
        fs.make_dirs(tmp_path / "gone")
        fs.write_file(tmp_path / "gone" / "file.txt", "x")
        shutil.rmtree(tmp_path / "gone")
        report = journal.undo_all()

        assert report.complete
        assert len(report.skipped) == 2

    def test_undo_since_reverts_only_one_scope(self, journal, tmp_path):
        frontend = JournaledFileSystem(journal, "frontend-app")
        backend = JournaledFileSystem(journal, "backend-api")
        frontend.write_file(tmp_path / "App" / "package.json", "{}")
        journal.mark_completed("frontend-app")

        checkpoint = journal.checkpoint("backend-api")
        backend.write_file(tmp_path / "CommonServer" / "go.mod", "module x")
        journal.undo_since(checkpoint)

        assert (tmp_path / "App" / "package.json").exists()
        assert not (tmp_path / "CommonServer").exists()
        assert journal.entries("backend-api") == []
        assert journal.entries("frontend-app")

    def test_undo_since_ignores_interleaved_scopes(self, journal, tmp_path):
        a = JournaledFileSystem(journal, "a")
        b = JournaledFileSystem(journal, "b")
        checkpoint = journal.checkpoint("a")
        a.write_file(tmp_path / "a1", "1")
        b.write_file(tmp_path / "b1", "1")
        a.write_file(tmp_path / "a2", "2")

        journal.undo_since(checkpoint)

        assert not (tmp_path / "a1").exists()
        assert not (tmp_path / "a2").exists()
        assert (tmp_path / "b1").exists()

    def test_undo_order_is_reverse_of_completion(self, journal, tmp_path):
        run = JournaledFileSystem(journal, RUN_SCOPE)
        a = JournaledFileSystem(journal, "a")
        b = JournaledFileSystem(journal, "b")
        c = JournaledFileSystem(journal, "c")
        run.make_dirs(tmp_path / "root")
        a.write_file(tmp_path / "root" / "a1", "")
        b.write_file(tmp_path / "root" / "b1", "")
        a.write_file(tmp_path / "root" / "a2", "")
        c.write_file(tmp_path / "root" / "c1", "")
        b.write_file(tmp_path / "root" / "b2", "")
        journal.mark_completed("b")
        journal.mark_completed("a")

        order = [(e.scope, e.target.rsplit("/", 1)[-1]) for e in journal._undo_order()]

        assert order == [
            ("c", "c1"),
            ("a", "a2"),
            ("a", "a1"),
            ("b", "b2"),
            ("b", "b1"),
            (RUN_SCOPE, "root"),
        ]

    def test_failed_restore_is_reported_not_raised(self, journal, tmp_path):
        journal.record(
            JournalEntry(
                operation=JournalOperation.DELETE,
                target=str(tmp_path / "lost"),
                existed_before=True,
                backup=str(tmp_path / "no-backup"),
            )
        )
        report = journal.undo_all()

        assert not report.complete
        assert "backup missing" in report.errors[0]
        with pytest.raises(RollbackIncomplete) as exc_info:
            report.raise_if_incomplete()
        assert exc_info.value.details == report.errors


class TestLifecycle:
    def test_discard_removes_backups(self, journal, fs, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("v1", encoding="utf-8")
        fs.write_file(target, "v2")
        backup = journal.entries()[0].backup
        assert backup and Path(backup).exists()

        journal.discard()

        assert len(journal) == 0
        assert not Path(backup).exists()
        assert target.read_text(encoding="utf-8") == "v2"

    def test_dump(self, journal, fs, tmp_path):
        fs.make_dirs(tmp_path / "x")
        journal.mark_completed(RUN_SCOPE)
        path = journal.dump(tmp_path / "meta" / "journal.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["entries"][0]["operation"] == "create-dir"
        assert data["completed_scopes"] == [RUN_SCOPE]
