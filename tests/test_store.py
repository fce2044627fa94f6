from __future__ import annotations

import os
import time
from datetime import datetime, timedelta

import pytest

from conftest import write_revision
from local_history.errors import HistoryDirectoryError, RestoreError, RevisionCopyError, SearchPatternError


@pytest.fixture
def source(project):
    path = project / "src" / "main.py"
    path.write_text("print('v1')\n", encoding="utf-8")
    return path


def history_dir(project):
    return project / ".history" / "src"


class TestSave:
    def test_save_copies_file_into_store(self, make_store, project, source):
        store = make_store()
        revision = store.save(source)

        assert revision.parent == history_dir(project)
        assert revision.name.startswith("main_")
        assert revision.suffix == ".py"
        assert revision.read_text(encoding="utf-8") == "print('v1')\n"

    def test_save_disabled_is_noop(self, make_store, project, source):
        store = make_store({"enabled": 0})
        assert store.save(source) is None
        assert not (project / ".history").exists()

    def test_save_outside_workspace_is_noop(self, make_store, tmp_path):
        outside = tmp_path / "loose.txt"
        outside.write_text("x", encoding="utf-8")
        assert make_store().save(outside) is None

    def test_save_respects_exclude(self, make_store, project):
        excluded = project / "node_modules" / "lib.js"
        excluded.parent.mkdir()
        excluded.write_text("x", encoding="utf-8")

        store = make_store()
        assert store.save(excluded) is None
        assert not (project / ".history").exists()

    def test_custom_exclude(self, make_store, project, source):
        store = make_store({"exclude": ["**/*.py"]})
        assert store.save(source) is None

    def test_directory_creation_failure_is_fatal(self, make_store, project, source):
        (project / ".history").write_text("not a directory", encoding="utf-8")
        with pytest.raises(HistoryDirectoryError):
            make_store().save(source)

    def test_copy_failure_raises(self, make_store, project):
        with pytest.raises(RevisionCopyError):
            make_store().save(project / "src" / "missing.py")

    def test_store_in_external_location(self, make_store, project, source, tmp_path):
        store = make_store({"path": str(tmp_path / "shared")})
        revision = store.save(source)
        assert revision.parent == tmp_path / "shared" / ".history" / "project" / "src"

    def test_absolute_layout(self, make_store, source, tmp_path):
        store = make_store({"path": str(tmp_path / "shared"), "absolute": True})
        revision = store.save(source)
        expected = tmp_path / "shared" / ".history" / str(source.parent).lstrip("/")
        assert revision.parent == expected


class TestDelayedSave:
    def test_delayed_save_waits_for_flush(self, make_store, project, source):
        store = make_store({"saveDelay": 60})
        revision = store.save(source)

        assert not revision.exists()
        assert store.flush() == 1
        assert revision.exists()

    def test_newer_save_replaces_pending_copy(self, make_store, project, source):
        store = make_store({"saveDelay": 60})
        store.save(source)
        source.write_text("print('v2')\n", encoding="utf-8")
        latest = store.save(source)

        assert store.flush() == 1
        files = list(history_dir(project).iterdir())
        assert files == [latest]
        assert latest.read_text(encoding="utf-8") == "print('v2')\n"

    def test_cancel_pending(self, make_store, project, source):
        store = make_store({"saveDelay": 60})
        revision = store.save(source)
        store.cancel_pending()

        assert store.flush() == 0
        assert not revision.exists()

    def test_failed_delayed_copy_is_reported(self, make_store, host, project, source):
        store = make_store({"saveDelay": 60})
        store.save(source)
        source.unlink()

        store.flush()
        assert len(host.errors) == 1

    def test_timer_copies_only_the_latest_save(self, make_store, project, source):
        store = make_store({"saveDelay": 0.5})
        store.save(source)
        source.write_text("print('v2')\n", encoding="utf-8")
        latest = store.save(source)

        deadline = time.monotonic() + 5
        while not latest.exists() and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.2)

        assert store.flush() == 0
        assert list(history_dir(project).iterdir()) == [latest]
        assert latest.read_text(encoding="utf-8") == "print('v2')\n"

    def test_replaced_copy_does_not_run(self, make_store, project, source):
        store = make_store({"saveDelay": 60})
        store.save(source)
        stale = store._pending[str(source)]
        store.save(source)

        store._run_pending(str(source), stale)

        assert str(source) in store._pending
        assert not stale.destination.exists()
        store.cancel_pending()


class TestSaveFirstRevision:
    def test_keeps_content_before_first_save(self, make_store, project, source):
        moment = datetime(2024, 5, 1, 8, 30, 0)
        os.utime(source, (moment.timestamp(), moment.timestamp()))

        revision = make_store().save_first_revision(source)
        assert revision.name == "main_20240501083000.py"
        assert revision.exists()

    def test_skipped_when_history_exists(self, make_store, project, source):
        write_revision(history_dir(project), "main", ".py", datetime.now())
        assert make_store().save_first_revision(source) is None


class TestFind:
    def test_find_history_newest_first_and_limited(self, make_store, project, source):
        start = datetime.now().replace(microsecond=0) - timedelta(hours=1)
        for minute in range(15):
            write_revision(history_dir(project), "main", ".py", start + timedelta(minutes=minute))

        store = make_store()
        revisions = store.find_history(source)
        assert len(revisions) == 10
        assert revisions[0].timestamp == start + timedelta(minutes=14)
        assert [r.timestamp for r in revisions] == sorted((r.timestamp for r in revisions), reverse=True)

        assert len(store.find_history(source, no_limit=True)) == 15

    def test_find_history_ignores_other_files(self, make_store, project, source):
        directory = history_dir(project)
        write_revision(directory, "main", ".py", datetime(2024, 1, 1))
        write_revision(directory, "main", ".txt", datetime(2024, 1, 1))
        write_revision(directory, "main_helper", ".py", datetime(2024, 1, 1))
        (directory / "notes.md").write_text("foreign", encoding="utf-8")

        revisions = make_store().find_history(source)
        assert [r.path.name for r in revisions] == ["main_20240101000000.py"]

    def test_find_history_without_store(self, make_store, source):
        assert make_store().find_history(source) == []

    def test_find_all_includes_live_file(self, make_store, project, source):
        write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1))

        history = make_store().find_all(source)
        assert history.current.path == source
        assert history.current.timestamp is None
        assert len(history.revisions) == 1
        assert history.latest_revision.timestamp == datetime(2024, 1, 1)

    def test_find_all_disabled(self, make_store, source):
        assert make_store({"enabled": 0}).find_all(source) is None

    def test_find_global_history(self, make_store, project, source):
        write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1))
        write_revision(project / ".history", "setup", ".cfg", datetime(2024, 1, 2))

        store = make_store()
        settings = store.get_settings(source)
        assert len(store.find_global_history("**/*", settings)) == 2
        found = store.find_global_history("**/*.py", settings)
        assert [r.name for r in found] == ["main"]

    @pytest.mark.parametrize("pattern", ["", "/etc/*"])
    def test_find_global_history_rejects_bad_patterns(self, make_store, project, source, pattern):
        write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1))
        store = make_store()
        with pytest.raises(SearchPatternError):
            store.find_global_history(pattern, store.get_settings(source))


class TestPurge:
    def test_purge_removes_only_expired(self, make_store, project, source):
        directory = history_dir(project)
        recent = write_revision(directory, "main", ".py", datetime.now())
        expired = write_revision(directory, "main", ".py", datetime.now() - timedelta(days=40))

        store = make_store({"daysLimit": 30})
        assert store.purge(store.get_settings(source)) == [expired]
        assert recent.exists()
        assert not expired.exists()

    def test_purge_disabled_with_zero_days(self, make_store, project, source):
        expired = write_revision(history_dir(project), "main", ".py", datetime.now() - timedelta(days=400))
        store = make_store({"daysLimit": 0})
        assert store.purge(store.get_settings(source)) == []
        assert expired.exists()

    def test_purge_leaves_foreign_files(self, make_store, project, source):
        foreign = history_dir(project) / "keep.txt"
        foreign.parent.mkdir(parents=True)
        foreign.write_text("x", encoding="utf-8")
        store = make_store()
        store.purge(store.get_settings(source))
        assert foreign.exists()

    def test_save_purges_expired_revisions(self, make_store, project, source):
        expired = write_revision(history_dir(project), "main", ".py", datetime.now() - timedelta(days=40))
        make_store().save(source)
        assert not expired.exists()


class TestDelete:
    def test_delete_file_is_idempotent(self, make_store, project):
        revision = write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1))
        store = make_store()
        assert store.delete_file(revision) is True
        assert store.delete_file(revision) is True
        assert not revision.exists()

    def test_delete_files_continues_after_failure(self, make_store, project, monkeypatch):
        directory = history_dir(project)
        first = write_revision(directory, "a", ".py", datetime(2024, 1, 1))
        second = write_revision(directory, "b", ".py", datetime(2024, 1, 1))
        real_remove = os.remove

        def remove(path):
            if str(path) == str(first):
                raise PermissionError("locked")
            real_remove(path)

        monkeypatch.setattr(os, "remove", remove)
        failed = make_store().delete_files([first, second])

        assert failed == [first]
        assert first.exists()
        assert not second.exists()

    def test_delete_history_of_one_file(self, make_store, project, source):
        directory = history_dir(project)
        for day in range(1, 4):
            write_revision(directory, "main", ".py", datetime(2024, 1, day))
        other = write_revision(directory, "other", ".py", datetime(2024, 1, 1))

        assert make_store().delete_history(source) == []
        assert list(directory.iterdir()) == [other]

    def test_delete_all(self, make_store, project):
        write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1))
        store = make_store()
        store.delete_all(project / ".history")
        assert not (project / ".history").exists()
        store.delete_all(project / ".history")


class TestRestore:
    def test_restore_overwrites_live_file(self, make_store, project, source):
        revision = write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1), "print('v0')\n")
        store = make_store()

        restored = store.restore(revision, store.get_settings(source))
        assert restored == source
        assert source.read_text(encoding="utf-8") == "print('v0')\n"

    def test_restore_to_explicit_target(self, make_store, project, source, tmp_path):
        revision = write_revision(history_dir(project), "main", ".py", datetime(2024, 1, 1), "old\n")
        target = tmp_path / "copy.py"
        store = make_store()
        assert store.restore(revision, store.get_settings(source), target=target) == target
        assert target.read_text(encoding="utf-8") == "old\n"

    def test_restore_non_revision_is_noop(self, make_store, project, source):
        foreign = history_dir(project) / "malformed_filename.py"
        foreign.parent.mkdir(parents=True)
        foreign.write_text("x", encoding="utf-8")
        store = make_store()

        assert store.restore(foreign, store.get_settings(source)) is None
        assert source.read_text(encoding="utf-8") == "print('v1')\n"

    def test_restore_missing_revision_raises(self, make_store, project, source):
        store = make_store()
        missing = history_dir(project) / "main_20240101000000.py"
        with pytest.raises(RestoreError):
            store.restore(missing, store.get_settings(source))
