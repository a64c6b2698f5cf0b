"""
Tests for atomic writes, backups and restore.
"""

import re
from datetime import datetime

import pytest
from envedit.core import storage
from envedit.core.model import KeyValue
from envedit.core.parser import parse
from envedit.core.storage import (
    StorageError,
    backup_path_for,
    create_backup,
    delete_backup,
    list_backups,
    parse_backup_timestamp,
    read_file,
    restore_backup,
    write_file,
)


BACKUP_NAME = re.compile(r"^\.env\.backup\.\d{8}-\d{6}$")


@pytest.fixture
def env_path(tmp_path):
    path = tmp_path / ".env"
    path.write_text("# config\nA=1\nB=2\n", encoding="utf-8")
    return path


def backup_files(directory):
    return sorted(p.name for p in directory.iterdir() if ".backup." in p.name)


class TestReadFile:

    def test_read_sets_path(self, env_path):
        env = read_file(env_path)
        assert env.path == str(env_path)
        assert env.get("A").value == "1"
        assert env.modified is False

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            read_file(tmp_path / "missing.env")
        assert exc_info.value.phase == "read"

    def test_storage_error_is_oserror(self, tmp_path):
        with pytest.raises(OSError):
            read_file(tmp_path / "missing.env")


class TestCreateBackup:

    def test_missing_file_is_noop(self, tmp_path):
        assert create_backup(tmp_path / ".env") is None
        assert list(tmp_path.iterdir()) == []

    def test_backup_name_and_content(self, env_path):
        backup = create_backup(env_path)
        assert BACKUP_NAME.match(backup.name)
        assert backup.read_bytes() == env_path.read_bytes()

    def test_backup_path_for_explicit_timestamp(self):
        assert str(backup_path_for("/x/.env", "20240101-120000")) == "/x/.env.backup.20240101-120000"


class TestWriteFile:

    def test_write_creates_backup_and_replaces(self, env_path):
        original = env_path.read_bytes()
        env = read_file(env_path)
        env.update("A", "changed")

        write_file(env)

        assert env_path.read_text(encoding="utf-8") == "# config\nA=changed\nB=2\n"
        backups = backup_files(env_path.parent)
        assert len(backups) == 1
        assert (env_path.parent / backups[0]).read_bytes() == original

    def test_write_clears_modified(self, env_path):
        env = read_file(env_path)
        env.update("A", "changed")
        assert env.modified is True
        write_file(env)
        assert env.modified is False

    def test_no_temp_file_left(self, env_path):
        env = read_file(env_path)
        write_file(env)
        assert not (env_path.parent / ".env.tmp").exists()

    def test_write_new_file_without_backup(self, tmp_path):
        env = parse("A=1\n", path=str(tmp_path / ".env"))
        write_file(env)
        assert (tmp_path / ".env").read_text(encoding="utf-8") == "A=1\n"
        assert backup_files(tmp_path) == []

    def test_write_without_path(self):
        env = parse("A=1\n")
        with pytest.raises(StorageError):
            write_file(env)

    def test_written_file_round_trips(self, env_path):
        env = read_file(env_path)
        env.add(KeyValue.create("MULTI", "line1\nline2 # x"))
        write_file(env)
        assert read_file(env_path).get("MULTI").value == "line1\nline2 # x"

    def test_failed_rename_leaves_target_untouched(self, env_path, monkeypatch):
        original = env_path.read_bytes()

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(storage.os, "replace", failing_replace)

        env = read_file(env_path)
        env.update("A", "changed")
        with pytest.raises(StorageError) as exc_info:
            write_file(env)

        assert exc_info.value.phase == "rename"
        assert env_path.read_bytes() == original
        assert not (env_path.parent / ".env.tmp").exists()
        assert env.modified is True

    def test_failed_sync_reports_phase(self, env_path, monkeypatch):
        def failing_fsync(fd):
            raise OSError("io error")

        monkeypatch.setattr(storage.os, "fsync", failing_fsync)

        env = read_file(env_path)
        with pytest.raises(StorageError) as exc_info:
            write_file(env)

        assert exc_info.value.phase == "sync"
        assert not (env_path.parent / ".env.tmp").exists()


    def test_failed_backup_aborts_write(self, env_path, monkeypatch):
        original = env_path.read_bytes()

        def failing_copy(src, dst):
            raise OSError("permission denied")

        monkeypatch.setattr(storage.shutil, "copyfile", failing_copy)

        env = read_file(env_path)
        env.update("A", "changed")
        with pytest.raises(StorageError) as exc_info:
            write_file(env)

        assert exc_info.value.phase == "backup"
        assert env_path.read_bytes() == original
        assert not (env_path.parent / ".env.tmp").exists()
        assert env.modified is True


class TestListBackups:

    def test_newest_first(self, env_path):
        for stamp in ["20240101-100000", "20240301-100000", "20240201-100000"]:
            backup_path_for(env_path, stamp).write_text("x", encoding="utf-8")

        backups = list_backups(env_path)
        assert [b.timestamp for b in backups] == [
            datetime(2024, 3, 1, 10),
            datetime(2024, 2, 1, 10),
            datetime(2024, 1, 1, 10),
        ]
        assert backups[0].size == 1

    def test_skips_unparseable_suffixes(self, env_path):
        backup_path_for(env_path, "20240101-100000").write_text("x", encoding="utf-8")
        backup_path_for(env_path, "pre-restore.20240101-100000").write_text("x", encoding="utf-8")
        backup_path_for(env_path, "not-a-date").write_text("x", encoding="utf-8")

        backups = list_backups(env_path)
        assert [b.path.name for b in backups] == [".env.backup.20240101-100000"]

    def test_ignores_other_files(self, env_path):
        other = env_path.parent / ".env.production.backup.20240101-100000"
        other.write_text("x", encoding="utf-8")
        assert list_backups(env_path) == []

    def test_target_name_containing_marker(self, tmp_path):
        target = tmp_path / "app.backup.env"
        target.write_text("A=1\n", encoding="utf-8")
        backup_path_for(target, "20240101-100000").write_text("x", encoding="utf-8")
        backup_path_for(target, "pre-restore.20240101-100000").write_text("x", encoding="utf-8")

        backups = list_backups(target)
        assert [b.path.name for b in backups] == ["app.backup.env.backup.20240101-100000"]
        assert backups[0].timestamp == datetime(2024, 1, 1, 10)

    def test_no_backups(self, env_path):
        assert list_backups(env_path) == []

    @pytest.mark.parametrize("name, expected", [
        (".env.backup.20240102-030405", datetime(2024, 1, 2, 3, 4, 5)),
        (".env.backup.pre-restore.20240102-030405", None),
        (".env", None),
    ])
    def test_parse_backup_timestamp(self, name, expected):
        assert parse_backup_timestamp(name) == expected


class TestRestoreBackup:

    def test_restore_makes_safety_copy(self, env_path):
        backup = backup_path_for(env_path, "20240101-100000")
        backup.write_text("OLD=1\n", encoding="utf-8")
        current = env_path.read_bytes()

        safety_copy = restore_backup(backup, env_path)

        assert env_path.read_text(encoding="utf-8") == "OLD=1\n"
        assert ".backup.pre-restore." in safety_copy.name
        assert safety_copy.read_bytes() == current
        assert backup.exists()

    def test_restore_missing_target(self, tmp_path):
        backup = tmp_path / ".env.backup.20240101-100000"
        backup.write_text("OLD=1\n", encoding="utf-8")

        assert restore_backup(backup, tmp_path / ".env") is None
        assert (tmp_path / ".env").read_text(encoding="utf-8") == "OLD=1\n"

    def test_restore_missing_backup(self, env_path):
        with pytest.raises(StorageError) as exc_info:
            restore_backup(env_path.parent / "nope", env_path)
        assert exc_info.value.phase == "restore"
        assert env_path.read_text(encoding="utf-8") == "# config\nA=1\nB=2\n"


class TestDeleteBackup:

    def test_delete(self, env_path):
        backup = create_backup(env_path)
        delete_backup(backup)
        assert not backup.exists()
        assert list_backups(env_path) == []

    def test_delete_missing(self, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            delete_backup(tmp_path / ".env.backup.20240101-100000")
        assert exc_info.value.phase == "delete"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
