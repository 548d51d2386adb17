"""Tests for the idempotent file writer."""
import os
import tempfile
from pathlib import Path

import pytest

from dashgen.core.errors import FileSystemError
from dashgen.core.workflow import FileAction, FileRecord
from dashgen.generators.crud_gen.writer import IdempotentWriter, describe, read_text


def test_create_then_skip():
    with tempfile.TemporaryDirectory() as temp_dir:
        target = Path(temp_dir) / "internal" / "api" / "user.go"
        writer = IdempotentWriter()

        first = writer.write(target, "package api\n")
        assert first.action == FileAction.CREATE
        assert target.read_text(encoding="utf-8") == "package api\n"

        target.write_text("package api\n// hand edited\n", encoding="utf-8")
        second = writer.write(target, "package api\n")
        assert second.action == FileAction.SKIP
        assert target.read_text(encoding="utf-8") == "package api\n// hand edited\n"


def test_force_overwrites():
    with tempfile.TemporaryDirectory() as temp_dir:
        target = Path(temp_dir) / "client" / "user.go"
        target.parent.mkdir(parents=True)
        target.write_text("old\n", encoding="utf-8")

        record = IdempotentWriter(force=True).write(target, "new\n")
        assert record.action == FileAction.OVERWRITE
        assert target.read_text(encoding="utf-8") == "new\n"

        # an explicit overwrite flag wins over the writer default
        record = IdempotentWriter(force=True).write(target, "newer\n", overwrite=False)
        assert record.action == FileAction.SKIP
        assert target.read_text(encoding="utf-8") == "new\n"


def test_dry_run_reports_same_actions_without_writing():
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir)
        existing = root / "existing.go"
        existing.write_text("keep\n", encoding="utf-8")
        absent = root / "nested" / "absent.go"

        for force in (False, True):
            dry = IdempotentWriter(force=force, dry_run=True)
            real_decisions = [IdempotentWriter(force=force).decide(p) for p in (existing, absent)]
            dry_records = [dry.write(p, "text\n") for p in (existing, absent)]

            assert [r.action for r in dry_records] == real_decisions
            assert existing.read_text(encoding="utf-8") == "keep\n"
            assert not absent.exists()
            assert not absent.parent.exists()


def test_no_temporary_files_left_behind():
    with tempfile.TemporaryDirectory() as temp_dir:
        target = Path(temp_dir) / "out.go"
        IdempotentWriter().write(target, "a\n")
        IdempotentWriter(force=True).write(target, "b\n")

        assert os.listdir(temp_dir) == ["out.go"]


def test_write_failure_names_the_path():
    with tempfile.TemporaryDirectory() as temp_dir:
        blocker = Path(temp_dir) / "model"
        blocker.write_text("not a directory", encoding="utf-8")
        target = blocker / "user" / "init.go"

        with pytest.raises(FileSystemError) as exc_info:
            IdempotentWriter().write(target, "package user\n")
        assert exc_info.value.path == str(target)
        assert str(target) in str(exc_info.value)


def test_read_text():
    with tempfile.TemporaryDirectory() as temp_dir:
        path = Path(temp_dir) / "main.go"
        assert read_text(path) is None
        path.write_text("package main\n", encoding="utf-8")
        assert read_text(path) == "package main\n"


def test_describe_messages():
    assert describe(FileRecord(FileAction.SKIP, "a.go")) == "skipped (exists): a.go"
    assert describe(FileRecord(FileAction.CREATE, "a.go"), dry_run=True) == "would be created: a.go"
    assert describe(FileRecord(FileAction.PATCH, "main.go", "registered User")) == "patched: main.go (registered User)"
