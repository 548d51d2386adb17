"""Tests for the dashgen command line."""
import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from dashgen import __version__
from dashgen.cli import build_parser, main

FIXTURES = Path(__file__).parent / "fixtures" / "project"
MODULE = "github.com/acme/shop"


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parser_leaves_unset_flags_as_none():
    args = build_parser().parse_args([])
    assert args.force is None
    assert args.dry_run is None
    assert args.module_path is None

    args = build_parser().parse_args(["--force", "--dry", "--module", MODULE])
    assert args.force is True
    assert args.dry_run is True
    assert args.module_path == MODULE


def test_version(capsys):
    assert main(["--version"]) == 0
    out = capsys.readouterr().out
    assert f"dashgen {__version__}" in out
    assert "Git commit:" in out
    assert "Build time:" in out


def test_successful_run(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir) / "project"
        shutil.copytree(FIXTURES, root)

        assert main(["--root", str(root), "--module", MODULE]) == 0

        out = capsys.readouterr().out
        assert "Total entities to generate: 3" in out
        assert "Entity 2: Order (pkg: model/order, db: orders)" in out
        assert "✅ Generation finished." in out
        assert f'"{MODULE}/model/order"' in (root / "main.go").read_text(encoding="utf-8")


def test_dry_run_writes_nothing(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir) / "project"
        shutil.copytree(FIXTURES, root)

        assert main(["--root", str(root), "--dry"]) == 0

        out = capsys.readouterr().out
        assert "would be created:" in out
        assert not (root / "main.go").exists()
        assert not (root / "internal").exists()


def test_single_model_flag(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir) / "project"
        shutil.copytree(FIXTURES, root)
        model = root / "model" / "order" / "data.go"

        assert main(["--root", str(root), "--model", str(model)]) == 0

        out = capsys.readouterr().out
        assert "Total entities to generate: 1" in out
        assert (root / "internal" / "api" / "order.go").is_file()
        assert not (root / "internal" / "api" / "user.go").exists()


def test_missing_definitions_exit_with_error(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        assert main(["--root", temp_dir]) == 1

        err = capsys.readouterr().err
        assert err.startswith("error: no definition files found")


def test_syntax_error_exit_with_error(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        model = Path(temp_dir) / "model" / "user" / "data.go"
        model.parent.mkdir(parents=True)
        model.write_text("package user\n\n// @entity\ntype User struct {\n\tName string `json:\"name\n}\n", encoding="utf-8")

        assert main(["--root", temp_dir]) == 1

        err = capsys.readouterr().err
        assert err.startswith("error: parse ")
        assert "data.go:5:" in err
