from __future__ import annotations

import shutil
from pathlib import Path

import orjson
import pytest

from cli import main
from rename import rewriter

INVENTORY = "example.com/shop/inventory"


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop"
    shutil.copytree(fixture_repo, root)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*.go"))
    }


def test_cli_unexport_smoke(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)

    exit_code = main([str(repo_root), "--package", INVENTORY, "--identifier", "Clamp"])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "unexport: Unexported 3 occurrences in 2 files in 1 package." in captured.err
    source = (repo_root / "inventory" / "inventory.go").read_text(encoding="utf-8")
    assert "func clamp(n int) int {" in source


def test_cli_dryrun_verbose_prints_diagnostics_and_diff(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    before = _snapshot(repo_root)

    exit_code = main([str(repo_root), "--package", INVENTORY, "--dryrun", "--verbose"])

    assert exit_code == 0
    assert _snapshot(repo_root) == before
    captured = capsys.readouterr()
    assert "unexport: Possible affected packages:" in captured.err
    assert "unexport: Exported identifiers are:" in captured.err
    assert "unexport: Safe to unexport identifiers are:" in captured.err
    assert f"func {INVENTORY}.Clamp" in captured.err
    assert "+func clamp(n int) int {" in captured.out


def test_cli_json_summary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)

    exit_code = main(
        [str(repo_root), "--package", INVENTORY, "--identifier", "Clamp,Total", "--json"]
    )

    assert exit_code == 0
    summary = orjson.loads(capsys.readouterr().out)
    assert summary["occurrences"] == 3
    assert summary["unexported"] == ["Clamp"]
    assert list(summary["kept"]) == ["Total"]
    assert summary["packages"] == [INVENTORY]


def test_cli_no_exported_identifiers(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "a").mkdir(parents=True)
    (repo_root / "go.mod").write_text("module example.com/m\n", encoding="utf-8")
    (repo_root / "a" / "a.go").write_text("package a\n\nfunc f() {}\n", encoding="utf-8")

    exit_code = main([str(repo_root), "--package", "example.com/m/a"])

    assert exit_code == 0
    assert "Unexported 0 occurrences in 0 files in 0 packages." in capsys.readouterr().err


def test_cli_missing_package_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([str(tmp_path)])

    assert exit_code == 1
    assert "unexport: import path of the package must be given" in capsys.readouterr().err


def test_cli_unknown_package(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)

    exit_code = main([str(repo_root), "--package", "example.com/shop/nope"])

    assert exit_code == 1
    assert "not found in module example.com/shop" in capsys.readouterr().err


def test_cli_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    (repo_root / "unexport.toml").write_text("bogus = 1\n", encoding="utf-8")

    exit_code = main([str(repo_root), "--package", INVENTORY])

    assert exit_code == 1
    assert "Invalid config" in capsys.readouterr().err


def test_cli_load_error_leaves_files_untouched(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    (repo_root / "report" / "broken.go").write_text(
        "package report\n\nfunc Broken( {\n", encoding="utf-8"
    )
    before = _snapshot(repo_root)

    exit_code = main([str(repo_root), "--package", INVENTORY])

    assert exit_code == 1
    assert "syntax error" in capsys.readouterr().err
    assert _snapshot(repo_root) == before


def test_cli_tags_select_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    (repo_root / "report" / "debug.go").write_text(
        '//go:build debug\n\npackage report\n\nimport "example.com/shop/inventory"\n\n'
        "var Cap = inventory.Clamp(1)\n",
        encoding="utf-8",
    )

    args = [str(repo_root), "--package", INVENTORY, "--identifier", "Clamp", "--dryrun"]

    assert main([*args, "--tags", "debug"]) == 0
    assert "Unexported 0 occurrences" in capsys.readouterr().err

    assert main(args) == 0
    assert "Unexported 3 occurrences" in capsys.readouterr().err


def test_cli_write_failure_reports_summary_then_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    before = _snapshot(repo_root)

    def refuse(path: Path, data: bytes) -> None:
        raise PermissionError(f"read-only: {path.name}")

    monkeypatch.setattr(rewriter, "write_file_atomic", refuse)

    exit_code = main([str(repo_root), "--package", INVENTORY, "--identifier", "Clamp"])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert "unexport: inventory/inventory.go: read-only: inventory.go" in err
    summary_at = err.index("Unexported 3 occurrences in 2 files in 1 package.")
    assert err.index("unexport: failed to rewrite 2 files") > summary_at
    assert _snapshot(repo_root) == before


def test_cli_verbose_lists_loaded_packages(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    files = {
        "go.mod": "module example.com/m\n",
        "util/util.go": "package util\n\nfunc Twice(n int) int { return 2 * n }\n",
        "a/a.go": (
            'package a\n\nimport "example.com/m/util"\n\n'
            "func Four() int { return util.Twice(2) }\n"
        ),
        "b/b.go": 'package b\n\nimport "example.com/m/a"\n\nvar N = a.Four()\n',
    }
    for rel_path, content in files.items():
        path = repo_root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    exit_code = main([str(repo_root), "--package", "example.com/m/a", "--dryrun", "--verbose"])

    assert exit_code == 0
    err = capsys.readouterr().err
    loaded = err[err.index("unexport: Loaded packages:") : err.index("Exported identifiers are:")]
    assert "unexport: \texample.com/m/a\n" in loaded
    assert "unexport: \texample.com/m/b\n" in loaded
    assert "unexport: \texample.com/m/util (dependency only)\n" in loaded
