from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

from analysis.safety import analyze_exports
from rename.planner import plan_renames, unexported_name
from rename.rewriter import (
    RewriteError,
    check_report,
    command_formatter,
    format_summary,
    persist,
    rewrite_program,
    unified_diff,
)
from rules.config import UnexportConfig
from scan.workspace import scan_workspace

SHOP = "example.com/shop"
INVENTORY = f"{SHOP}/inventory"


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop"
    shutil.copytree(fixture_repo, root)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*.go"))
    }


def _analyze(root: Path, identifiers: list[str] | None = None):
    workspace = scan_workspace(root, UnexportConfig())
    result = analyze_exports(workspace, INVENTORY, identifiers or [])
    plan = plan_renames(result.safe, identifiers or [])
    return result, plan


def test_unexported_name_lowercases_whole_identifier() -> None:
    assert unexported_name("Clamp") == "clamp"
    assert unexported_name("URLPath") == "urlpath"


@pytest.mark.parametrize(
    ("name", "expected"),
    [("İndex", "index"), ("État", "état"), ("Σum", "σum")],
)
def test_unexported_name_maps_each_letter_to_one_letter(name: str, expected: str) -> None:
    assert unexported_name(name) == expected
    assert len(unexported_name(name)) == len(name)


def test_plan_is_subset_of_safe_and_allowlist(tmp_path: Path) -> None:
    _copy_shop_fixture(tmp_path / "shop")
    result, plan = _analyze(tmp_path / "shop")

    restricted = plan_renames(result.safe, ["Clamp", "Total"])

    assert set(plan) == set(result.safe)
    assert [symbol.qualified_name for symbol in restricted] == ["Clamp"]
    assert restricted.items()[0][1] == "clamp"
    with pytest.raises(TypeError):
        restricted.renames[next(iter(restricted))] = "other"  # type: ignore[index]


def test_rewrite_counts_definitions_and_uses(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Clamp"])

    rewrite = rewrite_program(result.program, plan)

    assert rewrite.occurrences == 3
    assert sorted(rewrite.files) == [
        "inventory/inventory.go",
        "inventory/inventory_test.go",
    ]
    assert rewrite.packages == {INVENTORY}
    assert format_summary(rewrite) == "Unexported 3 occurrences in 2 files in 1 package."
    source = rewrite.files["inventory/inventory.go"].rewritten.decode("utf-8")
    assert "func clamp(n int) int {" in source
    assert "it.Count = clamp(it.Count + quantity)" in source
    assert "Clamp" not in source.replace("// Clamp bounds", "")


def test_unsafe_identifier_touches_nothing(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Total"])

    rewrite = rewrite_program(result.program, plan)

    assert len(plan) == 0
    assert rewrite.occurrences == 0
    assert rewrite.files == {}
    assert format_summary(rewrite) == "Unexported 0 occurrences in 0 files in 0 packages."


def test_persist_writes_files(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Clamp", "Limit"])
    rewrite = rewrite_program(result.program, plan)

    report = persist(rewrite)

    assert report.ok
    assert report.written == ["inventory/inventory.go", "inventory/inventory_test.go"]
    test_source = (root / "inventory" / "inventory_test.go").read_text(encoding="utf-8")
    assert "if clamp(limit+1) != limit {" in test_source


def test_dry_run_writes_nothing_and_counts_match(tmp_path: Path) -> None:
    dry_root = tmp_path / "dry"
    wet_root = tmp_path / "wet"
    _copy_shop_fixture(dry_root)
    _copy_shop_fixture(wet_root)
    before = _snapshot(dry_root)

    dry_result, dry_plan = _analyze(dry_root)
    dry = rewrite_program(dry_result.program, dry_plan)
    dry_report = persist(dry, dry_run=True)

    wet_result, wet_plan = _analyze(wet_root)
    wet = rewrite_program(wet_result.program, wet_plan)
    persist(wet)

    assert _snapshot(dry_root) == before
    assert dry_report.written == []
    assert (dry.occurrences, dry.file_count, dry.package_count) == (
        wet.occurrences,
        wet.file_count,
        wet.package_count,
    )
    assert _snapshot(wet_root) != before


def test_unified_diff_shows_renamed_lines(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Limit"])
    rewrite = rewrite_program(result.program, plan)

    diff = "".join(unified_diff(rewrite))

    assert "--- a/inventory/inventory.go" in diff
    assert "+++ b/inventory/inventory.go" in diff
    assert "-const Limit = 100" in diff
    assert "+const limit = 100" in diff


def test_write_failures_are_counted_after_all_attempts(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Clamp"])
    rewrite = rewrite_program(result.program, plan)
    rewrite.files["inventory/inventory.go"].path = root / "missing" / "inventory.go"

    report = persist(rewrite)

    assert list(report.failed) == ["inventory/inventory.go"]
    assert report.written == ["inventory/inventory_test.go"]
    with pytest.raises(RewriteError, match="failed to rewrite 1 file$"):
        check_report(report)


def test_formatter_command_output_is_written(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    result, plan = _analyze(root, ["Limit"])
    rewrite = rewrite_program(result.program, plan)
    upper = command_formatter(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]
    )

    report = persist(rewrite, formatter=upper)

    assert report.ok
    assert "PACKAGE INVENTORY" in (root / "inventory" / "inventory.go").read_text(
        encoding="utf-8"
    )


def test_formatter_failure_is_a_write_failure(tmp_path: Path) -> None:
    root = tmp_path / "shop"
    _copy_shop_fixture(root)
    before = _snapshot(root)
    result, plan = _analyze(root, ["Limit"])
    rewrite = rewrite_program(result.program, plan)
    failing = command_formatter([sys.executable, "-c", "import sys; sys.exit(2)"])

    report = persist(rewrite, formatter=failing)

    assert set(report.failed) == set(rewrite.files)
    assert _snapshot(root) == before
