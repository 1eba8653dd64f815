from __future__ import annotations

import shutil
from pathlib import Path

from graph.importgraph import ImportGraph, ScanError, build_reverse_graph
from parse.go_imports import BLANK_IMPORT, DOT_IMPORT, extract_header
from rules.config import UnexportConfig
from scan.workspace import scan_workspace

SHOP = "example.com/shop"


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop"
    shutil.copytree(fixture_repo, root)


def _write(root: Path, rel_path: str, content: str) -> None:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_extract_header_import_forms() -> None:
    source = b"""package main

import (
	"fmt"
	str "strings"
	. "math"
	_ "embed"
)

import "os"
"""
    header = extract_header(source)

    assert header.package_name == "main"
    assert [(spec.path, spec.name) for spec in header.imports] == [
        ("fmt", None),
        ("strings", "str"),
        ("math", DOT_IMPORT),
        ("embed", BLANK_IMPORT),
        ("os", None),
    ]


def test_reverse_dependents_follow_two_hops(tmp_path: Path) -> None:
    repo_root = tmp_path / "shop"
    _copy_shop_fixture(repo_root)
    workspace = scan_workspace(repo_root, UnexportConfig())

    graph, errors = build_reverse_graph(workspace)

    assert errors == {}
    assert graph.forward[f"{SHOP}/checkout"] == {f"{SHOP}/inventory"}
    assert graph.reverse_dependents(f"{SHOP}/inventory") == {
        f"{SHOP}/inventory",
        f"{SHOP}/checkout",
        f"{SHOP}/report",
    }
    assert graph.reverse_dependents(f"{SHOP}/report") == {f"{SHOP}/report"}


def test_external_test_imports_count_by_default(tmp_path: Path) -> None:
    _write(tmp_path, "go.mod", "module example.com/m\n")
    _write(tmp_path, "a/a.go", "package a\n\nfunc Helper() {}\n")
    _write(tmp_path, "b/b.go", "package b\n")
    _write(
        tmp_path,
        "b/b_test.go",
        'package b_test\n\nimport "example.com/m/a"\n\nvar _ = a.Helper\n',
    )
    workspace = scan_workspace(tmp_path, UnexportConfig())

    with_tests, _ = build_reverse_graph(workspace)
    without_tests, _ = build_reverse_graph(workspace, include_test_imports=False)

    assert "example.com/m/b" in with_tests.reverse_dependents("example.com/m/a")
    assert without_tests.reverse_dependents("example.com/m/a") == {"example.com/m/a"}


def test_scan_errors_are_collected_not_raised(tmp_path: Path) -> None:
    _write(tmp_path, "go.mod", "module example.com/m\n")
    _write(tmp_path, "good/good.go", "package good\n")
    _write(tmp_path, "mixed/one.go", "package one\n")
    _write(tmp_path, "mixed/two.go", "package two\n")
    _write(tmp_path, "broken/broken.go", "//go:build linux &&\n\npackage broken\n")
    workspace = scan_workspace(tmp_path, UnexportConfig())

    graph, errors = build_reverse_graph(workspace)

    assert set(errors) == {"example.com/m/mixed", "example.com/m/broken"}
    assert isinstance(errors["example.com/m/mixed"], ScanError)
    assert "example.com/m/good" in graph.forward
    assert "example.com/m/mixed" not in graph.forward


def test_reverse_dependents_terminate_on_cycles() -> None:
    graph = ImportGraph()
    graph.add_edge("a", "b")
    graph.add_edge("b", "c")
    graph.add_edge("c", "a")

    assert graph.reverse_dependents("c") == {"a", "b", "c"}
