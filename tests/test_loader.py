from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from parse.loader import load_program
from parse.program import LoadError, Program, Symbol
from rules.config import UnexportConfig
from scan.workspace import Workspace, scan_workspace

SHOP = "example.com/shop"


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop"
    shutil.copytree(fixture_repo, root)


def _write(root: Path, rel_path: str, content: str) -> None:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _workspace(root: Path, files: dict[str, str]) -> Workspace:
    _write(root, "go.mod", "module example.com/m\n")
    for rel_path, content in files.items():
        _write(root, rel_path, content)
    return scan_workspace(root, UnexportConfig())


def _defs(program: Program, path: str) -> dict[str, Symbol]:
    package = program.package(path)
    assert package is not None
    return {symbol.qualified_name: symbol for symbol in package.defined_symbols()}


def _uses(program: Program, path: str) -> list[str]:
    package = program.package(path)
    assert package is not None
    return sorted(f"{symbol.package}.{symbol.qualified_name}" for symbol in package.uses.values())


def test_load_collects_declarations(tmp_path: Path) -> None:
    _copy_shop_fixture(tmp_path / "shop")
    workspace = scan_workspace(tmp_path / "shop", UnexportConfig())

    program = load_program(workspace, [f"{SHOP}/inventory"])

    defs = _defs(program, f"{SHOP}/inventory")
    assert {name: symbol.kind for name, symbol in defs.items()} == {
        "Limit": "const",
        "Item": "type",
        "Item.Name": "field",
        "Item.Count": "field",
        "Item.Describe": "method",
        "Restock": "func",
        "Clamp": "func",
        "Total": "func",
        "newItem": "func",
        "TestClamp": "func",
    }
    assert defs["Limit"].path == "inventory/inventory.go"
    assert (defs["Limit"].line, defs["Limit"].col) == (7, 7)
    assert program.requested == frozenset({f"{SHOP}/inventory"})


def test_load_binds_uses_across_packages(tmp_path: Path) -> None:
    _copy_shop_fixture(tmp_path / "shop")
    workspace = scan_workspace(tmp_path / "shop", UnexportConfig())

    program = load_program(workspace, [f"{SHOP}/checkout"])

    assert program.package(f"{SHOP}/inventory") is not None
    assert program.requested == frozenset({f"{SHOP}/checkout"})
    uses = _uses(program, f"{SHOP}/checkout")
    assert f"{SHOP}/inventory.Item" in uses
    assert f"{SHOP}/inventory.Total" in uses
    assert f"{SHOP}/checkout.Order.Items" in uses


def test_dependency_loads_skip_test_files(tmp_path: Path) -> None:
    _copy_shop_fixture(tmp_path / "shop")
    workspace = scan_workspace(tmp_path / "shop", UnexportConfig())

    program = load_program(workspace, [f"{SHOP}/checkout"])

    inventory = program.package(f"{SHOP}/inventory")
    assert [f.rel_path for f in inventory.files] == ["inventory/inventory.go"]


def test_two_loads_produce_equal_but_distinct_symbols(tmp_path: Path) -> None:
    _copy_shop_fixture(tmp_path / "shop")
    workspace = scan_workspace(tmp_path / "shop", UnexportConfig())

    first = load_program(workspace, [f"{SHOP}/inventory"])
    second = load_program(workspace, [f"{SHOP}/inventory", f"{SHOP}/checkout"])

    first_clamp = _defs(first, f"{SHOP}/inventory")["Clamp"]
    second_clamp = _defs(second, f"{SHOP}/inventory")["Clamp"]
    assert first is not second
    assert first_clamp is not second_clamp
    assert first_clamp == second_clamp
    assert hash(first_clamp) == hash(second_clamp)


def test_external_test_package_is_split(tmp_path: Path) -> None:
    workspace = _workspace(
        tmp_path,
        {
            "a/a.go": "package a\n\nfunc Helper() int { return 1 }\n",
            "a/a_test.go": (
                'package a_test\n\nimport "example.com/m/a"\n\n'
                "var got = a.Helper()\n"
            ),
        },
    )

    program = load_program(workspace, ["example.com/m/a"])

    xtest = program.package("example.com/m/a_test")
    assert xtest is not None
    assert xtest.name == "a_test"
    assert [f.rel_path for f in xtest.files] == ["a/a_test.go"]
    assert "example.com/m/a.Helper" in _uses(program, "example.com/m/a_test")
    assert "example.com/m/a_test" in program.requested


def test_selectors_resolve_through_embedding_and_locals(tmp_path: Path) -> None:
    workspace = _workspace(
        tmp_path,
        {
            "a/a.go": """package a

type Base struct {
	ID int
}

func (b *Base) Touch() {}

type Doc struct {
	Base
	Title string
}

func Run() {
	docs := []*Doc{{Title: "x"}}
	for _, d := range docs {
		d.Touch()
		_ = d.ID
	}
	m := map[string]Doc{"k": {Title: "y"}}
	_ = m["k"].Base.ID
}
""",
        },
    )

    program = load_program(workspace, ["example.com/m/a"])
    uses = _uses(program, "example.com/m/a")

    assert uses.count("example.com/m/a.Doc.Title") == 2
    assert "example.com/m/a.Base.Touch" in uses
    assert uses.count("example.com/m/a.Base.ID") == 2
    assert "example.com/m/a.Base" in uses
    assert program.package("example.com/m/a").unresolved_members == set()


def test_unresolved_selector_names_are_recorded(tmp_path: Path) -> None:
    workspace = _workspace(
        tmp_path,
        {
            "a/a.go": """package a

type Conn struct {
	Open bool
}

func Use() {
	x := mystery()
	_ = x.Open
	x.Ping()
}
""",
        },
    )

    program = load_program(workspace, ["example.com/m/a"])

    assert "Open" in program.unresolved_members()
    assert "Ping" in program.unresolved_members()


def test_interface_methods_are_protected(tmp_path: Path) -> None:
    workspace = _workspace(
        tmp_path,
        {"a/a.go": "package a\n\ntype Runner interface {\n\tRun() error\n}\n"},
    )

    program = load_program(workspace, ["example.com/m/a"], protected_members=["String"])

    assert {"Run", "String"} <= program.protected_members
    assert _defs(program, "example.com/m/a")["Runner.Run"].kind == "method"


@pytest.mark.parametrize(
    ("files", "message"),
    [
        ({"a/a.go": "package a\n\nfunc Broken( {\n"}, "syntax error"),
        ({"a/a.go": "package a\n", "a/b.go": "package b\n"}, "found packages"),
        (
            {"a/a.go": 'package a\n\nimport "example.com/m/missing"\n'},
            "could not import example.com/m/missing",
        ),
        ({"a/a.go": "package a\n\nfunc F() {}\nfunc F() {}\n"}, "redeclared"),
    ],
)
def test_load_errors(tmp_path: Path, files: dict[str, str], message: str) -> None:
    workspace = _workspace(tmp_path, files)

    with pytest.raises(LoadError, match=message):
        load_program(workspace, ["example.com/m/a"])


def test_load_unknown_package(tmp_path: Path) -> None:
    workspace = _workspace(tmp_path, {"a/a.go": "package a\n"})

    with pytest.raises(LoadError, match="cannot find package"):
        load_program(workspace, ["example.com/m/zzz"])
