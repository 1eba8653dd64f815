"""Go build-constraint evaluation.

Implements the subset of the go tool's file selection that matters for
deciding which files form a package: ``//go:build`` expressions, legacy
``// +build`` lines and ``_GOOS`` / ``_GOARCH`` file-name suffixes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from rules.config import GOARCH_VALUES, GOOS_VALUES

_UNIX_GOOS = frozenset(
    {
        "aix",
        "android",
        "darwin",
        "dragonfly",
        "freebsd",
        "hurd",
        "illumos",
        "ios",
        "linux",
        "netbsd",
        "openbsd",
        "solaris",
    }
)

# GOOS values that also satisfy another GOOS tag.
_IMPLIED_GOOS = {"android": "linux", "illumos": "solaris", "ios": "darwin"}

_GO_VERSION_TAG = re.compile(r"^go1\.\d+$")
_TOKEN = re.compile(r"\s*(\|\||&&|!|\(|\)|[\w.]+)")


class ConstraintSyntaxError(ValueError):
    """Raised for a malformed ``//go:build`` expression."""


@dataclass(frozen=True)
class BuildContext:
    """The platform and tag set files are selected against."""

    goos: str = "linux"
    goarch: str = "amd64"
    tags: frozenset[str] = field(default_factory=frozenset)

    def match_tag(self, tag: str) -> bool:
        if tag in self.tags:
            return True
        if tag in (self.goos, self.goarch, "gc"):
            return True
        if _IMPLIED_GOOS.get(self.goos) == tag:
            return True
        if tag == "unix":
            return self.goos in _UNIX_GOOS
        return bool(_GO_VERSION_TAG.match(tag))


def _tokenize(expr: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    expr = expr.rstrip()
    while pos < len(expr):
        match = _TOKEN.match(expr, pos)
        if match is None:
            msg = f"invalid build constraint: {expr!r}"
            raise ConstraintSyntaxError(msg)
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


class _ExprParser:
    """Recursive-descent evaluator for ``//go:build`` expressions."""

    def __init__(self, tokens: list[str], ctx: BuildContext) -> None:
        self.tokens = tokens
        self.pos = 0
        self.ctx = ctx

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            msg = "unexpected end of build constraint"
            raise ConstraintSyntaxError(msg)
        self.pos += 1
        return token

    def parse(self) -> bool:
        result = self._or()
        if self._peek() is not None:
            msg = f"unexpected token {self._peek()!r} in build constraint"
            raise ConstraintSyntaxError(msg)
        return result

    def _or(self) -> bool:
        result = self._and()
        while self._peek() == "||":
            self._next()
            rhs = self._and()
            result = result or rhs
        return result

    def _and(self) -> bool:
        result = self._not()
        while self._peek() == "&&":
            self._next()
            rhs = self._not()
            result = result and rhs
        return result

    def _not(self) -> bool:
        token = self._next()
        if token == "!":
            return not self._not()
        if token == "(":
            result = self._or()
            if self._next() != ")":
                msg = "missing ')' in build constraint"
                raise ConstraintSyntaxError(msg)
            return result
        if token in ("||", "&&", ")"):
            msg = f"unexpected token {token!r} in build constraint"
            raise ConstraintSyntaxError(msg)
        return self.ctx.match_tag(token)


def eval_go_build(expr: str, ctx: BuildContext) -> bool:
    """Evaluate a ``//go:build`` expression.

    Examples:
        >>> ctx = BuildContext(tags=frozenset({"integration"}))
        >>> eval_go_build("linux && !windows", ctx)
        True
        >>> eval_go_build("integration && (darwin || windows)", ctx)
        False
    """
    return _ExprParser(_tokenize(expr), ctx).parse()


def eval_plus_build(line: str, ctx: BuildContext) -> bool:
    """Evaluate one legacy ``// +build`` line: space is OR, comma is AND."""
    for option in line.split():
        terms = option.split(",")
        if all(_match_term(term, ctx) for term in terms):
            return True
    return False


def _match_term(term: str, ctx: BuildContext) -> bool:
    if term.startswith("!!") or not term.strip("!"):
        return False
    if term.startswith("!"):
        return not ctx.match_tag(term[1:])
    return ctx.match_tag(term)


def match_file_name(name: str, ctx: BuildContext) -> bool:
    """Apply the ``*_GOOS``, ``*_GOARCH`` and ``*_GOOS_GOARCH`` naming rules.

    Examples:
        >>> ctx = BuildContext(goos="linux", goarch="amd64")
        >>> match_file_name("server_windows.go", ctx)
        False
        >>> match_file_name("asm_linux_amd64_test.go", ctx)
        True
        >>> match_file_name("linux.go", ctx)
        True
    """
    stem = name.split(".", 1)[0]
    idx = stem.find("_")
    if idx < 0:
        return True
    parts = stem[idx:].split("_")
    if parts and parts[-1] == "test":
        parts = parts[:-1]
    n = len(parts)
    if n >= 2 and parts[n - 2] in GOOS_VALUES and parts[n - 1] in GOARCH_VALUES:
        return ctx.match_tag(parts[n - 2]) and ctx.match_tag(parts[n - 1])
    if n >= 1 and parts[n - 1] in GOOS_VALUES:
        return ctx.match_tag(parts[n - 1])
    if n >= 1 and parts[n - 1] in GOARCH_VALUES:
        return ctx.match_tag(parts[n - 1])
    return True


def _header_comment_lines(source: str) -> list[str]:
    """Return the ``//`` comment lines preceding the package clause."""
    lines: list[str] = []
    in_block = False
    for raw in source.splitlines():
        line = raw.strip()
        if in_block:
            if "*/" in line:
                in_block = False
            continue
        if not line:
            continue
        if line.startswith("//"):
            lines.append(line)
            continue
        if line.startswith("/*"):
            in_block = "*/" not in line
            continue
        break
    return lines


def match_constraints(source: str, ctx: BuildContext) -> bool:
    """Evaluate the build constraints in a Go file header.

    A ``//go:build`` line takes precedence over ``// +build`` lines.
    """
    header = _header_comment_lines(source)
    for line in header:
        if line.startswith("//go:build"):
            return eval_go_build(line[len("//go:build") :], ctx)

    plus_lines = [
        line[2:].strip()[len("+build") :]
        for line in header
        if line[2:].strip().startswith("+build")
    ]
    return all(eval_plus_build(line, ctx) for line in plus_lines)


def should_build(name: str, source: str, ctx: BuildContext) -> bool:
    """Report whether a file named ``name`` with ``source`` is part of the build."""
    return match_file_name(name, ctx) and match_constraints(source, ctx)


__all__ = [
    "BuildContext",
    "ConstraintSyntaxError",
    "eval_go_build",
    "eval_plus_build",
    "match_constraints",
    "match_file_name",
    "should_build",
]
