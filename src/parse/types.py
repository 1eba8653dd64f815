"""Minimal Go type model used to bind member selectors.

Only what is needed to find the struct or interface behind a selector
operand is modelled. ``None`` always means "could not be inferred"; the
``OPAQUE`` value means "declared outside the loaded packages and built only
from such types" (builtins, standard library, other modules). A value of an
``OPAQUE`` type has no member that a loaded package declares. Anything that
might mention a loaded type, such as an anonymous struct or an instantiation
of a foreign generic type with loaded type arguments, is ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Named:
    package: str
    name: str


@dataclass(frozen=True)
class Pointer:
    elem: GoType | None


@dataclass(frozen=True)
class Slice:
    elem: GoType | None


@dataclass(frozen=True)
class Map:
    key: GoType | None
    value: GoType | None


@dataclass(frozen=True)
class Chan:
    elem: GoType | None


@dataclass(frozen=True)
class Signature:
    results: tuple[GoType | None, ...]


@dataclass(frozen=True)
class Opaque:
    pass


OPAQUE = Opaque()

GoType = Union[Named, Pointer, Slice, Map, Chan, Signature, Opaque]


def deref(t: GoType | None) -> GoType | None:
    """Strip one pointer level, as Go selectors do implicitly."""
    if isinstance(t, Pointer):
        return t.elem
    return t


def single_result(t: GoType | None) -> GoType | None:
    """Type of a call expression whose callee has type ``t``.

    Calls of ``OPAQUE`` callees are left to the caller: a function declared
    outside the load may be generic over the types of its arguments.
    """
    if isinstance(t, Signature):
        return t.results[0] if len(t.results) == 1 else None
    return None


def is_foreign(t: GoType | None) -> bool:
    """True when ``t`` is known and mentions no type of the loaded packages."""
    if isinstance(t, Opaque):
        return True
    if isinstance(t, (Pointer, Slice, Chan)):
        return is_foreign(t.elem)
    if isinstance(t, Map):
        return is_foreign(t.key) and is_foreign(t.value)
    if isinstance(t, Signature):
        return all(is_foreign(result) for result in t.results)
    return False


def element_of(t: GoType | None) -> GoType | None:
    """Type produced by indexing, ranging over or receiving from ``t``."""
    if isinstance(t, (Slice, Chan)):
        return t.elem
    if isinstance(t, Map):
        return t.value
    if isinstance(t, Opaque):
        return OPAQUE
    return None


__all__ = [
    "OPAQUE",
    "Chan",
    "GoType",
    "Map",
    "Named",
    "Opaque",
    "Pointer",
    "Signature",
    "Slice",
    "deref",
    "element_of",
    "is_foreign",
    "single_result",
]
