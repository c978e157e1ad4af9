"""
Shared type definitions for the sdraw system: cons cells, symbols and leaf text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# =============================================================================
# Structure Types
# =============================================================================


@dataclass(frozen=True)
class Symbol:
    """A bare name, printed without quotes."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class Pair:
    """
    A cons cell holding two references.

    Equality is identity: two pairs with equal contents are still different
    cells, which is what cycle detection relies on.
    """

    first: Any = None
    second: Any = None

    def __repr__(self) -> str:
        return f"Pair({format_sexpr(self)})"


def cons(first: Any, second: Any) -> Pair:
    """Build a new pair."""
    return Pair(first, second)


def make_list(*items: Any, tail: Any = None) -> Any:
    """
    Build a chain of pairs linked through ``second``.

    ``make_list(1, 2, 3)`` is ``(1 2 3)``; a non-None ``tail`` gives a dotted
    list, e.g. ``make_list(1, 2, tail=3)`` is ``(1 2 . 3)``.
    """
    result = tail
    for item in reversed(items):
        result = Pair(item, result)
    return result


def is_pair(obj: Any) -> bool:
    """True for a cons cell, False for every leaf value."""
    return isinstance(obj, Pair)


# =============================================================================
# Printing
# =============================================================================


def format_leaf(value: Any, nil_text: str = "nil") -> str:
    """Canonical text form of a leaf value. The empty symbol prints as ``||``."""
    if value is None:
        return nil_text
    if isinstance(value, Symbol):
        return value.name or "||"
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return repr(value)


def _find_shared(obj: Any) -> set[int]:
    """Ids of pairs reachable more than once from obj (shared or cyclic)."""
    seen: set[int] = set()
    shared: set[int] = set()
    stack = [obj]
    while stack:
        current = stack.pop()
        if not isinstance(current, Pair):
            continue
        if id(current) in seen:
            shared.add(id(current))
            continue
        seen.add(id(current))
        stack.append(current.second)
        stack.append(current.first)
    return shared


def format_sexpr(obj: Any, nil_text: str = "nil") -> str:
    """
    Print a structure in list notation.

    Pairs reached more than once get a ``#n=`` label on first appearance and
    a ``#n#`` back-reference afterwards, so cyclic structures print finitely
    and read back with the same sharing. Nesting is tracked on an explicit
    work stack, so arbitrarily deep structures print without recursion.
    """
    shared = _find_shared(obj)
    labels: dict[int, int] = {}
    out: list[str] = []
    # ("value", x) prints x; ("rest", x) prints the remainder of a list
    # whose next link is x; ("text", s) emits s.
    work: list[tuple[str, Any]] = [("value", obj)]

    while work:
        kind, item = work.pop()
        if kind == "text":
            out.append(item)
        elif kind == "value":
            if not isinstance(item, Pair):
                out.append(format_leaf(item, nil_text))
                continue
            if id(item) in labels:
                out.append(f"#{labels[id(item)]}#")
                continue
            if id(item) in shared:
                labels[id(item)] = len(labels) + 1
                out.append(f"#{labels[id(item)]}=")
            out.append("(")
            work.append(("rest", item.second))
            work.append(("value", item.first))
        elif item is None:
            out.append(")")
        elif isinstance(item, Pair) and id(item) not in shared:
            out.append(" ")
            work.append(("rest", item.second))
            work.append(("value", item.first))
        else:
            out.append(" . ")
            work.append(("text", ")"))
            work.append(("value", item))

    return "".join(out)
