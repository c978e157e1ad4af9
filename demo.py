"""
Demonstration script for sdraw.

With no arguments, draws a set of sample structures. Otherwise each argument
is read as an s-expression and drawn in turn.
"""

import logging
import sys

from cons_types import Pair, Symbol, cons, make_list
from sdraw import render
from sexpr_parser import SexprSyntaxError, parse_sexpr


def demo() -> None:
    """Draw some hand-built and some parsed structures."""
    a, b, c = Symbol("a"), Symbol("b"), Symbol("c")

    loop = Pair(Symbol("x"), None)
    loop.second = loop

    deep: object = Symbol("core")
    for _ in range(10):
        deep = cons(deep, None)

    samples = [
        ("A single leaf", 5),
        ("A dotted pair", cons(1, 2)),
        ("A proper list", make_list(a, b, c)),
        ("A nested list", make_list(a, make_list(b, c), Symbol("d"))),
        ("A cell whose second points back to itself", loop),
        ("Nesting deeper than the canvas", deep),
        ("A long list", make_list(*range(100, 130))),
        ("Parsed, with shared structure", parse_sexpr("(#1=(p q) #1# . #1#)")),
        ("Parsed, with a cycle through first", parse_sexpr("#1=(#1# . end)")),
    ]

    for title, obj in samples:
        print("=" * 40)
        print(f"{title}:")
        print("=" * 40)
        render(obj)
        print()


def main(argv: list[str]) -> int:
    args = [arg for arg in argv if arg != "-v"]
    if len(args) != len(argv):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")

    if not args:
        demo()
        return 0

    status = 0
    for text in args:
        try:
            obj = parse_sexpr(text)
        except SexprSyntaxError as e:
            # Bad input is reported and skipped; the next expression still draws
            print(f"Could not read {text!r}:\n{e}\n", file=sys.stderr)
            status = 1
            continue
        render(obj)
        print()
    return status


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
