"""
S-expression reading for sdraw.

Turns text such as ``(a (b c) . d)`` or ``#1=(x . #1#)`` into Pair
structures that the drawing engine can render.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from cons_types import Pair, Symbol

__all__ = ["SexprSyntaxError", "parse_sexpr", "parse_many"]


class SexprSyntaxError(ValueError):
    """Raised for malformed s-expression text."""

    def __init__(self, message: str, text: str, position: int) -> None:
        self.position = position
        line_start = text.rfind("\n", 0, position) + 1
        line_end = text.find("\n", position)
        if line_end == -1:
            line_end = len(text)
        line_no = text.count("\n", 0, position) + 1
        column = position - line_start
        detail = (
            f"{message}\n"
            f"  Line {line_no}, column {column + 1}:\n"
            f"    {text[line_start:line_end]}\n"
            f"    {' ' * column}^"
        )
        super().__init__(detail)


_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+|;[^\n]*)
    |(?P<open>\()
    |(?P<close>\))
    |(?P<quote>')
    |(?P<label_def>\#\d+=)
    |(?P<label_ref>\#\d+\#)
    |(?P<string>"(?:[^"\\]|\\.)*")
    |(?P<bad_string>")
    |(?P<atom>[^\s()'";]+)
    """,
    re.VERBOSE,
)

_INT_RE = re.compile(r"[+-]?\d+$")
_FLOAT_RE = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    position: int


@dataclass(eq=False)
class _Placeholder:
    """Stands in for a labelled datum until the datum is complete."""

    label: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise SexprSyntaxError(f"Unreadable character {text[pos]!r}", text, pos)
        kind = match.lastgroup
        assert kind is not None
        if kind == "bad_string":
            raise SexprSyntaxError("Unterminated string", text, pos)
        if kind != "space":
            token_text = match.group()
            if kind == "atom" and token_text == ".":
                kind = "dot"
            tokens.append(_Token(kind, token_text, pos))
        pos = match.end()
    return tokens


def _parse_atom(token_text: str) -> Any:
    if token_text.lower() == "nil":
        return None
    if _INT_RE.match(token_text):
        return int(token_text)
    if _FLOAT_RE.match(token_text):
        return float(token_text)
    return Symbol(token_text)


def _unescape(token_text: str) -> str:
    body = token_text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


def _patch(root: Any, placeholder: _Placeholder, value: Any) -> None:
    """Replace every reference to placeholder inside root with value."""
    seen: set[int] = set()
    stack = [root]
    while stack:
        current = stack.pop()
        if not isinstance(current, Pair) or id(current) in seen:
            continue
        seen.add(id(current))
        if current.first is placeholder:
            current.first = value
        if current.second is placeholder:
            current.second = value
        stack.append(current.first)
        stack.append(current.second)


@dataclass(eq=False)
class _ListFrame:
    """A list being read: the elements so far and, after a dot, its tail."""

    open_token: _Token
    items: list[Any] = field(default_factory=list)
    tail: Any = None
    in_tail: bool = False
    tail_read: bool = False

    def build(self) -> Any:
        result = self.tail
        for item in reversed(self.items):
            result = Pair(item, result)
        return result


@dataclass(eq=False)
class _QuoteFrame:
    pass


@dataclass(eq=False)
class _LabelFrame:
    token: _Token
    label: int
    placeholder: _Placeholder


_Frame = _ListFrame | _QuoteFrame | _LabelFrame


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0
        self.labels: dict[int, Any] = {}

    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def peek(self) -> _Token | None:
        if self.at_end():
            return None
        return self.tokens[self.index]

    def next(self) -> _Token:
        token = self.peek()
        if token is None:
            raise SexprSyntaxError("Unexpected end of input", self.text, len(self.text))
        self.index += 1
        return token

    def error(self, message: str, token: _Token) -> SexprSyntaxError:
        return SexprSyntaxError(message, self.text, token.position)

    def read(self) -> Any:
        """
        Read one datum.

        Open lists, pending quotes and pending labels are kept on an explicit
        stack of frames, so nesting depth is not bounded by the call stack.
        """
        frames: list[_Frame] = []
        while True:
            token = self.next()
            has_value = True
            value: Any = None
            match token.kind:
                case "open":
                    frames.append(_ListFrame(token))
                    has_value = False
                case "close":
                    raise self.error("Unexpected ')'", token)
                case "dot":
                    raise self.error("Unexpected '.' outside a list", token)
                case "quote":
                    frames.append(_QuoteFrame())
                    has_value = False
                case "label_def":
                    frames.append(self.start_label(token))
                    has_value = False
                case "label_ref":
                    label = int(token.text[1:-1])
                    if label not in self.labels:
                        raise self.error(f"Reference to undefined label #{label}#", token)
                    value = self.labels[label]
                case "string":
                    value = _unescape(token.text)
                case _:
                    value = _parse_atom(token.text)

            # Hand finished values to the frames waiting for them, closing
            # lists whose ')' comes next.
            while True:
                if has_value:
                    if not frames:
                        return value
                    frame = frames[-1]
                    if isinstance(frame, _QuoteFrame):
                        frames.pop()
                        value = Pair(Symbol("quote"), Pair(value, None))
                        continue
                    if isinstance(frame, _LabelFrame):
                        frames.pop()
                        value = self.finish_label(frame, value)
                        continue
                    if frame.in_tail:
                        frame.tail = value
                        frame.tail_read = True
                    else:
                        frame.items.append(value)
                    has_value = False

                if not frames or not isinstance(frames[-1], _ListFrame):
                    break
                frame = frames[-1]
                if frame.in_tail and not frame.tail_read:
                    break
                token = self.peek()
                if token is None:
                    raise self.error("Unclosed '('", frame.open_token)
                if token.kind == "close":
                    self.index += 1
                    frames.pop()
                    value = frame.build()
                    has_value = True
                    continue
                if frame.tail_read:
                    raise self.error("Expected ')' after dotted tail", token)
                if token.kind == "dot":
                    if not frame.items:
                        raise self.error("Dotted tail with no elements before it", token)
                    self.index += 1
                    frame.in_tail = True
                break

    def start_label(self, token: _Token) -> _LabelFrame:
        label = int(token.text[1:-1])
        if label in self.labels:
            raise self.error(f"Label #{label}= is defined twice", token)
        placeholder = _Placeholder(label)
        self.labels[label] = placeholder
        return _LabelFrame(token, label, placeholder)

    def finish_label(self, frame: _LabelFrame, value: Any) -> Any:
        if value is frame.placeholder:
            raise self.error(f"Label #{frame.label}= refers only to itself", frame.token)
        self.labels[frame.label] = value
        _patch(value, frame.placeholder, value)
        return value


def parse_sexpr(text: str) -> Any:
    """
    Parse exactly one s-expression.

    Syntax:
    - Integers and floats: ``5``, ``-2``, ``3.5``
    - ``nil`` (any case) and ``()``: None
    - ``"strings"`` with backslash escapes: str
    - Any other bare token: Symbol
    - Lists ``(a b c)`` and dotted pairs ``(a . b)``
    - ``'x``: ``(quote x)``
    - ``#n=datum`` labels a datum, ``#n#`` refers back to it; this is how
      shared and cyclic structure is written, e.g. ``#1=(a . #1#)``
    - ``;`` starts a comment that runs to the end of the line

    Raises:
        SexprSyntaxError: with line/column information for malformed input
    """
    reader = _Reader(text)
    if reader.at_end():
        raise SexprSyntaxError("No expression found", text, len(text))
    value = reader.read()
    leftover = reader.peek()
    if leftover is not None:
        raise reader.error("Unexpected text after expression", leftover)
    return value


def parse_many(text: str) -> list[Any]:
    """Parse every s-expression in text, in order. Labels are shared across them."""
    reader = _Reader(text)
    values: list[Any] = []
    while not reader.at_end():
        values.append(reader.read())
    return values
