"""
Box-and-arrow diagrams of cons-cell structures.
Two-phase algorithm: plan (builds a tree of drawing directives) -> paint (character canvas).

    [*|*]--->[*|*]--->nil
     |        |
     v        v
     a        b
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, TextIO

import simple_chalk as chalk  # type: ignore[import-untyped]

from cons_types import Pair, format_leaf, is_pair

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class DrawConfig:
    """Canvas size, cutoffs and glyphs used by the planner and renderer."""

    width: int = 79  # Columns in the canvas
    num_rows: int = 25  # Rows in the canvas
    atom_cutoff: int = 79  # A leaf must end before this column
    cons_cutoff: int = 65  # A cell must start before this column
    vertical_cutoff: int = 22  # Cells at or below this row become "etc."
    inter_item_spacing: int = 3
    h_arrow_length: int = 9  # From a cell's column to its second child's column
    v_arrow_length: int = 3  # From a cell's row to its first child's row
    short_label_threshold: int = 2
    short_label_offset: int = 1
    etc_text: str = "etc."
    etc_spacing: int = 4
    circ_text: str = "circ."
    circ_spacing: int = 5
    cell_glyph: str = "[*|*]"
    nil_text: str = "nil"

    def __post_init__(self) -> None:
        problems: list[str] = []
        if self.width < 1 or self.num_rows < 1:
            problems.append(f"canvas must be at least 1x1 (got {self.num_rows}x{self.width})")
        if self.atom_cutoff - 1 + self.short_label_offset > self.width:
            problems.append(
                f"atom_cutoff {self.atom_cutoff} with short_label_offset "
                f"{self.short_label_offset} lets a leaf run past width {self.width}"
            )
        marker_length = max(len(self.etc_text), len(self.circ_text))
        if self.cons_cutoff - 1 + self.h_arrow_length + marker_length > self.width:
            problems.append(
                f"cons_cutoff {self.cons_cutoff} leaves no room for a marker after the "
                f"last cell's arrow within width {self.width}"
            )
        if self.h_arrow_length < len(self.cell_glyph) + 1:
            problems.append(
                f"h_arrow_length {self.h_arrow_length} leaves no room for an arrowhead "
                f"after {self.cell_glyph!r}"
            )
        if self.v_arrow_length < 2:
            problems.append(f"v_arrow_length must be at least 2 (got {self.v_arrow_length})")
        if self.vertical_cutoff + self.v_arrow_length > self.num_rows:
            problems.append(
                f"vertical_cutoff {self.vertical_cutoff} plus v_arrow_length "
                f"{self.v_arrow_length} exceeds num_rows {self.num_rows}"
            )
        if self.inter_item_spacing < 1:
            problems.append(f"inter_item_spacing must be positive (got {self.inter_item_spacing})")
        if self.etc_spacing < len(self.etc_text) or self.circ_spacing < len(self.circ_text):
            problems.append("marker spacing must cover the marker text")
        if problems:
            error_msg = "Invalid DrawConfig\n" + "".join(f"  - {p}\n" for p in problems)
            raise ValueError(error_msg.rstrip("\n"))


DEFAULT_CONFIG = DrawConfig()


# =============================================================================
# Data Structures: Drawing Plan
# =============================================================================


@dataclass(frozen=True)
class Atom:
    """A leaf's printed text."""

    row: int
    col: int
    text: str


@dataclass(frozen=True)
class Message:
    """A marker ("etc." or "circ.") standing in for structure that is not drawn."""

    row: int
    col: int
    text: str
    circular: bool = False  # "circ." rather than "etc."


@dataclass(frozen=True)
class CellRef:
    """A cell box with the plans of its two references."""

    row: int
    col: int
    first: "PlanNode"
    second: "PlanNode"


PlanNode = Atom | Message | CellRef


# =============================================================================
# Scratch State
# =============================================================================


class CanvasBoundsError(IndexError):
    """A write landed outside the canvas. Indicates a layout bug."""


# Colours a run of canvas text, e.g. chalk.cyan
Style = Callable[[str], str]


class Canvas:
    """Fixed grid of character rows, each with a filled length and per-character colours."""

    def __init__(self, width: int, num_rows: int) -> None:
        self.width = width
        self.num_rows = num_rows
        self._rows: list[list[str]] = [[" "] * width for _ in range(num_rows)]
        self._styles: list[list[Style | None]] = [[None] * width for _ in range(num_rows)]
        self._filled: list[int] = [0] * num_rows
        # A row counts as drawn once written, even by zero-width text
        self._touched: list[bool] = [False] * num_rows

    def reset(self) -> None:
        for line, styles in zip(self._rows, self._styles):
            line[:] = [" "] * self.width
            styles[:] = [None] * self.width
        self._filled = [0] * self.num_rows
        self._touched = [False] * self.num_rows

    def filled_length(self, row: int) -> int:
        return self._filled[row]

    def put(self, row: int, col: int, text: str, style: Style | None = None) -> None:
        """
        Write text at (row, col), optionally recording a colour for it.

        Anything between the row's filled length and col is blanked first, and
        the filled length never shrinks.

        Raises:
            CanvasBoundsError: if any character would fall outside the canvas
        """
        if not 0 <= row < self.num_rows or col < 0 or col + len(text) > self.width:
            raise CanvasBoundsError(
                f"Write of {text!r} at row {row}, col {col} is outside the "
                f"{self.num_rows}x{self.width} canvas"
            )
        line = self._rows[row]
        styles = self._styles[row]
        filled = self._filled[row]
        for c in range(filled, col):
            line[c] = " "
            styles[c] = None
        line[col : col + len(text)] = text
        styles[col : col + len(text)] = [style] * len(text)
        self._filled[row] = max(filled, col + len(text))
        self._touched[row] = True

    def lines(self, color: bool = False) -> list[str]:
        """Rows in order, up to the first one nothing was written to."""
        result: list[str] = []
        for row, touched in enumerate(self._touched):
            if not touched:
                break
            filled = self._filled[row]
            if color:
                result.append(self._colored_line(row, filled))
            else:
                result.append("".join(self._rows[row][:filled]))
        return result

    def _colored_line(self, row: int, filled: int) -> str:
        line = self._rows[row]
        styles = self._styles[row]
        parts: list[str] = []
        start = 0
        while start < filled:
            style = styles[start]
            end = start + 1
            while end < filled and styles[end] is style:
                end += 1
            run = "".join(line[start:end])
            parts.append(style(run) if style is not None else run)
            start = end
        return "".join(parts)

    def flush(self, file: TextIO | None = None) -> None:
        """Write every drawn row to file (stdout by default), then reset."""
        out = file if file is not None else sys.stdout
        for line in self.lines():
            out.write(line + "\n")
        self.reset()


@dataclass
class RenderContext:
    """
    Everything one top-level render mutates.

    A fresh context per call keeps renders independent, so two threads can
    draw at the same time without sharing anything.
    """

    config: DrawConfig = DEFAULT_CONFIG
    right_edges: list[int] = field(init=False)
    canvas: Canvas = field(init=False)

    def __post_init__(self) -> None:
        self.canvas = Canvas(self.config.width, self.config.num_rows)
        self.reset()

    def reset(self) -> None:
        # Unoccupied rows let the first item start at column 0
        self.right_edges = [-self.config.inter_item_spacing] * self.config.num_rows
        self.canvas.reset()

    def first_free_col(self, row: int, min_col: int) -> int:
        return max(min_col, self.right_edges[row] + self.config.inter_item_spacing)

    def mark(self, row: int, end_col: int) -> None:
        self.right_edges[row] = max(self.right_edges[row], end_col)


# =============================================================================
# Phase 1: Plan
# =============================================================================


def plan(obj: Any, config: DrawConfig = DEFAULT_CONFIG, context: RenderContext | None = None) -> PlanNode:
    """
    Lay out obj and return its drawing plan.

    Columns are assigned left to right, first reference before second, and
    a row's right edge only grows, so nothing placed later on a row can land
    on top of something placed earlier. Cycles and structure that does not
    fit become "circ." / "etc." messages; nothing here raises for them.

    Args:
        obj: Structure to lay out. Pairs are followed, anything else is a leaf.
        config: Used when no context is supplied.
        context: Scratch state to plan into; its config takes precedence.
    """
    ctx = context if context is not None else RenderContext(config)
    ctx.reset()
    return _plan(obj, 0, 0, (), ctx)


def _plan(obj: Any, row: int, min_col: int, ancestors: tuple[Pair, ...], ctx: RenderContext) -> PlanNode:
    config = ctx.config
    if not is_pair(obj):
        return _plan_leaf(format_leaf(obj, config.nil_text), row, min_col, ctx)
    if any(obj is ancestor for ancestor in ancestors):
        logger.debug("plan: cycle back to an ancestor at row %d", row)
        return _plan_marker(config.circ_text, config.circ_spacing, row, min_col, ctx)
    if row >= config.vertical_cutoff:
        logger.debug("plan: vertical cutoff at row %d", row)
        return _plan_marker(config.etc_text, config.etc_spacing, row, min_col, ctx)
    return _plan_pair(obj, row, min_col, ancestors + (obj,), ctx)


def _plan_leaf(text: str, row: int, min_col: int, ctx: RenderContext) -> PlanNode:
    start_col = ctx.first_free_col(row, min_col)
    end_col = start_col + len(text)
    if end_col >= ctx.config.atom_cutoff:
        logger.debug("plan: leaf %r at row %d, col %d passes the atom cutoff", text, row, start_col)
        return _plan_marker(ctx.config.etc_text, ctx.config.etc_spacing, row, min_col, ctx)
    ctx.mark(row, end_col)
    return Atom(row, start_col, text)


def _plan_marker(text: str, spacing: int, row: int, min_col: int, ctx: RenderContext) -> Message:
    start_col = ctx.first_free_col(row, min_col)
    width = ctx.config.width
    circular = text == ctx.config.circ_text
    if start_col + len(text) > width:
        # Only reachable when a row is already packed to the right margin
        logger.debug("plan: clipping %r at row %d, col %d to width %d", text, row, start_col, width)
        start_col = min(start_col, width)
        text = text[: width - start_col]
    ctx.mark(row, start_col + spacing)
    return Message(row, start_col, text, circular)


def _plan_pair(pair: Pair, row: int, min_col: int, ancestors: tuple[Pair, ...], ctx: RenderContext) -> PlanNode:
    config = ctx.config
    cell_col = ctx.first_free_col(row, min_col)
    first = _plan(pair.first, row + config.v_arrow_length, cell_col, ancestors, ctx)

    # The cell sits directly above wherever its first child ended up
    start_col = first.col
    if start_col >= config.cons_cutoff:
        logger.debug("plan: cell at row %d, col %d passes the cons cutoff", row, start_col)
        return _plan_marker(config.etc_text, config.etc_spacing, row, min_col, ctx)

    ctx.mark(row, start_col + len(config.cell_glyph))
    second = _plan(pair.second, row, start_col + config.h_arrow_length, ancestors, ctx)
    return CellRef(row, start_col, first, second)


# =============================================================================
# Phase 2: Paint
# =============================================================================


def paint(node: PlanNode, canvas: Canvas, config: DrawConfig = DEFAULT_CONFIG, via_first: bool = False) -> None:
    """Paint a plan onto the canvas, depth first."""
    match node:
        case Atom(row=row, col=col, text=text) | Message(row=row, col=col, text=text):
            # Short labels sit under the arrowhead rather than at the cell's edge
            if via_first and len(text) <= config.short_label_threshold:
                col += config.short_label_offset
            style = None
            if isinstance(node, Message):
                style = chalk.red if node.circular else chalk.yellow
            canvas.put(row, col, text, style)

        case CellRef(row=row, col=col, first=first, second=second):
            glyph = config.cell_glyph
            canvas.put(row, col, glyph, chalk.cyan)

            shaft_col = col + len(glyph)
            canvas.put(row, shaft_col, "-" * (second.col - 1 - shaft_col) + ">")

            connector_col = col + 1
            for offset in range(1, config.v_arrow_length - 1):
                canvas.put(row + offset, connector_col, "|")
            canvas.put(row + config.v_arrow_length - 1, connector_col, "v")

            paint(first, canvas, config, via_first=True)
            paint(second, canvas, config)

        case _:
            raise ValueError(f"Unknown plan node: {node}")


# =============================================================================
# Entry Points
# =============================================================================


def _paint_structure(obj: Any, config: DrawConfig) -> Canvas:
    ctx = RenderContext(config)
    tree = plan(obj, config, ctx)
    paint(tree, ctx.canvas, config)
    logger.info(
        "sdraw: %d rows, widest row %d of %d columns",
        len(ctx.canvas.lines()),
        max(ctx.canvas.filled_length(r) for r in range(config.num_rows)),
        config.width,
    )
    return ctx.canvas


def draw(obj: Any, config: DrawConfig = DEFAULT_CONFIG) -> str:
    """Return the diagram of obj as a string, one line per canvas row."""
    return "\n".join(_paint_structure(obj, config).lines())


def render(obj: Any, config: DrawConfig = DEFAULT_CONFIG, file: TextIO | None = None) -> None:
    """Write the diagram of obj to file (stdout by default)."""
    _paint_structure(obj, config).flush(file)


def colorize(obj: Any, config: DrawConfig = DEFAULT_CONFIG) -> str:
    """
    Like draw, but with ANSI colours on the cell boxes and markers.

    Colours follow what was painted, so leaf text that happens to spell a
    marker or a cell box stays plain.
    """
    return "\n".join(_paint_structure(obj, config).lines(color=True))
