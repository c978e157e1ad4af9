"""
Interactive crawl through a cons structure.
Walk into a structure one reference at a time and redraw whatever is selected.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Any, Callable

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from cons_types import format_sexpr, is_pair
from sdraw import DEFAULT_CONFIG, DrawConfig, colorize, draw
from sexpr_parser import SexprSyntaxError, parse_sexpr


class Step(Enum):
    """Which reference of a pair to follow."""

    FIRST = "first"
    SECOND = "second"


class Crawler:
    """
    Position inside a structure, kept as the list of steps taken from the root.

    The selected object is found by replaying the steps, so the crawler never
    holds on to anything but the root.
    """

    def __init__(self, root: Any, config: DrawConfig = DEFAULT_CONFIG) -> None:
        self.root = root
        self.config = config
        self.path: list[Step] = []

    @property
    def current(self) -> Any:
        obj = self.root
        for step in self.path:
            obj = obj.first if step is Step.FIRST else obj.second
        return obj

    def descend(self, step: Step) -> bool:
        """Follow one reference. Returns False if the current object is a leaf."""
        if not is_pair(self.current):
            return False
        self.path.append(step)
        return True

    def undo(self) -> bool:
        """Take back the last step. Returns False at the root."""
        if not self.path:
            return False
        self.path.pop()
        return True

    def reset(self) -> None:
        self.path.clear()

    def describe(self, root_name: str = "obj") -> str:
        """Accessor expression for the current position, e.g. ``(first (second obj))``."""
        expr = root_name
        for step in self.path:
            expr = f"({step.value} {expr})"
        return expr

    def draw(self) -> str:
        return draw(self.current, self.config)


class InteractiveCrawl:
    """Terminal front end for a Crawler."""

    MAX_SEXPR_LENGTH = 200

    def __init__(self, root: Any, config: DrawConfig = DEFAULT_CONFIG) -> None:
        self.crawler = Crawler(root, config)
        self.console = Console()
        self.status_message = "Ready"
        self.keys: dict[str, Callable[[], None]] = {
            "a": lambda: self.move(Step.FIRST),
            "d": lambda: self.move(Step.SECOND),
            "u": self.undo,
            "r": self.reset,
        }

    def generate_display(self) -> Panel:
        """Generate the current display with diagram and status."""
        crawler = self.crawler
        status = Text()
        status.append("Position: ", style="bold")
        status.append(f"{crawler.describe()}\n")

        printed = format_sexpr(crawler.current, crawler.config.nil_text)
        if len(printed) > self.MAX_SEXPR_LENGTH:
            printed = printed[: self.MAX_SEXPR_LENGTH] + " ..."
        status.append("Object: ", style="bold")
        status.append(f"{printed}\n\n")

        # Convert ANSI-colored diagram text to Rich Text
        status.append(Text.from_ansi(colorize(crawler.current, crawler.config)))
        status.append("\n\n")
        status.append("Keys:\n", style="bold cyan")
        status.append("  A - Descend into first\n")
        status.append("  D - Descend into second\n")
        status.append("  U - Undo last step\n")
        status.append("  R - Reset to root\n")
        status.append("  Q - Quit\n\n")

        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        return Panel(status, title="sdraw crawl", border_style="green", width=crawler.config.width + 4)

    def move(self, step: Step) -> None:
        if self.crawler.descend(step):
            self.status_message = f"Now at {self.crawler.describe()}"
        else:
            self.status_message = f"Can't take {step.value} of a leaf"

    def undo(self) -> None:
        if self.crawler.undo():
            self.status_message = f"Back to {self.crawler.describe()}"
        else:
            self.status_message = "Already at the root"

    def reset(self) -> None:
        self.crawler.reset()
        self.status_message = "Reset to root"

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the user asked to quit."""
        key = key.lower()
        if key == "q":
            self.status_message = "Quitting..."
            return False
        action = self.keys.get(key)
        if action is None:
            self.status_message = f"Unknown key: {repr(key)}"
        else:
            action()
        return True

    def run(self) -> None:
        """Run the crawl until the user quits."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(self.generate_display())
                    if not self.handle_key(readchar.readkey()):
                        live.update(self.generate_display())
                        break
            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


SAMPLE = "(a (b c) #1=(d . #1#) 42 \"text\")"


def main(argv: list[str]) -> int:
    args = [arg for arg in argv if arg != "-v"]
    if len(args) != len(argv):
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        root = parse_sexpr(args[0] if args else SAMPLE)
    except SexprSyntaxError as e:
        print(f"Could not read expression:\n{e}", file=sys.stderr)
        return 1

    InteractiveCrawl(root).run()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
