"""Per-project buffered output.

Messages about a project are buffered while it is being versioned and
written out in one block, so the output of different projects never
interleaves. Each project gets a stable colour derived from its name.
"""

from __future__ import annotations

from collections.abc import Callable

import click

Sink = Callable[[str], None]

# Foreground colours understood by click.style
PALETTE = (
    "green",
    "bright_green",
    "red",
    "bright_red",
    "cyan",
    "bright_cyan",
    "yellow",
    "bright_yellow",
    "magenta",
    "bright_magenta",
)


def get_color(project_name: str) -> str:
    """Pick a palette colour from the sum of the name's code points."""
    return PALETTE[sum(ord(c) for c in project_name) % len(PALETTE)]


class ProjectLogger:
    """Buffer now, flush later."""

    def __init__(self, project_name: str, sink: Sink | None = None) -> None:
        self.project_name = project_name
        self.color = get_color(project_name)
        self.sink: Sink = sink or click.echo
        self.logs: list[str] = []

    def buffer(self, msg: str) -> None:
        self.logs.append(msg)

    def flush(self) -> None:
        """Write the header and every buffered line, then clear the buffer."""
        label = click.style(self.project_name, fg=self.color, bold=True)
        self.sink(f"Running release version for project: {label}")
        for msg in self.logs:
            self.sink(f"{label} {msg}")
        self.logs.clear()
