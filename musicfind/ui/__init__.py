"""Terminal front ends and the single entry point that runs one of them."""

from __future__ import annotations

from rich.console import Console

from musicfind.ui.context import SearchContext, UIKind
from musicfind.ui.live import LiveUI
from musicfind.ui.repl import LineUI


def spawn_ui(kind: UIKind, context: SearchContext, *, console: Console | None = None) -> None:
    """Run the selected front end until the user leaves it."""
    front_end: LineUI | LiveUI
    match kind:
        case UIKind.LINE:
            front_end = LineUI(context, console=console)
        case UIKind.LIVE:
            front_end = LiveUI(context)
    front_end.run()


__all__ = [
    "LineUI",
    "LiveUI",
    "SearchContext",
    "UIKind",
    "spawn_ui",
]
