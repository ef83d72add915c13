"""Line-based front end: read a query, print hits, repeat."""

from __future__ import annotations

from time import perf_counter
from typing import Callable

from rich.console import Console

from musicfind.core.search import SearchHit
from musicfind.ui.context import SearchContext
from musicfind.ui.render import format_elapsed, hyperlinked

try:
    import readline  # noqa: F401  gives input() line editing and history
except ImportError:  # Windows
    readline = None


class LineUI:
    """Blocking prompt loop. Ends on end-of-input or Ctrl+C."""

    prompt = "> "

    def __init__(
        self,
        context: SearchContext,
        *,
        console: Console | None = None,
        read_line: Callable[[], str] | None = None,
    ) -> None:
        self._context = context
        # hit lines are hyperlinks even when piped
        self._console = console or Console(highlight=False, force_terminal=True)
        self._read_line = read_line or self._prompt

    def _prompt(self) -> str:
        return self._console.input(self.prompt)

    def run(self) -> None:
        while True:
            try:
                line = self._read_line()
            except (EOFError, KeyboardInterrupt):
                self._console.print()
                return
            if not line:
                continue
            self.handle(line)

    def handle(self, line: str) -> list[SearchHit]:
        """Search once and print the hits, best hit closest to the prompt."""
        start = perf_counter()
        hits = self._context.engine.search(line, limit=self._context.limit)
        elapsed = perf_counter() - start
        for hit in reversed(hits):
            self._console.print(hyperlinked(hit.record, self._context.hostname))
        self._console.print(f"searched in {format_elapsed(elapsed)}", style="dim")
        return hits
