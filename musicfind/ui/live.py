"""Full-screen front end that re-runs the query as the user types."""

from __future__ import annotations

import sys
from time import perf_counter
from typing import TextIO

from rich.console import Group
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Footer, Input, Static

from musicfind.core.search import QueryEngine, SearchHit
from musicfind.errors import ErrorCode, MusicFindError
from musicfind.ui import keybindings
from musicfind.ui.context import SearchContext
from musicfind.ui.render import format_elapsed, record_text


class LiveSession:
    """The results last rendered and the query they belong to.

    :meth:`poll` compares the current query with that content and searches
    again only when they differ.
    """

    def __init__(self, engine: QueryEngine, limit: int) -> None:
        self.engine = engine
        self.limit = limit
        self.rendered_content: str | None = None
        self.hits: list[SearchHit] = []
        self.elapsed: float | None = None

    def poll(self, content: str) -> bool:
        """Refresh the results if ``content`` changed; True when it did."""
        if content == self.rendered_content:
            return False
        self.rendered_content = content
        if not content:
            self.hits = []
            self.elapsed = None
            return True
        start = perf_counter()
        self.hits = self.engine.search(content, limit=self.limit)
        self.elapsed = perf_counter() - start
        return True


class SearchApp(App[None]):
    """Query box above a result list, refreshed by a poll-and-diff timer."""

    TITLE = "musicfind"
    CSS = """
    #status {
        height: 1;
        padding: 0 1;
    }
    #results {
        padding: 0 1;
    }
    """
    BINDINGS = keybindings.to_bindings()

    poll_interval = 0.05

    def __init__(self, context: SearchContext) -> None:
        super().__init__()
        self._context = context
        self.session = LiveSession(context.engine, context.limit)

    def compose(self) -> ComposeResult:
        yield Input(placeholder="title, artist, album, path...", id="query")
        yield Static(id="status")
        with VerticalScroll():
            yield Static(id="results")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#query", Input).focus()
        self.set_interval(self.poll_interval, self.refresh_results)

    def refresh_results(self) -> None:
        content = self.query_one("#query", Input).value
        if not self.session.poll(content):
            return
        session = self.session
        lines: list[Text] = [record_text(hit.record) for hit in session.hits]
        if content and not lines:
            lines = [Text("no matches", style="dim")]
        self.query_one("#results", Static).update(Group(*lines))

        status = ""
        if session.elapsed is not None:
            status = f"{len(session.hits)} hits in {format_elapsed(session.elapsed)}"
        self.query_one("#status", Static).update(status)

    def action_clear_query(self) -> None:
        self.query_one("#query", Input).value = ""


class LiveUI:
    """Runs :class:`SearchApp` on the controlling terminal."""

    def __init__(self, context: SearchContext, *, stream: TextIO | None = None) -> None:
        self._stream = stream
        self.app = SearchApp(context)

    def run(self) -> None:
        stream = self._stream or sys.stdin
        if not stream.isatty():
            raise MusicFindError(
                ErrorCode.TERMINAL_UNAVAILABLE,
                suggestion="Run in a terminal or use --ui line.",
            )
        self.app.run()
