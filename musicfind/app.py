"""Command-line bootstrap: index the given directories, then serve queries."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from importlib.metadata import PackageNotFoundError, version

from rich.console import Console

from musicfind.config.settings import AppSettings
from musicfind.core.indexer import IndexBuilder
from musicfind.core.scanner import FileScanner
from musicfind.core.schema import SchemaRegistry
from musicfind.core.search import QueryEngine
from musicfind.errors import MusicFindError, format_error_for_user
from musicfind.ui import SearchContext, UIKind, spawn_ui
from musicfind.workers.index_worker import IndexReport, IndexWorker

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

LOG_HANDLER_NAME = "musicfind.stderr"


def _package_version() -> str:
    try:
        return version("musicfind")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="musicfind",
        description="A music search engine over the tags of your local audio files.",
    )
    parser.add_argument("dirs", nargs="+", metavar="DIR", help="directories to recurse into to find music")
    parser.add_argument(
        "--ui",
        choices=[kind.value for kind in UIKind],
        default=UIKind.LINE.value,
        help="front end: line-based prompt or live-filtering terminal UI (default: %(default)s)",
    )
    parser.add_argument("--any", action="store_true", help="match documents containing any query word")
    parser.add_argument("--limit", type=int, default=None, help="maximum number of hits shown per query")
    parser.add_argument("--workers", type=int, default=None, help="size of the scan and tag-reading pools")
    parser.add_argument("--min-gram", type=int, default=1, help="shortest indexed character n-gram")
    parser.add_argument("--max-gram", type=int, default=3, help="longest indexed character n-gram")
    parser.add_argument(
        "--ignore-case-ext",
        action="store_true",
        help="accept audio extensions regardless of case (e.g. SONG.MP3)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="log more (repeatable)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    return parser


def configure_logging(verbosity: int) -> logging.Logger:
    logger = logging.getLogger("musicfind")
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logger.setLevel(level)
    if not any(h.get_name() == LOG_HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(LOG_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def build_index(settings: AppSettings, console: Console) -> tuple[IndexBuilder, IndexReport]:
    """Scan, read and index every root, then commit the snapshot."""
    registry = SchemaRegistry(settings.min_gram, settings.max_gram)
    builder = IndexBuilder(registry, limitmb=settings.writer_memory_mb)
    scanner = FileScanner(
        settings.roots,
        max_workers=settings.max_workers,
        case_sensitive=settings.case_sensitive_extensions,
    )

    with console.status("Indexing music...") as status:
        def progress(indexed: int, failed: int, name: str) -> None:
            status.update(f"Indexing music... {indexed} songs ({failed} skipped) {name}")

        worker = IndexWorker(
            scanner,
            builder,
            max_workers=settings.max_workers,
            progress=progress,
        )
        report = worker.run()

    builder.commit()
    return builder, report


def run_app(argv: list[str] | None = None) -> int:
    """Parse arguments, build the index and run the selected front end."""
    args = build_parser().parse_args(argv)
    console = Console(highlight=False)
    err_console = Console(stderr=True, highlight=False)

    try:
        settings = AppSettings.from_args(args)
    except MusicFindError as exc:
        err_console.print(format_error_for_user(exc), style="red")
        return EXIT_FAILURE

    logger = configure_logging(settings.verbosity)
    logger.info("indexing %s", ", ".join(str(root) for root in settings.roots))

    try:
        builder, report = build_index(settings, console)
    except KeyboardInterrupt:
        err_console.print("interrupted", style="red")
        return EXIT_INTERRUPTED
    except MusicFindError as exc:
        logger.error("indexing failed: %s", exc.to_dict())
        err_console.print(format_error_for_user(exc), style="red")
        return EXIT_FAILURE

    summary = f"{report.indexed} songs indexed"
    if report.failed:
        summary += f", {report.failed} files skipped"
    console.print(f"{summary} in {report.elapsed:.2f}s", style="dim")

    hostname = socket.gethostname()
    try:
        with builder, QueryEngine.for_builder(
            builder,
            conjunction=settings.conjunction,
            limit=settings.result_limit,
        ) as engine:
            context = SearchContext(
                engine=engine,
                registry=builder.registry,
                hostname=hostname,
                limit=settings.result_limit,
            )
            spawn_ui(settings.ui, context)
    except MusicFindError as exc:
        err_console.print(format_error_for_user(exc), style="red")
        return EXIT_FAILURE
    return EXIT_OK


def main() -> None:
    sys.exit(run_app())
