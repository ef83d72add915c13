"""Worker that discovers, reads and indexes audio files."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic
from typing import Callable

from musicfind.core.indexer import IndexBuilder
from musicfind.core.scanner import DiscoveryFailure, FileScanner
from musicfind.core.tagger import AudioRecord, TagReader
from musicfind.errors import MusicFindError, classify_exception

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]  # indexed, failed, current name


@dataclass(slots=True)
class ExtractionOutcome:
    path: Path
    record: AudioRecord | None
    error: MusicFindError | None = None


@dataclass
class IndexReport:
    """Aggregate counts of one indexing run."""
    indexed: int = 0
    discovery_failures: int = 0
    decode_failures: int = 0
    elapsed: float = 0.0
    failures: list[DiscoveryFailure | ExtractionOutcome] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.discovery_failures + self.decode_failures


class IndexWorker:
    """Feeds every audio file under the scanner's roots into one IndexBuilder.

    Tag reading runs on a bounded thread pool. Outcomes are collected on the
    calling thread, which is the only caller of ``IndexBuilder.add``. The
    worker does not commit; the caller decides when the snapshot is published.
    """

    _IN_FLIGHT_PER_WORKER = 4

    def __init__(
        self,
        scanner: FileScanner,
        builder: IndexBuilder,
        *,
        reader: TagReader | None = None,
        max_workers: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._scanner = scanner
        self._builder = builder
        self._reader = reader
        self._max_workers = max_workers or min(os.cpu_count() or 4, 8)
        self._progress = progress
        self._thread_local = threading.local()

    def run(self) -> IndexReport:
        report = IndexReport()
        started = monotonic()
        last_emit = 0.0
        max_in_flight = self._max_workers * self._IN_FLIGHT_PER_WORKER

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="musicfind-tags"
        ) as executor:
            pending: set[Future[ExtractionOutcome]] = set()

            def drain() -> None:
                nonlocal last_emit
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    pending.discard(future)
                    outcome = future.result()
                    self._collect(outcome, report)
                    now = monotonic()
                    # Throttle progress callbacks on large libraries.
                    if self._progress and (report.indexed % 25 == 0 or now - last_emit >= 0.05):
                        self._progress(report.indexed, report.failed, outcome.path.name)
                        last_emit = now

            for item in self._scanner.scan_iter():
                if isinstance(item, DiscoveryFailure):
                    report.discovery_failures += 1
                    report.failures.append(item)
                    logger.debug("discovery failed: %s", item)
                    continue
                pending.add(executor.submit(self._read_one, item))
                if len(pending) >= max_in_flight:
                    drain()

            while pending:
                drain()

        report.elapsed = monotonic() - started
        if self._progress:
            self._progress(report.indexed, report.failed, "")
        logger.info(
            "indexed %d files in %.2fs (%d discovery failures, %d unreadable)",
            report.indexed,
            report.elapsed,
            report.discovery_failures,
            report.decode_failures,
        )
        return report

    def _collect(self, outcome: ExtractionOutcome, report: IndexReport) -> None:
        if outcome.record is None:
            report.decode_failures += 1
            report.failures.append(outcome)
            logger.debug("skipping %s: %s", outcome.path, outcome.error)
            return
        self._builder.add(outcome.record)
        report.indexed += 1

    def _read_one(self, path: Path) -> ExtractionOutcome:
        try:
            record = self._thread_reader().read(path)
        except MusicFindError as exc:
            return ExtractionOutcome(path=path, record=None, error=exc)
        except Exception as exc:
            return ExtractionOutcome(path=path, record=None, error=classify_exception(exc, path))
        return ExtractionOutcome(path=path, record=record)

    def _thread_reader(self) -> TagReader:
        if self._reader is not None:
            return self._reader
        tag_reader = getattr(self._thread_local, "reader", None)
        if tag_reader is None:
            tag_reader = TagReader()
            self._thread_local.reader = tag_reader
        return tag_reader
