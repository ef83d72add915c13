"""Walk directories in parallel and find audio files."""

from __future__ import annotations

import logging
import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from musicfind.errors import ErrorCode, MusicFindError, classify_exception

logger = logging.getLogger(__name__)

# Curated, not exhaustive. Matched case-sensitively unless asked otherwise.
AUDIO_EXTENSIONS: frozenset[str] = frozenset({
    # lossy legacy
    "mp3",
    # open codecs/containers
    "flac", "opus", "ape", "ogg", "mka", "webm",
    # apple
    "aac", "alac", "m4a", "caf",
    # windows
    "wma", "wav",
})


def is_audio_path(
    path: str | Path,
    *,
    extensions: Iterable[str] = AUDIO_EXTENSIONS,
    case_sensitive: bool = True,
) -> bool:
    """Return True when the file extension is on the audio allow-list."""
    suffix = Path(path).suffix
    if not suffix:
        return False
    ext = suffix[1:]
    if case_sensitive:
        return ext in extensions
    return ext.lower() in {e.lower() for e in extensions}


@dataclass(frozen=True)
class DiscoveryFailure:
    """An entry that could not be inspected during the walk."""
    path: Path
    error: MusicFindError

    def __str__(self) -> str:
        return f"{self.path}: {self.error.message}"


DiscoveryItem = Path | DiscoveryFailure


@dataclass
class _Listing:
    """Result of reading one directory."""
    files: list[Path] = field(default_factory=list)
    subdirs: list[Path] = field(default_factory=list)
    failures: list[DiscoveryFailure] = field(default_factory=list)


def _failure(path: Path, exc: Exception, code: ErrorCode | None = None) -> DiscoveryFailure:
    error = classify_exception(exc, path)
    if code is not None and error.code is not code:
        error = MusicFindError(code, path=path, details=error.details)
    return DiscoveryFailure(path=path, error=error)


def _list_directory(directory: Path) -> _Listing:
    listing = _Listing()
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                entry_path = Path(entry.path)
                try:
                    if entry.is_dir(follow_symlinks=True):
                        listing.subdirs.append(entry_path)
                    elif entry.is_file(follow_symlinks=True):
                        listing.files.append(entry_path)
                    # sockets, fifos, devices and dangling links fall through
                except OSError as exc:
                    listing.failures.append(_failure(entry_path, exc))
    except OSError as exc:
        listing.failures.append(_failure(directory, exc, ErrorCode.DIRECTORY_UNREADABLE))
    return listing


class FileScanner:
    """Scans directory trees for audio files, following symlinks.

    Directory listing is fanned out over a thread pool; yielded paths come back
    in no particular order. Each directory is entered once, keyed by device and
    inode, so symlink loops terminate.
    """

    def __init__(
        self,
        roots: str | Path | Iterable[str | Path],
        *,
        max_workers: int | None = None,
        extensions: Iterable[str] = AUDIO_EXTENSIONS,
        case_sensitive: bool = True,
    ) -> None:
        if isinstance(roots, (str, Path)):
            roots = [roots]
        self._roots = [Path(r) for r in roots]
        self._max_workers = max_workers or min(os.cpu_count() or 4, 8)
        self._extensions = frozenset(extensions)
        self._case_sensitive = case_sensitive

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def accepts(self, path: str | Path) -> bool:
        return is_audio_path(
            path, extensions=self._extensions, case_sensitive=self._case_sensitive
        )

    def scan(self) -> list[Path]:
        """Return all audio paths under the roots, dropping failures."""
        return [item for item in self.scan_iter() if isinstance(item, Path)]

    def scan_iter(self) -> Iterator[DiscoveryItem]:
        """Yield audio paths and per-entry failures as directories are read."""
        visited: set[tuple[int, int]] = set()
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="musicfind-walk"
        ) as executor:
            pending: set[Future[_Listing]] = set()

            def enter(directory: Path) -> DiscoveryFailure | None:
                try:
                    st = directory.stat()
                except OSError as exc:
                    return _failure(directory, exc, ErrorCode.DIRECTORY_UNREADABLE)
                key = (st.st_dev, st.st_ino)
                if key in visited:
                    logger.debug("skipping already visited directory %s", directory)
                    return None
                visited.add(key)
                pending.add(executor.submit(_list_directory, directory))
                return None

            for root in self._roots:
                if root.is_file():
                    if self.accepts(root):
                        yield root
                    continue
                if not root.exists():
                    yield DiscoveryFailure(
                        path=root,
                        error=MusicFindError(ErrorCode.FILE_NOT_FOUND, path=root),
                    )
                    continue
                failure = enter(root)
                if failure is not None:
                    yield failure

            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    pending.discard(future)
                    listing = future.result()
                    yield from listing.failures
                    for path in listing.files:
                        if self.accepts(path):
                            yield path
                    for subdir in listing.subdirs:
                        failure = enter(subdir)
                        if failure is not None:
                            yield failure
