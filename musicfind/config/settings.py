"""Run configuration assembled from the command line."""

from __future__ import annotations

import os
from argparse import Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from musicfind.core.indexer import DEFAULT_LIMIT_MB
from musicfind.errors import ErrorCode, MusicFindError
from musicfind.ui import UIKind


def _default_workers() -> int:
    return min(os.cpu_count() or 4, 8)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Immutable settings for one run. Nothing is read from or saved to disk."""

    roots: tuple[Path, ...]
    ui: UIKind = UIKind.LINE
    conjunction: bool = True
    limit: int | None = None
    max_workers: int = field(default_factory=_default_workers)
    min_gram: int = 1
    max_gram: int = 3
    writer_memory_mb: int = DEFAULT_LIMIT_MB
    case_sensitive_extensions: bool = True
    verbosity: int = 0

    def __post_init__(self) -> None:
        if not self.roots:
            raise MusicFindError(
                ErrorCode.CONFIG_INVALID,
                message="No music directories given",
                suggestion="Pass at least one directory to search.",
            )
        if self.limit is not None and self.limit <= 0:
            raise MusicFindError(
                ErrorCode.CONFIG_INVALID,
                message=f"Result limit must be positive, got {self.limit}",
            )
        if self.max_workers <= 0:
            raise MusicFindError(
                ErrorCode.CONFIG_INVALID,
                message=f"Worker count must be positive, got {self.max_workers}",
            )

    @property
    def result_limit(self) -> int:
        """Explicit ``--limit`` or the default of the selected interface."""
        return self.limit if self.limit is not None else self.ui.default_limit

    @classmethod
    def from_args(cls, args: Namespace) -> Self:
        return cls(
            roots=tuple(Path(d) for d in args.dirs),
            ui=UIKind(args.ui),
            conjunction=not args.any,
            limit=args.limit,
            max_workers=args.workers or _default_workers(),
            min_gram=args.min_gram,
            max_gram=args.max_gram,
            case_sensitive_extensions=not args.ignore_case_ext,
            verbosity=args.verbose,
        )
