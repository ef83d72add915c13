"""Interface selection and the state every front end is handed."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from musicfind.core.schema import SchemaRegistry
from musicfind.core.search import QueryEngine


class UIKind(Enum):
    """Closed set of front ends, chosen once per run."""

    LINE = "line"
    LIVE = "live"

    @property
    def default_limit(self) -> int:
        return 15 if self is UIKind.LINE else 20


@dataclass(frozen=True)
class SearchContext:
    """Everything a front end needs to run queries and show hits."""
    engine: QueryEngine
    registry: SchemaRegistry
    hostname: str
    limit: int
