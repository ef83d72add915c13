"""Lenient free-text queries over a committed index snapshot."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from whoosh import query as wquery
from whoosh.qparser import AndGroup, MultifieldParser, OrGroup
from whoosh.searching import Searcher

from musicfind.core.indexer import IndexBuilder
from musicfind.core.schema import PATH, SchemaRegistry
from musicfind.core.tagger import AudioRecord

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

# Anything the query language could read as syntax.
_SYNTAX_CHARS = re.compile(r"[^\w\s]+")
_NULL_QUERY_TYPE = type(wquery.NullQuery)


def _usable(q: wquery.Query | None) -> bool:
    return q is not None and not isinstance(q, _NULL_QUERY_TYPE)


@dataclass(frozen=True)
class SearchHit:
    """One ranked result, rebuilt from the stored fields of a document."""
    record: AudioRecord
    score: float
    rank: int
    docnum: int


class QueryEngine:
    """Runs queries against one searcher snapshot.

    With ``conjunction`` every query word has to match at least one field;
    without it any matching word qualifies a document and documents matching
    more words rank higher. Query syntax never fails: whatever the parser
    cannot make sense of is retried as plain words.
    """

    def __init__(
        self,
        searcher: Searcher,
        registry: SchemaRegistry,
        *,
        conjunction: bool = True,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._searcher = searcher
        self._registry = registry
        self._conjunction = conjunction
        self._limit = limit
        group = AndGroup if conjunction else OrGroup.factory(0.9)
        self._parser = MultifieldParser(
            list(registry.default_fields), registry.schema, group=group
        )

    @classmethod
    def for_builder(cls, builder: IndexBuilder, **kwargs) -> QueryEngine:
        """Bind an engine to the builder's last committed snapshot."""
        return cls(builder.reader(), builder.registry, **kwargs)

    @property
    def conjunction(self) -> bool:
        return self._conjunction

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def doc_count(self) -> int:
        return self._searcher.doc_count()

    def parse(self, text: str) -> wquery.Query:
        """Parse ``text`` into a query, degrading to literal words on errors."""
        try:
            parsed = self._parser.parse(text)
        except Exception as exc:
            logger.debug("query %r did not parse (%s), using literal words", text, exc)
            return self.literal_query(text)
        if not _usable(parsed) or getattr(parsed, "error", None):
            return self.literal_query(text)
        return parsed

    def literal_query(self, text: str) -> wquery.Query:
        """Match the words of ``text`` with every syntax character dropped."""
        clauses: list[wquery.Query] = []
        for word in _SYNTAX_CHARS.sub(" ", text).split():
            per_field = [
                self._parser.term_query(fieldname, word, wquery.Term)
                for fieldname in self._registry.default_fields
            ]
            per_field = [q for q in per_field if _usable(q)]
            if per_field:
                clauses.append(wquery.Or(per_field))
        if not clauses:
            return wquery.NullQuery
        combine = wquery.And if self._conjunction else wquery.Or
        return combine(clauses).normalize()

    def search(self, text: str, limit: int | None = None) -> list[SearchHit]:
        """Return at most ``limit`` hits for ``text``, best first."""
        if not text or not text.strip():
            return []
        limit = limit or self._limit
        q = self.parse(text)
        if not _usable(q):
            return []
        try:
            results = self._searcher.search(q, limit=limit)
        except Exception as exc:
            logger.debug("query %r failed to run (%s), using literal words", text, exc)
            q = self.literal_query(text)
            if not _usable(q):
                return []
            results = self._searcher.search(q, limit=limit)
        return [
            SearchHit(
                record=AudioRecord.from_stored(hit.fields()),
                score=hit.score,
                rank=hit.rank,
                docnum=hit.docnum,
            )
            for hit in results
        ]

    def lookup(self, path: str | Path) -> AudioRecord | None:
        """Return the stored record for a canonical path, if indexed."""
        target = str(path)
        for fields in self._searcher.all_stored_fields():
            if fields.get(PATH) == target:
                return AudioRecord.from_stored(fields)
        return None

    def close(self) -> None:
        self._searcher.close()

    def __enter__(self) -> QueryEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
