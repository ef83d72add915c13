"""In-memory search index and its single writer."""

from __future__ import annotations

import logging
import threading
from typing import Any

from whoosh.filedb.filestore import RamStorage
from whoosh.index import Index
from whoosh.searching import Searcher
from whoosh.writing import IndexWriter

from musicfind.core.schema import (
    ALBUM,
    ARTIST,
    DATE,
    EXTRAS,
    ITEM_TYPE,
    PATH,
    TITLE,
    TRACK,
    SchemaRegistry,
)
from musicfind.core.tagger import AudioRecord
from musicfind.errors import ErrorCode, MusicFindError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_MB = 50


class IndexBuilder:
    """Owns the write path of a RAM-backed whoosh index.

    Documents handed to :meth:`add` are buffered by one writer and become
    visible only to searchers opened after :meth:`commit`. Searchers opened
    earlier keep their snapshot. ``add`` may be called from any thread; calls
    are serialized on an internal lock.
    """

    def __init__(self, registry: SchemaRegistry, *, limitmb: int = DEFAULT_LIMIT_MB) -> None:
        if limitmb <= 0:
            raise MusicFindError(
                ErrorCode.CONFIG_INVALID,
                message=f"Writer memory budget must be positive, got {limitmb}",
            )
        self._registry = registry
        self._limitmb = limitmb
        self._storage = RamStorage()
        self._index: Index = self._storage.create_index(registry.schema)
        self._lock = threading.Lock()
        self._writer: IndexWriter | None = None
        self._buffered = 0
        self._next_doc_id = 0

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def index(self) -> Index:
        return self._index

    @property
    def buffered(self) -> int:
        """Documents added since the last commit."""
        return self._buffered

    @property
    def doc_count(self) -> int:
        """Documents visible to a searcher opened now."""
        return self._index.doc_count()

    def document_for(self, record: AudioRecord) -> dict[str, Any]:
        """Convert a record into the field layout of the schema."""
        if not isinstance(record, AudioRecord) or str(record.path) in ("", "."):
            raise MusicFindError(
                ErrorCode.INDEX_DOCUMENT_INVALID,
                details={"record": repr(record)},
            )

        doc: dict[str, Any] = {PATH: str(record.path)}
        artist = record.display_artist
        if artist is not None:
            doc[ARTIST] = artist
        if record.album is not None:
            doc[ALBUM] = record.album
        if record.title is not None:
            doc[TITLE] = record.title
        if record.track is not None:
            doc[TRACK] = record.track
        if record.date is not None:
            doc[DATE] = record.date
        doc[EXTRAS] = " ".join(record.extras.values())
        doc[ITEM_TYPE] = self._registry.SONG
        return doc

    def add(self, record: AudioRecord) -> int:
        """Buffer one record and return its document id."""
        doc = self.document_for(record)
        with self._lock:
            if self._writer is None:
                self._writer = self._index.writer(limitmb=self._limitmb)
            self._writer.add_document(**doc)
            doc_id = self._next_doc_id
            self._next_doc_id += 1
            self._buffered += 1
        return doc_id

    def commit(self) -> int:
        """Publish every buffered document; return how many were published."""
        with self._lock:
            writer = self._writer or self._index.writer(limitmb=self._limitmb)
            self._writer = None
            committed = self._buffered
            try:
                writer.commit()
            except Exception as exc:
                raise MusicFindError(
                    ErrorCode.INDEX_COMMIT_FAILED,
                    details={"original": str(exc) or type(exc).__name__},
                ) from exc
            self._buffered = 0
        logger.info("committed %d documents (%d total)", committed, self.doc_count)
        return committed

    def reader(self) -> Searcher:
        """Open a searcher over the last committed snapshot."""
        return self._index.searcher()

    def close(self) -> None:
        """Discard uncommitted documents and release the index."""
        with self._lock:
            if self._writer is not None:
                self._writer.cancel()
                self._writer = None
                self._buffered = 0
        self._index.close()

    def __enter__(self) -> IndexBuilder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
