"""Fixed field layout and analyzer of the search index."""

from __future__ import annotations

from whoosh.analysis import Analyzer, LowercaseFilter, NgramTokenizer
from whoosh.fields import ID, NUMERIC, TEXT, Schema

from musicfind.errors import ErrorCode, MusicFindError

PATH = "path"
ARTIST = "artist"
ALBUM = "album"
TITLE = "title"
TRACK = "track"
DATE = "date"
EXTRAS = "extras"
ITEM_TYPE = "item_type"

FIELD_NAMES: tuple[str, ...] = (PATH, ARTIST, ALBUM, TITLE, TRACK, DATE, EXTRAS, ITEM_TYPE)

# Gram sizes beyond this make one-letter and two-letter queries miss.
MAX_GRAM_LIMIT = 3


class SchemaRegistry:
    """Immutable field registry shared by the index writer and the query engine.

    Every text field goes through one analyzer: overlapping character n-grams,
    lowercased, so ``"stel"`` finds ``"Interstellar"``. ``track`` is an exact
    unsigned integer. ``extras`` and ``item_type`` are searchable but never
    stored.
    """

    SONG = "song"

    def __init__(self, min_gram: int = 1, max_gram: int = 3) -> None:
        if not 1 <= min_gram <= max_gram <= MAX_GRAM_LIMIT:
            raise MusicFindError(
                ErrorCode.CONFIG_INVALID,
                message=f"Invalid n-gram bounds {min_gram}..{max_gram}",
                suggestion=f"Use 1 <= min-gram <= max-gram <= {MAX_GRAM_LIMIT}.",
            )
        self._min_gram = min_gram
        self._max_gram = max_gram
        self._analyzer = NgramTokenizer(minsize=min_gram, maxsize=max_gram) | LowercaseFilter()

        text_stored = dict(analyzer=self._analyzer, stored=True)
        schema = Schema(
            path=TEXT(**text_stored),
            artist=TEXT(**text_stored),
            album=TEXT(**text_stored),
            title=TEXT(**text_stored),
            track=NUMERIC(numtype=int, bits=64, signed=False, stored=True),
            date=TEXT(**text_stored),
            extras=TEXT(analyzer=self._analyzer, stored=False),
            item_type=ID(stored=False),
        )
        missing = [name for name in FIELD_NAMES if name not in schema]
        if missing:
            raise RuntimeError(f"schema is missing required fields: {missing}")
        self._schema = schema

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def analyzer(self) -> Analyzer:
        return self._analyzer

    @property
    def gram_bounds(self) -> tuple[int, int]:
        return self._min_gram, self._max_gram

    @property
    def field_names(self) -> tuple[str, ...]:
        return FIELD_NAMES

    @property
    def default_fields(self) -> tuple[str, ...]:
        """Fields an unqualified query term is matched against."""
        return (PATH, ARTIST, ALBUM, TITLE, TRACK, DATE, EXTRAS)

    @property
    def stored_fields(self) -> tuple[str, ...]:
        """Fields a search hit can be turned back into a record from."""
        return (PATH, ARTIST, ALBUM, TITLE, TRACK, DATE)

    def __repr__(self) -> str:
        return f"SchemaRegistry(min_gram={self._min_gram}, max_gram={self._max_gram})"
