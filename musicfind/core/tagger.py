"""Read audio tags via mutagen and normalize them into records."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Self

import mutagen
from mutagen.id3 import Frame
from mutagen.mp4 import AtomDataType, MP4FreeForm

from musicfind.errors import ErrorCode, MusicFindError, classify_exception

TagPair = tuple[str, str]

# Container specific names that mean one of the canonical keys.
TAG_ALIASES: dict[str, str] = {
    # ID3 frames
    "tit2": "title",
    "tpe1": "artist",
    "tpe2": "album_artist",
    "talb": "album",
    "trck": "track",
    "tdrc": "date",
    "tyer": "date",
    "tcon": "genre",
    "tcom": "composer",
    "tpos": "discnumber",
    "uslt": "lyrics",
    # MP4 atoms
    "\xa9nam": "title",
    "\xa9art": "artist",
    "aart": "album_artist",
    "\xa9alb": "album",
    "\xa9day": "date",
    "trkn": "track",
    "disk": "discnumber",
    "\xa9gen": "genre",
    "\xa9wrt": "composer",
    "\xa9cmt": "comment",
    "\xa9lyr": "lyrics",
    # vorbis comments, APEv2
    "albumartist": "album_artist",
    "album artist": "album_artist",
    "tracknumber": "track",
    "year": "date",
    # ASF
    "author": "artist",
    "wm/albumtitle": "album",
    "wm/albumartist": "album_artist",
    "wm/tracknumber": "track",
    "wm/year": "date",
    "wm/genre": "genre",
}

# Embedded pictures and other payloads that are not searchable text.
_BINARY_KEY_PREFIXES: tuple[str, ...] = (
    "apic",
    "covr",
    "cover art",
    "coverart",
    "metadata_block_picture",
    "wm/picture",
    "geob",
    "priv",
    "ufid",
    "mcdi",
)

# Decoder failures that are more specific than "corrupt".
_KEPT_DECODE_CODES = frozenset({
    ErrorCode.FILE_NOT_FOUND,
    ErrorCode.FILE_ACCESS_DENIED,
    ErrorCode.TAG_UNSUPPORTED_FORMAT,
})


def parse_track_number(value: str) -> int | None:
    """Parse ``"N"`` or ``"N/total"``; anything else yields None."""
    number = value.split("/", 1)[0].strip()
    if number.isascii() and number.isdigit():
        return int(number)
    return None


@dataclass
class AudioRecord:
    """Normalized tag metadata for one audio file."""
    path: Path
    artist: str | None = None
    album: str | None = None
    title: str | None = None
    date: str | None = None
    album_artist: str | None = None
    track: int | None = None
    extras: dict[str, str] = field(default_factory=dict)

    @property
    def display_artist(self) -> str | None:
        return self.artist if self.artist is not None else self.album_artist

    def place(self, key: str, value: str) -> None:
        """Route one tag into its canonical field, or into ``extras``."""
        k = key.lower()
        match k:
            case "album_artist":
                self.album_artist = value
            case "artist":
                self.artist = value
            case "album":
                self.album = value
            case "title":
                self.title = value
            case "track":
                track = parse_track_number(value)
                if track is not None:
                    self.track = track
            case "date":
                self.date = value
            case _:
                self.extras[k] = value

    @classmethod
    def from_tags(cls, path: str | Path, pairs: Iterable[TagPair]) -> Self:
        record = cls(path=Path(path))
        for key, value in pairs:
            record.place(TAG_ALIASES.get(key.lower(), key), value)
        return record

    @classmethod
    def from_stored(cls, fields: Mapping[str, Any]) -> Self:
        """Rebuild a record from the stored fields of an index hit."""
        track = fields.get("track")
        return cls(
            path=Path(fields["path"]),
            artist=fields.get("artist"),
            album=fields.get("album"),
            title=fields.get("title"),
            date=fields.get("date"),
            track=int(track) if track is not None else None,
        )


def normalize_tag_key(key: str) -> str:
    """Drop the language and description qualifiers containers add to keys.

    ``COMM::eng`` becomes ``comment``, ``TXXX:SOURCE`` becomes ``SOURCE``
    and an MP4 freeform ``----:com.apple.iTunes:MOOD`` becomes ``MOOD``.
    """
    if key.startswith("----:"):
        return key.rsplit(":", 1)[-1]
    frame, sep, rest = key.partition(":")
    if not sep or len(frame) != 4 or not frame.isupper():
        return key
    if frame == "COMM":
        return rest.rpartition(":")[0] or "comment"
    if frame in ("TXXX", "WXXX"):
        return rest or frame
    return frame


def _value_text(value: Any) -> str | None:
    if isinstance(value, MP4FreeForm):
        if value.dataformat != AtomDataType.UTF8:
            return None
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return None
    if isinstance(value, Frame):
        # ID3: only text frames carry something to search
        text = getattr(value, "text", None)
        if text is None:
            return None
        return _value_text(text if isinstance(text, str) else list(text))
    if isinstance(value, list):
        parts = [_value_text(v) for v in value]
        return "; ".join(p for p in parts if p is not None)
    if isinstance(value, tuple):
        # MP4 trkn/disk pairs, total is 0 when unknown
        number, total = (list(value) + [0, 0])[:2]
        return f"{number}/{total}" if total else str(number)
    if hasattr(value, "value"):
        # APEv2 and ASF attribute wrappers
        return _value_text(value.value)
    if isinstance(value, str):
        return value.replace("\x00", "; ")
    return str(value)


def iter_tag_pairs(tags: Any) -> Iterator[TagPair]:
    """Project a mutagen tag container onto ``(key, value)`` strings."""
    if tags is None:
        return
    for key, value in tags.items():
        key = str(key)
        if key.lower().startswith(_BINARY_KEY_PREFIXES):
            continue
        text = _value_text(value)
        if not text:
            continue
        yield normalize_tag_key(key), text


class TagReader:
    """Opens audio containers with mutagen and builds AudioRecords."""

    def read(self, path: str | Path) -> AudioRecord:
        """Read one file into a record.

        Raises:
            MusicFindError: If the path cannot be resolved or the container
                cannot be decoded.
        """
        path = Path(path)
        try:
            canonical = path.resolve(strict=True)
        except OSError as exc:
            raise classify_exception(exc, path) from exc

        try:
            audio = mutagen.File(str(canonical))
        except mutagen.MutagenError as exc:
            error = classify_exception(exc, canonical)
            if error.code not in _KEPT_DECODE_CODES:
                error = MusicFindError(ErrorCode.TAG_CORRUPT, path=canonical, details=error.details)
            raise error from exc
        except OSError as exc:
            raise classify_exception(exc, canonical) from exc

        if audio is None:
            raise MusicFindError(ErrorCode.TAG_UNSUPPORTED_FORMAT, path=canonical)

        return AudioRecord.from_tags(canonical, iter_tag_pairs(audio.tags))
