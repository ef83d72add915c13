"""Turn records into colorized, hyperlinked terminal lines."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

from rich.style import Style
from rich.text import Text

from musicfind.core.tagger import AudioRecord

FILENAME_STYLE = "bold"
TITLE_STYLE = "green"
ARTIST_STYLE = "magenta"
ALBUM_STYLE = "cyan"
TRACK_STYLE = "yellow"
DATE_STYLE = "blue"


def _segments(record: AudioRecord) -> list[tuple[str, str]]:
    segments = [(record.path.name or str(record.path), FILENAME_STYLE)]
    if record.title is not None:
        segments += [(": ", ""), (record.title, TITLE_STYLE)]
    artist = record.display_artist
    if artist is not None:
        segments += [(" - ", ""), (artist, ARTIST_STYLE)]
    if record.album is not None:
        segments += [(" - ", ""), (record.album, ALBUM_STYLE)]
    if record.track is not None:
        segments += [(" #", ""), (str(record.track), TRACK_STYLE)]
    if record.date is not None:
        segments += [(" (", ""), (record.date, DATE_STYLE), (")", "")]
    return segments


def format_record(record: AudioRecord) -> str:
    """``filename: title - artist - album #track (date)``, absent parts omitted."""
    return "".join(text for text, _style in _segments(record))


def record_text(record: AudioRecord) -> Text:
    return Text.assemble(*_segments(record))


def file_url(hostname: str, path: str | Path) -> str:
    return f"file://{hostname}{quote(str(path), safe='/')}"


def hyperlinked(record: AudioRecord, hostname: str) -> Text:
    """The record line, wrapped in a terminal hyperlink to the file."""
    text = record_text(record)
    text.stylize(Style(link=file_url(hostname, record.path)))
    return text


def format_elapsed(seconds: float) -> str:
    if seconds < 1e-3:
        return f"{seconds * 1e6:.0f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.2f}ms"
    return f"{seconds:.2f}s"
