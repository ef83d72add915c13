"""Tests for musicfind.core.tagger."""

import wave
from pathlib import Path

import mutagen
import pytest

from mutagen.id3 import COMM, ID3, TIT2, TRCK, TXXX
from mutagen.mp4 import MP4FreeForm

from musicfind.core.tagger import (
    AudioRecord,
    TagReader,
    iter_tag_pairs,
    normalize_tag_key,
    parse_track_number,
)
from musicfind.errors import ErrorCode, MusicFindError


class TestParseTrackNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("5", 5), ("5/12", 5), (" 7 / 9", 7), ("0", 0), ("five", None), ("", None),
         ("-3", None), ("/12", None), ("3.5", None)],
    )
    def test_parse(self, raw, expected):
        assert parse_track_number(raw) == expected


class TestAudioRecord:
    def test_defaults(self):
        record = AudioRecord(path=Path("/music/a.flac"))
        assert record.artist is None
        assert record.track is None
        assert record.extras == {}

    @pytest.mark.parametrize("key", ["Artist", "ARTIST", "artist", "aRtIsT"])
    def test_placement_is_case_insensitive(self, key):
        record = AudioRecord.from_tags("/music/a.flac", [(key, "Daft Punk")])
        assert record.artist == "Daft Punk"
        assert record.extras == {}

    def test_values_keep_their_casing(self):
        record = AudioRecord.from_tags("/m/a.flac", [("TITLE", "Around The World")])
        assert record.title == "Around The World"

    def test_track_variants(self):
        assert AudioRecord.from_tags("/m/a", [("track", "5")]).track == 5
        assert AudioRecord.from_tags("/m/a", [("track", "5/12")]).track == 5

    def test_bad_track_leaves_field_unset(self):
        record = AudioRecord.from_tags("/m/a", [("track", "five"), ("title", "Song")])
        assert record.track is None
        assert record.title == "Song"
        assert "track" not in record.extras

    def test_unknown_keys_go_to_extras_lowercased(self):
        record = AudioRecord.from_tags(
            "/m/a", [("GENRE", "House"), ("Comment", "first"), ("comment", "second")]
        )
        assert record.extras == {"genre": "House", "comment": "second"}

    def test_aliases_reach_canonical_fields(self):
        record = AudioRecord.from_tags(
            "/m/a",
            [
                ("TIT2", "Title"),
                ("TPE1", "Artist"),
                ("albumartist", "Various"),
                ("tracknumber", "3/10"),
                ("WM/AlbumTitle", "Album"),
                ("TDRC", "1997"),
            ],
        )
        assert record.title == "Title"
        assert record.artist == "Artist"
        assert record.album_artist == "Various"
        assert record.track == 3
        assert record.album == "Album"
        assert record.date == "1997"
        assert record.extras == {}

    def test_ape_year_is_the_date(self):
        record = AudioRecord.from_tags("/m/a.ape", [("Year", "2003"), ("Title", "Hurt")])
        assert record.date == "2003"
        assert record.extras == {}

    def test_display_artist_falls_back_to_album_artist(self):
        record = AudioRecord.from_tags("/m/a", [("album_artist", "Various")])
        assert record.display_artist == "Various"
        record.place("artist", "Solo")
        assert record.display_artist == "Solo"

    def test_extraction_is_idempotent(self):
        pairs = [("artist", "A"), ("title", "T"), ("track", "2/3"), ("mood", "calm")]
        assert AudioRecord.from_tags("/m/a", pairs) == AudioRecord.from_tags("/m/a", pairs)

    def test_from_stored(self):
        record = AudioRecord.from_stored(
            {"path": "/m/a.flac", "title": "T", "artist": "A", "track": 4}
        )
        assert record == AudioRecord(path=Path("/m/a.flac"), title="T", artist="A", track=4)


class TestIterTagPairs:
    def test_none(self):
        assert list(iter_tag_pairs(None)) == []

    def test_lists_are_joined_and_pictures_skipped(self):
        tags = {
            "artist": ["A", "B"],
            "title": "Song",
            "APIC:cover": b"\x89PNG",
            "metadata_block_picture": ["base64..."],
            "blob": b"\x00\x01",
        }
        assert dict(iter_tag_pairs(tags)) == {"artist": "A; B", "title": "Song"}

    def test_mp4_atoms(self):
        tags = {
            "\xa9nam": ["Teardrop"],
            "\xa9ART": ["Massive Attack"],
            "trkn": [(3, 11)],
            "disk": [(1, 0)],
            "covr": [b"\x89PNG"],
            "----:com.apple.iTunes:MOOD": [MP4FreeForm(b"dark")],
        }
        pairs = dict(iter_tag_pairs(tags))
        assert pairs == {
            "\xa9nam": "Teardrop",
            "\xa9ART": "Massive Attack",
            "trkn": "3/11",
            "disk": "1",
            "MOOD": "dark",
        }
        record = AudioRecord.from_tags("/m/a.m4a", pairs.items())
        assert record.title == "Teardrop"
        assert record.artist == "Massive Attack"
        assert record.track == 3
        assert record.extras == {"discnumber": "1", "mood": "dark"}

    def test_id3_frames_use_their_text(self):
        tags = {
            "TIT2": TIT2(encoding=3, text=["Angel"]),
            "COMM::eng": COMM(encoding=3, lang="eng", desc="", text=["first take"]),
        }
        assert dict(iter_tag_pairs(tags)) == {"TIT2": "Angel", "comment": "first take"}

    def test_ape_style_values(self):
        class _Value:
            def __init__(self, value):
                self.value = value

        tags = {"Artist": _Value("A\x00B"), "Cover Art (Front)": _Value(b"\xff\xd8"), "Blob": _Value(b"\x00")}
        assert dict(iter_tag_pairs(tags)) == {"Artist": "A; B"}


class TestNormalizeTagKey:
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("COMM::eng", "comment"),
            ("COMM:iTunNORM:eng", "iTunNORM"),
            ("TXXX:SOURCE", "SOURCE"),
            ("USLT::eng", "USLT"),
            ("----:com.apple.iTunes:MOOD", "MOOD"),
            ("TIT2", "TIT2"),
            ("WM/AlbumTitle", "WM/AlbumTitle"),
            ("title", "title"),
        ],
    )
    def test_normalize(self, key, expected):
        assert normalize_tag_key(key) == expected


class _FakeAudio:
    def __init__(self, tags):
        self.tags = tags


class TestTagReader:
    def test_read_projects_tags(self, tmp_path, monkeypatch):
        p = tmp_path / "song.flac"
        p.write_bytes(b"fLaC")
        monkeypatch.setattr(
            "musicfind.core.tagger.mutagen.File",
            lambda path, easy=False: _FakeAudio({"ARTIST": ["Boards of Canada"], "TRACKNUMBER": ["4/17"]}),
        )
        record = TagReader().read(p)
        assert record.path == p.resolve()
        assert record.artist == "Boards of Canada"
        assert record.track == 4

    def test_read_resolves_symlinks(self, tmp_path, monkeypatch):
        target = tmp_path / "real.mp3"
        target.write_bytes(b"x")
        link = tmp_path / "link.mp3"
        link.symlink_to(target)
        monkeypatch.setattr(
            "musicfind.core.tagger.mutagen.File", lambda path, easy=False: _FakeAudio(None)
        )
        record = TagReader().read(link)
        assert record.path == target.resolve()

    def test_unrecognized_container_raises(self, tmp_path, monkeypatch):
        p = tmp_path / "song.mka"
        p.write_bytes(b"x")
        monkeypatch.setattr("musicfind.core.tagger.mutagen.File", lambda path, easy=False: None)
        with pytest.raises(MusicFindError) as info:
            TagReader().read(p)
        assert info.value.code is ErrorCode.TAG_UNSUPPORTED_FORMAT

    def test_decoder_error_raises_corrupt(self, tmp_path, monkeypatch):
        p = tmp_path / "song.ogg"
        p.write_bytes(b"x")

        def boom(path, easy=False):
            raise mutagen.MutagenError("unexpected end of stream")

        monkeypatch.setattr("musicfind.core.tagger.mutagen.File", boom)
        with pytest.raises(MusicFindError) as info:
            TagReader().read(p)
        assert info.value.code is ErrorCode.TAG_CORRUPT

    def test_missing_file_raises_not_found(self, tmp_path):
        with pytest.raises(MusicFindError) as info:
            TagReader().read(tmp_path / "gone.mp3")
        assert info.value.code is ErrorCode.FILE_NOT_FOUND

    def test_garbage_file_raises(self, tmp_path):
        p = tmp_path / "garbage.mp3"
        p.write_bytes(b"\x00" * 100)
        with pytest.raises(MusicFindError):
            TagReader().read(p)

    def test_untagged_wav_yields_path_only_record(self, tmp_path):
        p = tmp_path / "tone.wav"
        with wave.open(str(p), "wb") as w:
            w.setnchannels(1)
            w.setsampwidth(2)
            w.setframerate(8000)
            w.writeframes(b"\x00\x00" * 800)
        record = TagReader().read(p)
        assert record == AudioRecord(path=p.resolve())

    def test_mp3_keeps_comment_and_custom_frames(self, tmp_path):
        # MPEG-1 layer III, 128 kbit/s, 44.1 kHz: 417 byte frames
        frame = b"\xff\xfb\x90\x00" + b"\x00" * 413
        p = tmp_path / "live.mp3"
        p.write_bytes(frame * 20)
        tags = ID3()
        tags.add(TIT2(encoding=3, text=["Interstellar"]))
        tags.add(TRCK(encoding=3, text=["4/12"]))
        tags.add(COMM(encoding=3, lang="eng", desc="", text=["live bootleg"]))
        tags.add(TXXX(encoding=3, desc="SOURCE", text=["vinyl rip"]))
        tags.save(p)

        record = TagReader().read(p)
        assert record.title == "Interstellar"
        assert record.track == 4
        assert record.extras == {"comment": "live bootleg", "source": "vinyl rip"}
