"""Tests for musicfind.core.indexer."""

import threading
from pathlib import Path

import pytest

from musicfind.core.indexer import IndexBuilder
from musicfind.core.schema import SchemaRegistry
from musicfind.core.search import QueryEngine
from musicfind.core.tagger import AudioRecord
from musicfind.errors import ErrorCode, MusicFindError


@pytest.fixture
def builder():
    with IndexBuilder(SchemaRegistry()) as b:
        yield b


def _record(name, **tags):
    return AudioRecord(path=Path("/music") / name, **tags)


class TestDocumentFor:
    def test_full_record(self, builder):
        record = _record(
            "a.flac", artist="Air", album="Moon Safari", title="La Femme d'Argent",
            track=1, date="1998", extras={"genre": "Downtempo", "mood": "calm"},
        )
        doc = builder.document_for(record)
        assert doc == {
            "path": "/music/a.flac",
            "artist": "Air",
            "album": "Moon Safari",
            "title": "La Femme d'Argent",
            "track": 1,
            "date": "1998",
            "extras": "Downtempo calm",
            "item_type": "song",
        }

    def test_absent_fields_are_omitted(self, builder):
        doc = builder.document_for(_record("a.flac"))
        assert doc == {"path": "/music/a.flac", "extras": "", "item_type": "song"}

    def test_artist_falls_back_to_album_artist(self, builder):
        doc = builder.document_for(_record("a.flac", album_artist="Various"))
        assert doc["artist"] == "Various"

    def test_artist_wins_over_album_artist(self, builder):
        doc = builder.document_for(_record("a.flac", artist="Solo", album_artist="Various"))
        assert doc["artist"] == "Solo"

    @pytest.mark.parametrize("bad", [None, "not a record", AudioRecord(path=Path(""))])
    def test_invalid_record(self, builder, bad):
        with pytest.raises(MusicFindError) as info:
            builder.document_for(bad)
        assert info.value.code is ErrorCode.INDEX_DOCUMENT_INVALID


class TestIndexBuilder:
    def test_invalid_memory_budget(self):
        with pytest.raises(MusicFindError) as info:
            IndexBuilder(SchemaRegistry(), limitmb=0)
        assert info.value.code is ErrorCode.CONFIG_INVALID

    def test_ids_are_sequential(self, builder):
        ids = [builder.add(_record(f"{i}.mp3")) for i in range(5)]
        assert ids == [0, 1, 2, 3, 4]
        assert builder.buffered == 5

    def test_documents_are_invisible_until_commit(self, builder):
        builder.add(_record("a.mp3", title="Teardrop"))
        assert builder.doc_count == 0
        assert builder.commit() == 1
        assert builder.doc_count == 1
        assert builder.buffered == 0

    def test_open_searcher_keeps_its_snapshot(self, builder):
        builder.add(_record("a.mp3"))
        builder.commit()
        before = builder.reader()
        builder.add(_record("b.mp3"))
        builder.commit()
        after = builder.reader()
        try:
            assert before.doc_count() == 1
            assert after.doc_count() == 2
        finally:
            before.close()
            after.close()

    def test_engine_opened_before_commit_finds_nothing(self, builder):
        builder.add(_record("a.mp3", title="Teardrop"))
        with QueryEngine.for_builder(builder) as before:
            builder.commit()
            assert before.search("tear") == []
            with QueryEngine.for_builder(builder) as after:
                assert [hit.record.title for hit in after.search("tear")] == ["Teardrop"]

    def test_commit_without_documents(self, builder):
        assert builder.commit() == 0
        assert builder.doc_count == 0

    def test_invalid_record_is_not_buffered(self, builder):
        with pytest.raises(MusicFindError):
            builder.add(AudioRecord(path=Path("")))
        assert builder.buffered == 0

    def test_concurrent_adds(self, builder):
        ids: list[int] = []
        lock = threading.Lock()

        def add_many(offset):
            for i in range(50):
                doc_id = builder.add(_record(f"{offset}-{i}.mp3"))
                with lock:
                    ids.append(doc_id)

        threads = [threading.Thread(target=add_many, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(200))
        assert builder.commit() == 200
        assert builder.doc_count == 200

    def test_stored_fields_round_trip(self, builder):
        record = _record(
            "b.flac", artist="Portishead", album="Dummy", title="Roads",
            track=7, date="1994", album_artist="Portishead", extras={"genre": "Trip-Hop"},
        )
        builder.add(record)
        builder.commit()
        with QueryEngine.for_builder(builder) as engine:
            stored = engine.lookup("/music/b.flac")
        assert stored == AudioRecord(
            path=Path("/music/b.flac"), artist="Portishead", album="Dummy",
            title="Roads", track=7, date="1994",
        )

    def test_close_discards_buffered_documents(self):
        builder = IndexBuilder(SchemaRegistry())
        builder.add(_record("a.mp3"))
        builder.close()
        assert builder.buffered == 0
