"""Tests for track record sources and scan configuration."""

import json
import os

import pytest
from pydantic import ValidationError

from media_library.config import DEFAULT_FILTER_SECONDS, ScanConfig
from media_library.models import TrackRecord
from media_library.sources import InMemoryTrackSource, JsonlTrackSource

ROW = {
    "id": 1,
    "title": "Blue in Green",
    "artist": "Miles Davis",
    "album": "Kind of Blue",
    "path": "/storage/Music/Jazz/blue.flac",
    "year": 1959,
    "album_id": 100,
    "artist_id": 10,
    "mime_type": "audio/flac",
    "track_number": 3,
    "duration": 337_000,
    "date_added": 1_700_000_000,
    "date_modified": 1_700_000_000,
}


class TestJsonlTrackSource:
    def test_reads_valid_rows(self, tmp_path):
        path = tmp_path / "tracks.jsonl"
        path.write_text(json.dumps(ROW) + "\n" + json.dumps({**ROW, "id": 2}) + "\n")
        records = list(JsonlTrackSource(path).records())
        assert [r.id for r in records] == [1, 2]
        assert records[0].genre is None

    def test_skips_blank_malformed_and_incomplete_rows(self, tmp_path):
        path = tmp_path / "tracks.jsonl"
        incomplete = {k: v for k, v in ROW.items() if k != "album_id"}
        path.write_text("\n".join([
            json.dumps(ROW),
            "",
            "{broken",
            json.dumps(incomplete),
            json.dumps([1, 2, 3]),
        ]))
        records = list(JsonlTrackSource(path).records())
        assert [r.id for r in records] == [1]

    def test_skips_line_with_invalid_utf8(self, tmp_path):
        path = tmp_path / "tracks.jsonl"
        path.write_bytes(
            json.dumps(ROW).encode() + b"\n"
            + b'{"id": 9, "title": "\xff\xfe"}\n'
            + json.dumps({**ROW, "id": 2}).encode() + b"\n"
        )
        records = list(JsonlTrackSource(path).records())
        assert [r.id for r in records] == [1, 2]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(JsonlTrackSource(tmp_path / "nope.jsonl").records())


class TestInMemoryTrackSource:
    def test_accepts_dicts_and_records(self):
        source = InMemoryTrackSource([ROW, TrackRecord(**{**ROW, "id": 2})])
        assert len(source) == 2
        assert [r.id for r in source.records()] == [1, 2]

    def test_rejects_incomplete_dict(self):
        with pytest.raises(ValidationError):
            InMemoryTrackSource([{"id": 1}])


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig.from_env({})
        assert config.filter_seconds == DEFAULT_FILTER_SECONDS
        assert config.folder_blacklist == frozenset()
        assert config.threshold_ms == DEFAULT_FILTER_SECONDS * 1000

    def test_from_env(self):
        config = ScanConfig.from_env({
            "MEDIA_LIBRARY_FILTER_SECONDS": "30",
            "MEDIA_LIBRARY_FOLDER_BLACKLIST": os.pathsep.join(
                ["/storage/Ringtones/", " /storage/Notifications", ""]
            ),
        })
        assert config.filter_seconds == 30
        assert config.folder_blacklist == frozenset(
            {"/storage/Ringtones", "/storage/Notifications"}
        )

    def test_bad_seconds_fall_back_to_default(self):
        config = ScanConfig.from_env({"MEDIA_LIBRARY_FILTER_SECONDS": "soon"})
        assert config.filter_seconds == DEFAULT_FILTER_SECONDS

    def test_negative_env_seconds_fall_back_to_default(self):
        config = ScanConfig.from_env({"MEDIA_LIBRARY_FILTER_SECONDS": "-5"})
        assert config.filter_seconds == DEFAULT_FILTER_SECONDS

    def test_blacklist_trailing_slash_stripped(self):
        config = ScanConfig(folder_blacklist=frozenset({"/storage/Music/Rock/", " /sdcard/ ", "/"}))
        assert config.folder_blacklist == frozenset({"/storage/Music/Rock", "/sdcard"})

    def test_negative_seconds_rejected(self):
        with pytest.raises(ValidationError):
            ScanConfig(filter_seconds=-1)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ScanConfig().filter_seconds = 5
