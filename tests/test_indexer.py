"""Unit tests for bucket aggregation and album/artist cross-linking."""

import itertools

import pytest

from media_library.indexer import UNKNOWN, LibraryIndexer, bucket_key
from media_library.models import TrackRecord
from media_library.normalizer import build_song


def make_song(id, artist="Artist", artist_id=1, album="Album", album_id=1,
              album_artist=None, year=2020, genre=None, genre_id=None):
    return build_song(TrackRecord(
        id=id,
        title=f"Song {id}",
        artist=artist,
        artist_id=artist_id,
        album=album,
        album_id=album_id,
        album_artist=album_artist,
        year=year,
        genre=genre,
        genre_id=genre_id,
        path=f"/storage/Music/{album}/{id:02d}.mp3",
        mime_type="audio/flac",
        track_number=id,
        duration=200_000,
        date_added=1_700_000_000,
        date_modified=1_700_000_000,
    ))


def index(songs):
    indexer = LibraryIndexer()
    for s in songs:
        indexer.add(s)
    return indexer


@pytest.fixture
def library_songs():
    return [
        make_song(1, artist="Miles Davis", artist_id=10, album="Kind of Blue", album_id=100,
                  year=1959, genre="Jazz", genre_id=5),
        make_song(2, artist="Miles Davis", artist_id=10, album="Kind of Blue", album_id=100,
                  year=1959, genre="Jazz", genre_id=5),
        make_song(3, artist="John Coltrane", artist_id=11, album="Blue Train", album_id=101,
                  year=1957, genre="Jazz", genre_id=5),
        make_song(4, artist="<unknown>", artist_id=12, album="Demos", album_id=102, year=0),
        make_song(5, artist="<unknown>", artist_id=13, album="Demos", album_id=102, year=0),
        make_song(6, artist="Various", artist_id=14, album="Jazz Hits", album_id=103,
                  album_artist="Compilations Inc", year=1990, genre="Jazz", genre_id=5),
    ]


class TestBucketKey:
    def test_none_maps_to_unknown(self):
        assert bucket_key(None) is UNKNOWN

    def test_zero_is_a_real_key(self):
        assert bucket_key(0) == 0


class TestAggregation:
    def test_album_buckets(self, library_songs):
        idx = index(library_songs)
        assert [a.id for a in idx.albums.values()] == [100, 101, 102, 103]
        kind_of_blue = idx.albums[100]
        assert kind_of_blue.title == "Kind of Blue"
        assert kind_of_blue.artist == "Miles Davis"
        assert kind_of_blue.year == 1959
        assert [s.id for s in kind_of_blue.songs] == [1, 2]

    def test_album_artist_preferred_for_album(self, library_songs):
        idx = index(library_songs)
        assert idx.albums[103].artist == "Compilations Inc"

    def test_absent_artists_share_one_bucket(self, library_songs):
        idx = index(library_songs)
        unknown = idx.artists[UNKNOWN]
        assert unknown.id is None
        assert unknown.title is None
        assert [s.id for s in unknown.songs] == [4, 5]
        assert 12 not in idx.artists
        assert 13 not in idx.artists

    def test_genre_buckets(self, library_songs):
        idx = index(library_songs)
        assert idx.genres[5].title == "Jazz"
        assert len(idx.genres[5].songs) == 4
        missing = idx.genres[UNKNOWN]
        assert missing.id is None
        assert [s.id for s in missing.songs] == [4, 5]

    def test_date_buckets(self, library_songs):
        idx = index(library_songs)
        assert idx.dates[1959].title == "1959"
        assert idx.dates[1959].id == 1959
        assert idx.dates[UNKNOWN].id is None
        assert idx.dates[UNKNOWN].title is None
        assert len(idx.dates) == 4

    def test_album_artist_buckets_keyed_by_name(self, library_songs):
        idx = index(library_songs)
        assert [s.id for s in idx.album_artists["Compilations Inc"]] == [6]
        assert len(idx.album_artists[UNKNOWN]) == 5

    def test_partition_property(self, library_songs):
        idx = index(library_songs)
        total = len(library_songs)
        for buckets in (idx.albums, idx.artists, idx.genres, idx.dates):
            assert sum(len(b.songs) for b in buckets.values()) == total
        assert sum(len(v) for v in idx.album_artists.values()) == total

    def test_member_order_is_insertion_order(self):
        songs = [make_song(i, album_id=1) for i in (5, 3, 9, 1)]
        idx = index(songs)
        assert [s.id for s in idx.albums[1].songs] == [5, 3, 9, 1]

    def test_artist_cache_first_seen_wins(self):
        idx = index([
            make_song(1, artist="Prince", artist_id=20, album_id=1),
            make_song(2, artist="Prince", artist_id=21, album_id=2),
        ])
        assert idx.artist_cache["Prince"] == 20


class TestCrossLinking:
    def test_albums_linked_to_artist(self, library_songs):
        albums, artists, _ = index(library_songs).link()
        by_title = {a.title: a for a in artists}
        assert [a.id for a in by_title["Miles Davis"].albums] == [100]
        assert [a.id for a in by_title["John Coltrane"].albums] == [101]

    def test_album_without_matching_artist_left_unlinked(self, library_songs):
        albums, artists, _ = index(library_songs).link()
        linked = [album.id for artist in artists for album in artist.albums]
        assert 103 not in linked
        assert len(albums) == 4

    def test_unknown_artist_owns_unknown_albums(self, library_songs):
        _, artists, _ = index(library_songs).link()
        unknown = next(a for a in artists if a.id is None)
        assert [a.id for a in unknown.albums] == [102]

    def test_shared_name_links_to_first_seen_artist(self):
        _, artists, _ = index([
            make_song(1, artist="Prince", artist_id=20, album_id=1),
            make_song(2, artist="Prince", artist_id=21, album_id=2),
        ]).link()
        by_id = {a.id: a for a in artists}
        assert [a.id for a in by_id[20].albums] == [1, 2]
        assert by_id[21].albums == []

    def test_album_artist_borrows_matching_artist(self):
        _, artists, album_artists = index([
            make_song(1, artist="Björk", artist_id=30, album_id=1, album_artist="Björk"),
            make_song(2, artist="Guest", artist_id=31, album_id=1, album_artist="Björk"),
        ]).link()
        bjork = next(a for a in album_artists if a.title == "Björk")
        assert bjork.id == 30
        assert [s.id for s in bjork.songs] == [1, 2]
        assert [a.id for a in bjork.albums] == [1]

    def test_album_artist_without_match(self, library_songs):
        _, _, album_artists = index(library_songs).link()
        comp = next(a for a in album_artists if a.title == "Compilations Inc")
        assert comp.id is None
        assert comp.albums == []

    def test_linking_is_repeatable(self, library_songs):
        first = index(library_songs).link()[1]
        second = index(library_songs).link()[1]
        assert [[al.id for al in a.albums] for a in first] == \
               [[al.id for al in a.albums] for a in second]

    def test_linking_ignores_album_order(self, library_songs):
        def albums_by_artist(idx):
            _, artists, _ = idx.link()
            return {a.id: {al.id for al in a.albums} for a in artists}

        expected = albums_by_artist(index(library_songs))
        base = index(library_songs)
        for order in itertools.permutations(base.albums):
            idx = index(library_songs)
            idx.albums = {key: idx.albums[key] for key in order}
            assert albums_by_artist(idx) == expected

    def test_link_only_once(self, library_songs):
        idx = index(library_songs)
        idx.link()
        with pytest.raises(RuntimeError):
            idx.link()
        with pytest.raises(RuntimeError):
            idx.add(make_song(99))
