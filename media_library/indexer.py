"""
Library Indexer

Groups songs into album, artist, album-artist, genre and date buckets in a
single pass, then cross-links albums to their artists in a second pass.

Songs with missing metadata are grouped under one shared UNKNOWN key per
category (bucket id and title ``None``), never one bucket per song.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from .models import Album, Artist, Date, Genre, Song


class _Unknown(Enum):
    KEY = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _Unknown.KEY

IdKey = Union[int, _Unknown]
NameKey = Union[str, _Unknown]


def bucket_key(value):
    """The dict key for an optional id or name: the value itself, or UNKNOWN."""
    return UNKNOWN if value is None else value


def _bucket_id(key: IdKey) -> Optional[int]:
    return None if key is UNKNOWN else key


class LibraryIndexer:
    """
    Accumulates songs into grouping buckets.

    Call ``add()`` once per accepted song, then ``link()`` once to resolve
    album ownership and produce the final bucket lists.
    """

    def __init__(self) -> None:
        self.songs: List[Song] = []
        self.albums: Dict[int, Album] = {}
        self.artists: Dict[IdKey, Artist] = {}
        self.album_artists: Dict[NameKey, List[Song]] = {}
        self.genres: Dict[IdKey, Genre] = {}
        self.dates: Dict[IdKey, Date] = {}
        # artist display name -> artist bucket key, first seen wins
        self.artist_cache: Dict[Optional[str], IdKey] = {}
        self._linked = False

    # ------------------------------------------------------------------
    # First pass
    # ------------------------------------------------------------------

    def add(self, song: Song) -> None:
        if self._linked:
            raise RuntimeError("Indexer already linked; start a new one for another scan")
        self.songs.append(song)

        album = self.albums.get(song.album_id)
        if album is None:
            album = Album(
                id=song.album_id,
                title=song.album,
                artist=song.album_artist or song.artist,
                year=song.year,
            )
            self.albums[song.album_id] = album
        album.songs.append(song)

        artist_key = UNKNOWN if song.artist is None else song.artist_id
        artist = self.artists.get(artist_key)
        if artist is None:
            artist = Artist(id=_bucket_id(artist_key), title=song.artist)
            self.artists[artist_key] = artist
        artist.songs.append(song)
        self.artist_cache.setdefault(song.artist, artist_key)

        self.album_artists.setdefault(bucket_key(song.album_artist), []).append(song)

        genre_key = bucket_key(song.genre_id)
        genre = self.genres.get(genre_key)
        if genre is None:
            genre = Genre(id=_bucket_id(genre_key), title=song.genre)
            self.genres[genre_key] = genre
        genre.songs.append(song)

        date_key = bucket_key(song.year)
        date = self.dates.get(date_key)
        if date is None:
            date = Date(
                id=_bucket_id(date_key),
                title=None if song.year is None else str(song.year),
            )
            self.dates[date_key] = date
        date.songs.append(song)

    # ------------------------------------------------------------------
    # Second pass
    # ------------------------------------------------------------------

    def link(self) -> Tuple[List[Album], List[Artist], List[Artist]]:
        """
        Attach each album to the artist its display name resolves to and build
        the album-artist view.

        Returns (album_list, artist_list, album_artist_list).
        """
        if self._linked:
            raise RuntimeError("Indexer already linked")
        self._linked = True

        album_list = list(self.albums.values())
        unlinked = 0
        for album in album_list:
            key = self.artist_cache.get(album.artist, None)
            owner = self.artists.get(key) if key is not None else None
            if owner is None:
                unlinked += 1
                continue
            owner.albums.append(album)

        artist_list = list(self.artists.values())
        album_artist_list = [
            self._album_artist(key, songs, artist_list)
            for key, songs in self.album_artists.items()
        ]

        logger.debug(
            f"Linked {len(album_list) - unlinked}/{len(album_list)} albums to artists, "
            f"{len(album_artist_list)} album artists"
        )
        return album_list, artist_list, album_artist_list

    @staticmethod
    def _album_artist(key: NameKey, songs: List[Song], artist_list: List[Artist]) -> Artist:
        # Album artists have no id of their own; borrow the first artist with the same name.
        title = None if key is UNKNOWN else key
        match = next((a for a in artist_list if a.title == title), None)
        if match is None:
            return Artist(id=None, title=title, songs=songs)
        return Artist(id=match.id, title=title, songs=songs, albums=match.albums)
