"""
Data Models for the Media Library

Raw track records as delivered by the media store, the immutable Song built
from each accepted record, the grouping buckets (album, artist, genre, date),
folder tree nodes, playlists, and the LibrarySnapshot that ties them together.
"""

from typing import Optional, List, Dict, Tuple, FrozenSet

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


# ---------------------------------------------------------------------------
# Media store constants
# ---------------------------------------------------------------------------

UNKNOWN_ARTIST_NAME = "<unknown>"
ARTWORK_BASE_URI = "content://media/external/audio/albumart"

FAVOURITES_PLAYLIST_NAME = "media_library_favourite"
FAVOURITES_TITLE = "Favourites"

RECENTLY_ADDED_ID = -1
RECENTLY_ADDED_WINDOW_SECONDS = 2 * 7 * 24 * 60 * 60


# ---------------------------------------------------------------------------
# Track models
# ---------------------------------------------------------------------------

class TrackRecord(BaseModel):
    """One flat metadata row for an audio file, as read from the media store."""

    id: int = Field(..., description="Media store row id")
    title: str = Field(..., description="Track title")
    artist: Optional[str] = Field(None, description="Track artist, may be the '<unknown>' placeholder")
    album_artist: Optional[str] = Field(None, description="Album artist tag")
    album: Optional[str] = Field(None, description="Album name")
    path: str = Field(..., description="Absolute path to the audio file")
    year: Optional[int] = Field(None, description="Release year, 0 when untagged")
    album_id: int = Field(..., description="Media store album id")
    artist_id: int = Field(..., description="Media store artist id")
    mime_type: str = Field(..., description="MIME type of the audio file")
    track_number: int = Field(0, description="Track number, may carry the disc as thousands")
    duration: int = Field(..., ge=0, description="Duration in milliseconds")
    date_added: int = Field(..., description="Epoch seconds the file was added")
    date_modified: int = Field(..., description="Epoch seconds the file was last modified")

    # Only reported by newer media store tiers
    disc_number: Optional[int] = Field(None, description="Disc number tag")
    genre: Optional[str] = Field(None, description="Genre name")
    genre_id: Optional[int] = Field(None, description="Media store genre id")
    cd_track_number: Optional[str] = Field(None, description="CD track number as stored")
    compilation: Optional[str] = Field(None, description="Compilation flag as stored")
    composer: Optional[str] = Field(None, description="Composer")
    writer: Optional[str] = Field(None, description="Writer")
    author: Optional[str] = Field(None, description="Author")
    date_taken: Optional[str] = Field(None, description="Recording timestamp in epoch milliseconds")


class Song(BaseModel):
    """An accepted, normalized track. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    album_artist: Optional[str] = None
    year: Optional[int] = None
    duration_ms: int = 0
    added_at: int = 0
    modified_at: int = 0
    track_number: int = 0
    disc_number: Optional[int] = None
    genre: Optional[str] = None
    path: str
    artwork_uri: str

    # Extension attributes
    artist_id: int
    album_id: int
    genre_id: Optional[int] = None
    mime_type: str
    cd_track_number: Optional[int] = None
    compilation: Optional[str] = None
    composer: Optional[str] = None
    writer: Optional[str] = None
    author: Optional[str] = None
    recording_year: Optional[int] = None
    recording_month: Optional[int] = None
    recording_day: Optional[int] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Song):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def duration_formatted(self) -> str:
        seconds = self.duration_ms // 1000
        if seconds <= 0:
            return "0:00"
        return f"{seconds // 60}:{seconds % 60:02d}"


# ---------------------------------------------------------------------------
# Grouping buckets
# ---------------------------------------------------------------------------

class Album(BaseModel):
    """Songs sharing an album id. ``artist`` is the album artist, else the track artist."""

    id: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    year: Optional[int] = None
    songs: List[Song] = Field(default_factory=list)


class Artist(BaseModel):
    """Songs sharing an artist. ``albums`` is filled in by the cross-linking pass."""

    id: Optional[int] = None
    title: Optional[str] = None
    songs: List[Song] = Field(default_factory=list)
    albums: List[Album] = Field(default_factory=list)


class Genre(BaseModel):
    id: Optional[int] = None
    title: Optional[str] = None
    songs: List[Song] = Field(default_factory=list)


class Date(BaseModel):
    """Songs sharing a release year."""

    id: Optional[int] = None
    title: Optional[str] = None
    songs: List[Song] = Field(default_factory=list)


class FileNode(BaseModel):
    """A directory: its sub-directories by name and the songs located directly in it."""

    name: str
    folders: Dict[str, "FileNode"] = Field(default_factory=dict)
    songs: List[Song] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

class StoredPlaylist(BaseModel):
    """A playlist row as returned by the playlist store."""

    id: int
    name: Optional[str] = None


class Playlist(BaseModel):
    id: int
    title: Optional[str] = None
    members: List[Song] = Field(default_factory=list)

    @property
    def songs(self) -> List[Song]:
        return list(self.members)


class RecentlyAdded(Playlist):
    """
    Synthetic playlist of songs added on or after ``min_add_date``.

    ``members`` holds every candidate, newest first. ``songs`` is the filtered
    view; it is computed on first access and kept until the cutoff changes.
    """

    _min_add_date: int = PrivateAttr(default=0)
    _filtered: Optional[List[Song]] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def sort_newest_first(self) -> "RecentlyAdded":
        self.members.sort(key=lambda s: s.added_at, reverse=True)
        return self

    @property
    def min_add_date(self) -> int:
        return self._min_add_date

    @min_add_date.setter
    def min_add_date(self, value: int) -> None:
        if value != self._min_add_date:
            self._min_add_date = value
            self._filtered = None

    @property
    def songs(self) -> List[Song]:
        if self._filtered is None:
            self._filtered = [s for s in self.members if s.added_at >= self._min_add_date]
        return list(self._filtered)


# ---------------------------------------------------------------------------
# Library snapshot
# ---------------------------------------------------------------------------

class LibrarySnapshot(BaseModel):
    """The complete result of one indexing run."""

    model_config = ConfigDict(frozen=True)

    song_list: Tuple[Song, ...] = ()
    album_list: Tuple[Album, ...] = ()
    album_artist_list: Tuple[Artist, ...] = ()
    artist_list: Tuple[Artist, ...] = ()
    genre_list: Tuple[Genre, ...] = ()
    date_list: Tuple[Date, ...] = ()
    playlist_list: Tuple[Playlist, ...] = ()
    folder_structure: FileNode = Field(default_factory=lambda: FileNode(name="root"))
    shallow_folder: FileNode = Field(default_factory=lambda: FileNode(name="shallow"))
    folders: FrozenSet[str] = frozenset()
    shallow_folder_paths: Tuple[str, ...] = ()

    _by_id: Optional[Dict[int, Song]] = PrivateAttr(default=None)

    def song_by_id(self, song_id: int) -> Optional[Song]:
        if self._by_id is None:
            self._by_id = {s.id: s for s in self.song_list}
        return self._by_id.get(song_id)

    def summary(self) -> Dict[str, int]:
        return {
            "songs": len(self.song_list),
            "albums": len(self.album_list),
            "album_artists": len(self.album_artist_list),
            "artists": len(self.artist_list),
            "genres": len(self.genre_list),
            "dates": len(self.date_list),
            "playlists": len(self.playlist_list),
            "folders": len(self.folders),
        }
