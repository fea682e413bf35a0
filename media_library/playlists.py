"""
Playlist Resolution

Builds the playlist list of a library snapshot:

* Recently Added — every song, newest first, filtered to those added in the
  last two weeks (the cutoff can be changed afterwards).
* User playlists — read from a PlaylistStore; member ids that are not in the
  library (filtered out or deleted) are dropped.
* Favourites — exactly one per library. Found by its internal name and
  retitled for display, or created through the store's atomic
  ``find_or_create`` when missing.
"""

import json
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from loguru import logger

from .models import (
    FAVOURITES_PLAYLIST_NAME,
    FAVOURITES_TITLE,
    RECENTLY_ADDED_ID,
    RECENTLY_ADDED_WINDOW_SECONDS,
    Playlist,
    RecentlyAdded,
    Song,
    StoredPlaylist,
)


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------

class PlaylistStore(Protocol):
    """Read/write access to the external playlist store."""

    def list_playlists(self) -> List[StoredPlaylist]: ...

    def list_members(self, playlist_id: int) -> List[int]: ...

    def insert_playlist(self, name: str) -> int: ...

    def find_or_create(self, name: str) -> Tuple[int, bool]:
        """Return (playlist_id, created). Must be atomic with respect to other callers."""
        ...


class InMemoryPlaylistStore:
    """Playlist store held in memory. Thread-safe."""

    def __init__(
        self,
        playlists: Optional[Iterable[Tuple[int, str]]] = None,
        members: Optional[Mapping[int, List[int]]] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._names: Dict[int, str] = dict(playlists or [])
        self._members: Dict[int, List[int]] = {k: list(v) for k, v in (members or {}).items()}
        self.inserts = 0

    def list_playlists(self) -> List[StoredPlaylist]:
        with self._lock:
            return [StoredPlaylist(id=pid, name=name) for pid, name in self._names.items()]

    def list_members(self, playlist_id: int) -> List[int]:
        with self._lock:
            return list(self._members.get(playlist_id, []))

    def add_members(self, playlist_id: int, track_ids: Iterable[int]) -> None:
        with self._lock:
            if playlist_id not in self._names:
                raise KeyError(f"Unknown playlist {playlist_id}")
            self._members.setdefault(playlist_id, []).extend(track_ids)

    def insert_playlist(self, name: str) -> int:
        with self._lock:
            return self._insert_locked(name)

    def find_or_create(self, name: str) -> Tuple[int, bool]:
        with self._lock:
            for pid, existing in self._names.items():
                if existing == name:
                    return pid, False
            return self._insert_locked(name), True

    def _insert_locked(self, name: str) -> int:
        playlist_id = max(self._names, default=0) + 1
        self._names[playlist_id] = name
        self._members[playlist_id] = []
        self.inserts += 1
        return playlist_id


class JsonPlaylistStore:
    """
    Playlist store backed by a JSON file::

        {"playlists": [{"id": 1, "name": "Road trip", "members": [12, 40]}]}

    Writes go to a ``.tmp`` sibling first and are moved into place with
    ``Path.replace()``. Each store instance holds its own lock, so
    read-modify-write cycles are serialized per instance; share one store per
    file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> List[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Playlist store {self.path} is not valid JSON: {exc}") from exc
        return list(data.get("playlists", []))

    def _write(self, playlists: List[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps({"playlists": playlists}, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        tmp.replace(self.path)

    def list_playlists(self) -> List[StoredPlaylist]:
        with self._lock:
            return [StoredPlaylist(id=p["id"], name=p.get("name")) for p in self._read()]

    def list_members(self, playlist_id: int) -> List[int]:
        with self._lock:
            for p in self._read():
                if p["id"] == playlist_id:
                    return [int(m) for m in p.get("members", [])]
        return []

    def insert_playlist(self, name: str) -> int:
        with self._lock:
            playlists = self._read()
            return self._insert_locked(playlists, name)

    def find_or_create(self, name: str) -> Tuple[int, bool]:
        with self._lock:
            playlists = self._read()
            for p in playlists:
                if p.get("name") == name:
                    return p["id"], False
            return self._insert_locked(playlists, name), True

    def _insert_locked(self, playlists: List[dict], name: str) -> int:
        playlist_id = max((p["id"] for p in playlists), default=0) + 1
        now = int(time.time())
        playlists.append({
            "id": playlist_id,
            "name": name,
            "members": [],
            "date_added": now,
            "date_modified": now,
        })
        self._write(playlists)
        logger.info(f"Created playlist '{name}' (id {playlist_id}) in {self.path}")
        return playlist_id


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def recently_added(
    songs: Iterable[Song],
    now: Optional[float] = None,
    window_seconds: int = RECENTLY_ADDED_WINDOW_SECONDS,
) -> RecentlyAdded:
    """The Recently Added playlist with its cutoff set to ``now - window_seconds``."""
    playlist = RecentlyAdded(id=RECENTLY_ADDED_ID, members=list(songs))
    now = time.time() if now is None else now
    playlist.min_add_date = int(now) - window_seconds
    return playlist


class PlaylistResolver:
    """Resolves synthetic and stored playlists against a finished song index."""

    def __init__(self, store: PlaylistStore) -> None:
        self.store = store

    def resolve(
        self,
        songs: List[Song],
        now: Optional[float] = None,
    ) -> List[Playlist]:
        by_id = {s.id: s for s in songs}
        playlists: List[Playlist] = [recently_added(songs, now=now)]

        favourites: Optional[Playlist] = None
        dropped = 0
        for stored in self.store.list_playlists():
            members = []
            for track_id in self.store.list_members(stored.id):
                song = by_id.get(track_id)
                if song is None:
                    dropped += 1
                    continue
                members.append(song)
            playlist = Playlist(id=stored.id, title=stored.name or None, members=members)
            if favourites is None and stored.name == FAVOURITES_PLAYLIST_NAME:
                favourites = playlist
            playlists.append(playlist)

        if dropped:
            logger.debug(f"Dropped {dropped} playlist entries not present in the library")

        if favourites is not None:
            favourites.title = FAVOURITES_TITLE
        else:
            playlists.append(self._create_favourites(by_id))

        logger.info(f"Resolved {len(playlists)} playlists")
        return playlists

    def _create_favourites(self, by_id: Dict[int, Song]) -> Playlist:
        playlist_id, created = self.store.find_or_create(FAVOURITES_PLAYLIST_NAME)
        if created:
            logger.info(f"Created favourites playlist (id {playlist_id})")
            members: List[Song] = []
        else:
            # Another scan created it after our listing; pick up its members.
            members = [
                by_id[t] for t in self.store.list_members(playlist_id) if t in by_id
            ]
        return Playlist(id=playlist_id, title=FAVOURITES_TITLE, members=members)
