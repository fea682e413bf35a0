"""
Library Scanner

Runs a full scan and hands the finished snapshot to consumers:

    records → filter → normalize → Song → {buckets, folder trees}   (pass 1)
            → albums linked to artists                              (pass 2)
            → playlists resolved against the song index             (pass 3)
            → LibrarySnapshot published

A snapshot is only published once every pass has completed. A scan that
raises leaves the previously published snapshot in place.

Usage:
    scanner = LibraryScanner(JsonlTrackSource(path), JsonPlaylistStore(store_path))
    snapshot = await scanner.refresh()
    scanner.publisher.current.summary()
"""

import asyncio
import threading
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional

from loguru import logger

from .config import ScanConfig
from .errors import InvalidTrackPath
from .folders import FolderTreeBuilder
from .indexer import LibraryIndexer
from .models import LibrarySnapshot, TrackRecord
from .normalizer import accept, build_song
from .playlists import PlaylistResolver, PlaylistStore
from .sources import TrackSource


class ScanResult(NamedTuple):
    snapshot: LibrarySnapshot
    stats: Dict[str, int]


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_library(
    records: Iterable[TrackRecord],
    config: ScanConfig,
    playlist_store: PlaylistStore,
    now: Optional[float] = None,
) -> ScanResult:
    """
    Build a complete LibrarySnapshot from raw records.

    Records with a path that has no parent directory are skipped (and counted
    under ``invalid_path``) before they enter any bucket or tree.
    """
    indexer = LibraryIndexer()
    trees = FolderTreeBuilder()
    stats = {"total": 0, "accepted": 0, "filtered": 0, "invalid_path": 0}

    for record in records:
        stats["total"] += 1
        if not accept(record, config):
            stats["filtered"] += 1
            continue
        song = build_song(record)
        try:
            trees.add(song)
        except InvalidTrackPath as exc:
            stats["invalid_path"] += 1
            logger.warning(f"Skipping track {record.id}: {exc}")
            continue
        indexer.add(song)
        stats["accepted"] += 1

    album_list, artist_list, album_artist_list = indexer.link()
    playlists = PlaylistResolver(playlist_store).resolve(indexer.songs, now=now)

    snapshot = LibrarySnapshot(
        song_list=tuple(indexer.songs),
        album_list=tuple(album_list),
        album_artist_list=tuple(album_artist_list),
        artist_list=tuple(artist_list),
        genre_list=tuple(indexer.genres.values()),
        date_list=tuple(indexer.dates.values()),
        playlist_list=tuple(playlists),
        folder_structure=trees.root,
        shallow_folder=trees.shallow_root,
        folders=frozenset(trees.folders),
        shallow_folder_paths=tuple(trees.shallow_folder_paths),
    )
    logger.info(
        f"Library built: {stats['accepted']}/{stats['total']} tracks accepted "
        f"({stats['filtered']} filtered, {stats['invalid_path']} invalid paths), "
        f"{len(album_list)} albums, {len(artist_list)} artists"
    )
    return ScanResult(snapshot, stats)


# ---------------------------------------------------------------------------
# Publication
# ---------------------------------------------------------------------------

class LibraryPublisher:
    """Holds the current snapshot. ``publish`` swaps it in one step."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[LibrarySnapshot] = None
        self._listeners: List[Callable[[LibrarySnapshot], Any]] = []

    @property
    def current(self) -> Optional[LibrarySnapshot]:
        with self._lock:
            return self._current

    def subscribe(self, listener: Callable[[LibrarySnapshot], Any]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def publish(self, snapshot: LibrarySnapshot) -> None:
        with self._lock:
            self._current = snapshot
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)


class LibraryScanner:
    """Runs scans off the event loop and publishes their snapshots."""

    def __init__(
        self,
        source: TrackSource,
        playlist_store: PlaylistStore,
        config: Optional[ScanConfig] = None,
        publisher: Optional[LibraryPublisher] = None,
    ) -> None:
        self.source = source
        self.playlist_store = playlist_store
        self.config = config or ScanConfig()
        self.publisher = publisher or LibraryPublisher()
        self.last_stats: Optional[Dict[str, int]] = None
        self._scan_lock = asyncio.Lock()

    def scan(self, now: Optional[float] = None) -> ScanResult:
        """Build a snapshot synchronously without publishing it."""
        return build_library(self.source.records(), self.config, self.playlist_store, now=now)

    async def refresh(self, now: Optional[float] = None) -> LibrarySnapshot:
        """Scan in a worker thread and publish the result. Scans never overlap."""
        async with self._scan_lock:
            try:
                result = await asyncio.to_thread(self.scan, now)
            except Exception as e:
                logger.error(f"Library scan failed, keeping previous snapshot: {e}")
                raise
            self.publisher.publish(result.snapshot)
            self.last_stats = result.stats
            return result.snapshot
