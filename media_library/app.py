"""
FastAPI Web Application for the Media Library

Endpoints:
  GET  /api/library/stats              - Snapshot counts and last scan stats
  GET  /api/library/songs              - Search/list songs
  GET  /api/library/albums             - Albums
  GET  /api/library/albums/{id}        - One album with its songs
  GET  /api/library/artists            - Artists (with their album counts)
  GET  /api/library/album-artists      - Album artists
  GET  /api/library/genres             - Genres
  GET  /api/library/dates              - Release years
  GET  /api/library/playlists          - Playlists
  GET  /api/library/playlists/{id}     - One playlist with its songs
  GET  /api/library/folders            - Deep folder tree, one level at a time
  GET  /api/library/shallow-folders    - Shallow folder view
  POST /api/library/rescan             - Scan again and publish a new snapshot

Configuration (environment):
  MEDIA_LIBRARY_TRACKS      - JSONL file of track records (required)
  MEDIA_LIBRARY_PLAYLISTS   - JSON playlist store (default .data/playlists.json)
  MEDIA_LIBRARY_PORT        - HTTP port (default 8888)
  plus the scan filter variables read by ScanConfig.from_env()
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Iterable, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import ScanConfig
from .models import FileNode, LibrarySnapshot, Song
from .playlists import JsonPlaylistStore
from .scanner import LibraryScanner
from .sources import JsonlTrackSource

_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_PLAYLIST_STORE = _REPO_ROOT / ".data" / "playlists.json"


def scanner_from_env() -> LibraryScanner:
    tracks_path = os.environ.get("MEDIA_LIBRARY_TRACKS")
    if not tracks_path:
        raise RuntimeError("MEDIA_LIBRARY_TRACKS is not set")
    store_path = os.environ.get("MEDIA_LIBRARY_PLAYLISTS") or DEFAULT_PLAYLIST_STORE
    return LibraryScanner(
        source=JsonlTrackSource(Path(tracks_path)),
        playlist_store=JsonPlaylistStore(Path(store_path)),
        config=ScanConfig.from_env(),
    )


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _song_dict(s: Song) -> dict:
    return {
        "id": s.id,
        "title": s.title,
        "artist": s.artist,
        "album": s.album,
        "album_artist": s.album_artist,
        "year": s.year,
        "genre": s.genre,
        "track_number": s.track_number,
        "disc_number": s.disc_number,
        "duration": s.duration_formatted(),
        "path": s.path,
        "artwork_uri": s.artwork_uri,
        "added_at": s.added_at,
    }


def _group_dicts(groups: Iterable) -> list:
    out = []
    for g in groups:
        entry = {"id": g.id, "title": g.title, "song_count": len(g.songs)}
        albums = getattr(g, "albums", None)
        if albums is not None:
            entry["album_count"] = len(albums)
        out.append(entry)
    return out


def _node_dict(node: FileNode) -> dict:
    return {
        "name": node.name,
        "folders": sorted(node.folders),
        "songs": [_song_dict(s) for s in node.songs],
    }


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(scanner: Optional[LibraryScanner] = None) -> FastAPI:
    """Build the app. Without a scanner one is configured from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        active = scanner or scanner_from_env()
        app_instance.state.scanner = active
        try:
            snapshot = await active.refresh()
            logger.info(f"Media library ready. {len(snapshot.song_list)} songs loaded.")
        except Exception as e:
            logger.warning(f"Initial library scan failed; serving 503 until a rescan succeeds: {e}")
        yield

    app = FastAPI(title="Media Library", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def current(request: Request) -> LibrarySnapshot:
        snapshot = request.app.state.scanner.publisher.current
        if snapshot is None:
            raise HTTPException(status_code=503, detail="Library not scanned yet")
        return snapshot

    @app.get("/api/library/stats")
    async def library_stats(request: Request):
        snapshot = current(request)
        return JSONResponse({
            "library": snapshot.summary(),
            "last_scan": request.app.state.scanner.last_stats,
        })

    @app.get("/api/library/songs")
    async def library_songs(request: Request, search: Optional[str] = None, limit: int = 100):
        snapshot = current(request)
        q = (search or "").strip().lower()
        limit = min(limit, 500)
        results = []
        for s in snapshot.song_list:
            if q and not (
                q in s.title.lower()
                or q in (s.artist or "").lower()
                or q in (s.album or "").lower()
                or q in (s.genre or "").lower()
            ):
                continue
            results.append(_song_dict(s))
            if len(results) >= limit:
                break
        return JSONResponse(results)

    @app.get("/api/library/albums")
    async def library_albums(request: Request):
        snapshot = current(request)
        return JSONResponse([
            {**entry, "artist": album.artist, "year": album.year}
            for entry, album in zip(_group_dicts(snapshot.album_list), snapshot.album_list)
        ])

    @app.get("/api/library/albums/{album_id}")
    async def library_album(request: Request, album_id: int):
        snapshot = current(request)
        for album in snapshot.album_list:
            if album.id == album_id:
                return JSONResponse({
                    "id": album.id,
                    "title": album.title,
                    "artist": album.artist,
                    "year": album.year,
                    "songs": [_song_dict(s) for s in album.songs],
                })
        raise HTTPException(status_code=404, detail="Album not found")

    @app.get("/api/library/artists")
    async def library_artists(request: Request):
        return JSONResponse(_group_dicts(current(request).artist_list))

    @app.get("/api/library/album-artists")
    async def library_album_artists(request: Request):
        return JSONResponse(_group_dicts(current(request).album_artist_list))

    @app.get("/api/library/genres")
    async def library_genres(request: Request):
        return JSONResponse(_group_dicts(current(request).genre_list))

    @app.get("/api/library/dates")
    async def library_dates(request: Request):
        return JSONResponse(_group_dicts(current(request).date_list))

    @app.get("/api/library/playlists")
    async def library_playlists(request: Request):
        snapshot = current(request)
        return JSONResponse([
            {"id": p.id, "title": p.title, "song_count": len(p.songs)}
            for p in snapshot.playlist_list
        ])

    @app.get("/api/library/playlists/{playlist_id}")
    async def library_playlist(request: Request, playlist_id: int):
        snapshot = current(request)
        for p in snapshot.playlist_list:
            if p.id == playlist_id:
                return JSONResponse({
                    "id": p.id,
                    "title": p.title,
                    "songs": [_song_dict(s) for s in p.songs],
                })
        raise HTTPException(status_code=404, detail="Playlist not found")

    @app.get("/api/library/folders")
    async def library_folders(request: Request, path: str = ""):
        node = current(request).folder_structure
        for name in (p for p in path.split("/") if p):
            node = node.folders.get(name)
            if node is None:
                raise HTTPException(status_code=404, detail=f"Folder not found: {path}")
        return JSONResponse(_node_dict(node))

    @app.get("/api/library/shallow-folders")
    async def library_shallow_folders(request: Request):
        snapshot = current(request)
        return JSONResponse({
            "folders": _group_dicts_by_name(snapshot.shallow_folder),
            "paths": list(snapshot.shallow_folder_paths),
        })

    @app.post("/api/library/rescan")
    async def library_rescan(request: Request):
        try:
            snapshot = await request.app.state.scanner.refresh()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"success": True, "library": snapshot.summary()}

    return app


def _group_dicts_by_name(shallow: FileNode) -> list:
    return [
        {"name": name, "song_count": len(node.songs)}
        for name, node in sorted(shallow.folders.items())
    ]


app = create_app()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    port = int(os.environ.get("MEDIA_LIBRARY_PORT", "8888"))
    logger.info(f"Starting media library API on port {port}")
    uvicorn.run(
        "media_library.app:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    main()
