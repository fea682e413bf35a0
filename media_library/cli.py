"""
scan-library — Index a JSONL file of track records and print a summary.

Usage:
    scan-library tracks.jsonl
    scan-library tracks.jsonl --playlists .data/playlists.json
    scan-library tracks.jsonl --filter-seconds 30 --blacklist /storage/Ringtones
    scan-library tracks.jsonl --verbose
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from .config import ScanConfig
from .playlists import InMemoryPlaylistStore, JsonPlaylistStore
from .scanner import build_library
from .sources import JsonlTrackSource

BOLD = "\033[1m"
DIM  = "\033[2m"
NC   = "\033[0m"


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scan-library",
        description="Build the media library view from a JSONL file of track records.",
    )
    parser.add_argument("tracks", type=Path, help="JSONL file, one track record per line")
    parser.add_argument(
        "--playlists", type=Path, default=None,
        help="JSON playlist store (default: in-memory, nothing is written)",
    )
    parser.add_argument(
        "--filter-seconds", type=int, default=None,
        help="Skip tracks shorter than this (default: MEDIA_LIBRARY_FILTER_SECONDS or 10)",
    )
    parser.add_argument(
        "--blacklist", action="append", default=[], metavar="FOLDER",
        help="Skip tracks directly inside FOLDER (repeatable)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show INFO logs")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="INFO" if args.verbose else "WARNING")

    config = ScanConfig.from_env()
    updates = {}
    if args.filter_seconds is not None:
        updates["filter_seconds"] = args.filter_seconds
    if args.blacklist:
        updates["folder_blacklist"] = config.folder_blacklist | set(args.blacklist)
    if updates:
        config = ScanConfig(**{**config.model_dump(), **updates})

    store = JsonPlaylistStore(args.playlists) if args.playlists else InMemoryPlaylistStore()

    try:
        snapshot, stats = build_library(JsonlTrackSource(args.tracks).records(), config, store)
    except FileNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"{BOLD}Media library{NC}  {DIM}{args.tracks}{NC}")
    print(
        f"  tracks    {stats['accepted']} accepted / {stats['total']} read "
        f"({stats['filtered']} filtered, {stats['invalid_path']} invalid paths)"
    )
    for name, count in snapshot.summary().items():
        print(f"  {name:<14}{count}")
    for playlist in snapshot.playlist_list:
        title = playlist.title or "(recently added)"
        print(f"  {DIM}playlist{NC}  {title}: {len(playlist.songs)} songs")
    return 0


if __name__ == "__main__":
    sys.exit(main())
