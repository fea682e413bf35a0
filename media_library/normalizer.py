"""
Track Filtering and Normalization

Turns raw media store rows into Songs:

1. ``accept`` drops tracks that are too short or live in a blacklisted folder,
   before any other field is looked at.
2. The normalizers clean placeholder values ("<unknown>" artist, year 0,
   disc 0) and split combined track numbers (1005 = disc 1, track 5).
3. ``build_song`` assembles the immutable Song, including its artwork URI.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

from .config import ScanConfig
from .models import ARTWORK_BASE_URI, UNKNOWN_ARTIST_NAME, Song, TrackRecord


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------

def parent_directory(path: str) -> str:
    """Everything before the last '/' (the whole path if there is none)."""
    head, sep, _ = path.rpartition("/")
    return head if sep else path


def accept(record: TrackRecord, config: ScanConfig) -> bool:
    """True if the track passes the duration filter and its folder is not blacklisted."""
    if record.duration < config.threshold_ms:
        return False
    return parent_directory(record.path) not in config.folder_blacklist


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------

def normalize_artist(artist: Optional[str]) -> Optional[str]:
    if not artist or artist == UNKNOWN_ARTIST_NAME:
        return None
    return artist


def normalize_year(year: Optional[int]) -> Optional[int]:
    return year or None


def split_track_number(
    track_number: int, disc_number: Optional[int]
) -> Tuple[int, Optional[int]]:
    """
    Split a combined track number into (track, disc).

    Some taggers store the disc in the thousands: 1005 means disc 1, track 5.
    When that happens the derived disc wins over the tagged one.
    """
    if track_number >= 1000:
        return track_number % 1000, track_number // 1000
    return track_number, disc_number or None


def parse_cd_track_number(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_date_taken(value: Optional[str]) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Epoch-millisecond string → (year, month, day) in UTC; (None, None, None) if unusable."""
    if not value:
        return None, None, None
    try:
        taken_ms = int(value.strip())
    except ValueError:
        return None, None, None
    if taken_ms <= 0:
        return None, None, None
    try:
        taken = datetime.fromtimestamp(taken_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None, None, None
    return taken.year, taken.month, taken.day


def artwork_uri(album_id: int) -> str:
    return f"{ARTWORK_BASE_URI}/{album_id}"


# ---------------------------------------------------------------------------
# Song builder
# ---------------------------------------------------------------------------

def build_song(record: TrackRecord) -> Song:
    """Build the immutable Song for an accepted record."""
    track_number, disc_number = split_track_number(record.track_number, record.disc_number)
    rec_year, rec_month, rec_day = parse_date_taken(record.date_taken)

    return Song(
        id=record.id,
        title=record.title,
        artist=normalize_artist(record.artist),
        album=record.album,
        album_artist=record.album_artist,
        year=normalize_year(record.year),
        duration_ms=record.duration,
        added_at=record.date_added,
        modified_at=record.date_modified,
        track_number=track_number,
        disc_number=disc_number,
        genre=record.genre,
        path=record.path,
        artwork_uri=artwork_uri(record.album_id),
        artist_id=record.artist_id,
        album_id=record.album_id,
        genre_id=record.genre_id,
        mime_type=record.mime_type,
        cd_track_number=parse_cd_track_number(record.cd_track_number),
        compilation=record.compilation,
        composer=record.composer,
        writer=record.writer,
        author=record.author,
        recording_year=rec_year,
        recording_month=rec_month,
        recording_day=rec_day,
    )
