"""
Track Record Sources

Where raw track rows come from. Anything with a ``records()`` method returning
TrackRecords can feed a scan; rows missing mandatory fields are rejected here,
before they reach the indexer.
"""

import json
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Protocol, Union

from loguru import logger
from pydantic import ValidationError

from .models import TrackRecord


class TrackSource(Protocol):
    def records(self) -> Iterable[TrackRecord]: ...


class InMemoryTrackSource:
    """Serves records from a list of TrackRecords or plain dicts."""

    def __init__(self, rows: Iterable[Union[TrackRecord, Mapping[str, Any]]]) -> None:
        self._records: List[TrackRecord] = [
            r if isinstance(r, TrackRecord) else TrackRecord.model_validate(r) for r in rows
        ]

    def records(self) -> List[TrackRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class JsonlTrackSource:
    """
    Reads one JSON object per line. Blank lines are ignored; lines that are not
    valid UTF-8, not valid JSON or lack mandatory fields are skipped with a
    warning.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def records(self) -> Iterator[TrackRecord]:
        if not self.path.exists():
            raise FileNotFoundError(f"Track record file not found at {self.path}")

        skipped = 0
        with self.path.open("rb") as fh:
            for lineno, raw in enumerate(fh, start=1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    record = TrackRecord.model_validate(json.loads(raw.decode("utf-8")))
                except UnicodeDecodeError as exc:
                    skipped += 1
                    logger.warning(f"{self.path}:{lineno}: not valid UTF-8 ({exc.reason}), skipped")
                except json.JSONDecodeError as exc:
                    skipped += 1
                    logger.warning(f"{self.path}:{lineno}: not valid JSON ({exc.msg}), skipped")
                except ValidationError as exc:
                    skipped += 1
                    logger.warning(
                        f"{self.path}:{lineno}: invalid track record "
                        f"({exc.error_count()} errors), skipped"
                    )
                else:
                    yield record
        if skipped:
            logger.info(f"Skipped {skipped} unreadable rows in {self.path}")

    def __repr__(self) -> str:
        return f"JsonlTrackSource(path={self.path})"
