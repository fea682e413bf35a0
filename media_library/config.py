"""
Scan Configuration

The duration filter and folder blacklist applied to every scan. Values are
passed explicitly into ``build_library``; ``ScanConfig.from_env()`` reads
them from environment variables for the CLI and the web app.
"""

import os
from typing import FrozenSet, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FILTER_SECONDS = 10

FILTER_SECONDS_ENV = "MEDIA_LIBRARY_FILTER_SECONDS"
FOLDER_BLACKLIST_ENV = "MEDIA_LIBRARY_FOLDER_BLACKLIST"


class ScanConfig(BaseModel):
    """Filter settings for one scan."""

    model_config = ConfigDict(frozen=True)

    filter_seconds: int = Field(
        DEFAULT_FILTER_SECONDS, ge=0,
        description="Tracks shorter than this many seconds are skipped",
    )
    folder_blacklist: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Parent directories whose tracks are skipped",
    )

    @field_validator("folder_blacklist")
    @classmethod
    def strip_trailing_slash(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        # Compared against parent directories, which never end in "/"
        return frozenset(p.strip().rstrip("/") for p in v if p.strip().rstrip("/"))

    @property
    def threshold_ms(self) -> int:
        return self.filter_seconds * 1000

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ScanConfig":
        """
        Build a config from ``MEDIA_LIBRARY_FILTER_SECONDS`` and
        ``MEDIA_LIBRARY_FOLDER_BLACKLIST`` (paths separated by ``os.pathsep``).
        Unset variables fall back to the defaults.
        """
        env = os.environ if environ is None else environ

        seconds = DEFAULT_FILTER_SECONDS
        raw_seconds = env.get(FILTER_SECONDS_ENV, "").strip()
        if raw_seconds:
            try:
                seconds = int(raw_seconds)
            except ValueError:
                logger.warning(
                    f"{FILTER_SECONDS_ENV}={raw_seconds!r} is not an integer, "
                    f"using {DEFAULT_FILTER_SECONDS}s."
                )
            else:
                if seconds < 0:
                    logger.warning(
                        f"{FILTER_SECONDS_ENV}={raw_seconds!r} is negative, "
                        f"using {DEFAULT_FILTER_SECONDS}s."
                    )
                    seconds = DEFAULT_FILTER_SECONDS

        raw_blacklist = env.get(FOLDER_BLACKLIST_ENV, "")
        return cls(
            filter_seconds=seconds,
            folder_blacklist=frozenset(raw_blacklist.split(os.pathsep)),
        )
