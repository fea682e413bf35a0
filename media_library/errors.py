"""Exceptions raised while scanning and indexing the media library."""


class LibraryScanError(RuntimeError):
    """Base class for failures raised by the indexing pipeline."""


class InvalidTrackPath(LibraryScanError):
    """A track path has no parent directory (fewer than two path segments)."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Track path has no parent directory: {path!r}")
        self.path = path
