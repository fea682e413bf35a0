"""
Folder Trees

Two directory views of the library, filled in alongside the bucket index:

* the deep tree mirrors the full directory nesting
  (root → storage → Music → Rock → songs);
* the shallow tree has one level, keyed by the name of each song's parent
  directory (shallow → Rock → songs). Folders with the same name in
  different places share one shallow node.

The first time a shallow folder name is seen, its full path (with a trailing
'/') is recorded in ``shallow_folder_paths`` for folder-blacklist pickers.
"""

from typing import List, Set

from loguru import logger

from .errors import InvalidTrackPath
from .models import FileNode, Song


def directory_segments(path: str) -> List[str]:
    """
    The directory names leading to the file, root first.

    Raises InvalidTrackPath when the path has fewer than two non-empty
    segments, since there is then no parent directory to file the song under.
    """
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        raise InvalidTrackPath(path)
    return segments[:-1]


class FolderTreeBuilder:
    """Builds the deep and shallow folder trees one song at a time."""

    def __init__(self) -> None:
        self.root = FileNode(name="root")
        self.shallow_root = FileNode(name="shallow")
        self.shallow_folder_paths: List[str] = []
        self.folders: Set[str] = set()

    def add(self, song: Song) -> None:
        dirs = directory_segments(song.path)
        self._deep_node(dirs).songs.append(song)
        self._shallow_node(dirs).songs.append(song)
        self.folders.add(song.path.rpartition("/")[0])

    def _deep_node(self, dirs: List[str]) -> FileNode:
        node = self.root
        for name in dirs:
            child = node.folders.get(name)
            if child is None:
                child = FileNode(name=name)
                node.folders[name] = child
            node = child
        return node

    def _shallow_node(self, dirs: List[str]) -> FileNode:
        leaf = dirs[-1]
        node = self.shallow_root.folders.get(leaf)
        if node is None:
            node = FileNode(name=leaf)
            self.shallow_root.folders[leaf] = node
            folder_path = "/" + "/".join(dirs) + "/"
            self.shallow_folder_paths.append(folder_path)
            logger.debug(f"New shallow folder '{leaf}' at {folder_path}")
        return node
