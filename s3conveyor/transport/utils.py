"""
Transport utility functions

Helpers shared by object store implementations for planning directory syncs.
"""

import datetime
import os
from pathlib import Path
from typing import Dict, NamedTuple, Optional


class FileState(NamedTuple):
    """Size and modification time of a file or object"""

    size: int
    mtime: float  # Unix timestamp


def toTimestamp(value: datetime.datetime | float | int) -> float:
    """Convert a LastModified value into a Unix timestamp."""
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.timestamp()
    return float(value)


def scanLocalDirectory(directory: str) -> Dict[str, FileState]:
    """
    Recursively list regular files of a directory.

    Args:
        directory: Root directory to scan

    Returns:
        Mapping of POSIX-style paths relative to directory to their FileState
    """
    root = Path(directory)
    ret: Dict[str, FileState] = {}
    for dirPath, _, fileNames in os.walk(root):
        for fileName in fileNames:
            filePath = Path(dirPath) / fileName
            if not filePath.is_file():
                continue
            stat = filePath.stat()
            ret[filePath.relative_to(root).as_posix()] = FileState(size=stat.st_size, mtime=stat.st_mtime)
    return ret


def needsTransfer(source: FileState, destination: Optional[FileState]) -> bool:
    """
    Decide whether a sync should copy source over destination.

    Transfer when the destination is missing, sizes differ, or the source is newer.
    Times compare in whole seconds, the resolution of S3 LastModified.
    """
    if destination is None:
        return True
    if source.size != destination.size:
        return True
    return int(source.mtime) > int(destination.mtime)


def setLocalMtime(path: str | Path, mtime: float) -> None:
    """Stamp a synced local file with its object's LastModified so the next sync sees no change."""
    os.utime(path, (mtime, mtime))


def relativeKey(key: str, keyPrefix: str) -> Optional[str]:
    """
    Strip keyPrefix from an object key.

    Returns:
        The relative path, or None if the key is outside the prefix or is a
        directory placeholder
    """
    if not key.startswith(keyPrefix):
        return None
    rel = key[len(keyPrefix) :]
    if not rel or rel.endswith("/"):
        return None
    return rel


def safeLocalPath(directory: str, rel: str) -> Optional[Path]:
    """
    Resolve a relative object path inside directory.

    Returns:
        The resolved path, or None if it would escape directory (path traversal)
    """
    root = Path(directory).resolve()
    target = (root / rel).resolve()
    if not target.is_relative_to(root) or target == root:
        return None
    return target
