"""On-disk cache of raw encoded polylines.

One file per activity, ``<id>.cache``, holding the polyline bytes exactly as
Strava returned them. Records are never evicted or invalidated: an
activity's route is assumed not to change once recorded. The directory
therefore grows by one small file per activity ever fetched; ``clear()`` is
the only way to shrink it.
"""

from __future__ import annotations

from pathlib import Path

from plotted.errors import CacheReadError, CacheWriteError
from plotted.lib.logging import get_logger

logger = get_logger("plotted.cache")

CACHE_SUFFIX = ".cache"


class PolylineCache:
    """Polyline records keyed by activity ID."""

    def __init__(self, directory: Path) -> None:
        """Initialize the cache.

        Args:
            directory: Cache directory. Created on first write.
        """
        self.directory = Path(directory)

    def path_for(self, activity_id: int) -> Path:
        """Get the record path for an activity."""
        return self.directory / f"{activity_id}{CACHE_SUFFIX}"

    def exists(self, activity_id: int) -> bool:
        return self.path_for(activity_id).is_file()

    def read(self, activity_id: int) -> bytes:
        """Read a cached polyline.

        Args:
            activity_id: Activity ID.

        Returns:
            Raw encoded polyline bytes.

        Raises:
            CacheReadError: If the record cannot be read.
        """
        path = self.path_for(activity_id)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise CacheReadError(f"Error reading {path}: {e}", activity_id) from e

    def write(self, activity_id: int, data: bytes) -> Path:
        """Write a polyline record.

        The file is flushed and closed before returning.

        Args:
            activity_id: Activity ID.
            data: Raw encoded polyline bytes.

        Returns:
            Path to the written record.

        Raises:
            CacheWriteError: If the record cannot be created or written.
        """
        path = self.path_for(activity_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise CacheWriteError(f"Error writing {path}: {e}", activity_id) from e

        logger.debug("Cached polyline for activity %d (%d bytes)", activity_id, len(data))
        return path

    def activity_ids(self) -> list[int]:
        """List IDs of all cached activities, sorted."""
        if not self.directory.is_dir():
            return []

        ids: list[int] = []
        for path in self.directory.glob(f"*{CACHE_SUFFIX}"):
            try:
                ids.append(int(path.stem))
            except ValueError:
                continue
        return sorted(ids)

    def size(self) -> int:
        """Number of cached records."""
        return len(self.activity_ids())

    def clear(self) -> int:
        """Delete every cached record.

        Returns:
            Number of records removed.
        """
        removed = 0
        for activity_id in self.activity_ids():
            self.path_for(activity_id).unlink(missing_ok=True)
            removed += 1
        logger.info("Removed %d cached polylines from %s", removed, self.directory)
        return removed
