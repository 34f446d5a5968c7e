"""Persistent feature cache keyed by file path and invalidated by (size, mtime)."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import CacheCorrupt
from .models import VideoFeatureRecord

logger = logging.getLogger(__name__)


def cache_key(path: str | os.PathLike[str]) -> str:
    """Normalize a path for case-insensitive comparison."""
    return os.path.abspath(os.fspath(path)).casefold()


def _under_scope(key: str, scope: str) -> bool:
    return key == scope or key.startswith(scope.rstrip(os.sep) + os.sep)


class FeatureCache:
    """In-memory feature records backed by a JSON store.

    One instance serves one detection run: ``load`` reads the entries under
    the scanned directory, workers call ``lookup`` and ``update``
    concurrently, and ``save`` merges the entries back into the store
    without touching entries that belong to other directories.
    """

    def __init__(self, store_path: Path):
        """Initialize cache.

        Args:
            store_path: Path to the JSON feature store
        """
        self.store_path = Path(store_path)
        self.scope: str | None = None
        self._entries: dict[str, VideoFeatureRecord] = {}
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()

    def __len__(self) -> int:
        """Return number of entries in memory."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        """Check whether a path has an entry (regardless of validity)."""
        if not isinstance(path, str | os.PathLike):
            return False
        with self._lock:
            return cache_key(path) in self._entries

    def _read_store(self) -> dict[str, Any]:
        """Read the whole on-disk store.

        Raises:
            CacheCorrupt: If the store exists but cannot be read or parsed
        """
        if not self.store_path.exists():
            return {}
        try:
            with self.store_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            msg = f"Cannot read feature store {self.store_path}: {e}"
            raise CacheCorrupt(msg) from e
        if not isinstance(data, dict):
            msg = f"Feature store {self.store_path} is not a JSON object"
            raise CacheCorrupt(msg)
        return data

    def load(self, root: str | os.PathLike[str] | None = None) -> int:
        """Load entries from disk, keeping only those under ``root``.

        An unreadable store is logged and treated as empty.

        Args:
            root: Directory being scanned (None keeps every entry)

        Returns:
            Number of entries loaded
        """
        try:
            raw = self._read_store()
        except CacheCorrupt as e:
            logger.warning(f"Failed to load feature cache, starting empty: {e}")
            raw = {}

        scope = cache_key(root) if root is not None else None
        entries: dict[str, VideoFeatureRecord] = {}
        for path, data in raw.items():
            key = cache_key(path)
            if scope is not None and not _under_scope(key, scope):
                continue
            if not isinstance(data, dict):
                logger.warning(f"Skipping malformed cache entry for {path}")
                continue
            try:
                record = VideoFeatureRecord.model_validate({**data, "path": data.get("path", path)})
            except ValidationError as e:
                logger.warning(f"Skipping invalid cache entry for {path}: {e.error_count()} error(s)")
                continue
            entries[key] = record

        with self._lock:
            self._entries = entries
            self.scope = scope
        logger.info(f"Loaded feature cache with {len(entries)} video(s)")
        return len(entries)

    def get(self, path: str | os.PathLike[str]) -> VideoFeatureRecord | None:
        """Return a copy of the entry for ``path`` without checking validity."""
        with self._lock:
            record = self._entries.get(cache_key(path))
            return record.model_copy(deep=True) if record is not None else None

    def lookup(
        self, path: str | os.PathLike[str], file_size: int, last_modified: float
    ) -> VideoFeatureRecord | None:
        """Return a copy of the entry if it matches the file's current stat.

        A stale entry is dropped and reported as a miss.

        Args:
            path: Video file
            file_size: Current size in bytes
            last_modified: Current ``st_mtime``

        Returns:
            Cached record, or None on a miss
        """
        key = cache_key(path)
        with self._lock:
            record = self._entries.get(key)
            if record is None:
                return None
            if not record.matches_stat(file_size, last_modified):
                logger.debug(f"Cache entry for {path} is stale")
                del self._entries[key]
                return None
            return record.model_copy(deep=True)

    def update(self, record: VideoFeatureRecord) -> None:
        """Insert or replace the entry for ``record.path``."""
        with self._lock:
            self._entries[cache_key(record.path)] = record.model_copy(deep=True)

    def save(self) -> None:
        """Merge the in-memory entries into the on-disk store.

        The store is re-read under a lock so concurrent saves never drop each
        other's entries, then written atomically.

        Raises:
            OSError: If the store cannot be written
        """
        with self._save_lock:
            try:
                stored = self._read_store()
            except CacheCorrupt as e:
                logger.warning(f"Overwriting unreadable feature store: {e}")
                stored = {}

            with self._lock:
                snapshot = {key: r.model_dump() for key, r in self._entries.items()}

            merged = {path: data for path, data in stored.items() if cache_key(path) not in snapshot}
            for data in snapshot.values():
                merged[data["path"]] = data

            self.store_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.store_path.name}.", suffix=".tmp", dir=self.store_path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(merged, f, indent=2)
                os.replace(tmp_name, self.store_path)
            except OSError as e:
                logger.error(f"Failed to save feature cache: {e}")
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.info(f"Saved feature cache with {len(snapshot)} video(s) in scope")
