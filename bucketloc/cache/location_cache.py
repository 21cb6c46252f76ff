"""In-memory bucket location cache shared by concurrent resolvers."""
from __future__ import annotations

from typing import Dict, Tuple

from bucketloc.cache.rwlock import ReadWriteLock


class LocationCache:
    """Hold normalized bucket regions for the lifetime of a client.

    Entries never expire; callers drop a bucket explicitly with `delete`
    when it is known to have been removed or recreated elsewhere.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._items: Dict[str, str] = {}

    def get(self, bucket: str) -> Tuple[str, bool]:
        """Return the cached region and whether the bucket was present."""
        with self._lock.read_locked():
            if bucket in self._items:
                return self._items[bucket], True
            return "", False

    def set(self, bucket: str, region: str) -> None:
        """Store the region for the bucket, replacing any previous value."""
        with self._lock.write_locked():
            self._items[bucket] = region

    def delete(self, bucket: str) -> None:
        """Forget the bucket; missing buckets are ignored."""
        with self._lock.write_locked():
            self._items.pop(bucket, None)

    def snapshot(self) -> Dict[str, str]:
        """Return a shallow copy of all cached entries."""
        with self._lock.read_locked():
            return dict(self._items)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._items)
