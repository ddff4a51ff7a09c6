"""Read-mostly cache of template records, shared across requests.

The cache is an explicit object injected into renderers rather than module
state.  It is populated on a read miss from its backing store and
invalidated when a template is updated.  Lookups take a shared read lock;
population and invalidation take the exclusive write lock.  The hit and
miss counters have a lock of their own.  Locks are only held around
dictionary and counter access, never across an ``await``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from goforge.templating.engine import TemplateRecord
from goforge.templating.store import TemplateStore


class ReadWriteLock:
    """Many concurrent readers or one writer; writers are not starved."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TemplateCache:
    """Slug-keyed cache in front of a :class:`TemplateStore`."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store
        self._lock = ReadWriteLock()
        self._records: dict[str, TemplateRecord] = {}
        self._counter_lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _count(self, hit: bool) -> None:
        with self._counter_lock:
            if hit:
                self.hits += 1
            else:
                self.misses += 1

    def peek(self, slug: str) -> TemplateRecord | None:
        """Return the cached record for *slug* without touching the store."""
        with self._lock.read():
            return self._records.get(slug)

    async def get(self, slug: str) -> TemplateRecord:
        """Return the record for *slug*, fetching it on a miss.

        Raises:
            TemplateNotFoundError: Propagated from the store.
        """
        record = self.peek(slug)
        self._count(hit=record is not None)
        if record is not None:
            return record

        record = await self.store.get_template_by_slug(slug)
        with self._lock.write():
            # A concurrent miss may have filled the slot first; keep that one.
            record = self._records.setdefault(slug, record)
        await self.store.increment_usage(record.id or record.slug)
        return record

    def put(self, record: TemplateRecord) -> None:
        """Store an updated record, replacing any cached version."""
        with self._lock.write():
            self._records[record.slug] = record

    def invalidate(self, slug: str) -> bool:
        """Drop *slug* from the cache; returns whether it was present."""
        with self._lock.write():
            return self._records.pop(slug, None) is not None

    def clear(self) -> None:
        with self._lock.write():
            self._records.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._records)

    def __contains__(self, slug: object) -> bool:
        with self._lock.read():
            return slug in self._records
