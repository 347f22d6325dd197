"""
Session Repository — where builder session records live.

Records are plain camelCase dicts; the storage engine behind a RecordStore
is an external concern. SessionRepository layers two stores with a fixed
precedence:

  reads:  primary -> local cache
  writes: primary -> local cache

A failed primary write aborts the write before the cache is touched. Once
the primary has accepted a write, a cache failure is logged and the write
still succeeds; the cache is then stale until its next write. With no
primary, the cache is the store of record and its failures raise.
"""

import copy
import threading
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

import structlog

from content_builder.errors import PersistenceError

logger = structlog.get_logger()


@runtime_checkable
class RecordStore(Protocol):
    """Boundary contract for a builder-session record store."""

    def find_by_id(self, record_id: str) -> Optional[dict]:
        ...

    def find_by_user(self, user_id: str) -> List[dict]:
        ...

    def create(self, record: dict) -> None:
        ...

    def update(self, record_id: str, fields: dict) -> None:
        ...


class InMemoryRecordStore:
    """
    Dict-backed record store. Serves as the local cache tier and as the
    default store in tests. Updates merge field-by-field, last write wins.
    """

    def __init__(self):
        self._records: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def find_by_id(self, record_id: str) -> Optional[dict]:
        with self._lock:
            record = self._records.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find_by_user(self, user_id: str) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(r) for r in self._records.values()
                if r.get("userId") == user_id
            ]

    def create(self, record: dict) -> None:
        with self._lock:
            self._records[record["id"]] = copy.deepcopy(record)

    def update(self, record_id: str, fields: dict) -> None:
        with self._lock:
            existing = self._records.get(record_id)
            if existing is None:
                # Upsert: a cache may see updates for records it never created
                existing = {"id": record_id}
                self._records[record_id] = existing
            existing.update(copy.deepcopy(fields))

    def remove(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._records)


class SessionRepository:
    """Two-tier repository: optional primary store in front of a local cache."""

    def __init__(
        self,
        primary: Optional[RecordStore] = None,
        cache: Optional[RecordStore] = None,
    ):
        self.primary = primary
        self.cache = cache if cache is not None else InMemoryRecordStore()

    def _tiers(self) -> List[RecordStore]:
        return [s for s in (self.primary, self.cache) if s is not None]

    def find_by_id(self, record_id: str) -> Optional[dict]:
        """First tier holding the record wins."""
        for store in self._tiers():
            record = store.find_by_id(record_id)
            if record is not None:
                return record
        return None

    def find_by_user(self, user_id: str) -> List[dict]:
        """Records for a user from the first tier that has any."""
        for store in self._tiers():
            records = store.find_by_user(user_id)
            if records:
                return records
        return []

    def _write(
        self,
        action: str,
        record_id: Optional[str],
        write: Callable[[RecordStore], None],
    ) -> None:
        for store in self._tiers():
            try:
                write(store)
            except Exception as e:
                if store is self.cache and self.primary is not None:
                    logger.warning(
                        f"Local cache rejected {action}",
                        session_id=record_id,
                        store=type(store).__name__,
                        error=str(e),
                    )
                    continue
                logger.error(
                    f"Record store rejected {action}",
                    session_id=record_id,
                    store=type(store).__name__,
                    error=str(e),
                )
                if isinstance(e, PersistenceError):
                    raise
                raise PersistenceError(
                    f"Failed to {action} builder session {record_id}: {e}",
                    session_id=record_id,
                ) from e

    def create(self, record: dict) -> None:
        self._write("create", record.get("id"), lambda store: store.create(record))

    def update(self, record_id: str, fields: dict) -> None:
        """Merge ``fields`` into the record. Cache-tier failures behind a primary are only logged."""
        self._write("update", record_id, lambda store: store.update(record_id, fields))
