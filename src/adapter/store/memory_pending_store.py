"""In-process implementation of PendingStore.

One lock guards the whole map, so check-and-remove in consume() cannot
interleave with a concurrent put() for the same email. Suitable for a
single worker process; use the Redis store when running several.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Generic

from domain.model.pending import PendingT

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryPendingStore(Generic[PendingT]):
    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._records: dict[str, PendingT] = {}
        self._lock = threading.Lock()
        self._clock = clock

    # ── write operations ─────────────────────────────────────

    def put(self, record: PendingT) -> bool:
        with self._lock:
            self._purge_expired_locked()
            self._records[record.email] = record
        return True

    def consume(self, email: str, otp: str) -> PendingT | None:
        with self._lock:
            record = self._live_locked(email)
            if record is None or not record.matches(otp):
                return None
            del self._records[email]
            return record

    def replace(self, previous: PendingT, record: PendingT) -> bool:
        with self._lock:
            current = self._live_locked(previous.email)
            if current is None or not current.same_issue(previous):
                return False
            self._records[record.email] = record
            return True

    def discard(self, record: PendingT) -> bool:
        with self._lock:
            current = self._records.get(record.email)
            if current is None or not current.same_issue(record):
                return False
            del self._records[record.email]
            return True

    def restore(self, record: PendingT) -> bool:
        with self._lock:
            if record.is_expired(self._clock()):
                return False
            if self._live_locked(record.email) is not None:
                logger.debug("Newer pending record present, not restoring")
                return False
            self._records[record.email] = record
            return True

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired_locked()

    # ── read operations ──────────────────────────────────────

    def get(self, email: str) -> PendingT | None:
        with self._lock:
            return self._live_locked(email)

    def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ── helpers (caller holds the lock) ──────────────────────

    def _live_locked(self, email: str) -> PendingT | None:
        record = self._records.get(email)
        if record is None:
            return None
        if record.is_expired(self._clock()):
            del self._records[email]
            return None
        return record

    def _purge_expired_locked(self) -> int:
        now = self._clock()
        expired = [k for k, r in self._records.items() if r.is_expired(now)]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug("Purged expired pending records", extra={"count": len(expired)})
        return len(expired)
