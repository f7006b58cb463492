"""Redis implementation of PendingStore.

Each pending record is one JSON string under ``<prefix><email>`` with a
Redis TTL matching its expires_at, so abandoned verifications disappear on
their own. consume/replace/discard use WATCH + MULTI so the
read-compare-write sequence is atomic across worker processes.
"""

import json
import logging
import os
from typing import Callable, Generic, Optional

import redis
from redis.client import Pipeline
from redis.exceptions import RedisError, WatchError

from adapter.client_cache import CachedClient
from domain.model.pending import PendingT

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv('REDIS_URL', '')
SIGNUP_KEY_PREFIX = 'auth:pending_signup:'
RESET_KEY_PREFIX = 'auth:pending_reset:'
_MAX_WATCH_RETRIES = 5


def _connect(url: str) -> redis.Redis:
    return redis.from_url(url, decode_responses=True, socket_connect_timeout=5)


class RedisPendingStore(Generic[PendingT]):
    def __init__(self, record_type: type[PendingT], key_prefix: str, url: str = REDIS_URL):
        self._record_type = record_type
        self._prefix = key_prefix
        self._client = CachedClient(
            "REDIS",
            url,
            connect=_connect,
            ping=lambda client: client.ping(),
            errors=(RedisError, ValueError, OSError),
        )

    def _get_client(self) -> Optional[redis.Redis]:
        return self._client.get()

    def _key(self, email: str) -> str:
        return f"{self._prefix}{email}"

    def _decode(self, raw: str | None) -> PendingT | None:
        if not raw:
            return None
        try:
            return self._record_type.from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.warning("Discarding unreadable pending record", extra={"error": str(e)})
            return None

    # ── PendingStore implementation ──────────────────────────

    def put(self, record: PendingT) -> bool:
        client = self._get_client()
        if not client:
            return False

        ttl = record.ttl_seconds()
        if ttl <= 0:
            return False
        try:
            client.set(self._key(record.email), json.dumps(record.to_dict()), ex=ttl)
            return True
        except RedisError as e:
            logger.error("Failed to store pending record", extra={"error": str(e)})
            return False

    def get(self, email: str) -> PendingT | None:
        client = self._get_client()
        if not client:
            return None
        try:
            record = self._decode(client.get(self._key(email)))
        except RedisError as e:
            logger.error("Failed to read pending record", extra={"error": str(e)})
            return None
        if record is None or record.is_expired():
            return None
        return record

    def consume(self, email: str, otp: str) -> PendingT | None:
        def _match(current: PendingT | None) -> bool:
            return current is not None and not current.is_expired() and current.matches(otp)

        return self._write_if(email, _match, lambda pipe, key: pipe.delete(key))

    def replace(self, previous: PendingT, record: PendingT) -> bool:
        ttl = record.ttl_seconds()
        if ttl <= 0:
            return False
        payload = json.dumps(record.to_dict())

        def _same(current: PendingT | None) -> bool:
            return current is not None and current.same_issue(previous)

        def _set(pipe: Pipeline, key: str) -> None:
            pipe.set(key, payload, ex=ttl)

        return self._write_if(previous.email, _same, _set) is not None

    def discard(self, record: PendingT) -> bool:
        def _same(current: PendingT | None) -> bool:
            return current is not None and current.same_issue(record)

        return self._write_if(record.email, _same, lambda pipe, key: pipe.delete(key)) is not None

    def restore(self, record: PendingT) -> bool:
        client = self._get_client()
        if not client:
            return False

        ttl = record.ttl_seconds()
        if ttl <= 0:
            return False
        try:
            # NX: a newer signup for the same email wins over the restored one
            stored = client.set(self._key(record.email), json.dumps(record.to_dict()), ex=ttl, nx=True)
            return bool(stored)
        except RedisError as e:
            logger.error("Failed to restore pending record", extra={"error": str(e)})
            return False

    def ping(self) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            return bool(client.ping())
        except RedisError:
            return False

    # ── helpers ──────────────────────────────────────────────

    def _write_if(
        self,
        email: str,
        predicate: Callable[[PendingT | None], bool],
        write: Callable[[Pipeline, str], object],
    ) -> PendingT | None:
        """Queue write(pipe, key) under WATCH when predicate(current) holds; return current."""
        client = self._get_client()
        if not client:
            return None

        key = self._key(email)
        try:
            with client.pipeline() as pipe:
                for _ in range(_MAX_WATCH_RETRIES):
                    try:
                        pipe.watch(key)
                        current = self._decode(pipe.get(key))
                        if not predicate(current):
                            pipe.unwatch()
                            return None
                        pipe.multi()
                        write(pipe, key)
                        pipe.execute()
                        return current
                    except WatchError:
                        logger.debug("Pending record changed during update, retrying")
                        continue
        except RedisError as e:
            logger.error("Failed to update pending record", extra={"error": str(e)})
            return None

        logger.warning("Gave up updating pending record after concurrent changes")
        return None
