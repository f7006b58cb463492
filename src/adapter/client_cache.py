"""Lazily connected, ping-checked client shared by the MongoDB and Redis adapters."""

import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C")


class CachedClient(Generic[C]):
    """Connect on first use and reconnect when the cached client stops answering.

    A failure on the very first attempt is taken as misconfiguration, after
    which get() returns None without trying again.
    """

    def __init__(
        self,
        label: str,
        url: str,
        connect: Callable[[str], C],
        ping: Callable[[C], object],
        errors: tuple[type[Exception], ...],
    ):
        self.label = label
        self._url = url
        self._connect = connect
        self._ping = ping
        self._errors = errors
        self._client: Optional[C] = None
        self._connected_once = False
        self._gave_up = False

    def get(self) -> Optional[C]:
        if self._client is not None:
            try:
                self._ping(self._client)
                return self._client
            except self._errors:
                self._client = None
                logger.debug(f"[{self.label}] Cached client failed ping, reconnecting")

        if self._gave_up:
            return None

        if not self._url:
            logger.error(f"[{self.label}] Connection URL not configured")
            self._gave_up = True
            return None

        try:
            client = self._connect(self._url)
            self._ping(client)
        except self._errors as e:
            if not self._connected_once:
                logger.error(f"[{self.label}] Initial connection failed: {str(e)[:200]}")
                self._gave_up = True
            return None

        if not self._connected_once:
            logger.info(f"[{self.label}] Connected successfully")
        self._connected_once = True
        self._client = client
        return client
