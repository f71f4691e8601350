"""
Identity Locks
==============
Per-identity mutual exclusion around read-check-write of OTP state,
so two concurrent attempts cannot both consume the same counter.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import structlog
from redis.exceptions import LockError

from .exceptions import IdentityLockError

logger = structlog.get_logger(__name__)


class InMemoryIdentityLocks:
    """
    Process-local identity locks.

    For single-process deployments and testing.
    Use RedisIdentityLocks when several workers share identities.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds to wait for a lock; None waits forever
        """
        self.timeout = timeout
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        # Entries live only while some attempt holds or waits for them
        with self._registry_lock:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            acquired = lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
            if not acquired:
                logger.warning("Identity lock timeout", key=key)
                raise IdentityLockError(key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


class RedisIdentityLocks:
    """
    Redis-backed identity locks, shared across workers.

    Uses redis-py's Lock so an expired holder cannot release a lock
    taken over by someone else.
    """

    def __init__(
        self,
        redis_client,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
        prefix: str = "otp:lock",
    ):
        """
        Args:
            redis_client: Sync Redis client
            timeout: Lock TTL in seconds
            blocking_timeout: Seconds to wait for the lock
            prefix: Key prefix
        """
        self.redis = redis_client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.prefix = prefix

    def get_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.redis.lock(
            self.get_key(key),
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        if not lock.acquire():
            logger.warning("Identity lock timeout", key=key, backend="redis")
            raise IdentityLockError(key)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                logger.warning("Identity lock expired before release", key=key, backend="redis")
