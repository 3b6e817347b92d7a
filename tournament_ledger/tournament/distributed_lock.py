"""
Record Locking.

Mutations against the registry are serialized the way a ledger serializes
transactions: a caller holds exclusive access to the target record for
the whole validate-then-commit step and releases it on every exit path.

Lock keys:
- lock:registry                 # create (reads and bumps the counter)
- lock:tournament:{id}          # join / start / end on one record

Two interchangeable backends:
- LocalLockManager: asyncio locks, single process (default)
- DistributedLockManager: Redis SET NX PX, several processes
"""

import asyncio
import hashlib
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator, Dict, Optional, Set, Union
from uuid import uuid4

import redis.asyncio as redis

from ..logging_config import get_logger

logger = get_logger(__name__)


class LockType(Enum):
    """Lock granularity types."""

    REGISTRY = "registry"  # whole registry
    TOURNAMENT = "tournament"  # single record


@dataclass
class LockInfo:
    """Lock metadata."""

    lock_key: str
    owner_id: str
    acquired_at: float
    expires_at: Optional[float]
    lock_type: LockType


class DistributedLockError(Exception):
    """Base lock error."""

    pass


class LockAcquisitionError(DistributedLockError):
    """Failed to acquire lock within timeout."""

    pass


def make_lock_key(lock_type: LockType, resource_id: Optional[Union[int, str]] = None) -> str:
    if lock_type == LockType.REGISTRY:
        return "lock:registry"
    return f"lock:tournament:{resource_id}"


class LocalLockManager:
    """
    In-process lock manager backed by one asyncio.Lock per key.

    A key's lock lives only while someone holds or waits for it, so
    requests for ids that never existed leave nothing behind.
    """

    def __init__(self, default_acquire_timeout_ms: int = 5000):
        self.default_acquire_timeout_ms = default_acquire_timeout_ms
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @property
    def tracked_locks(self) -> int:
        return len(self._locks)

    def _get_lock(self, lock_key: str) -> asyncio.Lock:
        lock = self._locks.get(lock_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[lock_key] = lock
        self._users[lock_key] = self._users.get(lock_key, 0) + 1
        return lock

    def _put_lock(self, lock_key: str) -> None:
        remaining = self._users[lock_key] - 1
        if remaining:
            self._users[lock_key] = remaining
        else:
            del self._users[lock_key]
            del self._locks[lock_key]

    async def is_locked(
        self,
        lock_type: LockType,
        resource_id: Optional[Union[int, str]] = None,
    ) -> bool:
        lock = self._locks.get(make_lock_key(lock_type, resource_id))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def lock(
        self,
        lock_type: LockType,
        resource_id: Optional[Union[int, str]] = None,
        acquire_timeout_ms: Optional[int] = None,
    ) -> AsyncGenerator[LockInfo, None]:
        lock_key = make_lock_key(lock_type, resource_id)
        timeout_ms = acquire_timeout_ms or self.default_acquire_timeout_ms
        lock = self._get_lock(lock_key)

        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                raise LockAcquisitionError(
                    f"Failed to acquire lock {lock_key} within {timeout_ms}ms"
                ) from None

            try:
                yield LockInfo(
                    lock_key=lock_key,
                    owner_id=str(id(lock)),
                    acquired_at=time.time(),
                    expires_at=None,
                    lock_type=lock_type,
                )
            finally:
                lock.release()
        finally:
            self._put_lock(lock_key)

    async def cleanup_all(self) -> int:
        """Nothing outlives the process; kept for interface parity."""
        return 0


class DistributedLockManager:
    """
    Redis-based lock manager.

    - SET NX PX: atomic acquire with expiry, so a crashed holder cannot
      block a record forever
    - GET + DEL in Lua: release only if we still own the token
    - fixed retry interval until the acquire timeout
    """

    # Release only when the stored token is ours
    RELEASE_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        default_lock_timeout_ms: int = 10000,
        default_acquire_timeout_ms: int = 5000,
        retry_interval_ms: int = 50,
    ):
        self.redis = redis_client
        self.default_lock_timeout_ms = default_lock_timeout_ms
        self.default_acquire_timeout_ms = default_acquire_timeout_ms
        self.retry_interval_ms = retry_interval_ms

        self._instance_id = str(uuid4())
        self._held_locks: Set[str] = set()
        self._release_script = None

    def _ensure_scripts(self) -> None:
        if self._release_script is None:
            self._release_script = self.redis.register_script(self.RELEASE_LOCK_SCRIPT)

    def _make_owner_token(self) -> str:
        raw = f"{self._instance_id}:{time.time_ns()}:{uuid4().hex[:8]}"
        return hashlib.sha256(raw.encode()).hexdigest()[:32]

    async def acquire(
        self,
        lock_type: LockType,
        resource_id: Optional[Union[int, str]] = None,
        lock_timeout_ms: Optional[int] = None,
        acquire_timeout_ms: Optional[int] = None,
    ) -> LockInfo:
        """
        Acquire a lock, retrying until ``acquire_timeout_ms``.

        Raises:
            LockAcquisitionError: If lock cannot be acquired within timeout
        """
        self._ensure_scripts()

        lock_timeout = lock_timeout_ms or self.default_lock_timeout_ms
        acquire_timeout = acquire_timeout_ms or self.default_acquire_timeout_ms

        lock_key = make_lock_key(lock_type, resource_id)
        owner_token = self._make_owner_token()
        start_time = time.monotonic() * 1000

        while True:
            acquired = await self.redis.set(
                lock_key,
                owner_token,
                nx=True,
                px=lock_timeout,
            )

            if acquired:
                now = time.time()
                self._held_locks.add(lock_key)
                return LockInfo(
                    lock_key=lock_key,
                    owner_id=owner_token,
                    acquired_at=now,
                    expires_at=now + (lock_timeout / 1000),
                    lock_type=lock_type,
                )

            elapsed = (time.monotonic() * 1000) - start_time
            if elapsed >= acquire_timeout:
                raise LockAcquisitionError(
                    f"Failed to acquire lock {lock_key} within {acquire_timeout}ms. "
                    f"Lock is held by another process."
                )

            await asyncio.sleep(self.retry_interval_ms / 1000)

    async def release(self, lock_info: LockInfo) -> bool:
        """
        Release a lock.

        Returns:
            True if released, False if it had expired or was taken over
        """
        self._ensure_scripts()

        result = await self._release_script(
            keys=[lock_info.lock_key],
            args=[lock_info.owner_id],
        )

        self._held_locks.discard(lock_info.lock_key)
        if result != 1:
            logger.warning("lock_lost_before_release", lock_key=lock_info.lock_key)
        return result == 1

    async def is_locked(
        self,
        lock_type: LockType,
        resource_id: Optional[Union[int, str]] = None,
    ) -> bool:
        return await self.redis.exists(make_lock_key(lock_type, resource_id)) == 1

    @asynccontextmanager
    async def lock(
        self,
        lock_type: LockType,
        resource_id: Optional[Union[int, str]] = None,
        acquire_timeout_ms: Optional[int] = None,
    ) -> AsyncGenerator[LockInfo, None]:
        """Acquire on entry, release in finally."""
        lock_info = await self.acquire(
            lock_type,
            resource_id,
            acquire_timeout_ms=acquire_timeout_ms,
        )
        try:
            yield lock_info
        finally:
            await self.release(lock_info)

    async def cleanup_all(self) -> int:
        """
        Delete every lock this instance still holds.

        Called on shutdown; locks of a crashed instance expire on their own.
        """
        released = 0
        for lock_key in list(self._held_locks):
            await self.redis.delete(lock_key)
            self._held_locks.discard(lock_key)
            released += 1
        return released


LockManager = Union[LocalLockManager, DistributedLockManager]
