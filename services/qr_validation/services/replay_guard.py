"""
Replay-guard for scanned QR payloads.

``mark_used`` is an atomic check-and-set: of any number of concurrent calls
for the same nonce exactly one returns True until the mark expires.
"""
import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from shared.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

KEY_PREFIX = "qr:used:"


class ReplayGuard:
    """Interface implemented by the storage backends"""

    async def mark_used(self, nonce: str, ttl_seconds: int) -> bool:
        raise NotImplementedError

    async def release(self, nonce: str) -> None:
        raise NotImplementedError


class RedisReplayGuard(ReplayGuard):
    """
    Shared across API instances through ``SET key NX EX ttl``.

    Each call writes its own token so a retried SET can tell its earlier,
    unacknowledged write apart from a competing scan.
    """

    def __init__(self, get_client: Callable[[], Awaitable[redis.Redis]], max_retries: int = 2):
        self.get_client = get_client
        self.max_retries = max_retries

    async def mark_used(self, nonce: str, ttl_seconds: int) -> bool:
        client = await self.get_client()
        key = KEY_PREFIX + nonce
        token = uuid.uuid4().hex
        attempts = 0

        async def _set():
            nonlocal attempts
            attempts += 1
            if await client.set(key, token, nx=True, ex=ttl_seconds):
                return True
            if attempts == 1:
                return False
            # an earlier attempt may have been applied with its reply lost
            stored = await client.get(key)
            if isinstance(stored, bytes):
                stored = stored.decode("utf-8")
            return stored == token

        won = await retry_with_backoff(
            _set,
            max_retries=self.max_retries,
            initial_delay=0.05,
            max_delay=0.5,
            exceptions=(RedisConnectionError, RedisTimeoutError),
        )
        return bool(won)

    async def release(self, nonce: str) -> None:
        client = await self.get_client()
        await client.delete(KEY_PREFIX + nonce)


class MemoryReplayGuard(ReplayGuard):
    """Single-process backend for development and tests"""

    def __init__(self, monotonic: Callable[[], float] = time.monotonic):
        self.monotonic = monotonic
        self._expires_at: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def mark_used(self, nonce: str, ttl_seconds: int) -> bool:
        async with self._lock:
            now = self.monotonic()
            self._purge(now)
            if nonce in self._expires_at:
                return False
            self._expires_at[nonce] = now + ttl_seconds
            return True

    async def release(self, nonce: str) -> None:
        async with self._lock:
            self._expires_at.pop(nonce, None)

    def _purge(self, now: float) -> None:
        expired = [n for n, deadline in self._expires_at.items() if deadline <= now]
        for nonce in expired:
            del self._expires_at[nonce]

    def __len__(self) -> int:
        return len(self._expires_at)


def build_replay_guard(backend: str, get_client: Optional[Callable[[], Awaitable[redis.Redis]]] = None) -> ReplayGuard:
    if backend == "memory":
        logger.warning("Using in-process replay-guard; marks are not shared between workers")
        return MemoryReplayGuard()
    if backend == "redis":
        if get_client is None:
            raise ValueError("redis replay-guard needs a client factory")
        return RedisReplayGuard(get_client)
    raise ValueError(f"Unknown REPLAY_GUARD_BACKEND: {backend!r}")
