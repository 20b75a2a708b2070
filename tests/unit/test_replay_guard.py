"""Replay-guard backends"""
import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from services.qr_validation.services.replay_guard import (
    KEY_PREFIX,
    MemoryReplayGuard,
    RedisReplayGuard,
    build_replay_guard,
)

from fixtures.fake_redis import FakeRedis, client_factory


def redis_guard(client):
    return RedisReplayGuard(client_factory(client))


def test_memory_guard_first_caller_wins():
    guard = MemoryReplayGuard()

    async def run():
        return [await guard.mark_used("n1", 60), await guard.mark_used("n1", 60), await guard.mark_used("n2", 60)]

    assert asyncio.run(run()) == [True, False, True]


def test_memory_guard_mark_expires():
    now = [1000.0]
    guard = MemoryReplayGuard(monotonic=lambda: now[0])

    async def run():
        first = await guard.mark_used("n1", 300)
        now[0] += 299
        during = await guard.mark_used("n1", 300)
        now[0] += 1
        after = await guard.mark_used("n1", 300)
        return first, during, after

    assert asyncio.run(run()) == (True, False, True)


def test_memory_guard_release():
    guard = MemoryReplayGuard()

    async def run():
        await guard.mark_used("n1", 60)
        await guard.release("n1")
        return await guard.mark_used("n1", 60)

    assert asyncio.run(run()) is True


def test_redis_guard_uses_set_nx_with_ttl():
    client = FakeRedis()
    guard = redis_guard(client)

    async def run():
        return await guard.mark_used("abc", 305), await guard.mark_used("abc", 305)

    assert asyncio.run(run()) == (True, False)
    key, token, nx, ex = client.set_calls[0]
    assert (key, nx, ex) == (KEY_PREFIX + "abc", True, 305)
    assert client.store[key] == token


def test_redis_guard_retries_transient_errors():
    client = FakeRedis(failures=1)
    assert asyncio.run(redis_guard(client).mark_used("abc", 60)) is True
    assert len(client.set_calls) == 2


def test_redis_guard_gives_up_after_retries():
    client = FakeRedis(failures=10)
    with pytest.raises(RedisConnectionError):
        asyncio.run(redis_guard(client).mark_used("abc", 60))
    assert len(client.set_calls) == 3


def test_redis_guard_release_deletes_key():
    client = FakeRedis()
    guard = redis_guard(client)

    async def run():
        await guard.mark_used("abc", 60)
        await guard.release("abc")
        return await guard.mark_used("abc", 60)

    assert asyncio.run(run()) is True
    assert KEY_PREFIX + "abc" in client.store


def test_build_replay_guard():
    assert isinstance(build_replay_guard("memory"), MemoryReplayGuard)
    with pytest.raises(ValueError):
        build_replay_guard("redis")
    with pytest.raises(ValueError):
        build_replay_guard("postgres")


def test_redis_guard_wins_when_first_reply_is_lost():
    client = FakeRedis(lost_replies=1)
    assert asyncio.run(redis_guard(client).mark_used("abc", 60)) is True
    assert len(client.set_calls) == 2


def test_redis_guard_lost_reply_does_not_let_second_scan_win():
    client = FakeRedis(lost_replies=1)
    guard = redis_guard(client)

    async def run():
        return await guard.mark_used("abc", 60), await guard.mark_used("abc", 60)

    assert asyncio.run(run()) == (True, False)


def test_redis_guard_retry_loses_to_competing_mark():
    client = FakeRedis(failures=1)
    client.store[KEY_PREFIX + "abc"] = "someone-else"
    assert asyncio.run(redis_guard(client).mark_used("abc", 60)) is False
