"""In-memory stand-in for the redis.asyncio client"""
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError


class FakeRedis:
    """Implements the SET NX EX / GET / DEL subset the guard relies on"""

    def __init__(self, failures: int = 0, lost_replies: int = 0):
        self.store = {}
        self.failures = failures
        self.lost_replies = lost_replies
        self.set_calls = []

    async def set(self, key, value, nx=False, ex=None):
        self.set_calls.append((key, value, nx, ex))
        if self.failures:
            self.failures -= 1
            raise RedisConnectionError("connection reset")
        if nx and key in self.store:
            return None
        self.store[key] = value
        if self.lost_replies:
            self.lost_replies -= 1
            raise RedisTimeoutError("reply lost")
        return True

    async def get(self, key):
        return self.store.get(key)

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


def client_factory(client):
    async def get_client():
        return client
    return get_client
