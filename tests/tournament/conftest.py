"""Shared fixtures for tournament tests."""

from datetime import datetime, timezone

import pytest
import redis.asyncio as redis


class MockRedis:
    """Mock Redis client."""

    def __init__(self):
        self._data = {}
        self._streams = {}
        self.fail_streams = False

    async def ping(self):
        return True

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self._data:
            return None
        self._data[key] = value
        return True

    async def get(self, key):
        return self._data.get(key)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed

    async def exists(self, key):
        return 1 if key in self._data else 0

    def register_script(self, script):
        # only the compare-and-delete release script is registered
        async def release(keys=None, args=None):
            if self._data.get(keys[0]) == args[0]:
                del self._data[keys[0]]
                return 1
            return 0

        return release

    async def xadd(self, stream, data, maxlen=None, approximate=False):
        if self.fail_streams:
            raise redis.ConnectionError("stream unavailable")
        entries = self._streams.setdefault(stream, [])
        entry_id = f"{int(datetime.now(timezone.utc).timestamp() * 1000)}-{len(entries)}"
        entries.append((entry_id, dict(data)))
        return entry_id

    def stream(self, name):
        return [fields for _, fields in self._streams.get(name, [])]


@pytest.fixture
def mock_redis():
    return MockRedis()
