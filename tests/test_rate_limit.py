import asyncio
import time

import pytest
from starlette.requests import Request

from app.api.middleware.rate_limit_middleware import client_identity
from app.services.rate_limit.rate_limit_store import InMemoryRateLimitStore, RedisRateLimitStore


def test_in_memory_store_enforces_the_limit_per_key() -> None:
    store = InMemoryRateLimitStore()

    async def run():
        first = [await store.hit('1.2.3.4', 3, 60) for _ in range(4)]
        other = await store.hit('5.6.7.8', 3, 60)
        return first, other

    results, other = asyncio.run(run())

    assert results == [True, True, True, False]
    assert other is True


def test_in_memory_store_reset_clears_counts() -> None:
    store = InMemoryRateLimitStore()

    async def run():
        await store.hit('1.2.3.4', 1, 60)
        store.reset()
        return await store.hit('1.2.3.4', 1, 60)

    assert asyncio.run(run()) is True


class FakePipeline:
    def __init__(self, counts: dict):
        self.counts = counts
        self.key = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def incr(self, key):
        self.key = key
        self.counts[key] = self.counts.get(key, 0) + 1

    def expire(self, key, seconds):
        pass

    async def execute(self):
        return [self.counts[self.key], True]


class FakeRedis:
    def __init__(self):
        self.counts = {}

    def pipeline(self, transaction=True):
        return FakePipeline(self.counts)


def test_redis_store_counts_per_window() -> None:
    client = FakeRedis()
    store = RedisRateLimitStore(client)

    async def run():
        return [await store.hit('1.2.3.4', 2, 60) for _ in range(3)]

    assert asyncio.run(run()) == [True, True, False]
    assert all(key.startswith('ratelimit:public:1.2.3.4:') for key in client.counts)


def test_in_memory_store_forgets_clients_whose_window_has_passed() -> None:
    store = InMemoryRateLimitStore()
    old = time.time() - 120
    for n in range(50):
        store.request_times[f'198.51.100.{n}'] = [old]

    assert asyncio.run(store.hit('1.2.3.4', 3, 60)) is True
    assert list(store.request_times) == ['1.2.3.4']


def make_request(peer: str, forwarded: str = None) -> Request:
    headers = [(b'x-forwarded-for', forwarded.encode())] if forwarded else []
    return Request({'type': 'http', 'method': 'GET', 'path': '/', 'headers': headers, 'client': (peer, 5000)})


def test_client_identity_ignores_forwarded_for_without_trusted_proxies() -> None:
    request = make_request('10.0.0.7', forwarded='203.0.113.9')

    assert client_identity(request) == '10.0.0.7'


@pytest.mark.parametrize(
    ('forwarded', 'trusted_proxy_count', 'expected'),
    [
        ('203.0.113.9', 1, '203.0.113.9'),
        ('1.1.1.1, 203.0.113.9', 1, '203.0.113.9'),
        ('1.1.1.1, 203.0.113.9, 10.0.0.2', 2, '203.0.113.9'),
        (None, 1, '10.0.0.7'),
    ],
)
def test_client_identity_reads_the_hop_added_by_the_outermost_trusted_proxy(
        forwarded, trusted_proxy_count, expected
) -> None:
    request = make_request('10.0.0.7', forwarded=forwarded)

    assert client_identity(request, trusted_proxy_count) == expected
