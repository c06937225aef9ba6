import pytest

from babyname.services.rate_limit_service import (
    MemoryCooldownStore,
    NameRateLimiter,
    RedisCooldownStore,
)


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


class FakeRedis:
    def __init__(self) -> None:
        self.data = {}
        self.expires = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expires[key] = ex

    async def delete(self, key):
        self.data.pop(key, None)

    async def aclose(self):
        self.closed = True


class BrokenRedis(FakeRedis):
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")


def memory_limiter(clock: FakeClock, cooldown: int = 30) -> NameRateLimiter:
    return NameRateLimiter(MemoryCooldownStore(clock=clock), cooldown_seconds=cooldown, clock=clock)


@pytest.mark.anyio
async def test_first_request_allowed_second_denied_with_wait():
    clock = FakeClock()
    limiter = memory_limiter(clock)

    first = await limiter.check_limit("BABY-AAAA-BBBB-CCCC")
    assert first.allowed is True

    clock.advance(10)
    second = await limiter.check_limit("BABY-AAAA-BBBB-CCCC")
    assert second.allowed is False
    assert second.wait_seconds == 20


@pytest.mark.anyio
async def test_wait_seconds_rounds_up():
    clock = FakeClock()
    limiter = memory_limiter(clock)
    await limiter.check_limit("user")

    clock.advance(29.5)
    result = await limiter.check_limit("user")
    assert result.allowed is False
    assert result.wait_seconds == 1


@pytest.mark.anyio
async def test_allowed_again_exactly_at_cooldown():
    clock = FakeClock()
    limiter = memory_limiter(clock)
    await limiter.check_limit("user")

    clock.advance(30)
    result = await limiter.check_limit("user")
    assert result.allowed is True


@pytest.mark.anyio
async def test_denied_request_does_not_extend_cooldown():
    clock = FakeClock()
    limiter = memory_limiter(clock)
    await limiter.check_limit("user")

    clock.advance(20)
    assert (await limiter.check_limit("user")).allowed is False
    clock.advance(10)
    assert (await limiter.check_limit("user")).allowed is True


@pytest.mark.anyio
async def test_users_are_limited_independently():
    clock = FakeClock()
    limiter = memory_limiter(clock)

    assert (await limiter.check_limit("user-a")).allowed is True
    assert (await limiter.check_limit("user-b")).allowed is True
    assert (await limiter.check_limit("user-a")).allowed is False


@pytest.mark.anyio
async def test_get_wait_seconds_is_read_only():
    clock = FakeClock()
    limiter = memory_limiter(clock)

    assert await limiter.get_wait_seconds("user") == 0
    assert (await limiter.check_limit("user")).allowed is True

    clock.advance(5)
    assert await limiter.get_wait_seconds("user") == 25
    clock.advance(25)
    assert await limiter.get_wait_seconds("user") == 0
    assert (await limiter.check_limit("user")).allowed is True


@pytest.mark.anyio
async def test_reset_limit_clears_cooldown():
    clock = FakeClock()
    limiter = memory_limiter(clock)
    await limiter.check_limit("user")

    await limiter.reset_limit("user")
    assert (await limiter.check_limit("user")).allowed is True


@pytest.mark.anyio
async def test_memory_store_prunes_expired_entries_over_threshold():
    clock = FakeClock()
    store = MemoryCooldownStore(max_entries=3, clock=clock)
    limiter = NameRateLimiter(store, cooldown_seconds=30, clock=clock)

    for user in ("a", "b", "c"):
        await limiter.check_limit(user)
    clock.advance(31)
    await limiter.check_limit("d")
    assert len(store) == 1

    await limiter.check_limit("e")
    assert len(store) == 2


@pytest.mark.anyio
async def test_redis_backend_matches_memory_semantics():
    clock = FakeClock()
    fake_redis = FakeRedis()
    limiter = NameRateLimiter(RedisCooldownStore(fake_redis), cooldown_seconds=30, clock=clock)
    memory = memory_limiter(clock)

    for step in (0, 10, 19.5, 0.5, 1):
        clock.advance(step)
        redis_result = await limiter.check_limit("user")
        memory_result = await memory.check_limit("user")
        assert redis_result == memory_result

    assert fake_redis.expires["ratelimit:name:user"] == 30


@pytest.mark.anyio
async def test_backend_errors_fail_open():
    limiter = NameRateLimiter(RedisCooldownStore(BrokenRedis()), cooldown_seconds=30)

    assert (await limiter.check_limit("user")).allowed is True
    assert (await limiter.check_limit("user")).allowed is True
    assert await limiter.get_wait_seconds("user") == 0


@pytest.mark.anyio
async def test_from_redis_picks_backend_and_close_releases_client():
    fake_redis = FakeRedis()
    with_redis = NameRateLimiter.from_redis(fake_redis)
    without_redis = NameRateLimiter.from_redis(None)

    assert isinstance(with_redis.store, RedisCooldownStore)
    assert isinstance(without_redis.store, MemoryCooldownStore)

    await with_redis.close()
    assert fake_redis.closed is True
