from datetime import timedelta

import redis

from app.core.rate_limit import MemoryRateLimitStore, RateLimiter, RedisRateLimitStore
from app.core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    create_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models.article import calculate_reading_time
from app.services.article_service import clamp_limit, default_excerpt
from app.utils.slug import slugify, unique_slug


class TestSlug:
    def test_basic(self):
        assert slugify("Hello, World!") == "hello-world"

    def test_ascii_folding(self):
        assert slugify("Café Crème Brûlée") == "cafe-creme-brulee"

    def test_collapses_and_trims_separators(self):
        assert slugify("  --Python   &  FastAPI--  ") == "python-fastapi"

    def test_truncates(self):
        assert len(slugify("a" * 500)) == 200

    def test_unique_slug_appends_counter(self):
        taken = {"my-post", "my-post-1"}
        assert unique_slug("My Post", lambda s: s in taken) == "my-post-2"
        assert unique_slug("Fresh", lambda s: s in taken) == "fresh"

    def test_unique_slug_fallback_for_empty(self):
        assert unique_slug("!!!", lambda s: False, "article") == "article"

    def test_unique_slug_skips_reserved(self):
        assert unique_slug("Trending", lambda s: False, reserved={"trending"}) == "trending-1"
        assert unique_slug("Trending", lambda s: s == "trending-1", reserved={"trending"}) == "trending-2"


class TestReadingTime:
    def test_minimum_is_one_minute(self):
        assert calculate_reading_time("") == 1
        assert calculate_reading_time("x" * 1000) == 1

    def test_scales_with_length(self):
        assert calculate_reading_time("x" * 300000) == 300
        assert calculate_reading_time("x" * 2000) == 2


def test_default_excerpt():
    assert default_excerpt("short") == ""
    long = "y" * 250
    assert default_excerpt(long) == "y" * 200 + "..."


def test_clamp_limit():
    assert clamp_limit(None, 10, 50) == 10
    assert clamp_limit(0, 10, 50) == 10
    assert clamp_limit(500, 10, 50) == 50
    assert clamp_limit(7, 10, 50) == 7


class TestSecurity:
    def test_password_hashing(self):
        hashed = get_password_hash("Secret123")
        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed)
        assert not verify_password("wrong", hashed)
        assert not verify_password("Secret123", None)

    def test_access_token_round_trip(self):
        token, _ = create_access_token("user-1", "a@example.com", "author")
        payload = decode_token(token, ACCESS_TOKEN)
        assert payload["sub"] == "user-1"
        assert payload["role"] == "author"
        assert payload["token_type"] == ACCESS_TOKEN

    def test_token_type_is_enforced(self):
        refresh, _ = create_refresh_token("user-1", "a@example.com", "reader")
        assert decode_token(refresh, ACCESS_TOKEN) is None
        assert decode_token(refresh, REFRESH_TOKEN)["sub"] == "user-1"

    def test_expired_and_garbage_tokens_are_rejected(self):
        expired, _ = create_token("user-1", "a@example.com", "reader", expires_delta=timedelta(seconds=-5))
        assert decode_token(expired) is None
        assert decode_token("not-a-jwt") is None


class FakePipeline:
    def __init__(self, server):
        self.server = server
        self.commands = []

    def set(self, key, value, ex=None, nx=False):
        self.commands.append(("set", key, value, ex, nx))
        return self

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    def execute(self):
        if self.server.down:
            raise redis.ConnectionError("connection refused")
        results = []
        for command in self.commands:
            if command[0] == "set":
                _, key, value, ex, nx = command
                if nx and key in self.server.values:
                    results.append(None)
                    continue
                self.server.values[key] = value
                self.server.ttls[key] = ex
                results.append(True)
            else:
                self.server.values[command[1]] += 1
                results.append(self.server.values[command[1]])
        return results


class FakeRedis:
    def __init__(self, down=False):
        self.down = down
        self.values = {}
        self.ttls = {}
        self.transactions = []

    def pipeline(self, transaction=True):
        self.transactions.append(transaction)
        return FakePipeline(self)


class TestRateLimiter:
    def test_fixed_window(self):
        limiter = RateLimiter(limit=3, window_seconds=60, store=MemoryRateLimitStore())
        results = [limiter.allow("ip:1.2.3.4") for _ in range(4)]
        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert [remaining for _, remaining in results] == [2, 1, 0, 0]

    def test_keys_are_independent(self):
        limiter = RateLimiter(limit=1, window_seconds=60, store=MemoryRateLimitStore())
        assert limiter.allow("user:a")[0]
        assert limiter.allow("user:b")[0]
        assert not limiter.allow("user:a")[0]

    def test_window_expiry(self):
        limiter = RateLimiter(limit=1, window_seconds=0, store=MemoryRateLimitStore())
        assert limiter.allow("k")[0]
        assert limiter.allow("k")[0]

    def test_redis_store_sets_ttl_with_increment(self):
        store = RedisRateLimitStore("redis://localhost:6379/0")
        store.client = FakeRedis()
        assert store.hit("rl:k", 60) == 1
        assert store.client.ttls["rl:k"] == 60
        store.client.ttls["rl:k"] = 42
        assert store.hit("rl:k", 60) == 2
        # the window is not extended by later hits
        assert store.client.ttls["rl:k"] == 42
        assert store.client.transactions == [True, True]

    def test_redis_outage_fails_open(self):
        store = RedisRateLimitStore("redis://localhost:6379/0")
        store.client = FakeRedis(down=True)
        limiter = RateLimiter(limit=1, window_seconds=60, store=store)
        assert limiter.allow("k") == (True, 1)
        assert limiter.allow("k") == (True, 1)
