"""
Tests for the TTL caches and the cache service.
"""
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock
from repo_context.cache import CacheService, NoOpCache, TTLCache, get_cache, make_namespace
from repo_context.selection import FileSelector


def test_round_trip_within_ttl(clock):
    cache = TTLCache("test", ttl_s=60, clock=clock)
    cache.set("k", ["a.ts"])

    clock.advance(59)
    assert cache.get("k") == ["a.ts"]


def test_expired_entry_is_never_returned(clock):
    cache = TTLCache("test", ttl_s=60, clock=clock)
    cache.set("k", "value")

    clock.advance(60)
    assert cache.get("k") is None
    # Expired key is removed on read
    assert len(cache) == 0


def test_per_entry_ttl_override(clock):
    cache = TTLCache("test", ttl_s=60, clock=clock)
    cache.set("short", 1, ttl_s=5)
    cache.set("long", 2)

    clock.advance(10)
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_sweep_runs_every_n_writes(clock):
    cache = TTLCache("test", ttl_s=10, clock=clock, sweep_interval=3)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(11)

    # Third write triggers the sweep of a and b
    cache.set("c", 3)
    assert len(cache) == 1


def test_purge_and_stats(clock):
    cache = TTLCache("test", ttl_s=10, clock=clock)
    cache.set("a", 1)
    cache.get("a")
    cache.get("missing")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == "50.0%"

    clock.advance(10)
    assert cache.purge() == 1
    assert cache.stats()["entries"] == 0


def test_delete_prefix(clock):
    cache = TTLCache("test", ttl_s=10, clock=clock)
    cache.set("acme/web:q1", 1)
    cache.set("acme/web:q2", 2)
    cache.set("acme/webapp:q1", 3)

    assert cache.delete_prefix("acme/web:") == 2
    assert cache.get("acme/webapp:q1") == 3


def test_empty_cache_is_used_when_injected(clock):
    """An injected empty cache must not be replaced by a default one."""
    selection = TTLCache("custom", ttl_s=1, clock=clock)
    service = CacheService(selection=selection)
    assert service.selection is selection


def test_selection_keys_normalize_query(caches):
    caches.store_selection("acme/web", "  How does LOGIN work? ", ["src/login.ts"])

    assert caches.load_selection("acme/web", "how does login work?") == ["src/login.ts"]
    assert caches.load_selection("acme/api", "how does login work?") is None


def test_selection_values_are_copies(caches):
    files = ["a.ts"]
    caches.store_selection("acme/web", "q", files)
    files.append("b.ts")

    loaded = caches.load_selection("acme/web", "q")
    loaded.append("c.ts")
    assert caches.load_selection("acme/web", "q") == ["a.ts"]


def test_selection_ttl_is_24h(caches, clock):
    caches.store_selection("acme/web", "q", ["a.ts"])

    clock.advance(86399)
    assert caches.load_selection("acme/web", "q") == ["a.ts"]
    clock.advance(1)
    assert caches.load_selection("acme/web", "q") is None


def test_content_key_includes_hash(caches, clock):
    caches.store_content("acme/web", "src/a.ts", "h1", "old")

    assert caches.load_content("acme/web", "src/a.ts", "h1") == "old"
    assert caches.load_content("acme/web", "src/a.ts", "h2") is None

    clock.advance(3600)
    assert caches.load_content("acme/web", "src/a.ts", "h1") is None


def test_metadata_ttl(caches, clock):
    caches.store_metadata("acme/web", ["a.ts"])
    clock.advance(899)
    assert caches.load_metadata("acme/web") == ["a.ts"]
    clock.advance(1)
    assert caches.load_metadata("acme/web") is None


def test_clear_namespace(caches):
    caches.store_selection("acme/web", "q", ["a.ts"])
    caches.store_content("acme/web", "a.ts", "h", "text")
    caches.store_metadata("acme/web", ["a.ts"])
    caches.store_selection("acme/webapp", "q", ["b.ts"])
    caches.store_metadata("acme/webapp", ["b.ts"])

    assert caches.clear_namespace("acme/web") == 3
    assert caches.load_selection("acme/web", "q") is None
    assert caches.load_metadata("acme/web") is None
    assert caches.load_selection("acme/webapp", "q") == ["b.ts"]
    assert caches.load_metadata("acme/webapp") == ["b.ts"]


def test_get_cache_from_settings(settings, clock):
    service = get_cache(settings, clock=clock)
    assert service.selection.default_ttl == settings.SELECTION_CACHE_TTL_S
    assert service.content.default_ttl == settings.CONTENT_CACHE_TTL_S
    assert service.metadata.default_ttl == settings.METADATA_CACHE_TTL_S


def test_cache_busting_uses_noop():
    service = get_cache(Mock(), bust=True)
    service.store_selection("acme/web", "q", ["a.ts"])

    assert isinstance(service.selection, NoOpCache)
    assert service.load_selection("acme/web", "q") is None
    assert service.stats()["selection"]["backend"] == "noop"


def test_make_namespace():
    assert make_namespace("acme", "web") == "acme/web"


def test_concurrent_access_is_consistent():
    """Writers, readers, prefix deletes and sweeps interleave without losing count."""
    cache = TTLCache("shared", ttl_s=3600, sweep_interval=1)
    namespaces = ["acme/web", "acme/api", "acme/cli"]

    def worker(n):
        gets = 0
        for i in range(200):
            namespace = namespaces[(n + i) % len(namespaces)]
            cache.set(f"{namespace}:live{i % 10}", namespace)
            # TTL 0 entries are expired as soon as they are written
            cache.set(f"{namespace}:stale{i % 10}", "stale", ttl_s=0)

            live = cache.get(f"{namespace}:live{i % 10}")
            stale = cache.get(f"{namespace}:stale{i % 10}")
            gets += 2
            assert live in (None, namespace)
            assert stale is None

            if i % 25 == 0:
                cache.delete_prefix(f"{namespace}:")
            if i % 40 == 0:
                cache.purge()
        return gets

    with ThreadPoolExecutor(max_workers=8) as pool:
        total_gets = sum(pool.map(worker, range(16)))

    stats = cache.stats()
    assert stats["hits"] + stats["misses"] == total_gets
    assert total_gets == 16 * 200 * 2


def test_concurrent_identical_selections(caches, settings):
    """Concurrent selections for one query agree; the cached list matches them."""
    tree = ["src/auth/login.ts", "src/auth/session.ts", "README.md"]
    selector = FileSelector(caches, settings)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(
            lambda _: selector.select("How does login work?", tree, "acme/web"),
            range(32),
        ))

    expected = ["src/auth/login.ts", "README.md", "src/auth/session.ts"]
    assert all(result.files == expected for result in results)
    assert caches.load_selection("acme/web", "how does login work?") == expected
