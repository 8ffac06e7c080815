"""
Shared fixtures for repo_context tests.
"""
import pytest
from repo_context.cache import CacheService
from repo_context.config import Settings


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def count_words(text: str) -> int:
    """Deterministic whitespace tokenizer (additive over newline joins)."""
    return len(text.split())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return CacheService(clock=clock)


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def word_counter():
    return count_words
