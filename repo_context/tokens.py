"""
Token counting with tiktoken.

Counts approximate the target chat model's tokenization and are deterministic,
which the context budget and the caches rely on. When the encoding cannot be
loaded (offline, unknown name) counting degrades to a 4-characters-per-token
estimate instead of failing.
"""
import logging
import math
from typing import Callable, Dict, Iterable
import tiktoken

logger = logging.getLogger(__name__)

TokenCount = Callable[[str], int]

MAX_TOKENS = 200_000
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate: 4 characters per token, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TokenCounter:
    """Callable token counter backed by a tiktoken encoding."""

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name
        try:
            self._encoding = tiktoken.get_encoding(encoding_name)
        except Exception as e:
            logger.warning(f"Could not load tiktoken encoding {encoding_name!r}, estimating tokens: {e}")
            self._encoding = None

    @property
    def precise(self) -> bool:
        return self._encoding is not None

    def __call__(self, text: str) -> int:
        if not text:
            return 0
        if self._encoding is None:
            return estimate_tokens(text)
        return len(self._encoding.encode(text, disallowed_special=()))

    def count_messages(self, messages: Iterable[Dict[str, str]]) -> int:
        """Sum of content tokens over chat messages."""
        return sum(self(msg.get("content", "")) for msg in messages)


def format_token_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.2f}M"
    if count >= 1000:
        return f"{count / 1000:.1f}K"
    return str(count)


def token_warning_level(count: int, max_tokens: int = MAX_TOKENS) -> str:
    """'safe' below 70% of the window, 'warning' below 90%, else 'danger'."""
    percentage = count / max_tokens * 100
    if percentage >= 90:
        return "danger"
    if percentage >= 70:
        return "warning"
    return "safe"
