"""
repo_context Package

Chooses whole files from a repository for a natural-language question and builds a
token-bounded, line-numbered context document for an LLM:
1. Selection: intent classification, explicit-file bypass, heuristic scoring,
   neighbor expansion, selection cache
2. Context: file-level assembly within a token budget, normalization, indexing
3. Answer checking: [file:path:line] citation validation against the index

Caches are in-process and injected; nothing persists across restarts.
"""

__version__ = "1.0.0"

from .config import get_settings
from .schemas import Bypassed, Scored, QueryClassification, ScoredFile, ValidationResult
from .cache import CacheService, make_namespace
from .pipeline import ContextPipeline

__all__ = [
    "get_settings",
    "Bypassed",
    "Scored",
    "QueryClassification",
    "ScoredFile",
    "ValidationResult",
    "CacheService",
    "make_namespace",
    "ContextPipeline",
]
