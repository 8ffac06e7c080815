"""
Heuristic relevance scoring of repository paths.

Each path accumulates an integer score from independent additive rules (file name
mentioned, keyword in path, intent-specific file types, manifests, READMEs).
Sorting is stable, so equal scores keep tree order.
"""
import logging
from typing import List, Sequence
from .file_filters import (
    CODE_FILE_RE,
    CONFIG_FILE_RE,
    DEPENDENCY_MANIFESTS,
    DOC_FILE_RE,
    README_NAMES,
    ROUTE_CODE_RE,
    ROUTE_HINTS,
    basename,
)
from .schemas import QueryClassification, ScoredFile

logger = logging.getLogger(__name__)

FILENAME_MATCH_SCORE = 50
KEYWORD_SCORE = 20
CODE_FILE_SCORE = 15
ROUTE_FILE_SCORE = 25
DOC_FILE_SCORE = 30
MANIFEST_SCORE = 10
README_SCORE = 15
CONFIG_FILE_SCORE = 5

MAX_CANDIDATES = 30
MIN_SCORE = 10
MAX_SEEDS = 20


def score_path(query: str, classification: QueryClassification, path: str) -> ScoredFile:
    """Score a single path; a score of 0 means no rule fired."""
    score = 0
    reasons: List[str] = []
    intent = classification.intent
    filename = basename(path).lower()
    path_lower = path.lower()

    if filename and filename in (query or "").lower():
        score += FILENAME_MATCH_SCORE
        reasons.append("exact filename match")

    for keyword in classification.keywords:
        if keyword in path_lower:
            score += KEYWORD_SCORE
            reasons.append(f'keyword "{keyword}" in path')

    if intent in ("code-location", "explanation") and CODE_FILE_RE.search(path):
        score += CODE_FILE_SCORE
        reasons.append("code file for code-location question")

    if intent in ("flow", "architecture") and ROUTE_CODE_RE.search(path):
        if any(hint in path_lower for hint in ROUTE_HINTS):
            score += ROUTE_FILE_SCORE
            reasons.append("route/api file for flow question")

    if intent == "documentation":
        if DOC_FILE_RE.search(path) or filename.startswith("readme."):
            score += DOC_FILE_SCORE
            reasons.append("documentation file")

    if filename in DEPENDENCY_MANIFESTS:
        score += MANIFEST_SCORE
        reasons.append("dependency file")

    if filename in README_NAMES:
        score += README_SCORE
        reasons.append("readme file")

    if intent == "explanation" and CONFIG_FILE_RE.search(path):
        score += CONFIG_FILE_SCORE
        reasons.append("config file")

    return ScoredFile(path=path, score=score, reasons=reasons)


def score_files(
    query: str,
    classification: QueryClassification,
    tree: Sequence[str],
    limit: int = MAX_CANDIDATES,
) -> List[ScoredFile]:
    """
    Score every path and return the top candidates.

    Args:
        query: Raw user query
        classification: Intent and keywords for the query
        tree: Pruned file tree
        limit: Number of candidates to keep

    Returns:
        Paths with score > 0, highest first; ties keep tree order
    """
    scored = []
    for path in tree:
        result = score_path(query, classification, path)
        if result.score > 0:
            scored.append(result)

    scored.sort(key=lambda f: -f.score)
    top = scored[:limit]
    logger.debug(f"Top scored files: {[f'{f.path} ({f.score})' for f in top[:10]]}")
    return top


def top_candidates(
    scored: Sequence[ScoredFile],
    min_score: int = MIN_SCORE,
    limit: int = MAX_SEEDS,
) -> List[str]:
    """Paths scoring at least ``min_score``, capped, used to seed neighbor expansion."""
    return [f.path for f in scored if f.score >= min_score][:limit]
