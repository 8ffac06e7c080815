"""
Explicit file-mention bypass.

When a query names files from the tree, those files are the selection: scoring
and the selection cache are skipped entirely. Matching is a plain case-insensitive
substring test on base names, so short or generic names (``a.ts``, ``index.ts``)
can over-match.
"""
import logging
from typing import List, Optional, Sequence
from .file_filters import basename
from .schemas import Bypassed

logger = logging.getLogger(__name__)

BYPASS_CONTEXT_FILES = ("package.json", "README.md", "tsconfig.json")
MAX_BYPASS_FILES = 10


def match_explicit_files(query: str, tree: Sequence[str]) -> List[str]:
    """Paths whose base name appears (case-insensitively) in the query, in tree order."""
    lowered = (query or "").lower()
    if not lowered:
        return []
    matches = []
    for path in tree:
        name = basename(path).lower()
        if name and name in lowered:
            matches.append(path)
    return matches


def bypass_selection(
    query: str,
    tree: Sequence[str],
    limit: int = MAX_BYPASS_FILES,
) -> Optional[Bypassed]:
    """
    Build a bypass selection if the query mentions files by name.

    Args:
        query: Raw user query
        tree: Repository file tree
        limit: Maximum files in the selection

    Returns:
        Bypassed selection, or None when nothing was mentioned
    """
    mentioned = match_explicit_files(query, tree)
    if not mentioned:
        return None

    logger.info(f"Bypass: query mentions {len(mentioned)} file(s): {mentioned[:5]}")
    files = list(mentioned)
    for path in tree:
        if path in BYPASS_CONTEXT_FILES and path not in files:
            files.append(path)
    return Bypassed(files=files[:limit])
