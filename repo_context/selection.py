"""
File selection: bypass, selection cache, scoring and neighbor expansion.

    classify -> bypass? -> cache lookup -> score -> expand -> cache store

A bypass skips the cache and the scorer. The cache is consulted before scoring and
a non-empty scored selection is stored before select() returns.
"""
import logging
from typing import Optional, Sequence
from .bypass import bypass_selection
from .cache import CacheService
from .classifier import classify_query
from .expander import expand_with_neighbors, fallback_selection, with_important_files
from .file_filters import prune_tree
from .schemas import QueryClassification, Scored, SelectionResult
from .scorer import score_files, top_candidates

logger = logging.getLogger(__name__)


class FileSelector:
    """Chooses the files to put in front of the model for a query."""

    def __init__(self, caches: CacheService, settings):
        self.caches = caches
        self.settings = settings

    def select(
        self,
        query: str,
        tree: Sequence[str],
        namespace: str,
        classification: Optional[QueryClassification] = None,
    ) -> SelectionResult:
        """
        Select files for a query.

        Args:
            query: Raw user query
            tree: Repository file tree
            namespace: Cache scope ("owner/repo")
            classification: Precomputed classification, if any

        Returns:
            Bypassed or Scored selection; never raises for empty input
        """
        if not tree:
            logger.info("[Select] Empty file tree, nothing to select")
            return Scored(files=[], fallback=True)

        classification = classification or classify_query(query)

        bypassed = bypass_selection(query, tree, limit=self.settings.MAX_BYPASS_FILES)
        if bypassed is not None:
            logger.info(f"[Select] Bypass selected {len(bypassed.files)} file(s)")
            return bypassed

        cached = self.caches.load_selection(namespace, query)
        if cached is not None:
            logger.info(f"[Select] Query cache hit ({len(cached)} files)")
            return Scored(files=cached, cached=True)

        pruned = prune_tree(tree)
        candidates = score_files(query, classification, pruned, limit=self.settings.MAX_SCORED_CANDIDATES)
        seeds = top_candidates(
            candidates,
            min_score=self.settings.MIN_SCORE,
            limit=self.settings.MAX_EXPANSION_SEEDS,
        )

        if not seeds:
            files = fallback_selection(pruned, limit=self.settings.MAX_SELECTED_FILES)
            logger.info(f"[Select] No file scored >= {self.settings.MIN_SCORE}, falling back to {files}")
            return Scored(files=files, candidates=candidates, fallback=True)

        expanded = expand_with_neighbors(seeds, pruned)
        files = with_important_files(expanded, pruned, limit=self.settings.MAX_SELECTED_FILES)
        logger.info(
            f"[Select] intent={classification.intent} scored={len(candidates)} "
            f"seeds={len(seeds)} selected={len(files)}"
        )

        if files:
            self.caches.store_selection(namespace, query, files)
        return Scored(files=files, candidates=candidates)
