"""
Pipeline orchestrator for repository question answering context.

Coordinates file selection, context assembly, normalization and indexing with
deterministic output. The LLM call itself happens outside this package; answers
come back through validate_answer().
"""
import logging
import threading
import time
from typing import Dict, List, Optional, Sequence, Tuple
from .assembler import assemble_context
from .cache import CacheService, get_cache
from .citations import validate_citations
from .classifier import classify_query
from .context_utils import build_context_index, normalize_context
from .prompt import pack_prompt
from .repository import CachedContentReader, Repository
from .schemas import AssembledContext, ContextIndex, PipelineResult, PromptPackage, SelectionResult, ValidationResult
from .selection import FileSelector
from .tokens import TokenCount, TokenCounter

logger = logging.getLogger(__name__)


class ContextPipeline:
    """Main pipeline coordinating all stages for one repository."""

    def __init__(
        self,
        repository: Repository,
        settings,
        namespace: str,
        caches: Optional[CacheService] = None,
        count_tokens: Optional[TokenCount] = None,
    ):
        """
        Initialize pipeline.

        Args:
            repository: File tree and content provider
            settings: Configuration settings
            namespace: Cache scope for this repository ("owner/repo")
            caches: Optional cache service (will create if not provided)
            count_tokens: Optional token counter (tiktoken if not provided)
        """
        self.repository = repository
        self.settings = settings
        self.namespace = namespace
        self.caches = caches or get_cache(settings)
        self.count_tokens = count_tokens or TokenCounter(settings.TOKEN_ENCODING)
        self.selector = FileSelector(self.caches, settings)
        self.reader = CachedContentReader(repository, self.caches, namespace)

        logger.info(f"Pipeline initialized for {namespace}")

    def file_tree(self) -> List[str]:
        """Repository file tree, served from the metadata cache when fresh."""
        tree = self.caches.load_metadata(self.namespace)
        if tree is None:
            tree = self.repository.file_tree()
            self.caches.store_metadata(self.namespace, tree)
        return list(tree)

    def select_files(self, query: str, tree: Optional[Sequence[str]] = None) -> SelectionResult:
        if tree is None:
            tree = self.file_tree()
        return self.selector.select(query, tree, self.namespace)

    def build_context(
        self,
        paths: Sequence[str],
        budget: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> Tuple[AssembledContext, str, ContextIndex]:
        """
        Assemble, normalize and index the context for a selection.

        Args:
            paths: Selected paths
            budget: Token budget (defaults to window - reserved)
            cancel: Set to stop reading further files
            deadline: time.monotonic() value after which reading stops

        Returns:
            (assembled, normalized document, index of the normalized document)
        """
        if budget is None:
            budget = self.settings.context_budget
        assembled = assemble_context(
            paths,
            self.reader,
            self.count_tokens,
            budget,
            cancel=cancel,
            deadline=deadline,
        )
        document = normalize_context(assembled.document)
        return assembled, document, build_context_index(document)

    def pack(
        self,
        question: str,
        document: str,
        history: Sequence[Dict[str, str]] = (),
    ) -> Tuple[PromptPackage, ContextIndex]:
        """Fit the document into the model window; the index is rebuilt for the packed context."""
        package = pack_prompt(
            question,
            document,
            self.count_tokens,
            self.settings.MODEL_CONTEXT_WINDOW,
            history=history,
            system_prompt_tokens=self.settings.SYSTEM_PROMPT_TOKENS,
            safety_buffer=self.settings.SAFETY_BUFFER_TOKENS,
        )
        return package, build_context_index(package.context)

    def run(
        self,
        query: str,
        budget: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
        trace: bool = False,
    ) -> PipelineResult:
        """
        Execute selection and context building for a query.

        Args:
            query: User query
            budget: Context token budget (defaults to window - reserved)
            cancel: Optional cancellation signal for content reads
            trace: Log the selected files

        Returns:
            PipelineResult with the normalized context and its index
        """
        timing = {}
        start_total = time.time()

        start = time.time()
        tree = self.file_tree()
        timing["tree_ms"] = int((time.time() - start) * 1000)

        classification = classify_query(query)
        logger.info(f"[Stage 1] Question type: {classification.intent} keywords={classification.keywords}")

        start = time.time()
        selection = self.selector.select(query, tree, self.namespace, classification=classification)
        timing["select_ms"] = int((time.time() - start) * 1000)
        logger.info(f"[Stage 1] Selected {len(selection.files)} files ({selection.kind}, {timing['select_ms']}ms)")

        if trace:
            self._trace_selection(selection)

        start = time.time()
        assembled, document, index = self.build_context(selection.files, budget=budget, cancel=cancel)
        timing["assemble_ms"] = int((time.time() - start) * 1000)
        timing["total_ms"] = int((time.time() - start_total) * 1000)
        logger.info(
            f"[Stage 2] Context: {len(index)} files indexed, {assembled.token_count} tokens "
            f"({timing['assemble_ms']}ms)"
        )

        return PipelineResult(
            query=query,
            namespace=self.namespace,
            classification=classification,
            selection=selection,
            context=document,
            index=index,
            included=assembled.included,
            truncated=assembled.truncated,
            context_tokens=assembled.token_count,
            timing_ms=timing,
            cache_stats=self.caches.stats(),
        )

    def validate_answer(self, answer: str, index: ContextIndex) -> ValidationResult:
        """Advisory citation check of a model answer."""
        return validate_citations(answer, index)

    def _trace_selection(self, selection: SelectionResult):
        """Trace selection info for debugging."""
        logger.info(f"\n=== Selection ({selection.kind}) ===")
        scores = {}
        if selection.kind == "scored":
            scores = {c.path: c for c in selection.candidates}
        for i, path in enumerate(selection.files, 1):
            scored = scores.get(path)
            if scored is not None:
                logger.info(f"  [{i}] {path} score={scored.score} ({scored.reason})")
            else:
                logger.info(f"  [{i}] {path}")
