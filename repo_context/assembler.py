"""
File-granularity context assembly.

Selected files are line-numbered and appended as "--- FILE: <path> ---" blocks while
the running token total stays within budget. The first file that does not fit ends
assembly: a truncation notice is appended and the remaining files are dropped
whole, so no partial file is ever emitted at this stage.
"""
import logging
import threading
import time
from typing import Callable, List, Optional, Sequence
from .schemas import AssembledContext
from .tokens import TokenCount

logger = logging.getLogger(__name__)

ContentReader = Callable[[str], Optional[str]]

FILE_HEADER = "--- FILE: {path} ---"
TRUNCATION_NOTICE = "--- NOTE: Context truncated due to token limit ({budget} tokens) ---"
EMPTY_CONTEXT = "NOTE: No specific files were selected."


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def number_lines(content: str) -> str:
    """Prefix every line with a right-justified 1-based line number and " | "."""
    lines = normalize_newlines(content).split("\n")
    return "\n".join(f"{index:>4} | {line}" for index, line in enumerate(lines, 1))


def format_file_block(path: str, content: str) -> str:
    return FILE_HEADER.format(path=path) + "\n" + number_lines(content)


def context_budget(model_context_window: int, reserved_overhead: int) -> int:
    """Tokens available for file context after the prompt, question and history reserve."""
    return max(0, model_context_window - reserved_overhead)


def assemble_context(
    paths: Sequence[str],
    read: ContentReader,
    count_tokens: TokenCount,
    budget: int,
    cancel: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> AssembledContext:
    """
    Build a line-numbered context document within a token budget.

    Args:
        paths: Selected paths, in priority order
        read: Content retrieval; None means "skip this file"
        count_tokens: Deterministic token counter
        budget: Maximum tokens for the whole document
        cancel: Stops further reads once set (client disconnect)
        deadline: Clock value after which no further files are read
        clock: Time source for the deadline

    Returns:
        AssembledContext with the document and what was included, skipped and dropped
    """
    blocks: List[str] = []
    included: List[str] = []
    skipped: List[str] = []
    dropped: List[str] = []
    used = 0
    truncated = False
    cancelled = False

    for position, path in enumerate(paths):
        if (cancel is not None and cancel.is_set()) or (deadline is not None and clock() >= deadline):
            logger.warning(f"[Assemble] Cancelled before {path}; {len(paths) - position} file(s) not read")
            cancelled = True
            dropped.extend(paths[position:])
            break

        content = read(path)
        if content is None:
            skipped.append(path)
            continue

        block = format_file_block(path, content)
        cost = count_tokens(block + "\n")
        if used + cost > budget:
            truncated = True
            dropped.extend(paths[position:])
            notice = TRUNCATION_NOTICE.format(budget=budget)
            notice_cost = count_tokens(notice)
            if used + notice_cost <= budget:
                blocks.append(notice)
                used += notice_cost
            logger.info(f"[Assemble] Budget reached at {path} ({used}/{budget} tokens), dropped {len(dropped)} file(s)")
            break

        blocks.append(block)
        included.append(path)
        used += cost

    if not blocks:
        placeholder_cost = count_tokens(EMPTY_CONTEXT)
        if placeholder_cost <= budget:
            blocks.append(EMPTY_CONTEXT)
            used = placeholder_cost

    logger.info(f"[Assemble] {len(included)} file(s), {used} tokens (budget {budget})")
    return AssembledContext(
        document="\n".join(blocks),
        included=included,
        skipped=skipped,
        dropped=dropped,
        token_count=used,
        budget=budget,
        truncated=truncated,
        cancelled=cancelled,
    )
