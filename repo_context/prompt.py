"""
Final prompt packing.

The assembled document was budgeted at file granularity against
``window - reserved``. Once the real question and history are known, the whole
prompt is checked against the model's hard window and, if it still overflows, the
document is re-truncated line by line from the start (partial files allowed).
"""
import logging
from typing import Dict, List, Optional, Sequence
from .context_utils import format_context_index
from .schemas import ContextIndex, PromptPackage
from .tokens import TokenCount

logger = logging.getLogger(__name__)

LINE_TRUNCATION_NOTICE = (
    "--- NOTE: Context truncated due to token limit "
    "({available} tokens available, {original} tokens in original) ---"
)
MINIMAL_CONTEXT_NOTICE = "--- NOTE: Context too large, using minimal context ---"

SYSTEM_PROMPT = """You are a meticulous code assistant answering questions about a repository.
You will receive a CONTEXT block made of complete files. Each file starts with a header
"--- FILE: exact/path/to/file ---" and every line is prefixed with its line number ("  15 | code").

Rules:
- Use ONLY the files in the CONTEXT block when answering
- Cite code inline as [file:<path>:<line>] or [file:<path>:<start>-<end>]
- Use the EXACT path from the file header and line numbers that exist in that file
- If the answer needs files that are not in CONTEXT, say which ones
- Keep answers concise and technical"""


def truncate_context_lines(
    context: str,
    count_tokens: TokenCount,
    available_tokens: int,
    original_tokens: Optional[int] = None,
) -> str:
    """
    Keep whole lines from the start of the document until the budget is reached.

    Args:
        context: Context document
        count_tokens: Token counter
        available_tokens: Budget for the returned text, notice included
        original_tokens: Size of the untruncated document, reported in the notice

    Returns:
        Truncated document ending with a notice at the cut point, or the
        unchanged document when it already fits
    """
    if available_tokens <= 0:
        return MINIMAL_CONTEXT_NOTICE

    if original_tokens is None:
        original_tokens = count_tokens(context)
    if original_tokens <= available_tokens:
        return context

    notice = LINE_TRUNCATION_NOTICE.format(available=available_tokens, original=original_tokens)
    line_budget = available_tokens - count_tokens(notice + "\n")
    if line_budget < 0:
        return MINIMAL_CONTEXT_NOTICE

    kept: List[str] = []
    used = 0
    for line in context.split("\n"):
        line_tokens = count_tokens(line + "\n")
        if used + line_tokens > line_budget:
            break
        kept.append(line)
        used += line_tokens

    return "\n".join(kept + [notice])


def format_history(history: Sequence[Dict[str, str]]) -> str:
    """Render chat history as "User: ..." / "Assistant: ..." paragraphs."""
    parts = []
    for msg in history:
        speaker = "User" if msg.get("role") == "user" else "Assistant"
        parts.append(f"{speaker}: {msg.get('content', '')}")
    return "\n\n".join(parts)


def pack_prompt(
    question: str,
    context: str,
    count_tokens: TokenCount,
    model_context_window: int,
    history: Sequence[Dict[str, str]] = (),
    system_prompt_tokens: int = 2000,
    safety_buffer: int = 5000,
) -> PromptPackage:
    """
    Fit question, history and context into the model's hard window.

    Args:
        question: User question
        context: Normalized context document
        count_tokens: Token counter
        model_context_window: Hard token window of the model
        history: Prior chat messages ({"role", "content"})
        system_prompt_tokens: Estimated system prompt size
        safety_buffer: Headroom kept when re-truncating

    Returns:
        PromptPackage; ``truncated`` is set when the line-level stage ran
    """
    history_text = format_history(history)
    question_tokens = count_tokens(question)
    history_tokens = count_tokens(history_text)
    context_tokens = count_tokens(context)
    total = question_tokens + history_tokens + context_tokens + system_prompt_tokens

    if total <= model_context_window:
        return PromptPackage(
            question=question,
            history=history_text,
            context=context,
            context_tokens=context_tokens,
            total_tokens=total,
        )

    available = model_context_window - question_tokens - history_tokens - system_prompt_tokens - safety_buffer
    logger.warning(f"Context too large ({context_tokens} tokens). Truncating to {available} tokens.")
    truncated = truncate_context_lines(context, count_tokens, available, original_tokens=context_tokens)
    truncated_tokens = count_tokens(truncated)

    return PromptPackage(
        question=question,
        history=history_text,
        context=truncated,
        context_tokens=truncated_tokens,
        total_tokens=question_tokens + history_tokens + truncated_tokens + system_prompt_tokens,
        available_context_tokens=available,
        truncated=True,
    )


def build_messages(package: PromptPackage, index: Optional[ContextIndex] = None) -> List[Dict[str, str]]:
    """
    Build chat messages for the answering model.

    Args:
        package: Packed prompt
        index: Context index of the document, listed so the model cites real ranges

    Returns:
        List of message dicts
    """
    system = SYSTEM_PROMPT
    if index is not None:
        system += "\n\n" + format_context_index(index)

    user_parts = []
    if package.history:
        user_parts.append(f"Conversation so far:\n{package.history}")
    user_parts.append(f"CONTEXT:\n{package.context}")
    user_parts.append(f"Question: {package.question.strip()}")

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": "\n\n".join(user_parts)},
    ]
