"""
Context normalization and indexing utilities.

normalize_context() cleans an assembled document (duplicate file blocks, blank-line
runs) and is idempotent. build_context_index() derives the path -> line range map
used to validate citations; rebuild it whenever the document changes.
"""
import re
from typing import List, Optional, Set
from .schemas import ContextIndex, FileRange

HEADER_PREFIX = "--- FILE: "
HEADER_SUFFIX = " ---"

NUMBERED_LINE_RE = re.compile(r"^\s*(\d+)\s*\|")

# Lines kept even outside a file block
_RETAINED_MARKERS = ("NOTE:", "CONTEXT")


def parse_header(line: str) -> Optional[str]:
    """Return the path of a "--- FILE: <path> ---" header line, else None."""
    if line.startswith(HEADER_PREFIX) and line.endswith(HEADER_SUFFIX) and len(line) >= len(HEADER_PREFIX) + len(HEADER_SUFFIX):
        return line[len(HEADER_PREFIX):len(line) - len(HEADER_SUFFIX)].strip()
    return None


def normalize_context(context: str) -> str:
    """
    Normalize a context document.

    - a repeated file block is dropped (first occurrence wins)
    - no two consecutive blank lines, none at the start or end
    - outside a file block only lines containing "NOTE:" or "CONTEXT" survive

    Args:
        context: Assembled context document

    Returns:
        Normalized document; normalize_context(normalize_context(x)) == normalize_context(x)
    """
    if not context:
        return ""

    normalized: List[str] = []
    seen_files: Set[str] = set()
    current_file: Optional[str] = None
    last_was_empty = False

    for line in context.split("\n"):
        path = parse_header(line)
        if path is not None:
            if path in seen_files:
                # Skip everything up to the next header
                current_file = None
                continue
            seen_files.add(path)
            current_file = path
            normalized.append(line)
            last_was_empty = False
            continue

        if line.strip() == "":
            if last_was_empty or not normalized:
                continue
            last_was_empty = True
        else:
            last_was_empty = False

        if current_file is not None or any(marker in line for marker in _RETAINED_MARKERS):
            normalized.append(line)

    while normalized and normalized[-1].strip() == "":
        normalized.pop()

    return "\n".join(normalized)


def build_context_index(context: str) -> ContextIndex:
    """
    Build a path -> line range index from a (normalized) context document.

    Numbered lines ("  42 | code") are counted per file header; files without any
    numbered line are left out.
    """
    index: ContextIndex = {}
    if not context:
        return index

    current_file: Optional[str] = None
    line_count = 0

    def commit():
        if current_file is not None and line_count > 0:
            index[current_file] = FileRange(
                path=current_file,
                start_line=1,
                end_line=line_count,
                line_count=line_count,
            )

    for line in context.split("\n"):
        path = parse_header(line)
        if path is not None:
            commit()
            current_file = path
            line_count = 0
            continue
        if current_file is not None and NUMBERED_LINE_RE.match(line):
            line_count += 1

    commit()
    return index


def format_context_index(index: ContextIndex) -> str:
    """Render the index as the "Available files in context" listing for the prompt."""
    if not index:
        return "No files in context."
    entries = "\n".join(
        f"  - {path}: lines {info.start_line}-{info.end_line} ({info.line_count} lines)"
        for path, info in index.items()
    )
    return f"Available files in context:\n{entries}"


def extract_snippet(
    context: str,
    path: str,
    target_line: int,
    lines_before: int = 25,
    lines_after: int = 25,
) -> Optional[str]:
    """
    Numbered lines around ``target_line`` of ``path`` in a context document.

    The snippet never reaches back past the file's header; it may run into the
    following block when the target is near the end of the file.
    """
    if not context:
        return None

    lines = context.split("\n")
    in_target = False
    file_start = -1

    for i, line in enumerate(lines):
        header_path = parse_header(line)
        if header_path is not None:
            in_target = header_path == path
            file_start = i + 1
            continue
        if not in_target:
            continue
        match = NUMBERED_LINE_RE.match(line)
        if match and int(match.group(1)) == target_line:
            start = max(file_start, i - lines_before)
            end = min(len(lines), i + lines_after + 1)
            return "\n".join(lines[start:end])

    return None
