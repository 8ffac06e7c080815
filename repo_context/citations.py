"""
Citation parsing and validation for model answers.

Models are asked to cite code as [file:path:line] or [file:path:start-end].
Validation is advisory: errors are reported as data and the answer is never
rejected or rewritten here.
"""
import logging
import re
from typing import Dict, List
from .schemas import CitationReference, ContextIndex, ValidationResult

logger = logging.getLogger(__name__)

# Optional backtick / bold / italic markers around the reference are tolerated
CITATION_RE = re.compile(r"[`*_]{0,3}\[file:([^\]:]+):(\d+)(?:-(\d+))?\][`*_]{0,3}")


def parse_citations(text: str) -> List[CitationReference]:
    """
    Extract every file citation from model output, in order of appearance.

    Args:
        text: Model output

    Returns:
        CitationReference list; malformed references are ignored
    """
    references = []
    for match in CITATION_RE.finditer(text or ""):
        path = match.group(1).strip()
        if not path:
            continue
        references.append(CitationReference(
            path=path,
            start_line=int(match.group(2)),
            end_line=int(match.group(3)) if match.group(3) else None,
            full_match=match.group(0),
        ))

    if "[file:" in (text or "") and not references:
        logger.warning("Found [file: markers but no parseable citations")
    return references


def validate_citations(text: str, index: ContextIndex) -> ValidationResult:
    """
    Check citations in model output against a context index.

    Args:
        text: Model output
        index: Index of the context document the model was given

    Returns:
        ValidationResult; ``valid`` is True when no citation is unknown or out of range
    """
    errors: List[str] = []

    for ref in parse_citations(text):
        info = index.get(ref.path)
        if info is None:
            errors.append(f'File "{ref.path}" not found in context')
            continue

        if ref.start_line < info.start_line or ref.start_line > info.end_line:
            errors.append(
                f'Line {ref.start_line} in "{ref.path}" is out of range '
                f"(file has lines {info.start_line}-{info.end_line})"
            )

        if ref.end_line is not None and (ref.end_line < info.start_line or ref.end_line > info.end_line):
            errors.append(
                f'Line range {ref.start_line}-{ref.end_line} in "{ref.path}" is out of range '
                f"(file has lines {info.start_line}-{info.end_line})"
            )

    if errors:
        logger.info(f"Citation check found {len(errors)} problem(s)")
    return ValidationResult(valid=not errors, errors=errors)


def group_citations(text: str) -> Dict[str, List[CitationReference]]:
    """Citations grouped by path, preserving first-seen path order."""
    grouped: Dict[str, List[CitationReference]] = {}
    for ref in parse_citations(text):
        grouped.setdefault(ref.path, []).append(ref)
    return grouped


def link_citations(text: str) -> str:
    """Rewrite citations as preview links: [**path** - line 3](#preview-path:3)."""

    def _link(match: "re.Match[str]") -> str:
        path = match.group(1).strip()
        start, end = match.group(2), match.group(3)
        if end:
            label, anchor = f"lines {start}-{end}", f"{start}-{end}"
        else:
            label, anchor = f"line {start}", start
        return f"[**{path}** - {label}](#preview-{path}:{anchor})"

    return CITATION_RE.sub(_link, text or "")
