"""
Pydantic schemas for the repo_context selection and context engine.

Selections are ordered lists of repository-relative paths; context documents are
plain strings in the "--- FILE: <path> ---" block format, described by a ContextIndex.
"""
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


Intent = Literal[
    "code-location",
    "explanation",
    "flow",
    "architecture",
    "bug-analysis",
    "improvement",
    "documentation",
    "general",
]


class QueryClassification(BaseModel):
    """Classified purpose of a query plus the keywords used for path matching."""

    intent: Intent
    keywords: List[str] = Field(default_factory=list, max_length=10)

    model_config = {"frozen": True}


class ScoredFile(BaseModel):
    """Path with its additive relevance score and the rules that fired."""

    path: str
    score: int = Field(..., ge=0)
    reasons: List[str] = Field(default_factory=list)

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


class Bypassed(BaseModel):
    """Selection taken straight from file names mentioned in the query."""

    kind: Literal["bypassed"] = "bypassed"
    files: List[str]


class Scored(BaseModel):
    """Selection produced by scoring + neighbor expansion (or served from cache)."""

    kind: Literal["scored"] = "scored"
    files: List[str]
    candidates: List[ScoredFile] = Field(default_factory=list)
    cached: bool = False
    fallback: bool = False


SelectionResult = Union[Bypassed, Scored]


class FileRange(BaseModel):
    """Line range of one file inside a context document."""

    path: str
    start_line: int
    end_line: int
    line_count: int


ContextIndex = Dict[str, FileRange]


class CitationReference(BaseModel):
    """A [file:path:line] or [file:path:start-end] reference found in model output."""

    path: str
    start_line: int
    end_line: Optional[int] = None
    full_match: str = ""

    @property
    def last_line(self) -> int:
        return self.end_line if self.end_line is not None else self.start_line


class ValidationResult(BaseModel):
    """Advisory outcome of checking citations against a context index."""

    valid: bool
    errors: List[str] = Field(default_factory=list)


class AssembledContext(BaseModel):
    """Output of file-granularity context assembly."""

    document: str
    included: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)  # unreadable / absent content
    dropped: List[str] = Field(default_factory=list)  # cut by the token budget or cancellation
    token_count: int = 0
    budget: int = 0
    truncated: bool = False
    cancelled: bool = False


class PromptPackage(BaseModel):
    """Question, history and context after the final line-level budget check."""

    question: str
    history: str = ""
    context: str
    context_tokens: int
    total_tokens: int
    available_context_tokens: Optional[int] = None
    truncated: bool = False


class PipelineResult(BaseModel):
    """Complete pipeline execution result."""

    query: str
    namespace: str
    classification: QueryClassification
    selection: SelectionResult = Field(..., discriminator="kind")
    context: str
    index: ContextIndex = Field(default_factory=dict)
    included: List[str] = Field(default_factory=list)
    truncated: bool = False
    context_tokens: int = 0

    # Timing info (milliseconds)
    timing_ms: dict = Field(default_factory=dict)

    # Cache statistics
    cache_stats: dict = Field(default_factory=dict)
