"""
Rule-based query classification.

An ordered list of (pattern, intent) rules is evaluated first-match-wins against the
lower-cased query. Code-location and architecture rules come before the broader
flow / documentation / explanation rules, so "explain the architecture" is an
architecture question.
"""
import re
from typing import List, NamedTuple, Pattern, Sequence
from .schemas import Intent, QueryClassification


class IntentRule(NamedTuple):
    pattern: Pattern[str]
    intent: Intent


def _rule(pattern: str, intent: Intent) -> IntentRule:
    return IntentRule(re.compile(pattern, re.IGNORECASE), intent)


DEFAULT_INTENT_RULES: Sequence[IntentRule] = (
    _rule(r"(where|find|locate|which file|what file|show me).*(function|class|method|code|implementation)", "code-location"),
    _rule(r"(architecture|architectural|system design|design pattern|layers|components|structure)", "architecture"),
    _rule(r"(how.*work|flow|process|sequence|pipeline)", "flow"),
    _rule(r"(bug|error|issue|problem|fix|broken|wrong|why.*not|why.*fail)", "bug-analysis"),
    _rule(r"(improve|better|optimize|refactor|enhance|suggest)", "improvement"),
    _rule(r"(readme|document|doc|explain|describe|what is|tell me about)", "documentation"),
    _rule(r"(explain|how|what does|why|meaning|purpose)", "explanation"),
)

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "could", "may", "might", "must", "can", "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they", "what", "which", "who",
    "where", "when", "why", "how", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "about", "into", "through", "during", "before",
    "after", "above", "below", "up", "down", "out", "off", "over", "under",
    "again", "further", "then", "once",
})

MAX_KEYWORDS = 10

_NON_WORD_RE = re.compile(r"[^\w\s]")


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """
    Extract path-matching keywords from a query.

    Lower-cases, replaces punctuation with spaces, drops short tokens and stop
    words, deduplicates keeping first-seen order and caps the result.
    """
    words = _NON_WORD_RE.sub(" ", (text or "").lower()).split()
    keywords: List[str] = []
    for word in words:
        if len(word) <= 2 or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def classify_intent(text: str, rules: Sequence[IntentRule] = DEFAULT_INTENT_RULES) -> Intent:
    lowered = (text or "").lower()
    for rule in rules:
        if rule.pattern.search(lowered):
            return rule.intent
    return "general"


def classify_query(text: str, rules: Sequence[IntentRule] = DEFAULT_INTENT_RULES) -> QueryClassification:
    """
    Classify a query into an intent and keyword set.

    Args:
        text: Raw user query (may be empty)
        rules: Ordered intent rules, first match wins

    Returns:
        QueryClassification; "general" when no rule matches
    """
    return QueryClassification(
        intent=classify_intent(text, rules),
        keywords=extract_keywords(text),
    )
