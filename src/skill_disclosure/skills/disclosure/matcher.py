"""Trigger matching: rank skills against a task description.

Scoring is pluggable. Any callable ``(query, metadata) -> (relevance,
matched_terms)`` can replace the default keyword-overlap scorer; ordering,
tie-breaking and the relevance threshold stay in TriggerMatcher so every
scorer gets the same deterministic behavior.
"""

import logging
import re
from typing import Callable, Iterable, Optional, Sequence

from skill_disclosure.skills.disclosure.models import MatchScore, SkillMetadata
from skill_disclosure.skills.disclosure.registry import SkillRegistry

logger = logging.getLogger(__name__)

PHRASE_WEIGHT = 3.0
KEYWORD_WEIGHT = 2.0
LOOSE_WEIGHT = 1.0

DEFAULT_MIN_RELEVANCE = 1.0

STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "can", "do", "for",
        "from", "how", "i", "in", "into", "is", "it", "me", "my", "of", "on",
        "or", "our", "please", "so", "some", "that", "the", "this", "to",
        "us", "we", "what", "when", "with", "you", "your",
    }
)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

# Checked in order; the first suffix that leaves a long enough stem wins
_SUFFIXES = (("ing", 3), ("ies", 3), ("ed", 3), ("es", 3), ("ly", 3), ("s", 3))

Scorer = Callable[[str, SkillMetadata], tuple[float, Sequence[str]]]


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens of text."""
    return _TOKEN_RE.findall(text.lower())


def stem(token: str) -> str:
    """Light suffix-stripping stem ("patterns" -> "pattern", "testing" -> "test")."""
    if token.endswith("ss"):
        return token
    for suffix, min_stem in _SUFFIXES:
        if token.endswith(suffix) and len(token) - len(suffix) >= min_stem:
            return token[: -len(suffix)]
    return token


def _contains_run(haystack: list[str], needle: list[str]) -> bool:
    size = len(needle)
    return any(haystack[i:i + size] == needle for i in range(len(haystack) - size + 1))


class KeywordOverlapScorer:
    """Token-overlap scorer over a skill's description and trigger keywords.

    Three kinds of evidence, strongest first:
    - exact phrase: the description, or a multi-word keyword, occurs as a
      contiguous token run in the query
    - declared keyword: every token of a keyword occurs in the query
    - loose overlap: a remaining description/keyword token shares a stem
      with a query token (stopwords ignored)

    Tokens already credited by a stronger match are not counted again.
    """

    def __init__(
        self,
        phrase_weight: float = PHRASE_WEIGHT,
        keyword_weight: float = KEYWORD_WEIGHT,
        loose_weight: float = LOOSE_WEIGHT,
    ):
        self.phrase_weight = phrase_weight
        self.keyword_weight = keyword_weight
        self.loose_weight = loose_weight

    def __call__(self, query: str, metadata: SkillMetadata) -> tuple[float, list[str]]:
        query_tokens = tokenize(query)
        if not query_tokens:
            return 0.0, []

        query_set = set(query_tokens)
        query_stems = {stem(t) for t in query_tokens if t not in STOPWORDS}

        score = 0.0
        matched: list[str] = []
        covered: set[str] = set()

        keyword_tokens = [tokenize(k) for k in metadata.keywords]
        phrases = [tokenize(metadata.description)] + [k for k in keyword_tokens if len(k) > 1]
        for phrase in phrases:
            term = " ".join(phrase)
            if len(phrase) > 1 and term not in matched and _contains_run(query_tokens, phrase):
                score += self.phrase_weight
                matched.append(term)
                covered.update(phrase)

        for tokens in keyword_tokens:
            term = " ".join(tokens)
            if not tokens or term in matched:
                continue
            if all(t in query_set for t in tokens):
                score += self.keyword_weight
                matched.append(term)
                covered.update(tokens)

        candidates = tokenize(metadata.description) + [t for k in keyword_tokens for t in k]
        for token in dict.fromkeys(candidates):
            if token in covered or token in STOPWORDS:
                continue
            if stem(token) in query_stems:
                score += self.loose_weight
                matched.append(token)
                covered.add(token)

        return score, matched


class TriggerMatcher:
    """Rank skill metadata against a free-text task description.

    Example:
        matcher = TriggerMatcher(min_relevance=1.0)
        scores = matcher.match("python async patterns", registry)
        # [MatchScore(skill_id="python_async", relevance=3.0, ...), ...]
    """

    def __init__(
        self,
        scorer: Optional[Scorer] = None,
        min_relevance: float = DEFAULT_MIN_RELEVANCE,
    ):
        """Initialize the matcher.

        Args:
            scorer: Scoring function; defaults to KeywordOverlapScorer
            min_relevance: Candidates scoring below this are excluded
        """
        self.scorer = scorer or KeywordOverlapScorer()
        self.min_relevance = min_relevance

    def match(
        self,
        query: str,
        candidates: SkillRegistry | Iterable[SkillMetadata],
    ) -> list[MatchScore]:
        """Score and rank candidates for a query.

        Args:
            query: Task description
            candidates: Registry snapshot or metadata in registry order

        Returns:
            Qualifying scores by descending relevance, ties in registry order.
            Empty when nothing qualifies.
        """
        if not query or not query.strip():
            return []

        if isinstance(candidates, SkillRegistry):
            candidates = candidates.list_metadata()

        scores = []
        for position, metadata in enumerate(candidates):
            relevance, terms = self.scorer(query, metadata)
            relevance = float(relevance)
            logger.debug(f"Score {metadata.id}: {relevance:.2f} {list(terms)}")
            if relevance < self.min_relevance:
                continue
            scores.append(
                MatchScore(
                    skill_id=metadata.id,
                    relevance=relevance,
                    matched_terms=tuple(terms),
                    position=position,
                )
            )

        scores.sort(key=lambda s: (-s.relevance, s.position))
        return scores
