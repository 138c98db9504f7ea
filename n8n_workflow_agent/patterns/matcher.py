"""Lexical relevance ranking of catalog patterns against a request.

Scoring (all comparisons on lower-cased text):
  +2    per pattern keyword found as a substring of the description
  +3    when the pattern name appears in the description
  +1    when the pattern description appears in the description
  +1.5  per example that is a substring of the description, or vice versa

Patterns without a template for the requested platform are skipped, zero
scores are dropped, and the result is sorted by score descending. Python's
sort is stable, so equal scores keep catalog order.

This is deterministic keyword scoring, not language understanding.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from n8n_workflow_agent.patterns.catalog import CATALOG, Platform, WorkflowPattern

logger = logging.getLogger("n8n_workflow_agent.patterns.matcher")

KEYWORD_WEIGHT = 2.0
NAME_BONUS = 3.0
DESCRIPTION_BONUS = 1.0
EXAMPLE_BONUS = 1.5


@dataclass(frozen=True)
class PatternMatch:
    """One scored catalog entry."""

    pattern: WorkflowPattern
    score: float
    matched_keywords: tuple[str, ...] = ()
    missing_keywords: tuple[str, ...] = ()


def _platform_key(platform: str | Platform | None) -> str | None:
    if platform is None:
        return None
    return platform.value if isinstance(platform, Platform) else str(platform)


class PatternMatcher:
    """Ranks WorkflowPatterns against free-text descriptions.

    Stateless apart from the catalog it was given, so one instance can be
    shared between concurrent requests.
    """

    def __init__(self, patterns: Iterable[WorkflowPattern] | None = None) -> None:
        self._patterns: tuple[WorkflowPattern, ...] = (
            tuple(patterns) if patterns is not None else CATALOG
        )

    @property
    def patterns(self) -> tuple[WorkflowPattern, ...]:
        return self._patterns

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def score(self, pattern: WorkflowPattern, description: str) -> PatternMatch:
        """Score a single pattern against an already lower-cased description."""
        score = 0.0
        matched: list[str] = []
        missing: list[str] = []

        for keyword in sorted(pattern.keywords):
            kw = keyword.lower().strip()
            if kw and kw in description:
                score += KEYWORD_WEIGHT
                matched.append(keyword)
            else:
                missing.append(keyword)

        name = pattern.name.lower()
        if name and name in description:
            score += NAME_BONUS

        pattern_description = pattern.description.lower()
        if pattern_description and pattern_description in description:
            score += DESCRIPTION_BONUS

        for example in pattern.examples:
            ex = example.lower().strip()
            if ex and (ex in description or description in ex):
                score += EXAMPLE_BONUS

        return PatternMatch(
            pattern=pattern,
            score=score,
            matched_keywords=tuple(matched),
            missing_keywords=tuple(missing),
        )

    def find_matches(
        self, description: str, platform: str | Platform | None = None
    ) -> list[PatternMatch]:
        """Return every positive-scoring, platform-eligible pattern, best first."""
        normalized = (description or "").lower().strip()
        if not normalized:
            return []

        key = _platform_key(platform)
        matches: list[PatternMatch] = []
        for pattern in self._patterns:
            if key is not None and not pattern.supports(key):
                continue
            match = self.score(pattern, normalized)
            if match.score > 0:
                matches.append(match)

        matches.sort(key=lambda m: m.score, reverse=True)
        logger.debug(
            "PatternMatcher.find_matches(%r, platform=%s) → %d matches",
            description[:60], key, len(matches),
        )
        return matches

    def match(
        self, description: str, platform: str | Platform | None = None
    ) -> list[WorkflowPattern]:
        """Ranked patterns for description (highest relevance first)."""
        return [m.pattern for m in self.find_matches(description, platform)]

    def find_best_match(
        self, description: str, platform: str | Platform | None = None
    ) -> PatternMatch | None:
        matches = self.find_matches(description, platform)
        return matches[0] if matches else None

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    def get_pattern(self, pattern_id: str) -> WorkflowPattern | None:
        return next((p for p in self._patterns if p.id == pattern_id), None)

    def search_by_category(
        self, category: str, platform: str | Platform | None = None
    ) -> list[WorkflowPattern]:
        key = _platform_key(platform)
        return [
            p for p in self._patterns
            if p.category == category and (key is None or p.supports(key))
        ]

    def search_by_tags(
        self, tags: Sequence[str], platform: str | Platform | None = None
    ) -> list[WorkflowPattern]:
        wanted = set(tags)
        key = _platform_key(platform)
        return [
            p for p in self._patterns
            if wanted.intersection(p.tags) and (key is None or p.supports(key))
        ]

    def get_related_patterns(
        self, pattern: WorkflowPattern, limit: int = 5
    ) -> list[WorkflowPattern]:
        """Patterns sharing category, keywords, tags or services with pattern.

        +30 same category, +10 per shared keyword, +5 per shared tag,
        +8 per shared required service.
        """
        related: list[tuple[WorkflowPattern, float]] = []
        for candidate in self._patterns:
            if candidate.id == pattern.id:
                continue
            score = 0.0
            if candidate.category == pattern.category:
                score += 30
            score += 10 * len(pattern.keywords & candidate.keywords)
            score += 5 * len(set(pattern.tags) & set(candidate.tags))
            score += 8 * len(set(pattern.required_services) & set(candidate.required_services))
            if score > 0:
                related.append((candidate, score))

        related.sort(key=lambda item: item[1], reverse=True)
        return [p for p, _ in related[:limit]]
