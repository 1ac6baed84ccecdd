"""Application search – relevance scoring of result sets.

The weights are heuristic defaults, not business rules; pass a different
:class:`ScoringWeights` to tune them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from meal_search.application.search.profiles import EntityProfile
from meal_search.application.search.store import field_values, term_in

__all__ = ["RelevanceScorer", "ScoringWeights"]


@dataclass(frozen=True)
class ScoringWeights:
    primary: float = 0.5
    secondary: float = 0.3
    saturation: int = 10

    def __post_init__(self) -> None:
        if self.primary <= 0 or self.secondary < 0 or self.saturation <= 0:
            raise ValueError("primary and saturation must be positive, secondary non-negative")


class RelevanceScorer:
    """Computes a 0..1 quality score for a result set.

    ``relevance = (base + quality) / 2`` where ``base`` rewards result-set
    size up to ``saturation`` results and ``quality`` is the mean per-item
    term-match score.  A hit matching every term in a primary field scores
    1.0 on its own.
    """

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or ScoringWeights()

    def item_score(
        self,
        terms: Sequence[str],
        doc: Mapping[str, Any],
        profile: EntityProfile,
        min_similarity: float | None = None,
    ) -> float:
        if not terms:
            return 0.0
        primary = [v for f in profile.primary_fields for v in field_values(doc, f)]
        secondary = [v for f in profile.secondary_fields for v in field_values(doc, f)]
        raw = 0.0
        for term in terms:
            if term_in(term, primary, min_similarity):
                raw += self.weights.primary
            if term_in(term, secondary, min_similarity):
                raw += self.weights.secondary
        return min(1.0, raw / (self.weights.primary * len(terms)))

    def base_score(self, result_count: int) -> float:
        return min(1.0, max(0, result_count) / float(self.weights.saturation))

    def combine(self, result_count: int, quality: float) -> float:
        """Blend set size and mean match quality; an empty set scores 0.0."""
        if result_count <= 0:
            return 0.0
        return (self.base_score(result_count) + min(1.0, max(0.0, quality))) / 2.0

    def score(
        self,
        terms: Sequence[str],
        results: Iterable[tuple[Mapping[str, Any], EntityProfile]],
        min_similarity: float | None = None,
    ) -> float:
        results = list(results)
        if not results:
            return 0.0
        item_scores = [self.item_score(terms, doc, profile, min_similarity) for doc, profile in results]
        return self.combine(len(results), sum(item_scores) / len(item_scores))
