"""Application trends – search-term trend bookkeeping."""
from meal_search.application.trends.model import SearchTrend, TrendKey, normalise_term
from meal_search.application.trends.store import (
    InMemoryTrendStore,
    RankField,
    TrendMutator,
    TrendStore,
)
from meal_search.application.trends.tracker import PopularityWeights, SweepResult, TrendTracker

__all__ = [
    "InMemoryTrendStore",
    "PopularityWeights",
    "RankField",
    "SearchTrend",
    "SweepResult",
    "TrendKey",
    "TrendMutator",
    "TrendStore",
    "TrendTracker",
    "normalise_term",
]
