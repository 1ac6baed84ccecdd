"""Application search – query model, scoring, facets and the orchestrator."""
from meal_search.application.search.executor import SearchExecutor
from meal_search.application.search.facets import FacetGenerator, SuggestionGenerator
from meal_search.application.search.filters import build_text_query, parse_filters, validate_criteria
from meal_search.application.search.highlight import Highlighter
from meal_search.application.search.matching import NutrientRange
from meal_search.application.search.orchestrator import SearchOrchestrator
from meal_search.application.search.profiles import (
    COMMUNITY,
    PROFILES,
    RECIPE,
    USER,
    EntityProfile,
    profile_for,
)
from meal_search.application.search.query import (
    EMPTY,
    Constraint,
    SearchCriteria,
    SearchType,
    SortDirection,
    SortSpec,
    TextQuery,
    tokenize,
)
from meal_search.application.search.result import ResultSection, SearchHit, SearchResultSet
from meal_search.application.search.scoring import RelevanceScorer, ScoringWeights
from meal_search.application.search.store import InMemoryTextStore, TextStore

__all__ = [
    "COMMUNITY",
    "Constraint",
    "EMPTY",
    "EntityProfile",
    "FacetGenerator",
    "Highlighter",
    "InMemoryTextStore",
    "NutrientRange",
    "PROFILES",
    "RECIPE",
    "RelevanceScorer",
    "ResultSection",
    "ScoringWeights",
    "SearchCriteria",
    "SearchExecutor",
    "SearchHit",
    "SearchOrchestrator",
    "SearchResultSet",
    "SearchType",
    "SortDirection",
    "SortSpec",
    "SuggestionGenerator",
    "TextQuery",
    "TextStore",
    "USER",
    "build_text_query",
    "parse_filters",
    "profile_for",
    "tokenize",
    "validate_criteria",
]
