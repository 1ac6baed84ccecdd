"""Application search – result containers."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from meal_search.application.search.query import SearchType

__all__ = ["ResultSection", "SearchHit", "SearchResultSet"]


@dataclass
class SearchHit:
    """One matched entity.

    ``document`` is the entity as the store returned it; ``highlights`` holds
    marked-up copies of the highlight fields, ``snippets`` the marked-up
    context windows around each match per field, and ``match`` any
    match-quality metadata produced by the specialised searches.
    """
    id: str | None
    type: SearchType
    document: dict[str, Any]
    score: float = 0.0
    highlights: dict[str, str] = field(default_factory=dict)
    snippets: dict[str, list[str]] = field(default_factory=dict)
    match: dict[str, Any] = field(default_factory=dict)


@dataclass
class ResultSection:
    """Results of one entity type."""
    type: SearchType
    hits: list[SearchHit]
    total: int
    page: int
    size: int
    relevance_score: float = 0.0
    facets: dict[str, list[Any]] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)

    @property
    def items(self) -> list[dict[str, Any]]:
        return [hit.document for hit in self.hits]

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


@dataclass
class SearchResultSet:
    """Composite answer of one search request.  Never persisted."""
    query: str
    type: SearchType
    sections: dict[SearchType, ResultSection]
    trending: list[str] = field(default_factory=list)
    popular: list[str] = field(default_factory=list)
    relevance_score: float = 0.0

    @property
    def is_multi(self) -> bool:
        return self.type is SearchType.ALL

    def copy(self) -> "SearchResultSet":
        """A deep copy; cached result sets are handed out through this."""
        return deepcopy(self)

    def section(self, search_type: SearchType) -> ResultSection:
        return self.sections[search_type]

    @property
    def hits(self) -> list[SearchHit]:
        return [hit for section in self.sections.values() for hit in section.hits]

    @property
    def items(self) -> list[dict[str, Any]] | dict[str, list[dict[str, Any]]]:
        """Single type: the matched documents.  ``all``: documents keyed by type."""
        if self.is_multi:
            return {t.value: s.items for t, s in self.sections.items()}
        return self.sections[self.type].items if self.type in self.sections else []

    @property
    def total(self) -> int:
        return sum(section.total for section in self.sections.values())

    @property
    def facets(self) -> dict[str, list[Any]]:
        if not self.is_multi:
            return self.sections[self.type].facets if self.type in self.sections else {}
        return {
            f"{t.value}.{name}": values
            for t, s in self.sections.items()
            for name, values in s.facets.items()
        }

    @property
    def suggestions(self) -> list[str]:
        merged: list[str] = []
        seen: set[str] = set()
        for section in self.sections.values():
            for s in section.suggestions:
                if s.lower() not in seen:
                    seen.add(s.lower())
                    merged.append(s)
        return merged[:5]

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "type": self.type.value,
            "items": self.items,
            "facets": self.facets,
            "suggestions": self.suggestions,
            "trending": list(self.trending),
            "popular": list(self.popular),
            "relevance_score": self.relevance_score,
        }
