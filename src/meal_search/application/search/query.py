"""Application search – SearchCriteria and the backend-agnostic TextQuery."""
from __future__ import annotations

import enum
import hashlib
import json
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Mapping

from meal_search.kernel.errors import InvalidRequestError

__all__ = [
    "Constraint",
    "EMPTY",
    "SearchCriteria",
    "SearchType",
    "SortDirection",
    "SortSpec",
    "TextQuery",
    "tokenize",
]

ConstraintOp = Literal["eq", "ne", "in", "gt", "gte", "lt", "lte", "exists"]


class SearchType(str, enum.Enum):
    RECIPE = "recipe"
    USER = "user"
    COMMUNITY = "community"
    ALL = "all"

    @classmethod
    def parse(cls, value: "SearchType | str | None") -> "SearchType":
        """Accept enum members, canonical names and the legacy plural aliases."""
        if isinstance(value, SearchType):
            return value
        if value is None:
            raise InvalidRequestError("Search type is required", field="type")
        key = str(value).strip().lower()
        try:
            return _TYPE_ALIASES[key]
        except KeyError:
            raise InvalidRequestError(f"Unknown search type '{value}'", field="type") from None

    def concrete(self) -> tuple["SearchType", ...]:
        """The entity types a search of this type fans out to."""
        if self is SearchType.ALL:
            return (SearchType.RECIPE, SearchType.USER, SearchType.COMMUNITY)
        return (self,)


_TYPE_ALIASES: dict[str, SearchType] = {
    "recipe": SearchType.RECIPE,
    "recipes": SearchType.RECIPE,
    "user": SearchType.USER,
    "users": SearchType.USER,
    "community": SearchType.COMMUNITY,
    "communities": SearchType.COMMUNITY,
    "groups": SearchType.COMMUNITY,
    "all": SearchType.ALL,
}


class SortDirection(str, enum.Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: "SortDirection | str") -> "SortDirection":
        if isinstance(value, SortDirection):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidRequestError(
                f"Sort direction must be ASC or DESC, got '{value}'", field="sort_direction"
            ) from None


def tokenize(text: str | None) -> tuple[str, ...]:
    """Lower-cased whitespace tokens, duplicates removed, order kept."""
    if not text:
        return ()
    seen: dict[str, None] = {}
    for token in text.lower().split():
        seen.setdefault(token, None)
    return tuple(seen)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class SearchCriteria:
    """One search request.  Immutable once built; validated on construction."""

    query: str = ""
    type: SearchType = SearchType.ALL
    filters: tuple[str, ...] = ()
    facets: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    page: int = 0
    size: int = 20
    sort_by: str | None = None
    sort_direction: SortDirection = SortDirection.DESC
    field_weights: Mapping[str, float] | None = None
    min_score: float = 0.0
    public_only: bool = True
    min_similarity: float | None = None
    max_size: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", (self.query or "").strip())
        object.__setattr__(self, "type", SearchType.parse(self.type))
        object.__setattr__(self, "sort_direction", SortDirection.parse(self.sort_direction))
        object.__setattr__(self, "filters", tuple(self.filters or ()))
        object.__setattr__(self, "facets", self._normalise_facets(self.facets))
        if self.field_weights is not None:
            object.__setattr__(self, "field_weights", self._normalise_weights(self.field_weights))

        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 0:
            raise InvalidRequestError("page must be a non-negative integer", field="page")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size <= 0:
            raise InvalidRequestError("size must be a positive integer", field="size")
        if self.size > self.max_size:
            raise InvalidRequestError(f"size must not exceed {self.max_size}", field="size")
        if not is_number(self.min_score) or not 0.0 <= self.min_score <= 1.0:
            raise InvalidRequestError("min_score must be within [0, 1]", field="min_score")
        if self.min_similarity is not None and (
            not is_number(self.min_similarity) or not 0.0 < self.min_similarity <= 1.0
        ):
            raise InvalidRequestError(
                "min_similarity must be within (0, 1]", field="min_similarity"
            )

    @staticmethod
    def _normalise_facets(facets: Mapping[str, Any] | None) -> dict[str, tuple[str, ...]]:
        out: dict[str, tuple[str, ...]] = {}
        for name, values in (facets or {}).items():
            if not isinstance(name, str) or not name:
                raise InvalidRequestError("facet names must be non-empty strings", field="facets")
            if isinstance(values, str):
                values = [values]
            values = tuple(values or ())
            if not values or not all(isinstance(v, str) and v for v in values):
                raise InvalidRequestError(
                    f"facet '{name}' needs a non-empty list of string values", field="facets"
                )
            out[name] = values
        return out

    @staticmethod
    def _normalise_weights(weights: Mapping[str, Any]) -> dict[str, float]:
        if not isinstance(weights, Mapping) or not weights:
            raise InvalidRequestError("field_weights must be a non-empty mapping", field="field_weights")
        out: dict[str, float] = {}
        for name, weight in weights.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise InvalidRequestError(
                    f"weight for '{name}' must be a number", field="field_weights"
                )
            if not math.isfinite(weight) or weight < 0:
                raise InvalidRequestError(
                    f"weight for '{name}' must be a finite non-negative number", field="field_weights"
                )
            out[str(name)] = float(weight)
        return out

    @property
    def terms(self) -> tuple[str, ...]:
        return tokenize(self.query)

    @property
    def types(self) -> tuple[SearchType, ...]:
        return self.type.concrete()

    def cache_key(self) -> str:
        """Deterministic digest of every field (used as the result-cache key)."""
        payload = asdict(self)
        payload["type"] = self.type.value
        payload["sort_direction"] = self.sort_direction.value
        canonical = json.dumps(payload, sort_keys=True, default=list)
        return hashlib.sha256(canonical.encode()).hexdigest()[:32]


@dataclass(frozen=True)
class Constraint:
    """A field-level constraint pushed down to the text store."""
    field: str
    value: Any
    op: ConstraintOp = "eq"


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.DESC


RELEVANCE = "_relevance"


@dataclass(frozen=True)
class TextQuery:
    """Backend-agnostic query against one collection.

    ``terms`` are matched with match-any semantics over ``text_fields``.
    Sorting on :data:`RELEVANCE` orders by the weighted number of matched
    terms (``field_weights``, default weight 1.0).
    """

    terms: tuple[str, ...] = ()
    text_fields: tuple[str, ...] = ()
    field_weights: Mapping[str, float] = field(default_factory=dict)
    constraints: tuple[Constraint, ...] = ()
    sort: SortSpec = SortSpec(RELEVANCE)
    skip: int = 0
    limit: int | None = None
    min_similarity: float | None = None

    @property
    def is_empty_text(self) -> bool:
        return not self.terms

    @property
    def is_empty(self) -> bool:
        """The "empty text" sentinel: nothing to match on and nothing to filter by."""
        return self.is_empty_text and not self.constraints

    @property
    def by_relevance(self) -> bool:
        return self.sort.field == RELEVANCE

    def weight_of(self, field_name: str) -> float:
        return self.field_weights.get(field_name, 1.0)

    def unpaged(self) -> "TextQuery":
        return TextQuery(
            terms=self.terms,
            text_fields=self.text_fields,
            field_weights=self.field_weights,
            constraints=self.constraints,
            sort=self.sort,
            min_similarity=self.min_similarity,
        )


EMPTY = TextQuery()
