"""Application search – SearchOrchestrator, the entry point of every search.

Control flow of one search::

    criteria ─► validate ─► results cache ─► executors (one per type, in
    parallel) ─► trending / popular lists ─► SearchResultSet ─► caller
                                                       └─► record_search
                                                           (background task)

Every public operation runs under a :class:`TimeoutPolicy`.  Text-store
failures surface as :class:`DependencyFailureError`; trend bookkeeping
failures never reach the caller.
"""
from __future__ import annotations

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Coroutine, Iterable, Mapping, Sequence

from meal_search.application.cache import (
    AUTOCOMPLETE,
    FACETS,
    SEARCH_RESULTS,
    TRENDING,
    CacheKey,
    CacheRegistry,
)
from meal_search.application.search.executor import SearchExecutor, hit_from
from meal_search.application.search.facets import FacetGenerator, SuggestionGenerator
from meal_search.application.search.filters import validate_criteria
from meal_search.application.search.highlight import Highlighter
from meal_search.application.search.matching import (
    NutrientRange,
    attribute_set,
    ingredient_match,
    jaccard,
    normalise_items,
    nutrient_match,
    skill_match,
)
from meal_search.application.search.profiles import PROFILES, RECIPE, EntityProfile
from meal_search.application.search.query import Constraint, SearchCriteria, SearchType, TextQuery
from meal_search.application.search.result import ResultSection, SearchResultSet
from meal_search.application.search.scoring import RelevanceScorer
from meal_search.application.search.store import TextStore, guarded
from meal_search.application.trends import SearchTrend, TrendTracker
from meal_search.kernel.errors import InvalidRequestError
from meal_search.observability.logging import bind_search_context, get_logger
from meal_search.resilience.timeouts import TimeoutPolicy

__all__ = ["SearchOrchestrator"]

_log = get_logger(__name__)

Ranked = list[tuple[dict[str, Any], float, dict[str, Any]]]

# search type -> (level field, skill attribute field)
_SKILL_FIELDS: dict[SearchType, tuple[str, str]] = {
    SearchType.RECIPE: ("difficulty_level", "tags"),
    SearchType.USER: ("cooking_expertise", "interests"),
}


def _unique_terms(trends: Iterable[SearchTrend]) -> list[str]:
    seen: dict[str, None] = {}
    for trend in trends:
        seen.setdefault(trend.search_term, None)
    return list(seen)


def _check_percentage(value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        raise InvalidRequestError(
            "min_match_percentage must be within [0, 100]", field="min_match_percentage"
        )
    return float(value)


def _nutrient_range(bounds: Any) -> NutrientRange:
    if isinstance(bounds, NutrientRange):
        return bounds
    if not isinstance(bounds, Mapping):
        raise InvalidRequestError("Nutrient bounds must be a mapping of min/max", field="nutrients")
    unknown = sorted(str(k) for k in bounds if k not in ("min", "max"))
    if unknown:
        raise InvalidRequestError(
            f"Unknown nutrient bound keys: {', '.join(unknown)}", field="nutrients"
        )
    return NutrientRange(min=bounds.get("min"), max=bounds.get("max"))


class SearchOrchestrator:
    """Free-text and specialised searches over recipes, users and communities."""

    def __init__(
        self,
        store: TextStore,
        tracker: TrendTracker,
        caches: CacheRegistry | None = None,
        scorer: RelevanceScorer | None = None,
        highlighter: Highlighter | None = None,
        timeout_seconds: float = 5.0,
        default_page_size: int = 20,
        max_page_size: int = 100,
        suggestion_limit: int = 5,
        autocomplete_limit: int = 10,
        candidate_limit: int = 500,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._caches = caches or CacheRegistry.in_memory()
        self._scorer = scorer or RelevanceScorer()
        self._timeout = TimeoutPolicy(timeout_seconds)
        self._facets = FacetGenerator(store, self._caches[FACETS])
        self._executor = SearchExecutor(
            store,
            self._scorer,
            highlighter or Highlighter(),
            self._facets,
            SuggestionGenerator(store, limit=suggestion_limit),
        )
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.autocomplete_limit = autocomplete_limit
        self.candidate_limit = candidate_limit
        self._pending: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        store: TextStore,
        tracker: TrendTracker,
        caches: CacheRegistry,
        settings: Any,
    ) -> "SearchOrchestrator":
        return cls(
            store,
            tracker,
            caches,
            timeout_seconds=settings.search_timeout_seconds,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
            suggestion_limit=settings.suggestion_limit,
            autocomplete_limit=settings.autocomplete_limit,
        )

    # ------------------------------------------------------------------
    # Free-text searches
    # ------------------------------------------------------------------

    def criteria(self, **fields: Any) -> SearchCriteria:
        """Build :class:`SearchCriteria` with this orchestrator's paging limits."""
        if fields.get("size") is None:
            fields["size"] = self.default_page_size
        fields.setdefault("max_size", self.max_page_size)
        return SearchCriteria(**fields)

    async def search(self, criteria: SearchCriteria) -> SearchResultSet:
        return await self._run(criteria, "search")

    async def fuzzy_search(
        self,
        query: str,
        search_type: SearchType | str = SearchType.ALL,
        min_similarity: float = 0.8,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Search that also accepts tokens similar to a term (difflib ratio)."""
        criteria = self.criteria(
            query=query, type=search_type, min_similarity=min_similarity, page=page, size=size
        )
        return await self._run(criteria, "fuzzy_search")

    async def weighted_search(
        self,
        query: str,
        search_type: SearchType | str,
        field_weights: Mapping[str, float] | None,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Search ranked by caller-supplied per-field weights."""
        if field_weights is None:
            raise InvalidRequestError("field_weights must be a non-empty mapping", field="field_weights")
        criteria = self.criteria(
            query=query, type=search_type, field_weights=field_weights, page=page, size=size
        )
        return await self._run(criteria, "weighted_search")

    async def faceted_search(
        self,
        query: str,
        search_type: SearchType | str,
        facet_fields: Sequence[str],
        facet_filters: Mapping[str, Sequence[str]] | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Search whose facet map is restricted to *facet_fields*."""
        criteria = self.criteria(
            query=query, type=search_type, facets=facet_filters or {}, page=page, size=size
        )
        fields = list(dict.fromkeys(facet_fields or ()))
        if not fields:
            raise InvalidRequestError("facet_fields must not be empty", field="facets")
        known = {f for t in criteria.types for f in PROFILES[t].facet_fields}
        unknown = [f for f in fields if f not in known]
        if unknown:
            raise InvalidRequestError(f"Unknown facet fields: {', '.join(unknown)}", field="facets")
        return await self._run(criteria, "faceted_search", facet_fields=fields)

    async def _run(
        self,
        criteria: SearchCriteria,
        operation: str,
        facet_fields: Sequence[str] | None = None,
    ) -> SearchResultSet:
        validate_criteria(criteria, [PROFILES[t] for t in criteria.types])
        key = CacheKey.for_query(
            operation,
            criteria=criteria.cache_key(),
            facet_fields=list(facet_fields) if facet_fields is not None else None,
        )
        with bind_search_context(
            request_id=uuid.uuid4().hex[:12], search_type=criteria.type.value, operation=operation
        ):
            result = await self._timeout.execute(
                lambda: self._caches[SEARCH_RESULTS].get_or_load(
                    key, lambda: self._compute(criteria, facet_fields)
                ),
                operation=operation,
            )
            _log.info(
                "search_completed",
                query=criteria.query,
                total=result.total,
                relevance_score=round(result.relevance_score, 4),
            )
        if criteria.query:
            self._spawn(
                self._tracker.record_search(
                    criteria.query, criteria.type.value, result.total, result.relevance_score
                )
            )
        return result.copy()

    async def _compute(
        self, criteria: SearchCriteria, facet_fields: Sequence[str] | None
    ) -> SearchResultSet:
        profiles = [PROFILES[t] for t in criteria.types]
        sections = await asyncio.gather(
            *(self._executor.execute(criteria, p, facet_fields) for p in profiles)
        )
        if criteria.type is SearchType.ALL:
            hits = [hit for s in sections for hit in s.hits]
            quality = sum(h.score for h in hits) / len(hits) if hits else 0.0
            relevance = self._scorer.combine(sum(s.total for s in sections), quality) if hits else 0.0
        else:
            relevance = sections[0].relevance_score
        trending, popular = await self._trend_lists(criteria.type)
        return SearchResultSet(
            query=criteria.query,
            type=criteria.type,
            sections={s.type: s for s in sections},
            trending=trending,
            popular=popular,
            relevance_score=relevance,
        )

    async def _trend_lists(self, search_type: SearchType) -> tuple[list[str], list[str]]:
        cache = self._caches[TRENDING]
        trend_type = None if search_type is SearchType.ALL else search_type.value

        async def load_trending() -> list[str]:
            return _unique_terms(await self._tracker.get_trending_searches(trend_type))

        async def load_popular() -> list[str]:
            return _unique_terms(await self._tracker.get_popular_searches())

        trending = await cache.get_or_load(f"trending:{search_type.value}", load_trending)
        popular = await cache.get_or_load("trending:popular", load_popular)
        return list(trending), list(popular)

    # ------------------------------------------------------------------
    # Autocomplete and click tracking
    # ------------------------------------------------------------------

    async def auto_complete(self, prefix: str, search_type: SearchType | str = SearchType.RECIPE) -> list[str]:
        """Case-insensitive prefix match on the title/name field, in store order."""
        st = SearchType.parse(search_type)
        cleaned = (prefix or "").strip()
        if not cleaned:
            return []

        async def load() -> list[str]:
            seen: set[str] = set()
            out: list[str] = []
            for t in st.concrete():
                profile = PROFILES[t]
                values = await guarded(
                    "prefix_match",
                    self._store.prefix_match(
                        profile.collection,
                        profile.autocomplete_field,
                        cleaned,
                        self.autocomplete_limit,
                        constraints=(profile.public_constraint,),
                    ),
                )
                for value in values:
                    if value.lower() not in seen:
                        seen.add(value.lower())
                        out.append(value)
            return out[: self.autocomplete_limit]

        key = CacheKey.for_autocomplete(cleaned, st.value)
        values = await self._timeout.execute(
            lambda: self._caches[AUTOCOMPLETE].get_or_load(key, load), operation="auto_complete"
        )
        return list(values)

    async def track_click_through(
        self, term: str, result_id: str | None, search_type: SearchType | str
    ) -> None:
        st = SearchType.parse(search_type)
        await self._tracker.record_click_through(term, st.value, result_id)

    # ------------------------------------------------------------------
    # Specialised searches
    # ------------------------------------------------------------------

    async def search_by_ingredients(
        self,
        ingredients: Sequence[str],
        min_match_percentage: float = 0.0,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Public recipes ranked by the share of *ingredients* they contain."""
        wanted = normalise_items(ingredients, "ingredients")
        threshold = _check_percentage(min_match_percentage)

        async def rank() -> Ranked:
            candidates = TextQuery(
                terms=tuple(wanted),
                text_fields=("ingredients",),
                constraints=(RECIPE.public_constraint,),
                limit=self.candidate_limit,
            )
            docs = await guarded("find", self._store.find(RECIPE.collection, candidates))
            ranked: Ranked = []
            for doc in docs:
                fraction, meta = ingredient_match(doc, wanted)
                if fraction > 0 and meta["match_percentage"] >= threshold:
                    ranked.append((doc, fraction, meta))
            return ranked

        return await self._specialised(
            "search_by_ingredients", ", ".join(wanted), RECIPE, rank, page, size
        )

    async def search_by_nutritional_values(
        self,
        ranges: Mapping[str, NutrientRange | Mapping[str, float]],
        min_match_percentage: float = 100.0,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Public recipes whose ``nutrition`` values fall within *ranges*."""
        if not ranges:
            raise InvalidRequestError("At least one nutrient range is required", field="nutrients")
        wanted: dict[str, NutrientRange] = {}
        for name, bounds in ranges.items():
            key = str(name).strip().lower()
            if not key:
                raise InvalidRequestError("Nutrient names must not be blank", field="nutrients")
            wanted[key] = _nutrient_range(bounds)
        threshold = _check_percentage(min_match_percentage)

        async def rank() -> Ranked:
            candidates = TextQuery(
                constraints=(RECIPE.public_constraint, Constraint("nutrition", True, "exists")),
                limit=self.candidate_limit,
            )
            docs = await guarded("find", self._store.find(RECIPE.collection, candidates))
            ranked: Ranked = []
            for doc in docs:
                evaluated = nutrient_match(doc, wanted)
                if evaluated is None:
                    continue
                fraction, meta = evaluated
                if meta["match_percentage"] >= threshold:
                    ranked.append((doc, fraction, meta))
            return ranked

        return await self._specialised(
            "search_by_nutritional_values", ", ".join(wanted), RECIPE, rank, page, size
        )

    async def search_by_skill_level(
        self,
        level: str,
        search_type: SearchType | str = SearchType.RECIPE,
        skills: Sequence[str] | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> SearchResultSet:
        """Recipes by difficulty or users by expertise, ranked by skill overlap."""
        st = SearchType.parse(search_type)
        if st not in _SKILL_FIELDS:
            raise InvalidRequestError(
                "Skill level search supports recipes and users only", field="type"
            )
        wanted_level = (level or "").strip().upper()
        if not wanted_level:
            raise InvalidRequestError("Skill level is required", field="level")
        wanted_skills = normalise_items(skills, "skills") if skills else []
        level_field, skill_field = _SKILL_FIELDS[st]
        profile = PROFILES[st]

        async def rank() -> Ranked:
            candidates = TextQuery(
                constraints=(profile.public_constraint, Constraint(level_field, wanted_level)),
                limit=self.candidate_limit,
            )
            docs = await guarded("find", self._store.find(profile.collection, candidates))
            ranked: Ranked = []
            for doc in docs:
                fraction, meta = skill_match(doc, skill_field, wanted_skills)
                ranked.append((doc, fraction, {"level": wanted_level, **meta}))
            return ranked

        return await self._specialised(
            "search_by_skill_level", wanted_level.lower(), profile, rank, page, size
        )

    async def find_similar_content(
        self,
        content_id: str,
        search_type: SearchType | str = SearchType.RECIPE,
        limit: int = 10,
    ) -> SearchResultSet:
        """Entities sharing attributes with *content_id*, by Jaccard similarity."""
        st = SearchType.parse(search_type)
        if st is SearchType.ALL:
            raise InvalidRequestError("Similarity search needs a concrete type", field="type")
        profile = PROFILES[st]
        source_id = str(content_id)

        async def rank() -> Ranked:
            source = await guarded("get", self._store.get(profile.collection, source_id))
            if source is None:
                _log.info("similar_source_not_found", content_id=source_id)
                return []
            source_attrs = attribute_set(source, profile)
            if not source_attrs:
                return []
            candidates = TextQuery(
                constraints=(profile.public_constraint,), limit=self.candidate_limit
            )
            docs = await guarded("find", self._store.find(profile.collection, candidates))
            ranked: Ranked = []
            for doc in docs:
                if str(doc.get("id")) == source_id:
                    continue
                attrs = attribute_set(doc, profile)
                similarity = jaccard(source_attrs, attrs)
                if similarity > 0:
                    shared = sorted(source_attrs & attrs)
                    ranked.append((doc, similarity, {"shared_attributes": shared, "similarity": similarity}))
            return ranked

        return await self._specialised(
            "find_similar_content", f"similar:{source_id}", profile, rank, 0, limit
        )

    async def _specialised(
        self,
        operation: str,
        label: str,
        profile: EntityProfile,
        rank: Callable[[], Awaitable[Ranked]],
        page: int,
        size: int | None,
    ) -> SearchResultSet:
        paging = self.criteria(type=profile.type, page=page, size=size)

        async def compute() -> SearchResultSet:
            ranked = sorted(await rank(), key=lambda r: r[1], reverse=True)
            start = paging.page * paging.size
            window = ranked[start:start + paging.size]
            hits = [hit_from(doc, profile, fraction, match=meta) for doc, fraction, meta in window]
            quality = sum(h.score for h in hits) / len(hits) if hits else 0.0
            relevance = self._scorer.combine(len(ranked), quality) if hits else 0.0
            facets = await self._facets.generate(profile)
            trending, popular = await self._trend_lists(profile.type)
            section = ResultSection(
                type=profile.type,
                hits=hits,
                total=len(ranked),
                page=paging.page,
                size=paging.size,
                relevance_score=relevance,
                facets=facets,
            )
            return SearchResultSet(
                query=label,
                type=profile.type,
                sections={profile.type: section},
                trending=trending,
                popular=popular,
                relevance_score=relevance,
            )

        with bind_search_context(
            request_id=uuid.uuid4().hex[:12], search_type=profile.type.value, operation=operation
        ):
            result = await self._timeout.execute(compute, operation=operation)
            _log.info("search_completed", query=label, total=result.total)
        return result

    # ------------------------------------------------------------------
    # Background trend recording
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending_recordings(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight trend recording (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
