"""Application search – per-type executor."""
from __future__ import annotations

import asyncio
from typing import Any, Sequence

from meal_search.application.search.facets import FacetGenerator, SuggestionGenerator
from meal_search.application.search.filters import build_text_query
from meal_search.application.search.highlight import Highlighter
from meal_search.application.search.profiles import EntityProfile
from meal_search.application.search.query import SearchCriteria, TextQuery
from meal_search.application.search.result import ResultSection, SearchHit
from meal_search.application.search.scoring import RelevanceScorer
from meal_search.application.search.store import TextStore, guarded
from meal_search.observability.logging import get_logger

__all__ = ["SearchExecutor", "hit_from"]

_log = get_logger(__name__)


def hit_from(doc: dict[str, Any], profile: EntityProfile, score: float = 0.0, **kwargs: Any) -> SearchHit:
    raw_id = doc.get("id")
    return SearchHit(
        id=str(raw_id) if raw_id is not None else None,
        type=profile.type,
        document=doc,
        score=score,
        **kwargs,
    )


class SearchExecutor:
    """Runs one :class:`SearchCriteria` against one entity profile.

    Builds the store query, fetches the page and its total, scores and
    highlights every hit, then attaches facets and suggestions.  An empty
    query (no text, no constraint) returns an empty page without touching
    the text store.
    """

    def __init__(
        self,
        store: TextStore,
        scorer: RelevanceScorer,
        highlighter: Highlighter,
        facets: FacetGenerator,
        suggestions: SuggestionGenerator,
    ) -> None:
        self._store = store
        self._scorer = scorer
        self._highlighter = highlighter
        self._facets = facets
        self._suggestions = suggestions

    async def _fetch(
        self, criteria: SearchCriteria, profile: EntityProfile, query: TextQuery
    ) -> tuple[list[tuple[dict[str, Any], float]], int]:
        """The scored page and the number of matches behind it.

        With a ``min_score`` threshold the whole candidate set is scored
        before paging, so the total and every page agree on which hits
        qualify.
        """
        terms = criteria.terms
        if terms and criteria.min_score > 0:
            candidates = await guarded("find", self._store.find(profile.collection, query.unpaged()))
            scored: list[tuple[dict[str, Any], float]] = []
            for doc in candidates:
                score = self._scorer.item_score(terms, doc, profile, criteria.min_similarity)
                if score >= criteria.min_score:
                    scored.append((doc, score))
            _log.debug(
                "min_score_applied",
                search_type=profile.type.value,
                candidates=len(candidates),
                kept=len(scored),
            )
            return scored[query.skip:query.skip + criteria.size], len(scored)

        docs, total = await asyncio.gather(
            guarded("find", self._store.find(profile.collection, query)),
            guarded("count", self._store.count(profile.collection, query)),
        )
        page = [
            (doc, self._scorer.item_score(terms, doc, profile, criteria.min_similarity) if terms else 0.0)
            for doc in docs
        ]
        return page, total

    def _snippets(self, doc: dict[str, Any], profile: EntityProfile, terms: Sequence[str]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for name in profile.highlight_fields:
            value = doc.get(name)
            if isinstance(value, str):
                contexts = self._highlighter.extract_contexts(value, terms)
                if contexts:
                    out[name] = contexts
        return out

    async def execute(
        self,
        criteria: SearchCriteria,
        profile: EntityProfile,
        facet_fields: Sequence[str] | None = None,
    ) -> ResultSection:
        query = build_text_query(criteria, profile)
        terms = criteria.terms

        scored: list[tuple[dict[str, Any], float]] = []
        total = 0
        if not query.is_empty:
            scored, total = await self._fetch(criteria, profile, query)

        hits: list[SearchHit] = []
        for doc, score in scored:
            if not terms:
                hits.append(hit_from(doc, profile, score))
                continue
            hits.append(
                hit_from(
                    doc,
                    profile,
                    score,
                    highlights=self._highlighter.highlight_document(doc, profile.highlight_fields, terms),
                    snippets=self._snippets(doc, profile, terms),
                )
            )

        quality = sum(h.score for h in hits) / len(hits) if hits else 0.0
        relevance = self._scorer.combine(total, quality) if hits else 0.0
        facets = await self._facets.generate(profile, facet_fields)
        suggestions = await self._suggestions.suggest(
            profile, criteria.query, terms, public_only=criteria.public_only
        )
        _log.debug("section_executed", search_type=profile.type.value, hits=len(hits), total=total)
        return ResultSection(
            type=profile.type,
            hits=hits,
            total=total,
            page=criteria.page,
            size=criteria.size,
            relevance_score=relevance,
            facets=facets,
            suggestions=suggestions,
        )
