"""Unit tests for ingredient, nutrition, skill-level and similarity searches."""
from __future__ import annotations

import asyncio

import pytest

from meal_search.application.search import NutrientRange, SearchOrchestrator, SearchType
from meal_search.application.search.matching import (
    attribute_set,
    ingredient_match,
    jaccard,
    normalise_items,
    nutrient_match,
    skill_match,
)
from meal_search.application.search.profiles import COMMUNITY, RECIPE
from meal_search.application.trends import InMemoryTrendStore
from meal_search.kernel.errors import InvalidRequestError


def _ids(result) -> list[str]:
    return [hit.id for hit in result.hits]


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------


class TestMatching:
    def test_normalise_items(self) -> None:
        assert normalise_items(["  Eggs ", "eggs", "Black  Pepper"], "ingredients") == [
            "eggs",
            "black pepper",
        ]

    @pytest.mark.parametrize("items", [None, [], ["  "]])
    def test_normalise_items_rejects_empty(self, items) -> None:
        with pytest.raises(InvalidRequestError) as exc_info:
            normalise_items(items, "ingredients")
        assert exc_info.value.field == "ingredients"

    def test_ingredient_match(self) -> None:
        fraction, meta = ingredient_match({"ingredients": "rice, eggs"}, ["eggs", "pecorino"])
        assert fraction == 0.5
        assert meta == {
            "matched_ingredients": ["eggs"],
            "missing_ingredients": ["pecorino"],
            "match_percentage": 50.0,
        }

    def test_nutrient_range_validation(self) -> None:
        with pytest.raises(InvalidRequestError):
            NutrientRange()
        with pytest.raises(InvalidRequestError):
            NutrientRange(min=10, max=5)
        with pytest.raises(InvalidRequestError):
            NutrientRange(max=float("inf"))
        with pytest.raises(InvalidRequestError):
            NutrientRange(max="500")  # type: ignore[arg-type]
        assert NutrientRange(min=10).contains(10)
        assert not NutrientRange(max=500).contains(501)

    def test_nutrient_match(self) -> None:
        doc = {"nutrition": {"calories": 650, "protein": 25}}
        fraction, meta = nutrient_match(
            doc, {"calories": NutrientRange(max=500), "protein": NutrientRange(min=10), "fat": NutrientRange(max=5)}
        )
        assert fraction == pytest.approx(1 / 3)
        assert meta["within_range"] == ["protein"]
        assert meta["out_of_range"] == ["calories"]
        assert meta["missing_nutrients"] == ["fat"]

    def test_nutrient_match_without_nutrition(self) -> None:
        assert nutrient_match({"title": "x"}, {"calories": NutrientRange(max=1)}) is None

    def test_skill_match_case_insensitive(self) -> None:
        fraction, meta = skill_match({"tags": ["Salad", "summer"]}, "tags", ["salad", "grill"])
        assert fraction == 0.5
        assert meta["matched_skills"] == ["salad"]

    def test_attribute_set_and_jaccard(self) -> None:
        attrs = attribute_set({"name": "Pasta Lovers", "category": "CUISINE"}, COMMUNITY)
        assert attrs == {"name:pasta", "name:lovers", "category:cuisine"}
        assert jaccard(attrs, {"name:pasta"}) == pytest.approx(1 / 3)
        assert jaccard(set(), set()) == 0.0
        assert attribute_set({"title": "x"}, RECIPE) == set()


# ---------------------------------------------------------------------------
# search_by_ingredients
# ---------------------------------------------------------------------------


class TestSearchByIngredients:
    def test_ranked_by_match_percentage(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.search_by_ingredients(["Eggs", "pecorino"]))
        assert _ids(result) == ["r1", "r3"]
        assert [h.match["match_percentage"] for h in result.hits] == [100.0, 50.0]
        assert result.hits[1].match["missing_ingredients"] == ["pecorino"]
        assert result.total == 2
        assert result.type is SearchType.RECIPE
        assert result.query == "eggs, pecorino"
        # two hits with mean quality 0.75
        assert result.relevance_score == pytest.approx((0.2 + 0.75) / 2)

    def test_min_match_percentage(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.search_by_ingredients(["eggs", "pecorino"], min_match_percentage=75))
        assert _ids(result) == ["r1"]

    def test_private_recipes_excluded(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.search_by_ingredients(["garlic"]))
        assert result.total == 0
        assert result.relevance_score == 0.0

    def test_invalid_inputs(self, orchestrator: SearchOrchestrator) -> None:
        with pytest.raises(InvalidRequestError):
            asyncio.run(orchestrator.search_by_ingredients([]))
        with pytest.raises(InvalidRequestError) as exc_info:
            asyncio.run(orchestrator.search_by_ingredients(["eggs"], min_match_percentage=120))
        assert exc_info.value.field == "min_match_percentage"

    def test_does_not_record_trends(
        self, orchestrator: SearchOrchestrator, trend_store: InMemoryTrendStore
    ) -> None:
        async def scenario():
            await orchestrator.search_by_ingredients(["eggs"])
            await orchestrator.drain()

        asyncio.run(scenario())
        assert len(trend_store) == 0


# ---------------------------------------------------------------------------
# search_by_nutritional_values
# ---------------------------------------------------------------------------


class TestSearchByNutrition:
    def test_ranges(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(
            orchestrator.search_by_nutritional_values(
                {"Calories": {"max": 500}, "protein": NutrientRange(min=10)}
            )
        )
        assert _ids(result) == ["r2", "r3"]
        assert all(h.match["match_percentage"] == 100.0 for h in result.hits)

    def test_partial_matches_with_lower_threshold(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(
            orchestrator.search_by_nutritional_values(
                {"calories": {"max": 400}, "protein": {"min": 20}}, min_match_percentage=50
            )
        )
        # r1 meets protein only, r3 meets calories only, r2 meets neither
        assert sorted(_ids(result)) == ["r1", "r3"]

    @pytest.mark.parametrize(
        "ranges",
        [
            {},
            {"calories": {}},
            {"calories": {"min": 10, "max": 1}},
            {" ": {"max": 1}},
            {"calories": {"minimum": 100}},
            {"calories": {"max": "500"}},
            {"calories": {"min": None, "max": [500]}},
            {"calories": {"max": True}},
            {"calories": 500},
            {"calories": "max=500"},
        ],
    )
    def test_invalid_ranges(self, orchestrator: SearchOrchestrator, ranges) -> None:
        with pytest.raises(InvalidRequestError) as exc_info:
            asyncio.run(orchestrator.search_by_nutritional_values(ranges))
        assert exc_info.value.field == "nutrients"


# ---------------------------------------------------------------------------
# search_by_skill_level
# ---------------------------------------------------------------------------


class TestSearchBySkillLevel:
    def test_recipes_by_difficulty_and_skills(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.search_by_skill_level("easy", "recipe", skills=["salad"]))
        assert _ids(result) == ["r2", "r3"]
        assert [h.match["match_percentage"] for h in result.hits] == [100.0, 0.0]
        assert result.hits[0].match["level"] == "EASY"

    def test_users_by_expertise(self, orchestrator: SearchOrchestrator) -> None:
        # the disabled beginner is excluded
        result = asyncio.run(orchestrator.search_by_skill_level("Beginner", "users"))
        assert _ids(result) == ["u2"]
        assert result.hits[0].match["match_percentage"] == 100.0

    def test_unsupported_type(self, orchestrator: SearchOrchestrator) -> None:
        with pytest.raises(InvalidRequestError) as exc_info:
            asyncio.run(orchestrator.search_by_skill_level("easy", "community"))
        assert exc_info.value.field == "type"

    def test_blank_level(self, orchestrator: SearchOrchestrator) -> None:
        with pytest.raises(InvalidRequestError) as exc_info:
            asyncio.run(orchestrator.search_by_skill_level("  ", "recipe"))
        assert exc_info.value.field == "level"


# ---------------------------------------------------------------------------
# find_similar_content
# ---------------------------------------------------------------------------


class TestFindSimilarContent:
    def test_similar_recipes(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.find_similar_content("r1", "recipe"))
        assert _ids(result) == ["r2"]
        hit = result.hits[0]
        assert hit.score == pytest.approx(0.25)
        assert hit.match["shared_attributes"] == ["cuisine_type:italian", "tags:pasta"]

    def test_similar_communities_exclude_private(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.find_similar_content("c1", "community"))
        # c3 shares name and category but is private
        assert _ids(result) == []

    def test_limit(self, make_store, tracker) -> None:
        recipes = [{"id": str(i), "tags": ["soup"], "is_public": True} for i in range(8)]
        orchestrator = SearchOrchestrator(make_store(recipes=recipes), tracker)
        result = asyncio.run(orchestrator.find_similar_content("0", "recipe", limit=3))
        assert len(result.hits) == 3
        assert result.total == 7

    def test_unknown_source(self, orchestrator: SearchOrchestrator) -> None:
        result = asyncio.run(orchestrator.find_similar_content("nope", "recipe"))
        assert result.total == 0
        assert result.hits == []

    def test_all_is_rejected(self, orchestrator: SearchOrchestrator) -> None:
        with pytest.raises(InvalidRequestError):
            asyncio.run(orchestrator.find_similar_content("r1", "all"))
