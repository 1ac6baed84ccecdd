"""Shared corpus and wiring for the application-layer tests."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from meal_search.application.cache import CacheRegistry
from meal_search.application.search import InMemoryTextStore, SearchOrchestrator
from meal_search.application.trends import InMemoryTrendStore, TrendTracker
from meal_search.kernel.time import FrozenClock

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

RECIPES: list[dict[str, Any]] = [
    {
        "id": "r1",
        "title": "Pasta Carbonara",
        "description": "Creamy Roman pasta with eggs and pecorino",
        "ingredients": "spaghetti, eggs, pecorino, guanciale, black pepper",
        "cuisine_type": "ITALIAN",
        "difficulty_level": "MEDIUM",
        "tags": ["pasta", "pasta night", "dinner"],
        "is_public": True,
        "likes_count": 12,
        "nutrition": {"calories": 650, "protein": 25},
    },
    {
        "id": "r2",
        "title": "Pasta Salad",
        "description": "Cold salad for summer picnics",
        "ingredients": "fusilli pasta, cherry tomatoes, black olives, crumbled feta, basil",
        "cuisine_type": "ITALIAN",
        "difficulty_level": "EASY",
        "tags": ["pasta", "salad", "summer"],
        "is_public": True,
        "likes_count": 30,
        "nutrition": {"calories": 420, "protein": 12},
    },
    {
        "id": "r3",
        "title": "Rice Bowl",
        "description": "Steamed rice with vegetables",
        "ingredients": "rice, carrots, soy sauce, eggs",
        "cuisine_type": "JAPANESE",
        "difficulty_level": "EASY",
        "tags": ["rice", "lunch"],
        "is_public": True,
        "likes_count": 5,
        "nutrition": {"calories": 380, "protein": 10},
    },
    {
        "id": "r4",
        "title": "Secret Pasta Sauce",
        "description": "Family recipe",
        "ingredients": "tomatoes, garlic",
        "cuisine_type": "ITALIAN",
        "difficulty_level": "HARD",
        "tags": ["pasta"],
        "is_public": False,
        "likes_count": 1,
    },
]

USERS: list[dict[str, Any]] = [
    {
        "id": "u1",
        "username": "pastaqueen",
        "name": "Maria Rossi",
        "bio": "I cook pasta every day",
        "cooking_expertise": "ADVANCED",
        "interests": ["pasta", "baking"],
        "enabled": True,
    },
    {
        "id": "u2",
        "username": "ricelover",
        "name": "Ken Sato",
        "bio": "Rice and noodles",
        "cooking_expertise": "BEGINNER",
        "interests": ["rice"],
        "enabled": True,
    },
    {
        "id": "u3",
        "username": "banned_pasta",
        "name": "Ghost",
        "bio": "pasta",
        "cooking_expertise": "BEGINNER",
        "interests": [],
        "enabled": False,
    },
]

COMMUNITIES: list[dict[str, Any]] = [
    {
        "id": "c1",
        "name": "Pasta Lovers",
        "description": "Everything about fresh pasta",
        "category": "CUISINE",
        "is_private": False,
        "member_count": 120,
    },
    {
        "id": "c2",
        "name": "Weeknight Dinners",
        "description": "Quick dinner ideas",
        "category": "LIFESTYLE",
        "is_private": False,
        "member_count": 40,
    },
    {
        "id": "c3",
        "name": "Pasta Insiders",
        "description": "Invite only",
        "category": "CUISINE",
        "is_private": True,
        "member_count": 8,
    },
]


def build_store(
    recipes: list[dict[str, Any]] | None = None,
    users: list[dict[str, Any]] | None = None,
    communities: list[dict[str, Any]] | None = None,
) -> InMemoryTextStore:
    return InMemoryTextStore(
        {
            "recipes": RECIPES if recipes is None else recipes,
            "users": USERS if users is None else users,
            "communities": COMMUNITIES if communities is None else communities,
        }
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def store() -> InMemoryTextStore:
    return build_store()


@pytest.fixture
def trend_store() -> InMemoryTrendStore:
    return InMemoryTrendStore()


@pytest.fixture
def tracker(trend_store: InMemoryTrendStore, clock: FrozenClock) -> TrendTracker:
    return TrendTracker(trend_store, clock=clock)


@pytest.fixture
def caches() -> CacheRegistry:
    return CacheRegistry.in_memory()


@pytest.fixture
def orchestrator(
    store: InMemoryTextStore, tracker: TrendTracker, caches: CacheRegistry
) -> SearchOrchestrator:
    return SearchOrchestrator(store, tracker, caches)


@pytest.fixture
def make_store():
    """Factory for stores over a custom corpus (defaults to the shared one)."""
    return build_store


@pytest.fixture
def recipes() -> list[dict[str, Any]]:
    return [dict(r) for r in RECIPES]
