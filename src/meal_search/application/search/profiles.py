"""Application search – per-entity-type search profiles.

A profile tells the executors, scorer, facet generator and highlighter
which document fields play which role for one content type.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from meal_search.application.search.query import Constraint, SearchType

__all__ = ["COMMUNITY", "EntityProfile", "PROFILES", "RECIPE", "USER", "profile_for"]


def _privacy(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered not in ("public", "private"):
        raise ValueError("privacy must be 'public' or 'private'")
    return lowered == "private"


@dataclass(frozen=True)
class EntityProfile:
    type: SearchType
    collection: str
    primary_fields: tuple[str, ...]
    secondary_fields: tuple[str, ...]
    text_fields: tuple[str, ...]
    highlight_fields: tuple[str, ...]
    autocomplete_field: str
    facet_fields: tuple[str, ...]
    suggestion_fields: tuple[str, ...]
    # filter prefix -> (document field, value converter)
    filter_prefixes: Mapping[str, tuple[str, Callable[[str], Any]]]
    sortable_fields: tuple[str, ...]
    similarity_fields: tuple[str, ...]
    public_constraint: Constraint
    default_weights: Mapping[str, float] = field(default_factory=dict)

    @property
    def searchable_fields(self) -> frozenset[str]:
        return frozenset(self.text_fields)


RECIPE = EntityProfile(
    type=SearchType.RECIPE,
    collection="recipes",
    primary_fields=("title",),
    secondary_fields=("description",),
    text_fields=("title", "description", "ingredients", "tags", "cuisine_type"),
    highlight_fields=("title", "description"),
    autocomplete_field="title",
    facet_fields=("cuisine_type", "difficulty_level"),
    suggestion_fields=("tags", "ingredients"),
    filter_prefixes={
        "cuisine": ("cuisine_type", str),
        "difficulty": ("difficulty_level", str),
        "tag": ("tags", str),
    },
    sortable_fields=("title", "created_at", "likes_count", "comments_count"),
    similarity_fields=("tags", "cuisine_type", "difficulty_level"),
    public_constraint=Constraint("is_public", True),
    default_weights={"title": 3.0, "tags": 2.0, "ingredients": 1.5},
)

USER = EntityProfile(
    type=SearchType.USER,
    collection="users",
    primary_fields=("username", "name"),
    secondary_fields=("bio",),
    text_fields=("username", "name", "bio", "interests"),
    highlight_fields=("username", "name", "bio"),
    autocomplete_field="username",
    facet_fields=("cooking_expertise",),
    suggestion_fields=("username", "name"),
    filter_prefixes={
        "expertise": ("cooking_expertise", str),
        "interest": ("interests", str),
    },
    sortable_fields=("username", "created_at"),
    similarity_fields=("interests", "cooking_expertise"),
    public_constraint=Constraint("enabled", True),
    default_weights={"username": 3.0, "name": 2.0},
)

COMMUNITY = EntityProfile(
    type=SearchType.COMMUNITY,
    collection="communities",
    primary_fields=("name",),
    secondary_fields=("description",),
    text_fields=("name", "description", "category"),
    highlight_fields=("name", "description"),
    autocomplete_field="name",
    facet_fields=("category", "is_private"),
    suggestion_fields=("name", "description"),
    filter_prefixes={
        "category": ("category", str),
        "privacy": ("is_private", _privacy),
    },
    sortable_fields=("name", "created_at", "member_count"),
    similarity_fields=("category", "name"),
    public_constraint=Constraint("is_private", False),
    default_weights={"name": 3.0, "category": 1.5},
)

PROFILES: dict[SearchType, EntityProfile] = {
    SearchType.RECIPE: RECIPE,
    SearchType.USER: USER,
    SearchType.COMMUNITY: COMMUNITY,
}


def profile_for(search_type: SearchType) -> EntityProfile:
    return PROFILES[search_type]
