"""Application search – match-quality metadata for the specialised searches.

Each helper compares the attributes a caller asked for with the attributes
of one candidate document and returns ``(fraction, metadata)``, or ``None``
when the candidate cannot be evaluated at all.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from meal_search.application.search.profiles import EntityProfile
from meal_search.application.search.query import is_number, tokenize
from meal_search.application.search.store import field_values, lookup
from meal_search.kernel.errors import InvalidRequestError

__all__ = [
    "NutrientRange",
    "attribute_set",
    "ingredient_match",
    "jaccard",
    "normalise_items",
    "nutrient_match",
    "skill_match",
]

Match = tuple[float, dict[str, Any]]


@dataclass(frozen=True)
class NutrientRange:
    """Inclusive bounds for one nutrient; either side may be open."""

    min: float | None = None
    max: float | None = None

    def __post_init__(self) -> None:
        if self.min is None and self.max is None:
            raise InvalidRequestError("A nutrient range needs a min or a max", field="nutrients")
        for bound in (self.min, self.max):
            if bound is not None and (not is_number(bound) or not math.isfinite(bound)):
                raise InvalidRequestError("Nutrient bounds must be finite numbers", field="nutrients")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise InvalidRequestError("Nutrient range min exceeds max", field="nutrients")

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


def normalise_items(items: Sequence[str] | None, field: str) -> list[str]:
    """Trimmed, lower-cased, de-duplicated entries; empty input is rejected."""
    seen: dict[str, None] = {}
    for item in items or ():
        if not isinstance(item, str):
            raise InvalidRequestError(f"{field} entries must be strings", field=field)
        cleaned = " ".join(item.lower().split())
        if cleaned:
            seen.setdefault(cleaned, None)
    if not seen:
        raise InvalidRequestError(f"{field} needs at least one non-blank entry", field=field)
    return list(seen)


def _percentage(matched: int, wanted: int) -> float:
    return 100.0 * matched / wanted if wanted else 100.0


def ingredient_match(doc: Mapping[str, Any], ingredients: Sequence[str]) -> Match:
    """Substring containment of each requested ingredient in the recipe's ingredients."""
    haystack = " \n".join(field_values(doc, "ingredients")).lower()
    matched = [i for i in ingredients if i in haystack]
    missing = [i for i in ingredients if i not in haystack]
    pct = _percentage(len(matched), len(ingredients))
    return pct / 100.0, {
        "matched_ingredients": matched,
        "missing_ingredients": missing,
        "match_percentage": pct,
    }


def nutrient_match(doc: Mapping[str, Any], ranges: Mapping[str, NutrientRange]) -> Match | None:
    nutrition = lookup(doc, "nutrition")
    if not isinstance(nutrition, Mapping):
        return None
    within: list[str] = []
    out_of_range: list[str] = []
    missing: list[str] = []
    for name, bounds in ranges.items():
        value = nutrition.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            missing.append(name)
        elif bounds.contains(value):
            within.append(name)
        else:
            out_of_range.append(name)
    pct = _percentage(len(within), len(ranges))
    return pct / 100.0, {
        "within_range": within,
        "out_of_range": out_of_range,
        "missing_nutrients": missing,
        "match_percentage": pct,
    }


def skill_match(doc: Mapping[str, Any], field: str, skills: Sequence[str]) -> Match:
    have = {v.lower() for v in field_values(doc, field)}
    matched = [s for s in skills if s in have]
    missing = [s for s in skills if s not in have]
    pct = _percentage(len(matched), len(skills))
    return pct / 100.0, {
        "matched_skills": matched,
        "missing_skills": missing,
        "match_percentage": pct,
    }


def attribute_set(doc: Mapping[str, Any], profile: EntityProfile) -> set[str]:
    """``field:value`` attributes compared by :func:`jaccard`.

    Name-like primary fields contribute their words, every other similarity
    field contributes its whole (lower-cased) values.
    """
    attrs: set[str] = set()
    for name in profile.similarity_fields:
        for value in field_values(doc, name):
            if name in profile.primary_fields:
                attrs.update(f"{name}:{token}" for token in tokenize(value))
            elif value.strip():
                attrs.add(f"{name}:{value.strip().lower()}")
    return attrs


def jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)
