"""Application search – filter/facet parsing and TextQuery construction."""
from __future__ import annotations

from typing import Sequence

from meal_search.application.search.profiles import EntityProfile
from meal_search.application.search.query import (
    EMPTY,
    RELEVANCE,
    Constraint,
    SearchCriteria,
    SortSpec,
    TextQuery,
)
from meal_search.kernel.errors import InvalidRequestError

__all__ = ["build_text_query", "parse_filters", "validate_criteria"]


def _split(token: str) -> tuple[str, str]:
    prefix, sep, value = token.partition(":")
    prefix, value = prefix.strip().lower(), value.strip()
    if not sep or not prefix or not value:
        raise InvalidRequestError(
            f"Malformed filter '{token}', expected 'prefix:value'", field="filters"
        )
    return prefix, value


def validate_criteria(criteria: SearchCriteria, profiles: Sequence[EntityProfile]) -> None:
    """Reject inputs no targeted profile understands.

    A filter, facet, weight or sort field only needs to be known to one of
    the targeted types; executors of the other types ignore it.
    """
    known_prefixes = {p for profile in profiles for p in profile.filter_prefixes}
    for token in criteria.filters:
        prefix, _ = _split(token)
        if prefix not in known_prefixes:
            raise InvalidRequestError(f"Unknown filter prefix '{prefix}'", field="filters")

    known_facets = {f for profile in profiles for f in profile.facet_fields}
    for name in criteria.facets:
        if name not in known_facets:
            raise InvalidRequestError(f"Unknown facet field '{name}'", field="facets")

    if criteria.field_weights:
        known_fields = {f for profile in profiles for f in profile.text_fields}
        unknown = sorted(set(criteria.field_weights) - known_fields)
        if unknown:
            raise InvalidRequestError(
                f"Cannot weight unknown fields: {', '.join(unknown)}", field="field_weights"
            )

    if criteria.sort_by is not None:
        sortable = {f for profile in profiles for f in profile.sortable_fields}
        if criteria.sort_by not in sortable:
            raise InvalidRequestError(f"Cannot sort by '{criteria.sort_by}'", field="sort_by")


def parse_filters(filters: Sequence[str], profile: EntityProfile) -> list[Constraint]:
    """Turn ``prefix:value`` tokens owned by *profile* into equality constraints."""
    constraints: list[Constraint] = []
    for token in filters:
        prefix, raw = _split(token)
        mapping = profile.filter_prefixes.get(prefix)
        if mapping is None:
            continue
        field_name, convert = mapping
        try:
            value = convert(raw)
        except ValueError as exc:
            raise InvalidRequestError(f"Bad value in filter '{token}': {exc}", field="filters") from exc
        constraints.append(Constraint(field_name, value))
    return constraints


def _facet_value(name: str, value: str) -> object:
    # boolean facets arrive as strings from the outer layers
    if name.startswith("is_") or name == "enabled":
        return value.strip().lower() in ("1", "true", "yes", "private")
    return value


def build_text_query(criteria: SearchCriteria, profile: EntityProfile) -> TextQuery:
    """Build the store query for one profile.

    Returns :data:`EMPTY` when the criteria carry no text and no constraint,
    so callers can skip the store round-trip altogether.
    """
    constraints: list[Constraint] = parse_filters(criteria.filters, profile)
    for name, values in criteria.facets.items():
        if name in profile.facet_fields:
            converted = [_facet_value(name, v) for v in values]
            constraints.append(Constraint(name, converted, "in"))

    terms = criteria.terms
    if not terms and not constraints:
        return EMPTY
    if criteria.public_only:
        constraints.append(profile.public_constraint)

    if criteria.sort_by is not None and criteria.sort_by in profile.sortable_fields:
        sort = SortSpec(criteria.sort_by, criteria.sort_direction)
    else:
        sort = SortSpec(RELEVANCE)

    weights = dict(profile.default_weights)
    if criteria.field_weights:
        weights = {k: v for k, v in criteria.field_weights.items() if k in profile.text_fields}

    return TextQuery(
        terms=terms,
        text_fields=profile.text_fields,
        field_weights=weights,
        constraints=tuple(constraints),
        sort=sort,
        skip=criteria.page * criteria.size,
        limit=criteria.size,
        min_similarity=criteria.min_similarity,
    )
