"""Application trends – SearchTrend record."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

__all__ = ["SearchTrend", "TrendKey", "normalise_term"]

TrendKey = tuple[str, str]


def normalise_term(term: str | None) -> str:
    """Trend records are keyed on the trimmed, lower-cased, single-spaced term."""
    return " ".join((term or "").lower().split())


@dataclass
class SearchTrend:
    """Counters and scores of one ``(search_term, search_type)`` pair.

    ``version`` increases on every write and backs optimistic concurrency in
    stores that need it.
    """

    search_term: str
    search_type: str
    first_searched: datetime
    last_searched: datetime
    search_count: int = 1
    result_count: int = 0
    click_through_count: int = 0
    average_relevance_score: float = 0.0
    popularity_score: float = 0.0
    is_popular: bool = False
    version: int = 0
    id: str | None = None

    @property
    def key(self) -> TrendKey:
        return (self.search_term, self.search_type)

    @property
    def click_through_rate(self) -> float:
        if self.search_count <= 0:
            return 0.0
        return self.click_through_count / self.search_count

    def copy(self, **changes: Any) -> "SearchTrend":
        return dataclasses.replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        doc = dataclasses.asdict(self)
        doc.pop("id")
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "SearchTrend":
        names = {f.name for f in dataclasses.fields(cls)}
        values = {k: v for k, v in doc.items() if k in names}
        if "_id" in doc:
            values["id"] = str(doc["_id"])
        return cls(**values)
