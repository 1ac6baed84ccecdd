"""Application search – match highlighting."""
from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

__all__ = ["Highlighter"]


class Highlighter:
    """Wraps case-insensitive term matches in ``<mark>`` tags."""

    def __init__(self, start: str = "<mark>", end: str = "</mark>", context_length: int = 50) -> None:
        self.start = start
        self.end = end
        self.context_length = context_length

    @staticmethod
    def _pattern(terms: Sequence[str]) -> re.Pattern[str] | None:
        cleaned = sorted({t for t in terms if t}, key=len, reverse=True)
        if not cleaned:
            return None
        return re.compile("|".join(re.escape(t) for t in cleaned), re.IGNORECASE)

    def highlight_text(self, text: str | None, terms: Sequence[str]) -> str | None:
        pattern = self._pattern(terms)
        if not text or pattern is None:
            return text
        return pattern.sub(lambda m: f"{self.start}{m.group(0)}{self.end}", text)

    def extract_contexts(self, text: str | None, terms: Sequence[str]) -> list[str]:
        """Snippets of ``context_length`` characters around each match."""
        pattern = self._pattern(terms)
        if not text or pattern is None:
            return []
        contexts: list[str] = []
        for m in pattern.finditer(text):
            lo = max(0, m.start() - self.context_length)
            hi = min(len(text), m.end() + self.context_length)
            snippet = (
                text[lo:m.start()]
                + self.start + m.group(0) + self.end
                + text[m.end():hi]
            )
            contexts.append(("..." if lo > 0 else "") + snippet + ("..." if hi < len(text) else ""))
        return contexts

    def highlight_document(
        self, doc: Mapping[str, Any], fields: Sequence[str], terms: Sequence[str]
    ) -> dict[str, str]:
        """Marked-up copies of the string *fields* of *doc* that contain a match."""
        out: dict[str, str] = {}
        for name in fields:
            value = doc.get(name)
            if not isinstance(value, str):
                continue
            marked = self.highlight_text(value, terms)
            if marked is not None and marked != value:
                out[name] = marked
        return out
