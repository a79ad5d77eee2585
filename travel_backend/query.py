"""
Filter predicates understood by every document store.

A `Query` combines exact-match equality, a case-insensitive pattern OR'd across
a set of fields, and a scored word search over the collection's text fields.
Stores evaluate it in application memory after narrowing by collection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def compile_search_pattern(raw: str) -> re.Pattern:
    """Compile user input as a case-insensitive regex, or as a literal if it is not one."""
    try:
        return re.compile(raw, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(raw), re.IGNORECASE)


def _iter_strings(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                yield item


def _words(value: str) -> list[str]:
    return [w.lower() for w in _WORD_RE.findall(value)]


@dataclass
class Query:
    equals: dict[str, Any] = field(default_factory=dict)
    pattern: Optional[str] = None
    pattern_fields: tuple[str, ...] = ()
    text: Optional[str] = None
    text_fields: tuple[str, ...] = ()

    def __post_init__(self):
        self._compiled = compile_search_pattern(self.pattern) if self.pattern else None
        self._terms = set(_words(self.text)) if self.text else set()

    def matches(self, doc: dict) -> bool:
        for key, expected in self.equals.items():
            if doc.get(key) != expected:
                return False
        if self._compiled is not None:
            if not any(
                self._compiled.search(candidate)
                for name in self.pattern_fields
                for candidate in _iter_strings(doc.get(name))
            ):
                return False
        if self.text is not None and self.text_score(doc) <= 0:
            return False
        return True

    def text_score(self, doc: dict) -> float:
        """Number of search-term hits across the text fields; 0 when nothing matches."""
        if not self._terms:
            return 0.0
        hits = 0
        for name in self.text_fields:
            for candidate in _iter_strings(doc.get(name)):
                hits += sum(1 for word in _words(candidate) if word in self._terms)
        return float(hits)
