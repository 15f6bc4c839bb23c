"""Split ingredient text into allergen and non-allergen runs.

Terms are matched case-insensitively as whole words. A word boundary is any
position not touching a Unicode word character, so accented letters
("è", "à") belong to the word around them.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from app.services.allergen.constants import MATCHER_CACHE_SIZE


@dataclass(frozen=True, slots=True)
class Run:
    """Contiguous span of the input, flagged when it names an allergen."""

    text: str
    is_allergen: bool


def order_terms(terms: Iterable[str]) -> list[str]:
    """Sort terms longest first, ties alphabetically.

    Alternation tries alternatives left to right, so longer terms must come
    first or "noci" would win over "noci di pecan" at the same offset.
    """
    return sorted({t for t in terms if t.strip()}, key=lambda t: (-len(t), t))


@lru_cache(maxsize=MATCHER_CACHE_SIZE)
def compile_matcher(terms: frozenset[str]) -> re.Pattern[str] | None:
    """Build the combined whole-word matcher for a term set.

    Returns None when there is nothing to match.
    """
    ordered = order_terms(terms)
    if not ordered:
        return None
    alternation = "|".join(re.escape(term) for term in ordered)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


def segment(text: str, terms: Iterable[str]) -> list[Run]:
    """Partition ``text`` into runs, flagging the ones that match a term.

    Matched runs keep the casing found in ``text``. Joining every run's text
    gives back ``text``; no run is empty.

    Args:
        text: Free-text ingredient list.
        terms: Lowercase allergen terms.

    Returns:
        Runs in input order; empty for empty text.
    """
    if not text:
        return []

    term_set = terms if isinstance(terms, frozenset) else frozenset(terms)
    matcher = compile_matcher(term_set)
    if matcher is None:
        return [Run(text, is_allergen=False)]

    runs: list[Run] = []
    position = 0
    for match in matcher.finditer(text):
        start, end = match.span()
        if start > position:
            runs.append(Run(text[position:start], is_allergen=False))
        runs.append(Run(match.group(), is_allergen=True))
        position = end

    if position < len(text):
        runs.append(Run(text[position:], is_allergen=False))

    return runs
