"""Constants for the allergen highlighting engine."""

from __future__ import annotations

from typing import Final


# Catalog cache
DEFAULT_TERM_TTL_SECONDS: Final[float] = 5 * 60  # 5 minutes
DEFAULT_FETCH_TIMEOUT_SECONDS: Final[float] = 10.0
MIN_TERM_LENGTH: Final[int] = 3
TERM_SEPARATOR: Final[str] = ","

# Segmentation
DEFAULT_MAX_TEXT_LENGTH: Final[int] = 100_000
MATCHER_CACHE_SIZE: Final[int] = 8

# EU Reg. 1169/2011 Annex II allergens (Italian labelling terms), served
# only while the catalog has never been fetched successfully.
FALLBACK_TERMS: Final[frozenset[str]] = frozenset(
    {
        "glutine",
        "grano",
        "segale",
        "orzo",
        "avena",
        "farro",
        "kamut",
        "crostacei",
        "uova",
        "uovo",
        "pesce",
        "gelatina",
        "colla di pesce",
        "arachidi",
        "soia",
        "latte",
        "lattosio",
        "frutta a guscio",
        "mandorle",
        "nocciole",
        "noci comuni",
        "noci di anacardi",
        "noci di pecan",
        "noci del brasile",
        "pistacchi",
        "noci del queensland",
        "sedano",
        "senape",
        "sesamo",
        "anidride solforosa",
        "solfiti",
        "lupini",
        "molluschi",
    }
)
