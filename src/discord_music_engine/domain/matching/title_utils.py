"""Pure-function utilities for parsing and cleaning track titles."""

from __future__ import annotations

import re
from typing import Final

# ── Precompiled patterns ────────────────────────────────────────────────

_TITLE_CLEANUP_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"\s*[\[\(]official\b[^\]\)]*[\]\)]", re.IGNORECASE),
    re.compile(r"\s*[\[\(][^\]\)]*\bvideo\b[^\]\)]*[\]\)]", re.IGNORECASE),
    re.compile(r"\s*[\[\(](lyrics?|with\s*lyrics?|letra)\s*[\]\)]", re.IGNORECASE),
    re.compile(r"\s*[\[\(](hd|hq|4k|1080p|720p)\s*[\]\)]", re.IGNORECASE),
    re.compile(r"\s*[\[\(](audio|visualizer)\s*[\]\)]", re.IGNORECASE),
]

_FEATURING_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bft\.?(?=\s)", re.IGNORECASE)
_WHITESPACE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\s+")
_NON_ALNUM_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9\s]")


def clean_title(title: str) -> str:
    """Remove qualifiers like "(Official Video)" or "[HD]" and tidy spacing.

    "ft"/"ft." is normalised to "feat" and runs of whitespace collapse to
    one space. Case is preserved.
    """
    result = title
    for pattern in _TITLE_CLEANUP_PATTERNS:
        result = pattern.sub("", result)
    result = _FEATURING_PATTERN.sub("feat", result)
    return _WHITESPACE_PATTERN.sub(" ", result).strip()


def normalize_title(title: str) -> str:
    """Cleaned, lower-cased title used as the query for alternative matching."""
    return clean_title(title).lower()


def comparable_text(text: str) -> str:
    """Lower-case ``text`` and keep only ASCII letters, digits and single spaces."""
    stripped = _NON_ALNUM_PATTERN.sub("", text.lower())
    return _WHITESPACE_PATTERN.sub(" ", stripped).strip()
