"""
Theme identification against the weighted catalog.

    score(theme) = Σ word_frequency[kw] × weight
                 + (word-boundary regex hits in raw text) × weight × 2

The frequency term only sees words longer than two characters; the regex
term sees every keyword, so short keywords like "ai" still count through it.
Themes are ranked by score (catalog order breaks ties): the top one is
primary, the next two are secondary.

Novelty is the share of a cluster's significant words that belong to no
catalog theme at all: 0.0 = fully explained by known themes, 1.0 = nothing
we recognize.
"""

import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from narrative_engine.config import THEME_CATALOG
from narrative_engine.schemas.narratives import ThemeMatch

_SECONDARY_COUNT = 2


@lru_cache(maxsize=64)
def _theme_pattern(keywords: Tuple[str, ...]) -> re.Pattern:
    alternation = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


def score_themes(content: Dict[str, Any]) -> Dict[str, float]:
    """Score every catalog theme; themes scoring zero are omitted."""
    freq = content["word_frequencies"]
    text = content["raw_text"]
    scores: Dict[str, float] = {}
    for theme, data in THEME_CATALOG.items():
        weight = data["weight"]
        score = sum(freq.get(kw, 0) for kw in data["keywords"]) * weight
        hits = len(_theme_pattern(tuple(data["keywords"])).findall(text))
        score += hits * weight * 2
        if score > 0:
            scores[theme] = round(score, 4)
    return scores


def identify_themes(content: Dict[str, Any]) -> Tuple[Optional[ThemeMatch], List[ThemeMatch], Dict[str, float]]:
    """Return (primary, secondary, all_scores)."""
    scores = score_themes(content)
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    matches = [_to_match(theme, score) for theme, score in ranked]
    primary = matches[0] if matches else None
    return primary, matches[1:1 + _SECONDARY_COUNT], scores


def _to_match(theme: str, score: float) -> ThemeMatch:
    data = THEME_CATALOG[theme]
    return ThemeMatch(theme=theme, label=data["label"], score=score, keywords=list(data["keywords"]))


def compute_novelty(content: Dict[str, Any]) -> float:
    significant = set(content["word_frequencies"])
    if not significant:
        return 0.0
    known = {kw for data in THEME_CATALOG.values() for kw in data["keywords"]}
    return len(significant - known) / len(significant)
