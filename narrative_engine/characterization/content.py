"""
Cluster content analysis — the raw material for naming, themes and profiles.

Produces a flat dict per cluster:
  raw_text:          "name symbol name symbol ..." lower-cased
  word_frequencies:  Counter of \\w+ words longer than two characters
  keyword_matches:   {theme: [catalog keywords found in raw_text]}
  name_patterns:     common prefixes / suffixes across names (pairwise, > 2
                     chars) and 3-char symbol endings shared by 2+ symbols
  market_metrics:    totals and price-change stats
  temporal:          age stats and emergence pattern
  token_count

Keyword matching is substring based ("dogecoin" counts for "doge") except
for keywords of two characters or fewer ("ai", "ar", "vr"), which must
match a whole word; otherwise "chain" would count as AI.
"""

import logging
import re
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List

from narrative_engine.config import (
    EMERGENCE_FALLBACK,
    EMERGENCE_WINDOWS,
    THEME_CATALOG,
)
from narrative_engine.schemas.base import EmergencePattern
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import age_seconds, mean

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\b\w+\b")
_MIN_WORD_LENGTH = 3
_SHORT_KEYWORD = 2
_DAY_SECONDS = 24 * 60 * 60


def analyze_cluster_content(tokens: List[TokenDescriptor], now: datetime) -> Dict[str, Any]:
    """Analyze names, symbols, market metrics and timing for one cluster."""
    raw_text = " ".join(f"{t.name} {t.symbol}" for t in tokens).lower()
    words = _WORD_RE.findall(raw_text)

    return {
        "raw_text": raw_text,
        "words": set(words),
        "word_frequencies": word_frequencies(raw_text),
        "keyword_matches": match_theme_keywords(raw_text, set(words)),
        "name_patterns": analyze_name_patterns(tokens),
        "market_metrics": market_metrics(tokens),
        "temporal": temporal_patterns(tokens, now),
        "token_count": len(tokens),
    }


def word_frequencies(text: str) -> Counter:
    return Counter(w for w in _WORD_RE.findall(text.lower()) if len(w) >= _MIN_WORD_LENGTH)


def match_theme_keywords(text: str, words: set) -> Dict[str, List[str]]:
    matches: Dict[str, List[str]] = {}
    for theme, data in THEME_CATALOG.items():
        found = [
            kw for kw in data["keywords"]
            if (kw in words if len(kw) <= _SHORT_KEYWORD else kw in text)
        ]
        if found:
            matches[theme] = found
    return matches


# ── Name patterns ──────────────────────────────────────────────────────────

def analyze_name_patterns(tokens: List[TokenDescriptor]) -> Dict[str, List[str]]:
    names = [t.name for t in tokens if t.name]
    symbols = [t.symbol for t in tokens if t.symbol]
    prefixes = _pairwise_fragments(names, _common_prefix)
    suffixes = _pairwise_fragments(names, _common_suffix)
    endings = symbol_patterns(symbols)
    return {
        "prefixes": prefixes,
        "suffixes": suffixes,
        "symbol_patterns": endings,
        "common": prefixes + suffixes + endings,
    }


def _pairwise_fragments(names: List[str], extract) -> List[str]:
    found: List[str] = []
    seen = set()
    for i in range(len(names)):
        for j in range(i + 1, len(names)):
            fragment = extract(names[i], names[j]).strip()
            if len(fragment) > 2 and fragment.lower() not in seen:
                seen.add(fragment.lower())
                found.append(fragment)
    return found


def _common_prefix(a: str, b: str) -> str:
    i = 0
    while i < len(a) and i < len(b) and a[i].lower() == b[i].lower():
        i += 1
    return a[:i]


def _common_suffix(a: str, b: str) -> str:
    i = 0
    while i < len(a) and i < len(b) and a[-1 - i].lower() == b[-1 - i].lower():
        i += 1
    return a[len(a) - i:]


def symbol_patterns(symbols: List[str]) -> List[str]:
    endings = Counter(s[-3:].upper() for s in symbols if len(s) >= 3)
    return [ending for ending, count in endings.items() if count > 1]


# ── Market and temporal aggregates ─────────────────────────────────────────

def market_metrics(tokens: List[TokenDescriptor]) -> Dict[str, float]:
    """Totals plus price-change stats.

    The average price change is taken over tokens that report volume (a
    token with no trading has no meaningful 24h change), falling back to
    all members when none do.
    """
    changes = [t.price_change_24h for t in tokens]
    traded = [t.price_change_24h for t in tokens if t.volume_24h > 0]
    avg_change = mean(traded) if traded else mean(changes)
    return {
        "total_volume": sum(t.volume_24h for t in tokens),
        "total_liquidity": sum(t.liquidity for t in tokens),
        "total_market_cap": sum(t.market_cap for t in tokens),
        "total_holders": sum(t.holders for t in tokens),
        "total_social_mentions": sum(t.social_mentions for t in tokens),
        "total_engagement": sum(t.engagement for t in tokens),
        "avg_price_change": avg_change,
        "abs_avg_price_change": abs(avg_change),
        "max_price_change": max(changes + [0.0]),
        "min_price_change": min(changes + [0.0]),
    }


def temporal_patterns(tokens: List[TokenDescriptor], now: datetime) -> Dict[str, Any]:
    ages = [age_seconds(t.created_at, now) for t in tokens] or [0.0]
    avg_age = mean(ages)
    spread = max(ages) - min(ages)
    return {
        "avg_age": avg_age,
        "min_age": min(ages),
        "max_age": max(ages),
        "age_spread": spread,
        "emergence": emergence_pattern(spread),
        "is_new": avg_age < _DAY_SECONDS,
        "is_mature": avg_age > 7 * _DAY_SECONDS,
    }


def emergence_pattern(spread_seconds: float) -> EmergencePattern:
    for window, pattern in EMERGENCE_WINDOWS:
        if spread_seconds < window:
            return EmergencePattern(pattern)
    return EmergencePattern(EMERGENCE_FALLBACK)
