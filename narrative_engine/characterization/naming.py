"""
Narrative name generation.

Four independent generators each emit NameOptions with a confidence in
[0, 1]. Templates and thresholds live in config (NAME_TEMPLATES,
PATTERN_NAME_CONFIDENCE, BEHAVIOR_NAMES):

  theme-based:       "<Theme> Narrative" for every matched catalog theme,
                     confidence = min(1, hits × weight × 0.2); plus
                     "<Keyword> <Theme> Trend" at 0.9× when 2+ keywords hit.
  keyword-frequency: "<Word> Token Wave" for top words (> 3 chars, seen 2+
                     times), confidence = min(1, freq × 0.2).
  name-pattern:      "<Prefix> Series" / "<Suffix> Collection".
  market-behavior:   fixed names fired by aggregate metric thresholds.

All options are merged, sorted by confidence (stable, so generator order
breaks ties) and the top five are ranked 1..5.
"""

import logging
from typing import Any, Callable, Dict, List

from narrative_engine.config import (
    BEHAVIOR_NAMES,
    FALLBACK_NAME,
    NAME_TEMPLATES,
    PATTERN_NAME_CONFIDENCE,
    THEME_CATALOG,
)
from narrative_engine.schemas.narratives import NameOption
from narrative_engine.shared.helpers import capitalize

logger = logging.getLogger(__name__)

MAX_NAME_OPTIONS = 5
_TOP_WORDS = 5


def theme_based_names(content: Dict[str, Any]) -> List[NameOption]:
    names = []
    for theme, keywords in content["keyword_matches"].items():
        data = THEME_CATALOG.get(theme)
        if not data:
            continue
        confidence = min(1.0, len(keywords) * data["weight"] * 0.2)
        names.append(NameOption(
            name=NAME_TEMPLATES["theme-basic"].format(theme=data["label"]),
            confidence=confidence,
            source="theme-basic",
            keywords=keywords[:3],
        ))
        if len(keywords) > 1:
            names.append(NameOption(
                name=NAME_TEMPLATES["theme-keyword"].format(
                    keyword=_display(keywords[0]), theme=data["label"],
                ),
                confidence=confidence * 0.9,
                source="theme-keyword",
                keywords=keywords[:3],
            ))
    return names


def keyword_based_names(content: Dict[str, Any]) -> List[NameOption]:
    names = []
    for word, freq in content["word_frequencies"].most_common(_TOP_WORDS):
        if len(word) > 3 and freq > 1:
            names.append(NameOption(
                name=NAME_TEMPLATES["keyword-frequency"].format(word=capitalize(word)),
                confidence=min(1.0, freq * 0.2),
                source="keyword-frequency",
                keywords=[word],
            ))
    return names


def pattern_based_names(content: Dict[str, Any]) -> List[NameOption]:
    patterns = content["name_patterns"]
    names = []
    for source, fragments in (("pattern-prefix", patterns["prefixes"]),
                              ("pattern-suffix", patterns["suffixes"])):
        for fragment in fragments:
            names.append(NameOption(
                name=NAME_TEMPLATES[source].format(fragment=capitalize(fragment)),
                confidence=PATTERN_NAME_CONFIDENCE[source],
                source=source,
                keywords=[fragment.lower()],
            ))
    return names


def behavior_based_names(content: Dict[str, Any]) -> List[NameOption]:
    metrics = content["market_metrics"]
    return [
        NameOption(
            name=rule["name"],
            confidence=rule["confidence"],
            source=rule["source"],
            keywords=list(rule["keywords"]),
        )
        for rule in BEHAVIOR_NAMES
        if metrics.get(rule["metric"], 0.0) > rule["threshold"]
    ]


NAME_GENERATORS: List[Callable[[Dict[str, Any]], List[NameOption]]] = [
    theme_based_names,
    keyword_based_names,
    pattern_based_names,
    behavior_based_names,
]


def generate_names(content: Dict[str, Any]) -> List[NameOption]:
    """Run every generator, keep the five most confident options (ranked)."""
    options: List[NameOption] = []
    for generator in NAME_GENERATORS:
        try:
            options.extend(generator(content))
        except Exception as e:
            logger.warning(f"Name generator {generator.__name__} failed: {e}")

    if not options:
        options = [NameOption(name=FALLBACK_NAME, confidence=0.1, source="fallback")]

    ranked = sorted(options, key=lambda o: o.confidence, reverse=True)[:MAX_NAME_OPTIONS]
    for i, option in enumerate(ranked):
        option.rank = i + 1
    return ranked


_ACRONYMS = {"ai", "gpt", "nft", "vr", "ar", "hodl"}


def _display(keyword: str) -> str:
    return keyword.upper() if keyword in _ACRONYMS else capitalize(keyword)
