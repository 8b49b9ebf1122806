"""
Textual feature computation from token name and symbol.

FEATURES:
  name_length, symbol_length:  raw character counts (normalized /50, /20).
  has_numbers, has_special:    digit / non-alphanumeric presence.
  upper_case_ratio:            share of upper-case letters in the raw name.
  keyword flags:               one boolean per KEYWORD_FLAGS entry, substring
                               match against "name symbol" lower-cased.
  embedding:                   fixed-size bag-of-words. Each whitespace word
                               is hashed (md5, stable across processes) into
                               one of N buckets, counts normalized to sum 1.

The embedding is a cheap, reproducible stand-in for a semantic encoder:
tokens that share words land in the same buckets and sit closer together
in the combined vector.
"""

import hashlib
import logging
import re
from typing import Any, Dict, List

from narrative_engine.config import KEYWORD_FLAGS
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import clamp, normalize

logger = logging.getLogger(__name__)

_DIGIT_RE = re.compile(r"\d")
_SPECIAL_RE = re.compile(r"[^a-z0-9\s]")
_UPPER_RE = re.compile(r"[A-Z]")


def compute_textual_features(token: TokenDescriptor, buckets: int = 10) -> Dict[str, Any]:
    """Compute the textual feature family for one token."""
    name = token.name.lower()
    symbol = token.symbol.lower()
    combined = f"{name} {symbol}"

    return {
        "name_length": len(name),
        "symbol_length": len(symbol),
        "has_numbers": bool(_DIGIT_RE.search(combined)),
        "has_special": bool(_SPECIAL_RE.search(combined)),
        "upper_case_ratio": len(_UPPER_RE.findall(token.name)) / max(1, len(token.name)),
        "keywords": {
            flag: any(word in combined for word in words)
            for flag, words in KEYWORD_FLAGS.items()
        },
        "embedding": hashed_embedding(combined, buckets),
    }


def hashed_embedding(text: str, buckets: int = 10) -> List[float]:
    """Bag-of-words hashed into fixed buckets, normalized by total count."""
    counts = [0.0] * buckets
    for word in text.split():
        digest = hashlib.md5(word.encode("utf-8")).digest()
        counts[int.from_bytes(digest[:4], "big") % buckets] += 1.0
    total = sum(counts)
    if total <= 0:
        return counts
    return [c / total for c in counts]


def textual_vector(features: Dict[str, Any], buckets: int = 10) -> List[float]:
    """Normalized textual sub-vector. Length is fixed by the flag table and bucket count."""
    keywords = features.get("keywords", {})
    embedding = list(features.get("embedding") or [])
    embedding = (embedding + [0.0] * buckets)[:buckets]

    return [
        normalize(features.get("name_length", 0), 0, 50),
        normalize(features.get("symbol_length", 0), 0, 20),
        1.0 if features.get("has_numbers") else 0.0,
        1.0 if features.get("has_special") else 0.0,
        clamp(features.get("upper_case_ratio", 0.0)),
        *[1.0 if keywords.get(flag) else 0.0 for flag in KEYWORD_FLAGS],
        *[clamp(v) for v in embedding],
    ]


def _empty_features() -> Dict[str, Any]:
    return {}
