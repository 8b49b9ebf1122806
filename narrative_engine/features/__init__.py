"""
Feature extraction for token clustering.

Each module computes one feature family independently. Adding a new family
= create a new file here with compute_<family>_features() and
<family>_vector(), import it below and add it to FEATURE_FAMILIES.

Modules:
- textual.py: name/symbol shape, keyword flags, hashed bag-of-words
- onchain.py: holders, liquidity, volume ratios, age
- social.py: mentions, sentiment, engagement, virality
- market.py: price, volatility, volume spike, market cap, RSI

The combined vector is the concatenation of each family's normalized
sub-vector scaled by its group weight (defaults 0.3/0.3/0.2/0.2), so every
component lies in [0, group weight]. A family that fails contributes its
zero vector; extraction itself never fails.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from narrative_engine.config import NarrativeSettings
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.tokens import FeatureRecord, TokenDescriptor
from narrative_engine.shared.helpers import safe_float

from .textual import compute_textual_features, textual_vector, _empty_features as _empty_textual
from .onchain import compute_onchain_features, onchain_vector, _empty_features as _empty_onchain
from .social import compute_social_features, social_vector, _empty_features as _empty_social
from .market import compute_market_features, market_vector, _empty_features as _empty_market

logger = logging.getLogger(__name__)

FEATURE_FAMILIES = ("textual", "onchain", "social", "market")


class FeatureCache:
    """Bounded (address, snapshot digest) → FeatureRecord cache. Oldest evicted."""

    def __init__(self, max_size: int = 5000):
        self.max_size = max(1, max_size)
        self._entries: "OrderedDict[Tuple[str, str], FeatureRecord]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Tuple[str, str]) -> Optional[FeatureRecord]:
        record = self._entries.get(key)
        if record is None:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end(key)
        return record

    def put(self, key: Tuple[str, str], record: FeatureRecord) -> None:
        self._entries[key] = record
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


def extract_features(
    token: TokenDescriptor,
    settings: NarrativeSettings,
    provider: Optional[HistoricalMetricProvider] = None,
    cache: Optional[FeatureCache] = None,
    now: Optional[datetime] = None,
) -> FeatureRecord:
    """
    Extract ALL feature families for one token and build its combined vector.

    Args:
        token: Input snapshot.
        settings: Supplies group weights and the embedding bucket count.
        provider: History-dependent metrics. Defaults to the neutral provider.
        cache: Optional cache keyed by (address, snapshot digest). A hit skips
               computation entirely; a miss stores the fresh record.
        now: Reference time for token age. Defaults to the current UTC time.

    Returns:
        FeatureRecord whose vector components are all finite and within
        [0, group weight].
    """
    key = token.cache_key
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    provider = provider or HistoricalMetricProvider()
    now = now or datetime.now(timezone.utc)
    buckets = max(1, settings.embedding_buckets)

    groups: Dict[str, dict] = {}

    try:
        groups["textual"] = compute_textual_features(token, buckets)
    except Exception as e:
        logger.warning(f"Textual features failed for {token.address}: {e}")
        groups["textual"] = _empty_textual()

    try:
        groups["onchain"] = compute_onchain_features(token, provider, now)
    except Exception as e:
        logger.warning(f"On-chain features failed for {token.address}: {e}")
        groups["onchain"] = _empty_onchain()

    try:
        groups["social"] = compute_social_features(token, provider)
    except Exception as e:
        logger.warning(f"Social features failed for {token.address}: {e}")
        groups["social"] = _empty_social()

    try:
        groups["market"] = compute_market_features(token, provider)
    except Exception as e:
        logger.warning(f"Market features failed for {token.address}: {e}")
        groups["market"] = _empty_market()

    record = FeatureRecord(
        token=token,
        textual=groups["textual"],
        onchain=groups["onchain"],
        social=groups["social"],
        market=groups["market"],
        vector=combine_vector(groups, settings.get_feature_weights(), buckets),
    )
    if cache is not None:
        cache.put(key, record)
    return record


def combine_vector(groups: Dict[str, dict], weights: Dict[str, float], buckets: int = 10) -> List[float]:
    """Weighted concatenation of the four normalized sub-vectors."""
    parts = {
        "textual": textual_vector(groups.get("textual", {}), buckets),
        "onchain": onchain_vector(groups.get("onchain", {})),
        "social": social_vector(groups.get("social", {})),
        "market": market_vector(groups.get("market", {})),
    }
    vector: List[float] = []
    for family in FEATURE_FAMILIES:
        weight = max(0.0, safe_float(weights.get(family, 0.0)))
        vector.extend(safe_float(v) * weight for v in parts[family])
    return vector


def extract_all_features(
    tokens: List[TokenDescriptor],
    settings: NarrativeSettings,
    provider: Optional[HistoricalMetricProvider] = None,
    cache: Optional[FeatureCache] = None,
    now: Optional[datetime] = None,
) -> List[FeatureRecord]:
    """Extract features for a batch, preserving input order."""
    now = now or datetime.now(timezone.utc)
    records = [extract_features(t, settings, provider, cache, now) for t in tokens]
    logger.debug(f"Features: {len(records)} tokens, dim={len(records[0].vector) if records else 0}")
    return records
