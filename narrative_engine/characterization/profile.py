"""
Characteristic profile — five categorical assessments per narrative.

  volatility: level from |avg 24h change|, score = min(100, |avg change|)
  community:  size from total holders, engagement, growth (provider)
  market:     cap / liquidity / volume levels
  social:     mention level, average sentiment, virality potential
  temporal:   age bucket, emergence pattern, momentum

Every level comes from a threshold table in config, so re-tuning a bucket
is a data change.
"""

import math
from typing import Any, Dict, List, Tuple

from narrative_engine.config import (
    AGE_FALLBACK,
    AGE_LEVELS,
    COMMUNITY_LEVELS,
    EMERGENCE_MOMENTUM,
    LIQUIDITY_LEVELS,
    MARKET_CAP_LEVELS,
    SOCIAL_LEVELS,
    VOLATILITY_LEVELS,
    VOLUME_LEVELS,
    CategoryTable,
)
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.narratives import (
    CommunityProfile,
    MarketProfile,
    NarrativeCharacteristics,
    SocialProfile,
    TemporalProfile,
    VolatilityProfile,
)
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import capitalize, clamp, mean


def categorize(value: float, table: CategoryTable) -> Tuple[str, str]:
    """First (level, description) whose exclusive lower bound value exceeds."""
    for bound, level, description in table:
        if bound is None or value > bound:
            return level, description
    _, level, description = table[-1]
    return level, description


def age_category(avg_age_seconds: float) -> str:
    hours = avg_age_seconds / 3600.0
    for bound, label in AGE_LEVELS:
        if hours < bound:
            return label
    return AGE_FALLBACK


def community_engagement(tokens: List[TokenDescriptor]) -> float:
    avg_holders = mean(t.holders for t in tokens)
    avg_mentions = mean(t.social_mentions for t in tokens)
    return min(1.0, (avg_mentions / max(1.0, avg_holders)) * 10)


def average_sentiment(tokens: List[TokenDescriptor]) -> float:
    values = [t.sentiment for t in tokens if t.sentiment != 0]
    return clamp(mean(values), -1.0, 1.0)


def virality_potential(metrics: Dict[str, float]) -> float:
    return min(1.0, math.sqrt(metrics["total_social_mentions"] * metrics["total_engagement"]) / 1000.0)


def compute_characteristics(
    tokens: List[TokenDescriptor],
    content: Dict[str, Any],
    provider: HistoricalMetricProvider,
) -> NarrativeCharacteristics:
    metrics = content["market_metrics"]
    temporal = content["temporal"]

    vol_level, vol_desc = categorize(metrics["abs_avg_price_change"], VOLATILITY_LEVELS)
    community_size, community_desc = categorize(metrics["total_holders"], COMMUNITY_LEVELS)
    cap_level, _ = categorize(metrics["total_market_cap"], MARKET_CAP_LEVELS)
    liquidity_level, _ = categorize(metrics["total_liquidity"], LIQUIDITY_LEVELS)
    volume_level, _ = categorize(metrics["total_volume"], VOLUME_LEVELS)
    social_level, social_desc = categorize(metrics["total_social_mentions"], SOCIAL_LEVELS)

    emergence = temporal["emergence"]
    stage_word = "new" if temporal["is_new"] else "mature" if temporal["is_mature"] else "developing"

    return NarrativeCharacteristics(
        volatility=VolatilityProfile(
            level=vol_level,
            score=min(100.0, metrics["abs_avg_price_change"]),
            description=vol_desc,
        ),
        community=CommunityProfile(
            size=community_size,
            engagement=community_engagement(tokens),
            growth=clamp(provider.community_growth(tokens), -1.0, 1.0),
            description=community_desc,
        ),
        market=MarketProfile(
            cap=cap_level,
            liquidity=liquidity_level,
            volume=volume_level,
            description=f"{capitalize(volume_level)} trading volume with {liquidity_level} liquidity",
        ),
        social=SocialProfile(
            mentions=social_level,
            sentiment=average_sentiment(tokens),
            virality=virality_potential(metrics),
            description=social_desc,
        ),
        temporal=TemporalProfile(
            age=age_category(temporal["avg_age"]),
            emergence=emergence,
            momentum=EMERGENCE_MOMENTUM.get(emergence.value, 0.0),
            description=f"{capitalize(emergence.value)} emergence pattern, {stage_word} narrative stage",
        ),
    )
