"""
Social feature computation.

FEATURES:
  mention_count:        raw social mentions.
  mention_velocity:     mentions per hour, assuming a 24h window.
  mention_growth:       provider (no history = 0.0).
  sentiment_score:      upstream sentiment in [-1, 1].
  sentiment_volatility: provider (no history = 0.0).
  engagement_rate:      upstream engagement in [0, 1].
  virality_score:       min(1, mentions × engagement / 10000).
  community_strength:   min(1, sqrt(holders × mentions) / 1000).
  influencer_attention: provider, reported only.
"""

import logging
import math
from typing import Any, Dict, List

from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import clamp, log_normalize, normalize

logger = logging.getLogger(__name__)


def compute_social_features(token: TokenDescriptor, provider: HistoricalMetricProvider) -> Dict[str, Any]:
    """Compute the social feature family for one token."""
    mentions = token.social_mentions
    engagement = clamp(token.engagement)
    return {
        "mention_count": mentions,
        "mention_velocity": mentions / 24.0,
        "mention_growth": clamp(provider.mention_growth(token), -1.0, 5.0),
        "sentiment_score": clamp(token.sentiment, -1.0, 1.0),
        "sentiment_volatility": clamp(provider.sentiment_volatility(token)),
        "engagement_rate": engagement,
        "virality_score": min(1.0, mentions * engagement / 10000.0),
        "community_strength": min(1.0, math.sqrt(token.holders * mentions) / 1000.0),
        "influencer_attention": clamp(provider.influencer_attention(token)),
    }


def social_vector(features: Dict[str, Any]) -> List[float]:
    return [
        log_normalize(features.get("mention_count", 0), 15),
        normalize(features.get("mention_velocity", 0.0), 0, 100),
        normalize(features.get("mention_growth", 0.0), -1, 5),
        normalize(features.get("sentiment_score", 0.0), -1, 1),
        clamp(features.get("sentiment_volatility", 0.0)),
        clamp(features.get("engagement_rate", 0.0)),
        clamp(features.get("virality_score", 0.0)),
        clamp(features.get("community_strength", 0.0)),
    ]


def _empty_features() -> Dict[str, Any]:
    return {}
