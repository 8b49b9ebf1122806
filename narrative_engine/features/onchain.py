"""
On-chain feature computation.

FEATURES:
  holder_count, holder_concentration, holder_growth
  liquidity_usd, liquidity_ratio (liquidity / market cap)
  volume_24h, volume_to_liquidity
  transaction_frequency (transactions per minute over 24h)
  token_age_seconds, is_new_token (< 24h)
  liquidity_stability, holder_stability (reported, not vectorized)

holder_concentration is a step function of holder count: without a holder
distribution, few holders is the best available proxy for concentration.
Growth and stability come from the historical metric provider.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import age_seconds, clamp, log_normalize, normalize

logger = logging.getLogger(__name__)

_DAY_SECONDS = 24 * 60 * 60
_MAX_AGE_SECONDS = 30 * _DAY_SECONDS

# (holder count upper bound, concentration)
_CONCENTRATION_STEPS = [(10, 1.0), (100, 0.7), (1000, 0.4)]
_CONCENTRATION_FLOOR = 0.2


def compute_onchain_features(
    token: TokenDescriptor,
    provider: HistoricalMetricProvider,
    now: datetime,
) -> Dict[str, Any]:
    """Compute the on-chain feature family for one token."""
    age = age_seconds(token.created_at, now)
    return {
        "holder_count": token.holders,
        "holder_concentration": _holder_concentration(token.holders),
        "holder_growth": clamp(provider.holder_growth(token), -1.0, 1.0),
        "liquidity_usd": token.liquidity,
        "liquidity_ratio": token.liquidity / max(1.0, token.market_cap),
        "volume_24h": token.volume_24h,
        "volume_to_liquidity": token.volume_24h / max(1.0, token.liquidity),
        "transaction_frequency": token.transactions / (24 * 60),
        "token_age_seconds": age,
        "is_new_token": age < _DAY_SECONDS,
        "liquidity_stability": clamp(provider.liquidity_stability(token)),
        "holder_stability": clamp(provider.holder_stability(token)),
    }


def _holder_concentration(holders: float) -> float:
    for bound, value in _CONCENTRATION_STEPS:
        if holders < bound:
            return value
    return _CONCENTRATION_FLOOR


def onchain_vector(features: Dict[str, Any]) -> List[float]:
    return [
        log_normalize(features.get("holder_count", 0), 15),
        clamp(features.get("holder_concentration", 0.0)),
        normalize(features.get("holder_growth", 0.0), -1, 1),
        log_normalize(features.get("liquidity_usd", 0), 20),
        clamp(features.get("liquidity_ratio", 0.0)),
        log_normalize(features.get("volume_24h", 0), 20),
        normalize(features.get("volume_to_liquidity", 0.0), 0, 10),
        normalize(features.get("transaction_frequency", 0.0), 0, 100),
        normalize(features.get("token_age_seconds", 0.0), 0, _MAX_AGE_SECONDS),
        1.0 if features.get("is_new_token") else 0.0,
    ]


def _empty_features() -> Dict[str, Any]:
    return {}
