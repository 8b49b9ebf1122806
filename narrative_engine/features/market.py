"""
Market feature computation.

FEATURES:
  current_price, price_change_24h
  price_volatility:  min(2, |24h change| / 100), a single-sample proxy.
  volume_24h, volume_spike (current / provider moving average)
  market_cap, market_cap_tier (1 = top, 5 = small cap; reported only)
  performance_1h, performance_7d
  rsi:               provider (default: band midpoint from the 24h change).

Price is log-scaled after multiplying by 1e6 so sub-cent tokens still
spread out across the range.
"""

import logging
import math
from typing import Any, Dict, List

from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.shared.helpers import clamp, log_normalize, normalize

logger = logging.getLogger(__name__)

_CAP_TIERS = [(100_000_000, 1), (10_000_000, 2), (1_000_000, 3), (100_000, 4)]


def compute_market_features(token: TokenDescriptor, provider: HistoricalMetricProvider) -> Dict[str, Any]:
    """Compute the market feature family for one token."""
    change = token.price_change_24h
    average_volume = max(1.0, provider.volume_average(token))
    return {
        "current_price": token.price,
        "price_change_24h": change,
        "price_volatility": min(2.0, abs(change) / 100.0),
        "volume_24h": token.volume_24h,
        "volume_spike": token.volume_24h / average_volume,
        "market_cap": token.market_cap,
        "market_cap_tier": _market_cap_tier(token.market_cap),
        "performance_1h": token.price_change_1h,
        "performance_7d": token.price_change_7d,
        "rsi": clamp(provider.rsi(token), 0.0, 100.0),
    }


def _market_cap_tier(market_cap: float) -> int:
    for bound, tier in _CAP_TIERS:
        if market_cap > bound:
            return tier
    return 5


def market_vector(features: Dict[str, Any]) -> List[float]:
    price = max(0.0, features.get("current_price", 0.0))
    return [
        normalize(math.log(price * 1_000_000 + 1), 0, 20),
        normalize(features.get("price_change_24h", 0.0), -100, 1000),
        normalize(features.get("price_volatility", 0.0), 0, 2),
        log_normalize(features.get("volume_24h", 0), 20),
        normalize(features.get("volume_spike", 0.0), 0, 5),
        log_normalize(features.get("market_cap", 0), 25),
        normalize(features.get("performance_1h", 0.0), -50, 200),
        normalize(features.get("performance_7d", 0.0), -90, 500),
        normalize(features.get("rsi", 0.0), 0, 100),
    ]


def _empty_features() -> Dict[str, Any]:
    return {}
