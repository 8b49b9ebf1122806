"""
Score components.

Five weighted base components, each a narrative total divided by the batch
maximum (maximum floored at 1, result capped at 1):

    volume            Σ volume_24h
    social            Σ social_mentions
    liquidity         Σ liquidity
    holders           Σ holders
    price_volatility  mean |price_change_24h|

base score = Σ component × weight × 100, clamped to [5, 95] so every
narrative keeps some visibility.

Two auxiliary signals ride along for the lifecycle adjustment:
    novelty    profile novelty (keyword divergence from the catalog)
    community  (size bonus + engagement × 0.5 + max(0, growth) × 0.3) / 1.8
"""

from typing import Dict, List

from narrative_engine.config import COMMUNITY_BONUS
from narrative_engine.schemas.narratives import NarrativeProfile
from narrative_engine.shared.helpers import clamp, mean

BASE_COMPONENTS = ("volume", "social", "liquidity", "holders", "price_volatility")


def narrative_totals(profile: NarrativeProfile) -> Dict[str, float]:
    tokens = profile.tokens
    return {
        "volume": sum(t.volume_24h for t in tokens),
        "social": sum(t.social_mentions for t in tokens),
        "liquidity": sum(t.liquidity for t in tokens),
        "holders": float(sum(t.holders for t in tokens)),
        "price_volatility": mean(abs(t.price_change_24h) for t in tokens),
    }


def batch_maxima(totals: List[Dict[str, float]]) -> Dict[str, float]:
    return {
        key: max([1.0] + [t[key] for t in totals])
        for key in BASE_COMPONENTS
    }


def base_components(totals: Dict[str, float], maxima: Dict[str, float]) -> Dict[str, float]:
    return {key: min(1.0, totals[key] / maxima[key]) for key in BASE_COMPONENTS}


def base_score(components: Dict[str, float], weights: Dict[str, float]) -> float:
    raw = sum(components.get(key, 0.0) * w for key, w in weights.items())
    return min(95.0, max(5.0, raw * 100))


def community_signal(profile: NarrativeProfile) -> float:
    community = profile.characteristics.community
    score = COMMUNITY_BONUS.get(community.size, 0.5)
    score += community.engagement * 0.5
    score += max(0.0, community.growth) * 0.3
    return clamp(score / 1.8)


def auxiliary_components(profile: NarrativeProfile) -> Dict[str, float]:
    return {
        "novelty": clamp(profile.novelty),
        "community": community_signal(profile),
    }
