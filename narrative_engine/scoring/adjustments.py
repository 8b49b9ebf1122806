"""
Score adjustments applied after the base score, in order.

1. Theme: when the primary theme has a multiplier table, each listed
   characteristic adds its bonus × multiplier:
       volatility  VOLATILITY_BONUS[volatility level]
       social      SOCIAL_BONUS[mention level]
       community   COMMUNITY_BONUS[community size]
       growth      clamp(momentum + 0.5)
2. Lifecycle: every multiplier in the stage table whose key names a score
   component adds component × (m − 1) × 0.1, then the whole score is scaled
   by the stage multiplier.
3. Activity: per member, volume/market-cap > 0.5 → +3, > 0.2 → +1 and
   |24h change| > 50 → +2, > 20 → +1. Capped at +5.

Each step clamps to [0, 100].
"""

from typing import Dict

from narrative_engine.config import (
    COMMUNITY_BONUS,
    LIFECYCLE_MULTIPLIERS,
    SOCIAL_BONUS,
    STAGE_SCORE_MULTIPLIERS,
    THEME_MULTIPLIERS,
    VOLATILITY_BONUS,
)
from narrative_engine.schemas.narratives import NarrativeProfile
from narrative_engine.shared.helpers import clamp

ACTIVITY_BONUS_CAP = 5.0


def theme_bonus(profile: NarrativeProfile) -> float:
    multipliers = THEME_MULTIPLIERS.get(profile.primary_theme_id or "")
    if not multipliers:
        return 0.0

    chars = profile.characteristics
    bonuses = {
        "volatility": VOLATILITY_BONUS.get(chars.volatility.level, 0.5),
        "social": SOCIAL_BONUS.get(chars.social.mentions, 0.5),
        "community": COMMUNITY_BONUS.get(chars.community.size, 0.5),
        "growth": clamp(chars.temporal.momentum + 0.5),
    }
    return sum(bonuses[key] * m for key, m in multipliers.items() if key in bonuses)


def apply_theme_adjustment(score: float, profile: NarrativeProfile) -> float:
    return min(100.0, max(0.0, score + theme_bonus(profile)))


def apply_lifecycle_adjustment(
    score: float,
    profile: NarrativeProfile,
    components: Dict[str, float],
) -> float:
    stage = profile.stage.value
    for key, m in LIFECYCLE_MULTIPLIERS.get(stage, {}).items():
        if key in components:
            score += components[key] * (m - 1) * 0.1
    score *= STAGE_SCORE_MULTIPLIERS.get(stage, 1.0)
    return min(100.0, max(0.0, score))


def activity_bonus(profile: NarrativeProfile) -> float:
    bonus = 0.0
    for token in profile.tokens:
        if token.volume_24h > 0 and token.market_cap > 0:
            ratio = token.volume_24h / token.market_cap
            if ratio > 0.5:
                bonus += 3
            elif ratio > 0.2:
                bonus += 1

        change = abs(token.price_change_24h)
        if change > 50:
            bonus += 2
        elif change > 20:
            bonus += 1
    return min(ACTIVITY_BONUS_CAP, bonus)
