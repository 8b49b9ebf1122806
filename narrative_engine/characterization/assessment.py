"""
Overall narrative strength and characterization confidence.

Strength (clamped to [0, 100]):
    cluster strength
  + primary theme score × 5 + Σ secondary theme scores × 2
  + volume bonus (min(100, ln(total volume + 1) × 5) × 0.1)
  + community engagement × 10 + virality × 15
  + |volatility score| × 0.2
  then × lifecycle multiplier (emerging 0.8, growing 1.2, peak 1.0, declining 0.6)

Confidence (capped at 1.0):
  0.5 base
  +0.3 primary theme score > 5    +0.1 any secondary theme
  +0.1 five or more tokens        +0.1 total volume > 100k
  +0.1 name patterns detected
"""

import math
from typing import Any, Dict, List, Optional

from narrative_engine.config import STAGE_STRENGTH_MULTIPLIERS
from narrative_engine.schemas.base import LifecycleStage
from narrative_engine.schemas.narratives import NarrativeCharacteristics, ThemeMatch
from narrative_engine.shared.helpers import clamp


def volume_bonus(total_volume: float) -> float:
    return min(100.0, math.log(max(0.0, total_volume) + 1) * 5) * 0.1


def narrative_strength(
    cluster_strength: float,
    primary: Optional[ThemeMatch],
    secondary: List[ThemeMatch],
    content: Dict[str, Any],
    characteristics: NarrativeCharacteristics,
    stage: LifecycleStage,
) -> float:
    strength = cluster_strength
    if primary is not None:
        strength += primary.score * 5
    strength += sum(t.score * 2 for t in secondary)

    strength += volume_bonus(content["market_metrics"]["total_volume"])
    strength += characteristics.community.engagement * 10
    strength += characteristics.social.virality * 15
    strength += abs(characteristics.volatility.score) * 0.2

    strength *= STAGE_STRENGTH_MULTIPLIERS.get(stage.value, 1.0)
    return clamp(strength, 0.0, 100.0)


def narrative_confidence(
    content: Dict[str, Any],
    primary: Optional[ThemeMatch],
    secondary: List[ThemeMatch],
) -> float:
    confidence = 0.5
    if primary is not None and primary.score > 5:
        confidence += 0.3
    if secondary:
        confidence += 0.1
    if content["token_count"] >= 5:
        confidence += 0.1
    if content["market_metrics"]["total_volume"] > 100_000:
        confidence += 0.1
    if content["name_patterns"]["common"]:
        confidence += 0.1
    return clamp(confidence, 0.0, 1.0)
