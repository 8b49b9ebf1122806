"""
Lifecycle classification.

    score = cluster strength + momentum × 20 + community growth × 15
    score × 0.8 if the narrative is "new", × 1.1 if "mature"

Bucketed by the configured thresholds (defaults 30 / 60 / 80):

    score < emerging  → emerging   (confidence 0.7)
    score < growing   → growing    (0.8)
    score < peak      → peak       (0.9)
    otherwise         → declining  (0.8) if momentum < 0 and growth < 0
                        peak       (0.85) otherwise
"""

from typing import Dict

from narrative_engine.config import LIFECYCLE_DESCRIPTIONS
from narrative_engine.schemas.base import LifecycleStage
from narrative_engine.schemas.narratives import LifecycleAssessment

_AGE_FACTORS = {"new": 0.8, "mature": 1.1}


def lifecycle_score(strength: float, momentum: float, growth: float, age: str) -> float:
    score = strength + momentum * 20 + growth * 15
    return score * _AGE_FACTORS.get(age, 1.0)


def classify_lifecycle(
    strength: float,
    momentum: float,
    growth: float,
    age: str,
    thresholds: Dict[str, float],
) -> LifecycleAssessment:
    score = lifecycle_score(strength, momentum, growth, age)

    if score < thresholds["emerging"]:
        stage, confidence = LifecycleStage.EMERGING, 0.7
    elif score < thresholds["growing"]:
        stage, confidence = LifecycleStage.GROWING, 0.8
    elif score < thresholds["peak"]:
        stage, confidence = LifecycleStage.PEAK, 0.9
    elif momentum < 0 and growth < 0:
        stage, confidence = LifecycleStage.DECLINING, 0.8
    else:
        stage, confidence = LifecycleStage.PEAK, 0.85

    return LifecycleAssessment(
        stage=stage,
        confidence=confidence,
        score=score,
        factors={"strength": strength, "momentum": momentum, "growth": growth, "age": age},
        description=f"{LIFECYCLE_DESCRIPTIONS[stage.value]} ({round(score)}/100)",
    )
