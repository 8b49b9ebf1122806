"""
Scoring data models.

ScoreRecord is ephemeral: recomputed on every pass. The only thing carried
to the next run is the scalar final score per narrative id (for deltas).

breakdown follows the {stage: value} shape so a consumer can explain WHY a
narrative ranked where it did:
  base → theme_adjusted → lifecycle_adjusted → (+activity_bonus)
  → (−correlation_penalty) → final
"""

from typing import Dict

from pydantic import BaseModel, Field

from .base import CorrelationType, TrendDirection


class ScoreRecord(BaseModel):
    narrative_id: str
    components: Dict[str, float] = Field(default_factory=dict)
    breakdown: Dict[str, float] = Field(default_factory=dict)
    final_score: float = Field(default=0.0, ge=0.0, le=100.0)
    rank: int = 0
    delta_score: float = 0.0
    delta_percent: float = 0.0
    trend: TrendDirection = TrendDirection.STABLE


class CorrelationEntry(BaseModel):
    """Pairwise correlation between two narratives in one batch."""
    narrative_a: str
    narrative_b: str
    correlation: float
    kind: CorrelationType


class WeightAdjustment(BaseModel):
    """One base-weight change made by the adaptation step."""
    old: float
    new: float
    change: float
    correlation: float
    reason: str
