"""
Adaptive scorer — ranks characterized narratives.

Stages (each value recorded in ScoreRecord.breakdown):
  base → theme_adjusted → lifecycle_adjusted → +activity_bonus
  → +correlation_adjustment → final

Final scores are clamped to [0, 100] and ranked descending (ties keep
input order). delta_score / delta_percent compare against the prior run's
score for the same narrative id; a narrative with no prior score compares
against itself (delta 0, stable).

Weights are passed in, never mutated here: adaptation is a separate step
(narrative_engine.learning.weight_learner).

A failure anywhere in the staged scoring falls back to ranking by profile
strength, so callers always get a ranking plus a diagnostic.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from narrative_engine.config import NarrativeSettings
from narrative_engine.errors import ScoringError
from narrative_engine.schemas.base import TrendDirection
from narrative_engine.schemas.narratives import NarrativeProfile
from narrative_engine.schemas.pipeline import RankedNarrative
from narrative_engine.schemas.scoring import CorrelationEntry, ScoreRecord

from .adjustments import activity_bonus, apply_lifecycle_adjustment, apply_theme_adjustment
from .components import auxiliary_components, base_components, base_score, batch_maxima, narrative_totals
from .correlation import correlation_adjustments, correlation_matrix

logger = logging.getLogger(__name__)


def classify_trend(delta_score: float, delta_percent: float) -> TrendDirection:
    if delta_score > 5 or delta_percent > 10:
        return TrendDirection.RISING
    if delta_score < -5 or delta_percent < -10:
        return TrendDirection.FALLING
    return TrendDirection.STABLE


def _checked(value: float, stage: str, narrative_id: str) -> float:
    if not math.isfinite(value):
        raise ScoringError(f"non-finite {stage} score for {narrative_id}: {value}")
    return value


class AdaptiveScorer:
    """Five-stage narrative scorer.

    Args:
        settings: correlation threshold (the weights themselves are passed
                  per call so the adaptation step can own them).
    """

    def __init__(self, settings: NarrativeSettings):
        self.settings = settings

    def score(
        self,
        profiles: List[NarrativeProfile],
        weights: Dict[str, float],
        prior_scores: Optional[Dict[str, float]] = None,
    ) -> Tuple[List[RankedNarrative], List[CorrelationEntry], List[str]]:
        """Score and rank a batch of narratives.

        Returns:
            (ranked, correlations, diagnostics). diagnostics is empty unless
            the strength fallback was used.
        """
        if not profiles:
            return [], [], []

        prior_scores = prior_scores or {}
        try:
            records, correlations = self._score_stages(profiles, weights)
        except Exception as e:
            logger.warning(f"Scoring failed, falling back to strength ranking: {e}")
            records = {
                p.id: ScoreRecord(
                    narrative_id=p.id,
                    breakdown={"strength": p.strength, "final": p.strength},
                    final_score=min(100.0, max(0.0, p.strength)),
                )
                for p in profiles
            }
            return self._rank(profiles, records, prior_scores), [], [f"scoring_failed: {e}"]

        ranked = self._rank(profiles, records, prior_scores)
        if ranked:
            top = ranked[0]
            logger.info(f"Top narrative: '{top.profile.name}' ({round(top.final_score)}/100)")
        return ranked, correlations, []

    def _score_stages(
        self,
        profiles: List[NarrativeProfile],
        weights: Dict[str, float],
    ) -> Tuple[Dict[str, ScoreRecord], List[CorrelationEntry]]:
        totals = [narrative_totals(p) for p in profiles]
        maxima = batch_maxima(totals)

        staged: Dict[str, Dict[str, float]] = {}
        components_by_id: Dict[str, Dict[str, float]] = {}
        for profile, total in zip(profiles, totals):
            components = base_components(total, maxima)
            components.update(auxiliary_components(profile))
            components_by_id[profile.id] = components

            # ── Stage 1-3: base, theme, lifecycle ──
            base = _checked(base_score(components, weights), "base", profile.id)
            themed = _checked(apply_theme_adjustment(base, profile), "theme", profile.id)
            cycled = _checked(apply_lifecycle_adjustment(themed, profile, components), "lifecycle", profile.id)

            # ── Stage 4: market activity ──
            bonus = activity_bonus(profile)
            staged[profile.id] = {
                "base": base,
                "theme_adjusted": themed,
                "lifecycle_adjusted": cycled,
                "activity_bonus": bonus,
                "activity_adjusted": min(100.0, max(0.0, cycled + bonus)),
            }

        # ── Stage 5: correlation ──
        correlations = correlation_matrix(profiles)
        adjustments = correlation_adjustments(correlations, self.settings.correlation_threshold)

        records = {}
        for profile in profiles:
            breakdown = staged[profile.id]
            adjustment = adjustments.get(profile.id, 0.0)
            final = _checked(breakdown["activity_adjusted"] + adjustment, "final", profile.id)
            breakdown["correlation_adjustment"] = adjustment
            breakdown["final"] = min(100.0, max(0.0, final))
            records[profile.id] = ScoreRecord(
                narrative_id=profile.id,
                components=components_by_id[profile.id],
                breakdown=breakdown,
                final_score=breakdown["final"],
            )
        return records, correlations

    def _rank(
        self,
        profiles: List[NarrativeProfile],
        records: Dict[str, ScoreRecord],
        prior_scores: Dict[str, float],
    ) -> List[RankedNarrative]:
        ordered = sorted(profiles, key=lambda p: records[p.id].final_score, reverse=True)
        ranked = []
        for i, profile in enumerate(ordered):
            record = records[profile.id]
            previous = prior_scores.get(profile.id, record.final_score)
            record.rank = i + 1
            record.delta_score = record.final_score - previous
            record.delta_percent = (record.delta_score / previous) * 100 if previous > 0 else 0.0
            record.trend = classify_trend(record.delta_score, record.delta_percent)
            ranked.append(RankedNarrative(profile=profile, score=record))
        return ranked
