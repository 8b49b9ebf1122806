"""
Pairwise narrative correlation and the resulting score adjustment.

    correlation = Σ active factors / number of active factors
        same primary theme          +0.6 (active only when equal)
        same lifecycle stage        +0.3 (active only when equal)
        |Δstrength| < 20            +0.2 (active only when true)
        membership overlap × 0.4    always active
    overlap = |A ∩ B| / min(|A|, |B|)

Pairs with |correlation| above the threshold adjust BOTH members:
positive correlation (competing narratives) subtracts correlation × 5,
negative correlation (complementary narratives) adds |correlation| × 3.
"""

import logging
from itertools import combinations
from typing import Dict, List

from narrative_engine.schemas.base import CorrelationType
from narrative_engine.schemas.narratives import NarrativeProfile
from narrative_engine.schemas.scoring import CorrelationEntry

logger = logging.getLogger(__name__)


def token_overlap(a: NarrativeProfile, b: NarrativeProfile) -> float:
    set_a, set_b = set(a.addresses), set(b.addresses)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / min(len(set_a), len(set_b))


def pair_correlation(a: NarrativeProfile, b: NarrativeProfile) -> float:
    total = 0.0
    factors = 0

    if a.primary_theme_id == b.primary_theme_id:
        total += 0.6
        factors += 1
    if a.stage == b.stage:
        total += 0.3
        factors += 1
    if abs(a.strength - b.strength) < 20:
        total += 0.2
        factors += 1

    total += token_overlap(a, b) * 0.4
    factors += 1

    return total / factors


def classify_correlation(correlation: float) -> CorrelationType:
    if correlation > 0.7:
        return CorrelationType.STRONG_POSITIVE
    if correlation > 0.3:
        return CorrelationType.MODERATE_POSITIVE
    if correlation > -0.3:
        return CorrelationType.WEAK
    if correlation > -0.7:
        return CorrelationType.MODERATE_NEGATIVE
    return CorrelationType.STRONG_NEGATIVE


def correlation_matrix(profiles: List[NarrativeProfile]) -> List[CorrelationEntry]:
    entries = []
    for a, b in combinations(profiles, 2):
        corr = pair_correlation(a, b)
        entries.append(CorrelationEntry(
            narrative_a=a.id,
            narrative_b=b.id,
            correlation=corr,
            kind=classify_correlation(corr),
        ))
    return entries


def correlation_adjustments(
    entries: List[CorrelationEntry],
    threshold: float,
) -> Dict[str, float]:
    """Signed score adjustment per narrative id (negative = penalty)."""
    adjustments: Dict[str, float] = {}
    for entry in entries:
        if abs(entry.correlation) <= threshold:
            continue
        if entry.correlation > 0:
            delta = -entry.correlation * 5
        else:
            delta = abs(entry.correlation) * 3
        for nid in (entry.narrative_a, entry.narrative_b):
            adjustments[nid] = adjustments.get(nid, 0.0) + delta
        logger.debug(
            f"Correlated pair {entry.narrative_a} / {entry.narrative_b}: "
            f"{entry.correlation:.3f} ({entry.kind.value}), adjustment {delta:+.2f}"
        )
    return adjustments
