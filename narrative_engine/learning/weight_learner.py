"""
Rank-driven base-weight adaptation.

After a scoring pass, each base component is correlated (Pearson) with the
rank score 1 − i/n of the ranked batch. Components that line up with the
ranking gain weight, the rest lose it:

    new weight = weight + correlation × adaptation_rate

Safety: weights are bounded to [min_weight, max_weight] and always sum to
1.0. Bounding and normalizing interfere with each other, so the two are
applied together: out-of-bounds weights are pinned to the bound and the
remaining mass is redistributed over the free weights until nothing
violates a bound. A component with zero variance across the batch (or a
batch of fewer than two narratives) carries no signal and gets
correlation 0.

The step is explicit and owned by the caller: the weights dict passed in
is never mutated, and the pipeline skips the step entirely when
adaptation_enabled is False.
"""

import logging
import math
from typing import Dict, List, Tuple

import numpy as np

from narrative_engine.config import NarrativeSettings
from narrative_engine.schemas.pipeline import RankedNarrative
from narrative_engine.schemas.scoring import WeightAdjustment

logger = logging.getLogger(__name__)

_BOUND_EPS = 1e-9


def _is_finite(x: float) -> bool:
    return math.isfinite(x)


def rank_correlation(values: List[float], rank_scores: List[float]) -> float:
    """Pearson correlation, 0.0 when either side has no variance."""
    if len(values) < 2:
        return 0.0
    a = np.asarray(values, dtype=float)
    b = np.asarray(rank_scores, dtype=float)
    if a.std() == 0 or b.std() == 0:
        return 0.0
    corr = float(np.corrcoef(a, b)[0, 1])
    return corr if _is_finite(corr) else 0.0


def bounded_normalize(
    weights: Dict[str, float],
    weight_floor: float,
    weight_ceiling: float,
) -> Dict[str, float]:
    """Normalize to sum 1.0 with every weight inside [floor, ceiling].

    Falls back to uniform weights when the bounds cannot hold
    (floor × n > 1 or ceiling × n < 1).
    """
    keys = list(weights)
    n = len(keys)
    if n == 0:
        return {}
    if weight_floor * n > 1.0 + _BOUND_EPS or weight_ceiling * n < 1.0 - _BOUND_EPS:
        logger.warning(
            f"Weight bounds [{weight_floor}, {weight_ceiling}] infeasible for {n} weights, using uniform"
        )
        return {k: 1.0 / n for k in keys}

    current = {}
    for k in keys:
        v = weights[k]
        if not _is_finite(v):
            logger.warning(f"NaN/Inf weight for {k}, resetting to floor")
            v = weight_floor
        current[k] = max(weight_floor, min(weight_ceiling, v))

    pinned: Dict[str, float] = {}
    for _ in range(n + 1):
        free = [k for k in keys if k not in pinned]
        if not free:
            break
        remaining = 1.0 - sum(pinned.values())
        total = sum(current[k] for k in free)
        if total > 0:
            scaled = {k: current[k] * remaining / total for k in free}
        else:
            scaled = {k: remaining / len(free) for k in free}

        violations = {}
        for k, v in scaled.items():
            if v < weight_floor - _BOUND_EPS:
                violations[k] = weight_floor
            elif v > weight_ceiling + _BOUND_EPS:
                violations[k] = weight_ceiling
        if not violations:
            current.update(scaled)
            break
        pinned.update(violations)
        current.update(violations)

    return {k: round(current[k], 6) for k in keys}


def apply_adaptation(
    weights: Dict[str, float],
    ranked: List[RankedNarrative],
    settings: NarrativeSettings,
) -> Tuple[Dict[str, float], Dict[str, WeightAdjustment]]:
    """Nudge base weights toward components that track the ranking.

    Args:
        weights: Current base weights (not mutated).
        ranked: Scored narratives, best first.
        settings: adaptation_rate, min_weight, max_weight.

    Returns:
        (new_weights, adjustments): adjustments has one entry per component,
        comparing the final bounded weight with the input weight.
    """
    n = len(ranked)
    rank_scores = [1.0 - i / n for i in range(n)]

    correlations = {}
    proposed = {}
    for component, weight in weights.items():
        values = [r.score.components.get(component, 0.0) for r in ranked]
        corr = rank_correlation(values, rank_scores)
        correlations[component] = corr
        proposed[component] = weight + corr * settings.adaptation_rate

    new_weights = bounded_normalize(proposed, settings.min_weight, settings.max_weight)

    adjustments = {}
    for component, old in weights.items():
        corr = correlations[component]
        if corr > 0:
            reason = "positive_correlation"
        elif corr < 0:
            reason = "negative_correlation"
        else:
            reason = "no_signal"
        adjustments[component] = WeightAdjustment(
            old=old,
            new=new_weights[component],
            change=new_weights[component] - old,
            correlation=corr,
            reason=reason,
        )

    drift = sum(abs(a.change) for a in adjustments.values())
    logger.info(f"Weight adaptation over {n} narratives: drift={drift:.4f}")
    logger.debug(f"Adapted weights: {new_weights}")
    return new_weights, adjustments
