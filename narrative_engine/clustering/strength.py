"""
Cluster strength evaluation.

  strength:  mean of four sub-scores, each capped at 100:
               ln(avg volume + 1) × 5
               ln(avg holders + 1) × 10
               avg |24h price change|
               ln(avg social mentions + 1) × 10
  coherence: mean pairwise (1 − Euclidean distance) between member combined
             vectors, floored at 0. One member ⇒ 1.0.
  stability, growth: from the historical metric provider (no history ⇒
             1.0 and 0.0).
"""

import logging
import math
from typing import Dict, List

import numpy as np
from sklearn.metrics.pairwise import euclidean_distances

from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.narratives import Cluster
from narrative_engine.schemas.tokens import FeatureRecord
from narrative_engine.shared.helpers import clamp, mean

logger = logging.getLogger(__name__)


def cluster_strength(cluster: Cluster) -> float:
    tokens = cluster.tokens
    if not tokens:
        return 0.0
    parts = [
        min(100.0, math.log(mean(t.volume_24h for t in tokens) + 1) * 5),
        min(100.0, math.log(mean(t.holders for t in tokens) + 1) * 10),
        min(100.0, mean(abs(t.price_change_24h) for t in tokens)),
        min(100.0, math.log(mean(t.social_mentions for t in tokens) + 1) * 10),
    ]
    return clamp(mean(parts), 0.0, 100.0)


def cluster_coherence(vectors: List[List[float]]) -> float:
    """Mean pairwise similarity (1 − distance, floored at 0)."""
    if len(vectors) < 2:
        return 1.0
    dist = euclidean_distances(np.asarray(vectors, dtype=float))
    upper = dist[np.triu_indices(len(vectors), k=1)]
    similarity = np.clip(1.0 - upper, 0.0, None)
    return clamp(float(similarity.mean()))


def evaluate_cluster_strengths(
    clusters: List[Cluster],
    records: Dict[str, FeatureRecord],
    provider: HistoricalMetricProvider,
) -> List[Cluster]:
    """Attach strength / coherence / stability / growth to every cluster.

    Args:
        clusters: Clusters from the selected partition.
        records: address → FeatureRecord for the whole batch.
        provider: Source of the history-dependent signals.
    """
    for cluster in clusters:
        vectors = [records[a].vector for a in cluster.addresses if a in records]
        cluster.strength = cluster_strength(cluster)
        cluster.coherence = cluster_coherence(vectors)
        cluster.stability = clamp(provider.cluster_stability(cluster.tokens))
        cluster.growth = clamp(provider.cluster_growth(cluster.tokens), -1.0, 1.0)
        logger.debug(
            f"Cluster {cluster.id}: {cluster.size} tokens, strength={cluster.strength:.1f}, "
            f"coherence={cluster.coherence:.3f}"
        )
    return clusters
