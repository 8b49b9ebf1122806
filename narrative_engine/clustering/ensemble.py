"""
Clustering ensemble — run every strategy, keep the best partition.

Selection scores each candidate that produced at least one cluster:

    composite = 0.3 × cluster count
              + 0.2 × mean cluster size
              + 0.2 / (cluster-size variance + 1)
              − 0.3 × outlier fraction

and keeps the maximum (the earliest strategy wins ties). If no candidate
found anything, the first raw result is returned as an explicit "nothing
found" outcome.

Batches below min_cluster_size never reach the strategies: the result is
zero clusters with the whole batch as outliers (algorithm "none").
"""

import logging
from typing import Dict, List, Optional

import numpy as np
from sklearn.metrics import silhouette_samples

from narrative_engine.config import NarrativeSettings
from narrative_engine.errors import ClusteringError
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.narratives import Cluster
from narrative_engine.schemas.pipeline import ClusteringResult, PartitionResult
from narrative_engine.schemas.tokens import FeatureRecord
from narrative_engine.shared.helpers import mean, variance

from .evolution import SignatureHistory
from .strategies import STRATEGIES, Partitioner
from .strength import evaluate_cluster_strengths

logger = logging.getLogger(__name__)

# Composite selection weights
_W_COUNT = 0.3
_W_SIZE = 0.2
_W_BALANCE = 0.2
_W_OUTLIERS = -0.3


def composite_score(result: PartitionResult, total: int) -> float:
    sizes = result.cluster_sizes
    if not sizes:
        return 0.0
    outlier_fraction = len(result.outliers) / max(1, total)
    return (
        len(sizes) * _W_COUNT
        + mean(sizes) * _W_SIZE
        + (1.0 / (variance(sizes) + 1.0)) * _W_BALANCE
        + outlier_fraction * _W_OUTLIERS
    )


def select_best(results: List[PartitionResult], total: int) -> PartitionResult:
    """Pick the partition with the highest composite score."""
    valid = [r for r in results if r.cluster_ids]
    if not valid:
        return results[0]
    best = valid[0]
    best_score = composite_score(best, total)
    for candidate in valid[1:]:
        score = composite_score(candidate, total)
        if score > best_score:
            best, best_score = candidate, score
    return best


def run_strategies(
    vectors: np.ndarray,
    settings: NarrativeSettings,
    strategies: Optional[Dict[str, Partitioner]] = None,
) -> List[PartitionResult]:
    """Run every registered strategy; a failing one yields an empty result."""
    strategies = strategies or STRATEGIES
    n = len(vectors)
    results = []
    for name, partition in strategies.items():
        try:
            results.append(partition(vectors, settings))
        except Exception as e:
            logger.warning(f"Clustering strategy '{name}' failed: {e}")
            results.append(PartitionResult(
                algorithm=name, labels=[-1] * n, outliers=list(range(n)),
                extras={"error": str(e)},
            ))
    return results


def cluster_tokens(
    records: List[FeatureRecord],
    settings: NarrativeSettings,
    history: Optional[SignatureHistory] = None,
    provider: Optional[HistoricalMetricProvider] = None,
    strategies: Optional[Dict[str, Partitioner]] = None,
) -> ClusteringResult:
    """
    Cluster a batch of feature records into narratives-to-be.

    Args:
        records: One FeatureRecord per token (input order is preserved).
        settings: Thresholds for every strategy and the minimum cluster size.
        history: Signature history for evolution telemetry (optional).
        provider: Historical metrics for stability/growth.
        strategies: Override the strategy registry (tests, experiments).

    Returns:
        ClusteringResult. Every returned cluster has ≥ min_cluster_size
        members and carries strength/coherence/stability/growth.

    Raises:
        ClusteringError: if the records' vectors do not form a finite matrix.
    """
    tokens = [r.token for r in records]
    n = len(records)

    if n == 0 or n < settings.min_cluster_size:
        logger.info(f"Clustering skipped: {n} tokens < min_cluster_size={settings.min_cluster_size}")
        return ClusteringResult(algorithm="none", outliers=tokens, reason="insufficient_tokens")

    try:
        vectors = np.asarray([r.vector for r in records], dtype=float)
    except ValueError as e:
        raise ClusteringError(f"feature vectors have inconsistent lengths: {e}") from e
    if vectors.ndim != 2 or not np.isfinite(vectors).all():
        raise ClusteringError(f"feature vectors must be a finite 2-D matrix, got shape {vectors.shape}")
    results = run_strategies(vectors, settings, strategies)
    candidates = {r.algorithm: round(composite_score(r, n), 4) for r in results}
    best = select_best(results, n)

    clusters = _build_clusters(best, records, vectors)
    outliers = [tokens[i] for i in best.outliers]

    evaluate_cluster_strengths(
        clusters,
        {r.address: r for r in records},
        provider or HistoricalMetricProvider(),
    )
    # Last: the shared history only advances once the batch is fully evaluated
    evolution = history.record(clusters) if history is not None else None

    result = ClusteringResult(
        algorithm=best.algorithm,
        clusters=clusters,
        outliers=outliers,
        composite_score=composite_score(best, n),
        silhouette=best.quality,
        candidates=candidates,
        failures={r.algorithm: r.extras["error"] for r in results if "error" in r.extras},
        reason="" if clusters else "no_clusters_found",
    )
    if evolution is not None:
        result.evolution = evolution

    logger.info(
        f"Clustering: {n} tokens → {len(clusters)} clusters, {len(outliers)} outliers "
        f"(algorithm={best.algorithm}, silhouette={best.quality:.3f})"
    )
    return result


def _build_clusters(
    partition: PartitionResult,
    records: List[FeatureRecord],
    vectors: np.ndarray,
) -> List[Cluster]:
    per_point = _point_silhouettes(partition, vectors)
    clusters = []
    for cid in partition.cluster_ids:
        idx = [i for i, label in enumerate(partition.labels) if label == cid]
        centroid = None
        if partition.centroids is not None:
            centroid = vectors[idx].mean(axis=0).tolist()
        clusters.append(Cluster(
            id=cid,
            tokens=[records[i].token for i in idx],
            centroid=centroid,
            quality=mean(per_point[i] for i in idx) if per_point is not None else 0.0,
        ))
    return clusters


def _point_silhouettes(partition: PartitionResult, vectors: np.ndarray) -> Optional[Dict[int, float]]:
    """Per-point silhouette for clustered points, or None when undefined."""
    idx = [i for i, label in enumerate(partition.labels) if label >= 0]
    labels = [partition.labels[i] for i in idx]
    if len(set(labels)) < 2 or len(set(labels)) >= len(idx):
        return None
    try:
        values = silhouette_samples(vectors[idx], labels, metric="euclidean")
    except ValueError:
        return None
    return {i: float(v) for i, v in zip(idx, values)}
