"""
Clustering strategies — three independent partitioners behind one signature.

    partition(vectors, settings) -> PartitionResult

Strategies (registered in STRATEGIES, evaluated in this order):
  centroid:      KMeans with random seed centroids (init="random", n_init=1),
                 k = min(max_clusters, N // min_cluster_size). k < 2 ⇒ empty.
                 Randomized unless settings.kmeans_seed is set.
  density:       DBSCAN with a fixed radius. min_neighbors counts OTHER points,
                 so sklearn's min_samples (which counts the point itself) is
                 min_neighbors + 1. Noise ⇒ outliers. Deterministic.
  hierarchical:  Average-linkage agglomeration over Euclidean distances,
                 merging until the closest pair is further than the threshold.
                 Also reports the merge history. Deterministic.

Groups smaller than min_cluster_size are demoted to outliers (label -1) and
the remaining labels are compacted to 0..k-1 in order of first appearance.
A strategy that cannot form any valid group returns an empty result; a
strategy that raises is reported empty by the ensemble, never fatal.

quality = silhouette score over the non-outlier points (0.0 when fewer than
two groups survive).

REF: MacQueen 1967 (k-means), Ester et al. 1996 (DBSCAN),
     scikit-learn AgglomerativeClustering (average linkage).
"""

import logging
from collections import Counter
from typing import Callable, Dict, List

import numpy as np
from sklearn.cluster import DBSCAN, AgglomerativeClustering, KMeans
from sklearn.metrics import silhouette_score

from narrative_engine.config import NarrativeSettings
from narrative_engine.schemas.pipeline import PartitionResult

logger = logging.getLogger(__name__)

Partitioner = Callable[[np.ndarray, NarrativeSettings], PartitionResult]


def partition_centroid(vectors: np.ndarray, settings: NarrativeSettings) -> PartitionResult:
    """Centroid partitioning (k-means, random seed centroids)."""
    n = len(vectors)
    k = min(settings.max_clusters, n // max(1, settings.min_cluster_size))
    if k < 2:
        logger.debug(f"Centroid: k={k} < 2 for {n} points, no partition")
        return _empty("centroid", n)

    model = KMeans(
        n_clusters=k,
        init="random",
        n_init=1,
        max_iter=settings.kmeans_max_iter,
        tol=settings.kmeans_tol,
        random_state=settings.kmeans_seed,
    )
    raw = model.fit_predict(vectors)
    labels = _drop_small_groups(raw.tolist(), settings.min_cluster_size)
    result = _finish("centroid", vectors, labels)
    result.centroids = model.cluster_centers_.tolist()
    result.extras["inertia"] = float(model.inertia_)
    result.extras["iterations"] = int(model.n_iter_)
    return result


def partition_density(vectors: np.ndarray, settings: NarrativeSettings) -> PartitionResult:
    """Density partitioning (DBSCAN over a fixed radius)."""
    model = DBSCAN(
        eps=settings.density_radius,
        min_samples=settings.density_min_neighbors + 1,
        metric="euclidean",
    )
    raw = model.fit_predict(vectors).tolist()
    # DBSCAN already marks unreachable points as -1; small groups only
    # appear when min_neighbors + 1 < min_cluster_size.
    labels = _drop_small_groups(raw, settings.min_cluster_size)
    result = _finish("density", vectors, labels)
    result.extras["noise"] = sum(1 for label in raw if label < 0)
    return result


def partition_hierarchical(vectors: np.ndarray, settings: NarrativeSettings) -> PartitionResult:
    """Hierarchical agglomeration (average linkage, distance threshold)."""
    n = len(vectors)
    if n < 2:
        return _empty("hierarchical", n)

    model = AgglomerativeClustering(
        n_clusters=None,
        distance_threshold=settings.hierarchical_threshold,
        metric="euclidean",
        linkage="average",
        compute_full_tree=True,
        compute_distances=True,
    )
    raw = model.fit_predict(vectors).tolist()
    labels = _drop_small_groups(raw, settings.min_cluster_size)
    result = _finish("hierarchical", vectors, labels)
    result.extras["merge_history"] = [
        {"left": int(left), "right": int(right), "distance": float(dist)}
        for (left, right), dist in zip(model.children_, model.distances_)
        if dist <= settings.hierarchical_threshold
    ]
    return result


STRATEGIES: Dict[str, Partitioner] = {
    "centroid": partition_centroid,
    "density": partition_density,
    "hierarchical": partition_hierarchical,
}


# ── helpers ────────────────────────────────────────────────────────────────

def _empty(algorithm: str, n: int) -> PartitionResult:
    return PartitionResult(algorithm=algorithm, labels=[-1] * n, outliers=list(range(n)))


def _drop_small_groups(labels: List[int], min_size: int) -> List[int]:
    """Demote groups below min_size to -1 and compact the surviving ids."""
    sizes = Counter(label for label in labels if label >= 0)
    remap: Dict[int, int] = {}
    compact: List[int] = []
    for label in labels:
        if label < 0 or sizes[label] < min_size:
            compact.append(-1)
            continue
        if label not in remap:
            remap[label] = len(remap)
        compact.append(remap[label])
    return compact


def _finish(algorithm: str, vectors: np.ndarray, labels: List[int]) -> PartitionResult:
    outliers = [i for i, label in enumerate(labels) if label < 0]
    result = PartitionResult(algorithm=algorithm, labels=labels, outliers=outliers)
    result.quality = partition_silhouette(vectors, labels)
    logger.debug(
        f"{algorithm}: {len(result.cluster_ids)} groups {result.cluster_sizes}, "
        f"{len(outliers)} outliers, silhouette={result.quality:.3f}"
    )
    return result


def partition_silhouette(vectors: np.ndarray, labels: List[int]) -> float:
    """Silhouette over clustered points only; 0.0 when it is undefined."""
    mask = np.array([label >= 0 for label in labels], dtype=bool)
    kept = np.array(labels)[mask] if len(labels) else np.array([])
    n_groups = len(set(kept.tolist()))
    if n_groups < 2 or n_groups >= len(kept):
        return 0.0
    try:
        return float(silhouette_score(vectors[mask], kept, metric="euclidean"))
    except ValueError as e:
        logger.debug(f"Silhouette undefined: {e}")
        return 0.0
