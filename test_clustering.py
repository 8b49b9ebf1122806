"""
Clustering ensemble tests: strategies, composite selection, degenerate
batches, evolution telemetry and cluster strength.
"""

import numpy as np
import pytest

from narrative_engine.clustering import (
    STRATEGIES,
    SignatureHistory,
    cluster_coherence,
    cluster_strength,
    cluster_tokens,
    compare_signatures,
    composite_score,
    partition_centroid,
    partition_density,
    partition_hierarchical,
    run_strategies,
    select_best,
)
from narrative_engine.errors import ClusteringError
from narrative_engine.features import extract_all_features
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas import Cluster, ClusterSignature, PartitionResult, TokenDescriptor


def _two_blobs():
    """Two tight groups of four plus one far-away point."""
    a = [[0.0, 0.0], [0.01, 0.0], [0.0, 0.01], [0.01, 0.01]]
    b = [[5.0, 5.0], [5.01, 5.0], [5.0, 5.01], [5.01, 5.01]]
    return np.asarray(a + b + [[10.0, -10.0]])


@pytest.fixture
def blob_settings(settings_factory):
    return settings_factory(min_cluster_size=3, density_min_neighbors=2, kmeans_seed=7)


# ════════════════════════════════════════════════════════════════════
# Strategies
# ════════════════════════════════════════════════════════════════════

def test_density_finds_blobs_and_noise(blob_settings):
    result = partition_density(_two_blobs(), blob_settings)
    assert result.algorithm == "density"
    assert result.cluster_sizes == [4, 4]
    assert result.outliers == [8]
    assert result.extras["noise"] == 1
    assert result.quality > 0.9


def test_hierarchical_demotes_small_groups(blob_settings):
    result = partition_hierarchical(_two_blobs(), blob_settings)
    assert result.cluster_sizes == [4, 4]
    assert result.labels[8] == -1
    assert result.extras["merge_history"], "Expected recorded merges below the threshold"
    assert all(m["distance"] <= blob_settings.hierarchical_threshold for m in result.extras["merge_history"])


def test_centroid_needs_at_least_two_groups(settings_factory):
    s = settings_factory(min_cluster_size=3, kmeans_seed=1)
    result = partition_centroid(np.zeros((5, 2)), s)
    assert result.cluster_ids == []
    assert result.outliers == list(range(5))


def test_centroid_is_reproducible_with_seed(blob_settings):
    first = partition_centroid(_two_blobs(), blob_settings)
    second = partition_centroid(_two_blobs(), blob_settings)
    assert first.labels == second.labels
    assert first.centroids is not None
    assert all(size >= 3 for size in first.cluster_sizes)


# ════════════════════════════════════════════════════════════════════
# Composite selection
# ════════════════════════════════════════════════════════════════════

def test_composite_score_formula():
    result = PartitionResult(algorithm="x", labels=[0, 0, 0, 1, 1, 1, -1], outliers=[6])
    # 2 clusters, mean size 3, variance 0, 1/7 outliers
    expected = 2 * 0.3 + 3 * 0.2 + 0.2 / 1.0 - 0.3 * (1 / 7)
    assert composite_score(result, 7) == pytest.approx(expected)
    assert composite_score(PartitionResult(algorithm="empty", labels=[-1, -1]), 2) == 0.0


def test_select_best_prefers_first_on_ties_and_falls_back_to_first():
    a = PartitionResult(algorithm="a", labels=[0, 0, 0])
    b = PartitionResult(algorithm="b", labels=[0, 0, 0])
    assert select_best([a, b], 3).algorithm == "a"

    empty_a = PartitionResult(algorithm="a", labels=[-1, -1], outliers=[0, 1])
    empty_b = PartitionResult(algorithm="b", labels=[-1, -1], outliers=[0, 1])
    assert select_best([empty_a, empty_b], 2).algorithm == "a"


def _exploding(vectors, settings):
    raise ValueError("degenerate input")


def test_failing_strategy_is_reported_empty(blob_settings):
    results = run_strategies(_two_blobs(), blob_settings,
                             {"boom": _exploding, "density": partition_density})
    assert [r.algorithm for r in results] == ["boom", "density"]
    assert results[0].cluster_ids == []
    assert "degenerate input" in results[0].extras["error"]
    assert results[1].cluster_sizes == [4, 4]


# ════════════════════════════════════════════════════════════════════
# cluster_tokens
# ════════════════════════════════════════════════════════════════════

def test_batch_below_minimum_is_all_outliers(token_factory, settings, now):
    records = extract_all_features([token_factory("a"), token_factory("b")], settings, now=now)
    result = cluster_tokens(records, settings)
    assert result.clusters == []
    assert [t.address for t in result.outliers] == ["a", "b"]
    assert result.reason == "insufficient_tokens"
    assert result.algorithm == "none"


def test_empty_batch(settings):
    result = cluster_tokens([], settings)
    assert result.clusters == [] and result.outliers == []
    assert result.reason == "insufficient_tokens"


def test_identical_tokens_form_one_coherent_cluster(identical_batch, settings, now):
    records = extract_all_features(identical_batch, settings, now=now)
    result = cluster_tokens(records, settings)
    assert len(result.clusters) == 1
    cluster = result.clusters[0]
    assert cluster.size == 10
    assert cluster.coherence == pytest.approx(1.0)
    assert result.outliers == []
    assert 0.0 <= cluster.strength <= 100.0


def test_strategy_failures_are_recorded(identical_batch, settings, now):
    strategies = dict(STRATEGIES)
    strategies["boom"] = _exploding
    records = extract_all_features(identical_batch, settings, now=now)
    result = cluster_tokens(records, settings, strategies=strategies)
    assert "boom" in result.failures
    assert len(result.clusters) == 1


def test_malformed_vectors_raise(token_factory, settings, now):
    records = extract_all_features([token_factory(f"t{i}") for i in range(3)], settings, now=now)
    records[1].vector = records[1].vector[:-1]
    with pytest.raises(ClusteringError):
        cluster_tokens(records, settings)


class _BrokenStability(HistoricalMetricProvider):
    def cluster_stability(self, tokens):
        raise RuntimeError("stability store offline")


def test_failed_strength_step_leaves_history_untouched(identical_batch, settings, now):
    history = SignatureHistory(depth=3)
    records = extract_all_features(identical_batch, settings, now=now)
    with pytest.raises(RuntimeError):
        cluster_tokens(records, settings, history=history, provider=_BrokenStability())
    assert len(history) == 0

    result = cluster_tokens(records, settings, history=history)
    assert len(history) == 1
    assert result.evolution.new == 1


# ════════════════════════════════════════════════════════════════════
# Evolution
# ════════════════════════════════════════════════════════════════════

def _cluster(cid, addresses):
    return Cluster(id=cid, tokens=[TokenDescriptor(address=a) for a in addresses])


def test_signature_is_order_independent():
    assert _cluster(0, ["a", "b", "c"]).signature == _cluster(1, ["c", "a", "b"]).signature


def test_evolution_counts():
    history = SignatureHistory(depth=3)
    first = history.record([_cluster(0, ["a", "b", "c"]), _cluster(1, ["d", "e", "f"]),
                            _cluster(2, ["g", "h", "i", "j"])])
    assert first.new == 3 and first.snapshots == 1

    # a-f merged into one cluster, g-j split in two
    second = history.record([_cluster(0, ["a", "b", "c", "d", "e", "f"]),
                             _cluster(1, ["g", "h"]), _cluster(2, ["i", "j"])])
    assert second.merged == 1
    assert second.split == 1
    assert second.disappeared == 3
    assert second.persisted == 0
    assert second.snapshots == 2


def test_history_is_bounded():
    history = SignatureHistory(depth=2)
    for _ in range(5):
        history.record([_cluster(0, ["a", "b", "c"])])
    assert len(history) == 2


def test_compare_persisted():
    sig = ClusterSignature.from_addresses(["x", "y", "z"])
    report = compare_signatures([sig], [sig])
    assert report.persisted == 1 and report.new == 0 and report.disappeared == 0


# ════════════════════════════════════════════════════════════════════
# Strength
# ════════════════════════════════════════════════════════════════════

def test_coherence_bounds():
    assert cluster_coherence([[0.1, 0.2]]) == 1.0
    assert cluster_coherence([[0.0, 0.0], [0.0, 0.0]]) == pytest.approx(1.0)
    assert cluster_coherence([[0.0, 0.0], [5.0, 5.0]]) == 0.0


def test_strength_is_bounded(token_factory):
    huge = Cluster(id=0, tokens=[token_factory(f"h{i}", volume_24h=1e18, holders=1e12,
                                               price_change_24h=1e5, social_mentions=1e12)
                                 for i in range(3)])
    assert 0.0 <= cluster_strength(huge) <= 100.0
    assert cluster_strength(Cluster(id=1)) == 0.0
