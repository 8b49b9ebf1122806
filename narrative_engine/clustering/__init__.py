"""
Clustering ensemble and cluster strength evaluation.

- strategies.py: centroid / density / hierarchical partitioners + registry
- ensemble.py: composite selection, cluster_tokens() entry point
- evolution.py: signature history ring, new/disappeared/merged/split counts
- strength.py: strength, coherence, stability, growth per cluster
"""

from .strategies import (
    STRATEGIES,
    partition_centroid,
    partition_density,
    partition_hierarchical,
    partition_silhouette,
)
from .ensemble import cluster_tokens, composite_score, run_strategies, select_best
from .evolution import SignatureHistory, compare_signatures
from .strength import cluster_coherence, cluster_strength, evaluate_cluster_strengths
