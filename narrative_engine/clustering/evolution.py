"""
Cluster evolution tracking via content signatures.

Clusters have no identity across runs; their membership does. Each run's
clusters are reduced to ClusterSignatures (hash of sorted member addresses)
and compared with the previous snapshot:

  persisted:   same membership as a previous cluster
  new:         no previous cluster with this membership
  disappeared: previous membership not present any more
  merged:      a new cluster that absorbed members of 2+ previous clusters
  split:       a disappeared cluster whose members now sit in 2+ clusters

Telemetry only. Nothing downstream depends on it for correctness, and the
history is a bounded ring (oldest snapshot evicted).
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional, Tuple

from narrative_engine.schemas.narratives import Cluster, ClusterSignature
from narrative_engine.schemas.pipeline import EvolutionReport

logger = logging.getLogger(__name__)

Snapshot = Tuple[datetime, List[ClusterSignature]]


class SignatureHistory:
    """Bounded ring of per-run cluster signature snapshots."""

    def __init__(self, depth: int = 10):
        self.depth = max(1, depth)
        self._snapshots: Deque[Snapshot] = deque(maxlen=self.depth)

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def latest(self) -> List[ClusterSignature]:
        if not self._snapshots:
            return []
        return self._snapshots[-1][1]

    def record(self, clusters: List[Cluster], timestamp: Optional[datetime] = None) -> EvolutionReport:
        """Compare clusters with the latest snapshot, then append them as the new one."""
        current = [c.signature for c in clusters]
        report = compare_signatures(self.latest, current) if self._snapshots else EvolutionReport(new=len(current))
        self._snapshots.append((timestamp or datetime.now(timezone.utc), current))
        report.snapshots = len(self._snapshots)

        if report.snapshots > 1:
            logger.info(
                f"Cluster evolution: {report.new} new, {report.disappeared} disappeared, "
                f"{report.merged} merged, {report.split} split"
            )
        return report


def compare_signatures(
    previous: List[ClusterSignature],
    current: List[ClusterSignature],
) -> EvolutionReport:
    prev_digests = {s.digest for s in previous}
    curr_digests = {s.digest for s in current}

    appeared = [s for s in current if s.digest not in prev_digests]
    vanished = [s for s in previous if s.digest not in curr_digests]

    merged = sum(
        1 for sig in appeared
        if sum(1 for old in previous if set(old.members) & set(sig.members)) >= 2
    )
    split = sum(
        1 for old in vanished
        if sum(1 for sig in current if set(old.members) & set(sig.members)) >= 2
    )

    return EvolutionReport(
        new=len(appeared),
        disappeared=len(vanished),
        persisted=len(curr_digests & prev_digests),
        merged=merged,
        split=split,
    )
