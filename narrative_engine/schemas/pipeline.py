"""
Pipeline-level result models.

Every run returns a well-formed PipelineResult, even an empty or failed
one. Failures that were absorbed along the way (a strategy that blew up,
a cluster that could not be characterized, a scorer fallback) are listed
in diagnostics rather than raised.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .narratives import Cluster, NarrativeProfile
from .scoring import CorrelationEntry, ScoreRecord, WeightAdjustment
from .tokens import TokenDescriptor


class PartitionResult(BaseModel):
    """Output of one clustering strategy.

    labels has one entry per input vector; -1 marks an outlier (noise, or a
    member of a group smaller than the minimum cluster size).
    """
    algorithm: str
    labels: List[int] = Field(default_factory=list)
    outliers: List[int] = Field(default_factory=list)
    quality: float = 0.0
    centroids: Optional[List[List[float]]] = None
    extras: Dict[str, Any] = Field(default_factory=dict)

    @property
    def cluster_ids(self) -> List[int]:
        return sorted({label for label in self.labels if label >= 0})

    @property
    def cluster_sizes(self) -> List[int]:
        return [self.labels.count(cid) for cid in self.cluster_ids]


class EvolutionReport(BaseModel):
    """Cluster evolution versus the previous snapshot (observational only)."""
    new: int = 0
    disappeared: int = 0
    persisted: int = 0
    merged: int = 0
    split: int = 0
    snapshots: int = 0


class ClusteringResult(BaseModel):
    algorithm: str = "none"
    clusters: List[Cluster] = Field(default_factory=list)
    outliers: List[TokenDescriptor] = Field(default_factory=list)
    composite_score: float = 0.0
    silhouette: float = 0.0
    evolution: EvolutionReport = Field(default_factory=EvolutionReport)
    candidates: Dict[str, float] = Field(default_factory=dict)
    failures: Dict[str, str] = Field(default_factory=dict)
    reason: str = ""


class RankedNarrative(BaseModel):
    """Downstream composite: durable profile + this run's score."""
    profile: NarrativeProfile
    score: ScoreRecord

    @property
    def final_score(self) -> float:
        return self.score.final_score

    @property
    def rank(self) -> int:
        return self.score.rank


class PipelineResult(BaseModel):
    narratives: List[RankedNarrative] = Field(default_factory=list)
    clustering: ClusteringResult = Field(default_factory=ClusteringResult)
    correlations: List[CorrelationEntry] = Field(default_factory=list)
    weight_adjustments: Dict[str, WeightAdjustment] = Field(default_factory=dict)
    weights: Dict[str, float] = Field(default_factory=dict)
    diagnostics: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return not self.diagnostics
