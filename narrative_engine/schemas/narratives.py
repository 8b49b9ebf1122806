"""
Cluster and narrative data models.

Cluster is scoped to one run. Cross-run identity is only established by
ClusterSignature (a content hash of the sorted member addresses), which
feeds evolution telemetry and lets the characterizer find the profile it
produced for the same membership last time.

NarrativeProfile is the durable output. It is mutated in place when the
same membership is characterized again (version increments, created_at
and id are preserved) and lives in a bounded registry owned by the
pipeline context.
"""

import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base import EmergencePattern, LifecycleStage
from .tokens import TokenDescriptor


def membership_digest(addresses: List[str]) -> str:
    """Order-independent content hash of a set of token addresses."""
    joined = "|".join(sorted(set(addresses)))
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()[:16]


class ClusterSignature(BaseModel):
    """Content hash of a cluster's membership (telemetry only)."""
    digest: str
    size: int
    members: List[str] = Field(default_factory=list)

    class Config:
        frozen = True

    @classmethod
    def from_addresses(cls, addresses: List[str]) -> "ClusterSignature":
        members = sorted(set(addresses))
        return cls(digest=membership_digest(members), size=len(members), members=members)


class Cluster(BaseModel):
    """A group of tokens found by one clustering strategy in one run."""
    id: int
    tokens: List[TokenDescriptor] = Field(default_factory=list)
    centroid: Optional[List[float]] = None
    quality: float = 0.0

    # Filled in by the strength evaluator
    strength: float = Field(default=0.0, ge=0.0, le=100.0)
    coherence: float = Field(default=0.0, ge=0.0, le=1.0)
    stability: float = 1.0
    growth: float = 0.0

    @property
    def size(self) -> int:
        return len(self.tokens)

    @property
    def addresses(self) -> List[str]:
        return [t.address for t in self.tokens]

    @property
    def signature(self) -> ClusterSignature:
        return ClusterSignature.from_addresses(self.addresses)


# ══════════════════════════════════════════════════════════════════════════════
# CHARACTERIZATION
# ══════════════════════════════════════════════════════════════════════════════

class NameOption(BaseModel):
    """One candidate narrative name."""
    name: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: str
    keywords: List[str] = Field(default_factory=list)
    rank: int = 0


class ThemeMatch(BaseModel):
    """A catalog theme and how strongly the cluster matched it."""
    theme: str
    label: str
    score: float
    keywords: List[str] = Field(default_factory=list)


class VolatilityProfile(BaseModel):
    level: str
    score: float
    description: str


class CommunityProfile(BaseModel):
    size: str
    engagement: float
    growth: float
    description: str


class MarketProfile(BaseModel):
    cap: str
    liquidity: str
    volume: str
    description: str


class SocialProfile(BaseModel):
    mentions: str
    sentiment: float
    virality: float
    description: str


class TemporalProfile(BaseModel):
    age: str
    emergence: EmergencePattern
    momentum: float
    description: str


class NarrativeCharacteristics(BaseModel):
    """Five categorical assessments over a cluster's aggregate metrics."""
    volatility: VolatilityProfile
    community: CommunityProfile
    market: MarketProfile
    social: SocialProfile
    temporal: TemporalProfile


class LifecycleAssessment(BaseModel):
    stage: LifecycleStage
    confidence: float = Field(ge=0.0, le=1.0)
    score: float
    factors: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class NarrativeProfile(BaseModel):
    """Named, characterized narrative. Durable across runs."""
    id: str
    name: str
    name_options: List[NameOption] = Field(default_factory=list)
    primary_theme: Optional[ThemeMatch] = None
    secondary_themes: List[ThemeMatch] = Field(default_factory=list)
    theme_scores: Dict[str, float] = Field(default_factory=dict)
    characteristics: NarrativeCharacteristics
    lifecycle: LifecycleAssessment
    strength: float = Field(ge=0.0, le=100.0)
    confidence: float = Field(ge=0.0, le=1.0)
    novelty: float = Field(default=0.0, ge=0.0, le=1.0)
    tokens: List[TokenDescriptor] = Field(default_factory=list)
    signature: str = ""

    version: int = 1
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    previous_strength: Optional[float] = None
    significant_changes: List[str] = Field(default_factory=list)
    parent_id: Optional[str] = None

    @property
    def primary_theme_id(self) -> Optional[str]:
        return self.primary_theme.theme if self.primary_theme else None

    @property
    def stage(self) -> LifecycleStage:
        return self.lifecycle.stage

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def addresses(self) -> List[str]:
        return [t.address for t in self.tokens]
