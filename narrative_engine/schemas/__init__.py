"""
Schemas package — all data models for the narrative engine.

Models are organized by domain in submodules:
  - base.py: Common enums (LifecycleStage, TrendDirection, ...)
  - tokens.py: TokenDescriptor, FeatureRecord
  - narratives.py: Cluster, ClusterSignature, NarrativeProfile and its parts
  - scoring.py: ScoreRecord, CorrelationEntry, WeightAdjustment
  - pipeline.py: PartitionResult, ClusteringResult, PipelineResult
"""

from narrative_engine.schemas.base import (
    LifecycleStage, TrendDirection, EmergencePattern, CorrelationType,
)
from narrative_engine.schemas.tokens import TokenDescriptor, FeatureRecord
from narrative_engine.schemas.narratives import (
    Cluster, ClusterSignature, NameOption, ThemeMatch,
    VolatilityProfile, CommunityProfile, MarketProfile, SocialProfile,
    TemporalProfile, NarrativeCharacteristics, LifecycleAssessment,
    NarrativeProfile, membership_digest,
)
from narrative_engine.schemas.scoring import ScoreRecord, CorrelationEntry, WeightAdjustment
from narrative_engine.schemas.pipeline import (
    PartitionResult, EvolutionReport, ClusteringResult, RankedNarrative, PipelineResult,
)
