"""
Narrative engine: unsupervised token-narrative detection.

    from narrative_engine import NarrativePipeline

    pipeline = NarrativePipeline()
    result = pipeline.run(tokens)
    for item in result.narratives:
        print(item.rank, item.profile.name, round(item.final_score))
"""

from narrative_engine.config import NarrativeSettings, get_settings
from narrative_engine.engine import NarrativePipeline, PipelineContext
from narrative_engine.errors import (
    NarrativeEngineError,
    ClusteringError,
    CharacterizationError,
    ScoringError,
)
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas import PipelineResult, RankedNarrative, TokenDescriptor

__version__ = "0.1.0"
