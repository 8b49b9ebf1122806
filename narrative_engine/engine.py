"""
NarrativePipeline — token batch → ranked narratives.

Architecture: 5 stages with typed contracts.

  Stage 1 (Extract):       descriptor → textual / on-chain / social / market
                           feature groups + weighted combined vector (cached)
  Stage 2 (Cluster):       centroid / density / hierarchical partitions,
                           best one chosen by composite score
  Stage 3 (Strength):      strength, coherence, stability, growth per cluster
  Stage 4 (Characterize):  names, themes, characteristics, lifecycle,
                           strength, confidence → NarrativeProfile
  Stage 5 (Score):         base → theme → lifecycle → activity → correlation
                           → rank, then (optionally) weight adaptation

State: everything that outlives one run sits in an explicit PipelineContext
(feature cache, signature history, narrative registry, prior scores,
adaptive weights). Two pipelines with separate contexts never share state.
State is only written after the stage that produced it succeeded.

Failure policy: no per-item failure aborts a batch. Strategy, cluster and
scoring failures are absorbed by their stage and listed in
PipelineResult.diagnostics. Only malformed raw input (a dict that is not a
valid TokenDescriptor) raises, as pydantic.ValidationError.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from narrative_engine.characterization import NarrativeCharacterizer, NarrativeRegistry
from narrative_engine.clustering import SignatureHistory, cluster_tokens
from narrative_engine.config import NarrativeSettings, get_settings
from narrative_engine.features import FeatureCache, extract_all_features
from narrative_engine.learning.weight_learner import apply_adaptation
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.base import LifecycleStage, TrendDirection
from narrative_engine.schemas.narratives import NarrativeProfile
from narrative_engine.schemas.pipeline import ClusteringResult, PipelineResult, RankedNarrative
from narrative_engine.schemas.tokens import TokenDescriptor
from narrative_engine.scoring import AdaptiveScorer

# ── Logging: console + optional file ────────────────────────────────────


class FlushingFileHandler(logging.FileHandler):
    """FileHandler that flushes after every record for crash-safe debugging."""
    def emit(self, record):
        super().emit(record)
        self.flush()


_parent_logger = logging.getLogger("narrative_engine")
_log_files: set = set()


def configure_logging(log_file: str = "") -> None:
    """Attach handlers to the parent 'narrative_engine' logger (idempotent).

    Every sub-module logs through logging.getLogger(__name__), so a single
    set of handlers here covers features, clustering, characterization and
    scoring alike.
    """
    if not _parent_logger.handlers:
        console = logging.StreamHandler()
        console.setLevel(logging.INFO)
        console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        _parent_logger.setLevel(logging.DEBUG)
        _parent_logger.addHandler(console)
        _parent_logger.propagate = False

    if log_file and log_file not in _log_files:
        file_handler = FlushingFileHandler(Path(log_file), mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-7s | %(name)s | %(message)s', datefmt='%H:%M:%S'
        ))
        _parent_logger.addHandler(file_handler)
        _log_files.add(log_file)


logger = logging.getLogger(__name__)


TokenInput = Union[TokenDescriptor, Dict[str, Any]]


class PipelineContext:
    """State owned by one pipeline across runs.

    Attributes:
        feature_cache: (address, update time) → FeatureRecord
        history: cluster signature ring (evolution telemetry)
        registry: durable NarrativeProfiles, bounded
        prior_scores: narrative id → last final score (for deltas)
        weights: current base weights (adapted between runs)
        provider: history-dependent metrics
        last_ranking: most recent ranked list (for the query helpers)
    """

    def __init__(
        self,
        settings: NarrativeSettings,
        provider: Optional[HistoricalMetricProvider] = None,
    ):
        self.feature_cache = FeatureCache(settings.feature_cache_size)
        self.history = SignatureHistory(settings.signature_history_depth)
        self.registry = NarrativeRegistry(settings.registry_size)
        self.prior_scores: Dict[str, float] = {}
        self.weights: Dict[str, float] = settings.get_base_weights()
        self.provider = provider or HistoricalMetricProvider()
        self.last_ranking: List[RankedNarrative] = []
        self.runs = 0


class NarrativePipeline:
    """Batch narrative detection: tokens → PipelineResult.

    Args:
        settings: Engine settings. Defaults to the cached environment settings.
        context: Owned cross-run state. A fresh one is created when omitted.
        provider: Historical metrics for a freshly created context (ignored
                  when a context is supplied).
    """

    def __init__(
        self,
        settings: Optional[NarrativeSettings] = None,
        context: Optional[PipelineContext] = None,
        provider: Optional[HistoricalMetricProvider] = None,
    ):
        self.settings = settings or get_settings()
        self.context = context or PipelineContext(self.settings, provider)
        self.characterizer = NarrativeCharacterizer(
            self.settings, registry=self.context.registry, provider=self.context.provider,
        )
        self.scorer = AdaptiveScorer(self.settings)
        self.metrics: Dict[str, Any] = {"stage_times": {}}
        configure_logging(self.settings.log_file)

    def run(
        self,
        tokens: Sequence[TokenInput],
        now: Optional[datetime] = None,
    ) -> PipelineResult:
        """Execute all stages on one batch.

        Args:
            tokens: TokenDescriptors or raw dicts (camelCase aliases accepted).
                    Duplicate addresses keep their first occurrence.
            now: Reference time for ages and profile timestamps.

        Returns:
            PipelineResult. Always well-formed; an empty batch yields zero
            narratives and zero clusters.
        """
        total_start = time.time()
        now = now or datetime.now(timezone.utc)
        ctx = self.context
        self.metrics = {"stage_times": {}}
        result = PipelineResult(started_at=now)

        batch = self._coerce(tokens)
        logger.info(f"=== Pipeline START | {len(batch)} tokens | run #{ctx.runs + 1} ===")

        # ── Stage 1: Extract ─────────────────────────────────────────────
        t = time.time()
        records = extract_all_features(batch, self.settings, ctx.provider, ctx.feature_cache, now)
        self.metrics["stage_times"]["extract"] = round(time.time() - t, 3)

        # ── Stage 2-3: Cluster + strength ────────────────────────────────
        t = time.time()
        try:
            clustering = cluster_tokens(records, self.settings, ctx.history, ctx.provider)
        except Exception as e:
            logger.warning(f"Clustering stage failed: {e}")
            clustering = ClusteringResult(outliers=batch, reason="clustering_failed")
            result.diagnostics.append(f"clustering_failed: {e}")
        for name, error in clustering.failures.items():
            result.diagnostics.append(f"strategy_failed: {name}: {error}")
        result.clustering = clustering
        self.metrics["stage_times"]["cluster"] = round(time.time() - t, 3)

        # ── Stage 4: Characterize ────────────────────────────────────────
        t = time.time()
        profiles, diagnostics = self.characterizer.characterize_clusters(clustering.clusters, now)
        result.diagnostics.extend(diagnostics)
        self.metrics["stage_times"]["characterize"] = round(time.time() - t, 3)

        # ── Stage 5: Score + adapt ───────────────────────────────────────
        t = time.time()
        ranked, correlations, diagnostics = self.scorer.score(profiles, ctx.weights, ctx.prior_scores)
        result.diagnostics.extend(diagnostics)
        result.narratives = ranked
        result.correlations = correlations

        if self.settings.adaptation_enabled and ranked and not diagnostics:
            ctx.weights, result.weight_adjustments = apply_adaptation(ctx.weights, ranked, self.settings)
        result.weights = dict(ctx.weights)
        self.metrics["stage_times"]["score"] = round(time.time() - t, 3)

        for item in ranked:
            ctx.prior_scores[item.profile.id] = item.final_score
        ctx.last_ranking = ranked
        ctx.runs += 1

        result.finished_at = datetime.now(timezone.utc)
        total_time = time.time() - total_start
        self.metrics["total_seconds"] = round(total_time, 2)
        logger.info(
            f"Pipeline complete: {len(batch)} tokens → {len(clustering.clusters)} clusters → "
            f"{len(ranked)} narratives ({len(result.diagnostics)} diagnostics) in {total_time:.2f}s"
        )
        return result

    # ── Queries over the last ranking ────────────────────────────────────

    def top_narratives(self, n: int = 5) -> List[RankedNarrative]:
        return self.context.last_ranking[:max(0, n)]

    def emerging_narratives(self) -> List[RankedNarrative]:
        return [
            r for r in self.context.last_ranking
            if r.profile.stage in (LifecycleStage.EMERGING, LifecycleStage.GROWING)
            or r.score.trend == TrendDirection.RISING
        ]

    def declining_narratives(self) -> List[RankedNarrative]:
        return [
            r for r in self.context.last_ranking
            if r.profile.stage == LifecycleStage.DECLINING
            or r.score.trend == TrendDirection.FALLING
        ]

    def sub_narratives(self, profile_id: str, now: Optional[datetime] = None) -> List[NarrativeProfile]:
        """Thematically distinct halves of a registered narrative (not registered)."""
        profile = self.context.registry.get(profile_id)
        if profile is None:
            return []
        return self.characterizer.detect_sub_narratives(profile, now)

    # ── helpers ──────────────────────────────────────────────────────────

    def _coerce(self, tokens: Sequence[TokenInput]) -> List[TokenDescriptor]:
        batch: List[TokenDescriptor] = []
        seen = set()
        for item in tokens or []:
            token = item if isinstance(item, TokenDescriptor) else TokenDescriptor.model_validate(item)
            if token.address in seen:
                continue
            seen.add(token.address)
            batch.append(token)
        dropped = len(tokens or []) - len(batch)
        if dropped:
            logger.debug(f"Dropped {dropped} duplicate token addresses")
        return batch
