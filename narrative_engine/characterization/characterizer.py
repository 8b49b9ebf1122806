"""
Narrative characterizer — turns clusters into named, profiled narratives.

Per cluster:
  1. Content analysis (words, theme keyword hits, name patterns, metrics, timing)
  2. Name generation (four generators, top five options)
  3. Theme identification (primary + two secondary)
  4. Characteristic profile (volatility, community, market, social, temporal)
  5. Lifecycle classification
  6. Overall strength
  7. Confidence

Identity: a cluster whose membership signature matches a registered
profile updates THAT profile in place: id and created_at are kept, version
increments, previous_strength is recorded and significant changes
(|Δstrength| > threshold, lifecycle stage, primary theme) are listed. The
profile is only written after every step succeeded, so a failure never
leaves a half-updated entry behind. New ids are unique against the
registry and against every id already issued in the same batch.

Failures are per cluster: characterize_clusters() logs, records a
diagnostic and moves on.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from narrative_engine.clustering.strength import cluster_strength
from narrative_engine.config import NarrativeSettings
from narrative_engine.errors import CharacterizationError
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas.narratives import (
    Cluster,
    NarrativeProfile,
    ThemeMatch,
    membership_digest,
)
from narrative_engine.schemas.tokens import TokenDescriptor

from .assessment import narrative_confidence, narrative_strength
from .content import analyze_cluster_content
from .lifecycle import classify_lifecycle
from .naming import generate_names
from .profile import compute_characteristics
from .registry import NarrativeRegistry
from .themes import compute_novelty, identify_themes

logger = logging.getLogger(__name__)

_ID_CLEAN_RE = re.compile(r"[^a-z0-9-]")
_SUB_NARRATIVE_MIN_TOKENS = 3


def _base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(digits[r])
    return "".join(reversed(out))


def narrative_id(tokens: List[TokenDescriptor], primary: Optional[ThemeMatch], created_at: datetime) -> str:
    """theme-sym1-sym2-sym3-<creation ms in base36>, restricted to [a-z0-9-]."""
    sample = "-".join(t.symbol or t.name for t in tokens[:3])
    theme = primary.theme if primary else "unknown"
    stamp = _base36(int(created_at.timestamp() * 1000))
    return _ID_CLEAN_RE.sub("", f"{theme}-{sample}-{stamp}".lower())


def detect_significant_changes(
    old: NarrativeProfile,
    new: Dict[str, Any],
    threshold: float = 15.0,
) -> List[str]:
    changes = []
    delta = new["strength"] - old.strength
    if abs(delta) > threshold:
        changes.append(f"Strength changed by {delta:+.1f} points")
    if new["lifecycle"].stage != old.lifecycle.stage:
        changes.append(
            f"Lifecycle changed from {old.lifecycle.stage.value} to {new['lifecycle'].stage.value}"
        )
    old_theme = old.primary_theme.theme if old.primary_theme else None
    new_theme = new["primary_theme"].theme if new["primary_theme"] else None
    if old_theme != new_theme:
        changes.append(f"Primary theme changed from {old_theme} to {new_theme}")
    return changes


class NarrativeCharacterizer:
    """Characterizes clusters into NarrativeProfiles backed by a registry.

    Args:
        settings: Lifecycle thresholds, minimum cluster size, change threshold.
        registry: Where durable profiles live. The pipeline context owns it;
                  a private one is created when omitted.
        provider: Historical metrics (community growth).
    """

    def __init__(
        self,
        settings: NarrativeSettings,
        registry: Optional[NarrativeRegistry] = None,
        provider: Optional[HistoricalMetricProvider] = None,
    ):
        self.settings = settings
        self.registry = registry if registry is not None else NarrativeRegistry(settings.registry_size)
        self.provider = provider or HistoricalMetricProvider()
        # Ids handed out in the current batch; the registry alone forgets evicted ones
        self._issued: Set[str] = set()

    def characterize_clusters(
        self,
        clusters: List[Cluster],
        now: Optional[datetime] = None,
    ) -> Tuple[List[NarrativeProfile], List[str]]:
        """Characterize every cluster; failures are skipped, not raised.

        Returns:
            (profiles, diagnostics) where diagnostics lists the clusters
            that were dropped and why.
        """
        now = now or datetime.now(timezone.utc)
        profiles: List[NarrativeProfile] = []
        diagnostics: List[str] = []
        self._issued = set()
        for cluster in clusters:
            try:
                profiles.append(self.characterize(cluster, now))
            except Exception as e:
                logger.warning(f"Characterization failed for cluster {cluster.id} ({cluster.size} tokens): {e}")
                diagnostics.append(f"characterization_failed: cluster {cluster.id}: {e}")

        logger.info(f"Characterized {len(profiles)}/{len(clusters)} clusters")
        return profiles, diagnostics

    def characterize(self, cluster: Cluster, now: Optional[datetime] = None) -> NarrativeProfile:
        now = now or datetime.now(timezone.utc)
        if cluster.size < self.settings.min_cluster_size:
            raise CharacterizationError(
                f"cluster {cluster.id} has {cluster.size} tokens < min_cluster_size={self.settings.min_cluster_size}"
            )

        draft = self._analyze(cluster.tokens, cluster.strength, now)
        digest = membership_digest(cluster.addresses)
        existing = self.registry.by_signature(digest)

        if existing is not None:
            changes = detect_significant_changes(existing, draft, self.settings.significant_strength_change)
            previous_strength = existing.strength
            for field, value in draft.items():
                setattr(existing, field, value)
            existing.version += 1
            existing.updated_at = now
            existing.previous_strength = previous_strength
            existing.significant_changes = changes
            self.registry.put(existing)
            self._issued.add(existing.id)
            if changes:
                logger.info(f"Narrative '{existing.name}' v{existing.version}: {'; '.join(changes)}")
            return existing

        profile = NarrativeProfile(
            id=self._unique_id(narrative_id(cluster.tokens, draft["primary_theme"], now)),
            signature=digest,
            created_at=now,
            updated_at=now,
            **draft,
        )
        self.registry.put(profile)
        self._issued.add(profile.id)
        logger.debug(
            f"New narrative '{profile.name}' ({profile.token_count} tokens, "
            f"strength={profile.strength:.1f}, stage={profile.stage.value})"
        )
        return profile

    def detect_sub_narratives(
        self,
        profile: NarrativeProfile,
        now: Optional[datetime] = None,
    ) -> List[NarrativeProfile]:
        """Split a large narrative in halves; keep halves with a different primary theme.

        Sub-narratives are returned, not registered.
        """
        tokens = profile.tokens
        if len(tokens) < self.settings.sub_narrative_min_tokens:
            return []

        now = now or datetime.now(timezone.utc)
        mid = len(tokens) // 2
        found = []
        for half in (tokens[:mid], tokens[mid:]):
            if len(half) < _SUB_NARRATIVE_MIN_TOKENS:
                continue
            draft = self._analyze(half, cluster_strength(Cluster(id=-1, tokens=half)), now)
            theme = draft["primary_theme"].theme if draft["primary_theme"] else None
            if theme == profile.primary_theme_id:
                continue
            found.append(NarrativeProfile(
                id=narrative_id(half, draft["primary_theme"], now),
                signature=membership_digest([t.address for t in half]),
                created_at=now,
                updated_at=now,
                parent_id=profile.id,
                **draft,
            ))
        return found

    def _analyze(self, tokens: List[TokenDescriptor], base_strength: float, now: datetime) -> Dict[str, Any]:
        content = analyze_cluster_content(tokens, now)
        names = generate_names(content)
        primary, secondary, scores = identify_themes(content)
        characteristics = compute_characteristics(tokens, content, self.provider)
        lifecycle = classify_lifecycle(
            strength=base_strength,
            momentum=characteristics.temporal.momentum,
            growth=characteristics.community.growth,
            age=characteristics.temporal.age,
            thresholds=self.settings.get_lifecycle_thresholds(),
        )
        return {
            "name": names[0].name,
            "name_options": names,
            "primary_theme": primary,
            "secondary_themes": secondary,
            "theme_scores": scores,
            "characteristics": characteristics,
            "lifecycle": lifecycle,
            "strength": narrative_strength(base_strength, primary, secondary, content, characteristics, lifecycle.stage),
            "confidence": narrative_confidence(content, primary, secondary),
            "novelty": compute_novelty(content),
            "tokens": list(tokens),
        }

    def _taken(self, nid: str) -> bool:
        return nid in self.registry or nid in self._issued

    def _unique_id(self, candidate: str) -> str:
        if not self._taken(candidate):
            return candidate
        n = 2
        while self._taken(f"{candidate}-{n}"):
            n += 1
        return f"{candidate}-{n}"
