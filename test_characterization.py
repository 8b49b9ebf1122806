"""
Characterization tests: content analysis, themes, names, lifecycle,
strength/confidence bounds, registry identity and sub-narratives.
"""

import re
from datetime import timedelta

import pytest

from narrative_engine.characterization import (
    NarrativeCharacterizer,
    NarrativeRegistry,
    analyze_cluster_content,
    classify_lifecycle,
    compute_novelty,
    generate_names,
    identify_themes,
    narrative_id,
)
from narrative_engine.characterization.assessment import volume_bonus
from narrative_engine.characterization.profile import age_category, categorize
from narrative_engine.clustering import cluster_strength
from narrative_engine.config import FALLBACK_NAME, VOLATILITY_LEVELS
from narrative_engine.errors import CharacterizationError
from narrative_engine.schemas import Cluster, EmergencePattern, LifecycleStage

THRESHOLDS = {"emerging": 30.0, "growing": 60.0, "peak": 80.0}

FOOD_TOKENS = [("Pizza Party", "PZZA"), ("Burger King", "BRGR"), ("Taco Time", "TACO")]


def _cluster(tokens, cid=0):
    cluster = Cluster(id=cid, tokens=tokens)
    cluster.strength = cluster_strength(cluster)
    return cluster


@pytest.fixture
def ai_tokens(ai_batch):
    return ai_batch[:5]


# ════════════════════════════════════════════════════════════════════
# Content + themes
# ════════════════════════════════════════════════════════════════════

def test_short_keywords_need_whole_words(token_factory, now):
    content = analyze_cluster_content(
        [token_factory("c1", "Chain Brain", "CHBR"), token_factory("c2", "Rain Chain", "RNCH")], now,
    )
    assert "ai" not in content["keyword_matches"].get("ai", [])

    content = analyze_cluster_content([token_factory("c3", "Smart AI", "SAI")], now)
    assert "ai" in content["keyword_matches"]["ai"]


def test_ai_cluster_has_ai_primary_theme(ai_tokens, now):
    primary, secondary, scores = identify_themes(analyze_cluster_content(ai_tokens, now))
    assert primary is not None and primary.theme == "ai"
    assert primary.label == "AI"
    assert len(secondary) <= 2
    assert scores["ai"] == primary.score


def test_no_theme_match(token_factory, now):
    primary, secondary, scores = identify_themes(
        analyze_cluster_content([token_factory("x", "Qwz", "QZ")], now),
    )
    assert primary is None and secondary == [] and scores == {}


def test_novelty_bounds(token_factory, now):
    known = analyze_cluster_content([token_factory("k", "Doge Pepe", "DOGE")], now)
    unknown = analyze_cluster_content([token_factory("u", "Zorblax Quint", "ZRBX")], now)
    assert compute_novelty(known) == 0.0
    assert compute_novelty(unknown) == 1.0


def test_temporal_emergence(token_factory, now):
    burst = analyze_cluster_content([token_factory("a"), token_factory("b")], now)
    assert burst["temporal"]["emergence"] == EmergencePattern.BURST
    assert burst["temporal"]["is_new"] is True

    spread = analyze_cluster_content(
        [token_factory("a", created_at=now - timedelta(days=20)),
         token_factory("b", created_at=now - timedelta(days=1))], now,
    )
    assert spread["temporal"]["emergence"] == EmergencePattern.EXTENDED
    assert spread["temporal"]["is_mature"] is True


# ════════════════════════════════════════════════════════════════════
# Names
# ════════════════════════════════════════════════════════════════════

def test_names_ranked_and_limited(ai_tokens, now):
    names = generate_names(analyze_cluster_content(ai_tokens, now))
    assert 1 <= len(names) <= 5
    assert [n.rank for n in names] == list(range(1, len(names) + 1))
    confidences = [n.confidence for n in names]
    assert confidences == sorted(confidences, reverse=True)
    assert names[0].name == "AI Narrative"


def test_fallback_name(token_factory, now):
    tokens = [token_factory("f1", "Qx", "A"), token_factory("f2", "Zy", "B")]
    names = generate_names(analyze_cluster_content(tokens, now))
    assert len(names) == 1
    assert names[0].name == FALLBACK_NAME
    assert names[0].confidence == 0.1


def test_behavior_name_for_high_volume(token_factory, now):
    tokens = [token_factory(f"v{i}", "Qx", "A", volume_24h=600_000) for i in range(2)]
    names = generate_names(analyze_cluster_content(tokens, now))
    assert "Volume Surge Narrative" in [n.name for n in names]


# ════════════════════════════════════════════════════════════════════
# Profile + lifecycle + assessment
# ════════════════════════════════════════════════════════════════════

def test_categorize_uses_exclusive_lower_bounds():
    assert categorize(250, VOLATILITY_LEVELS)[0] == "extreme"
    assert categorize(100, VOLATILITY_LEVELS)[0] == "moderate"
    assert categorize(0, VOLATILITY_LEVELS)[0] == "stable"


def test_age_category():
    assert age_category(3600) == "new"
    assert age_category(3 * 24 * 3600) == "fresh"
    assert age_category(10 * 24 * 3600) == "mature"
    assert age_category(60 * 24 * 3600) == "established"


@pytest.mark.parametrize("strength, momentum, growth, age, stage", [
    (10, 0.0, 0.0, "fresh", LifecycleStage.EMERGING),
    (45, 0.0, 0.0, "fresh", LifecycleStage.GROWING),
    (70, 0.0, 0.0, "fresh", LifecycleStage.PEAK),
    (95, -0.1, -0.2, "fresh", LifecycleStage.DECLINING),
    (95, 0.1, 0.0, "fresh", LifecycleStage.PEAK),
    (70, 0.0, 0.0, "new", LifecycleStage.GROWING),
])
def test_lifecycle_stages(strength, momentum, growth, age, stage):
    assessment = classify_lifecycle(strength, momentum, growth, age, THRESHOLDS)
    assert assessment.stage == stage
    assert 0.0 <= assessment.confidence <= 1.0
    assert assessment.description


def test_late_peak_confidence():
    assert classify_lifecycle(95, 0.1, 0.0, "fresh", THRESHOLDS).confidence == 0.85


def test_volume_bonus_is_capped():
    assert volume_bonus(0) == 0.0
    assert volume_bonus(1e300) == pytest.approx(10.0)


# ════════════════════════════════════════════════════════════════════
# Characterizer
# ════════════════════════════════════════════════════════════════════

def test_characterize_produces_bounded_profile(ai_tokens, settings, now):
    profile = NarrativeCharacterizer(settings).characterize(_cluster(ai_tokens), now)
    assert profile.primary_theme_id == "ai"
    assert 0.0 <= profile.strength <= 100.0
    assert 0.0 <= profile.confidence <= 1.0
    assert 0.0 <= profile.novelty <= 1.0
    assert profile.version == 1
    assert re.fullmatch(r"[a-z0-9-]+", profile.id), f"Bad id {profile.id}"
    assert profile.id.startswith("ai-aiag-gptb-nrai-")


def test_small_cluster_is_rejected(token_factory, settings, now):
    with pytest.raises(CharacterizationError):
        NarrativeCharacterizer(settings).characterize(_cluster([token_factory("a"), token_factory("b")]), now)


def test_recharacterization_keeps_identity(ai_tokens, settings, now):
    characterizer = NarrativeCharacterizer(settings)
    first = characterizer.characterize(_cluster(ai_tokens), now)
    first_id, first_created = first.id, first.created_at
    first_theme, first_stage, first_strength = first.primary_theme_id, first.stage, first.strength

    later = now + timedelta(hours=1)
    second = characterizer.characterize(_cluster(list(reversed(ai_tokens)), cid=7), later)
    assert second is first
    assert second.id == first_id
    assert second.created_at == first_created
    assert second.updated_at == later
    assert second.version == 2
    assert second.previous_strength == first_strength
    assert second.primary_theme_id == first_theme
    assert second.stage == first_stage
    assert len(characterizer.registry) == 1


def test_same_symbols_new_membership_gets_suffixed_id(token_factory, settings, now):
    characterizer = NarrativeCharacterizer(settings)
    a = [token_factory(f"a{i}", "Doge Inu", "DOGE") for i in range(3)]
    b = [token_factory(f"b{i}", "Doge Inu", "DOGE") for i in range(3)]
    first = characterizer.characterize(_cluster(a), now)
    second = characterizer.characterize(_cluster(b), now)
    assert second.id == f"{first.id}-2"


def test_failed_cluster_is_skipped_with_diagnostic(ai_tokens, token_factory, settings, now):
    characterizer = NarrativeCharacterizer(settings)
    clusters = [_cluster([token_factory("tiny")], cid=1), _cluster(ai_tokens, cid=2)]
    profiles, diagnostics = characterizer.characterize_clusters(clusters, now)
    assert len(profiles) == 1
    assert len(diagnostics) == 1 and "cluster 1" in diagnostics[0]
    assert len(characterizer.registry) == 1


def test_narrative_id_format(ai_tokens, now):
    nid = narrative_id(ai_tokens, None, now)
    assert nid.startswith("unknown-aiag-gptb-nrai-")
    assert re.fullmatch(r"[a-z0-9-]+", nid)


def test_registry_evicts_oldest(ai_tokens, token_factory, settings_factory, now):
    characterizer = NarrativeCharacterizer(settings_factory(registry_size=2))
    ids = []
    for i in range(3):
        tokens = [token_factory(f"r{i}-{j}", "Moon Rocket", "MOON") for j in range(3)]
        ids.append(characterizer.characterize(_cluster(tokens), now + timedelta(seconds=i)).id)
    assert len(characterizer.registry) == 2
    assert ids[0] not in characterizer.registry
    assert ids[2] in characterizer.registry


def test_ids_stay_unique_past_registry_eviction(token_factory, settings_factory, now):
    characterizer = NarrativeCharacterizer(settings_factory(registry_size=1))
    clusters = [
        _cluster([token_factory(f"e{i}-{j}", "Moon Rocket", "MOON") for j in range(3)], cid=i)
        for i in range(3)
    ]
    profiles, diagnostics = characterizer.characterize_clusters(clusters, now)
    assert diagnostics == []
    ids = [p.id for p in profiles]
    assert len(set(ids)) == 3
    assert ids[1:] == [f"{ids[0]}-2", f"{ids[0]}-3"]
    assert len(characterizer.registry) == 1


def test_registry_lookup_by_signature(ai_tokens, settings, now):
    registry = NarrativeRegistry(10)
    profile = NarrativeCharacterizer(settings, registry=registry).characterize(_cluster(ai_tokens), now)
    assert registry.by_signature(profile.signature) is profile
    assert registry.by_signature("missing") is None


# ════════════════════════════════════════════════════════════════════
# Sub-narratives
# ════════════════════════════════════════════════════════════════════

def test_sub_narrative_detection(ai_tokens, token_factory, settings, now):
    food = [token_factory(f"food-{i}", name, symbol) for i, (name, symbol) in enumerate(FOOD_TOKENS)]
    characterizer = NarrativeCharacterizer(settings)
    parent = characterizer.characterize(_cluster(ai_tokens[:3] + food), now)
    assert parent.primary_theme_id == "ai"

    subs = characterizer.detect_sub_narratives(parent, now)
    assert len(subs) == 1
    assert subs[0].primary_theme_id == "food"
    assert subs[0].parent_id == parent.id
    assert subs[0].token_count == 3
    assert len(characterizer.registry) == 1, "Sub-narratives must not be registered"


def test_small_profile_has_no_sub_narratives(ai_tokens, settings, now):
    characterizer = NarrativeCharacterizer(settings)
    profile = characterizer.characterize(_cluster(ai_tokens), now)
    assert characterizer.detect_sub_narratives(profile, now) == []
