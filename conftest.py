"""
Shared fixtures for the narrative engine tests.

Tokens default to identical, mid-sized numerics created two hours before
NOW, so a test only spells out what it actually varies.
"""

from datetime import datetime, timedelta, timezone

import pytest

from narrative_engine.config import NarrativeSettings
from narrative_engine.schemas import (
    CommunityProfile,
    EmergencePattern,
    LifecycleAssessment,
    LifecycleStage,
    MarketProfile,
    NarrativeCharacteristics,
    NarrativeProfile,
    SocialProfile,
    TemporalProfile,
    ThemeMatch,
    TokenDescriptor,
    VolatilityProfile,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

_TOKEN_DEFAULTS = {
    "price": 0.001,
    "volume_24h": 50_000.0,
    "holders": 500,
    "liquidity": 20_000.0,
    "market_cap": 200_000.0,
    "price_change_24h": 10.0,
    "social_mentions": 100,
    "engagement": 0.2,
    "created_at": NOW - timedelta(hours=2),
}

AI_TOKENS = [
    ("AI Agent", "AIAG"),
    ("GPT Brain", "GPTB"),
    ("Neural AI", "NRAI"),
    ("Chat GPT Bot", "CGPT"),
    ("Deep Neural", "DEEP"),
]


def make_settings(**overrides) -> NarrativeSettings:
    """NarrativeSettings from field names (mapped to their env aliases)."""
    fields = NarrativeSettings.model_fields
    return NarrativeSettings(**{fields[k].alias or k: v for k, v in overrides.items()})


def make_token(address: str, name: str = "", symbol: str = "", **overrides) -> TokenDescriptor:
    data = dict(_TOKEN_DEFAULTS)
    data.update(overrides)
    return TokenDescriptor(address=address, name=name, symbol=symbol, **data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def settings():
    """Deterministic settings: seeded centroids, no weight adaptation."""
    return make_settings(kmeans_seed=42, adaptation_enabled=False)


@pytest.fixture
def ai_batch():
    """Five AI-named tokens plus one unrelated token, identical numerics."""
    tokens = [make_token(f"ai-{i}", name, symbol) for i, (name, symbol) in enumerate(AI_TOKENS)]
    tokens.append(make_token("rndm-0", "Random Coin", "RNDM"))
    return tokens


@pytest.fixture
def identical_batch():
    """Ten tokens that differ only by address."""
    return [make_token(f"clone-{i}", "Clone Token", "CLN") for i in range(10)]


@pytest.fixture
def profile_factory():
    """Build a NarrativeProfile directly, bypassing characterization."""

    def _make(
        narrative_id: str,
        tokens,
        theme: str = "ai",
        stage: LifecycleStage = LifecycleStage.GROWING,
        strength: float = 50.0,
        novelty: float = 0.0,
    ) -> NarrativeProfile:
        characteristics = NarrativeCharacteristics(
            volatility=VolatilityProfile(level="low", score=10.0, description=""),
            community=CommunityProfile(size="small", engagement=0.3, growth=0.0, description=""),
            market=MarketProfile(cap="small", liquidity="moderate", volume="low", description=""),
            social=SocialProfile(mentions="moderate", sentiment=0.0, virality=0.1, description=""),
            temporal=TemporalProfile(
                age="new", emergence=EmergencePattern.BURST, momentum=0.8, description="",
            ),
        )
        return NarrativeProfile(
            id=narrative_id,
            name=narrative_id,
            primary_theme=ThemeMatch(theme=theme, label=theme, score=5.0),
            characteristics=characteristics,
            lifecycle=LifecycleAssessment(stage=stage, confidence=0.8, score=strength),
            strength=strength,
            confidence=0.7,
            novelty=novelty,
            tokens=list(tokens),
            created_at=NOW,
            updated_at=NOW,
        )

    return _make
