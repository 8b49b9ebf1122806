"""
Configuration management for the narrative detection engine.

Two kinds of configuration live here:

1. NarrativeSettings: named, defaulted knobs loaded from the environment
   (or a .env file). Every threshold the pipeline uses can be overridden
   independently, e.g. NARRATIVE_MIN_CLUSTER_SIZE=2.

2. Static catalogs: the theme catalog, keyword flags, multiplier tables,
   category thresholds and name templates. These are data, not branches.
   Adding a theme = add one entry to THEME_CATALOG (and optionally to
   THEME_MULTIPLIERS). No other code changes needed.
"""

import json
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings


class NarrativeSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # ── Clustering Ensemble ──
    # Clusters smaller than this never reach the characterizer. Batches
    # smaller than this short-circuit to "all outliers".
    min_cluster_size: int = Field(default=3, alias="NARRATIVE_MIN_CLUSTER_SIZE")
    max_clusters: int = Field(default=10, alias="NARRATIVE_MAX_CLUSTERS")
    # Density partitioning: fixed neighbourhood radius in combined-vector space
    # and the number of OTHER points required inside it for a core point.
    density_radius: float = Field(default=0.5, alias="NARRATIVE_DENSITY_RADIUS")
    density_min_neighbors: int = Field(default=3, alias="NARRATIVE_DENSITY_MIN_NEIGHBORS")
    # Hierarchical agglomeration stops once the closest pair is further apart
    # than this (average linkage, Euclidean).
    hierarchical_threshold: float = Field(default=0.7, alias="NARRATIVE_HIERARCHICAL_THRESHOLD")
    # Centroid partitioning: random seed centroids, iteration cap and inertia
    # tolerance. Leave the seed unset for the randomized behaviour.
    kmeans_max_iter: int = Field(default=100, alias="NARRATIVE_KMEANS_MAX_ITER")
    kmeans_tol: float = Field(default=1e-6, alias="NARRATIVE_KMEANS_TOL")
    kmeans_seed: Optional[int] = Field(default=None, alias="NARRATIVE_KMEANS_SEED")

    # ── Feature Extractor ──
    # Per-group weights applied to the normalized sub-vectors (JSON string).
    feature_weights: str = Field(
        default='{"textual":0.3,"onchain":0.3,"social":0.2,"market":0.2}',
        alias="NARRATIVE_FEATURE_WEIGHTS",
    )
    embedding_buckets: int = Field(default=10, alias="NARRATIVE_EMBEDDING_BUCKETS")

    # ── Narrative Characterizer ──
    # Lifecycle score boundaries: < emerging → emerging, < growing → growing,
    # < peak → peak, otherwise peak or declining.
    lifecycle_thresholds: str = Field(
        default='{"emerging":30,"growing":60,"peak":80}',
        alias="NARRATIVE_LIFECYCLE_THRESHOLDS",
    )
    significant_strength_change: float = Field(default=15.0, alias="NARRATIVE_SIGNIFICANT_STRENGTH_CHANGE")
    sub_narrative_min_tokens: int = Field(default=6, alias="NARRATIVE_SUB_NARRATIVE_MIN_TOKENS")

    # ── Adaptive Scorer ──
    # Weights should sum to 1.0. The adaptation step keeps them that way.
    base_weights: str = Field(
        default='{"volume":0.35,"social":0.25,"liquidity":0.20,"holders":0.10,"price_volatility":0.10}',
        alias="NARRATIVE_BASE_WEIGHTS",
    )
    adaptation_enabled: bool = Field(default=True, alias="NARRATIVE_ADAPTATION_ENABLED")
    adaptation_rate: float = Field(default=0.1, alias="NARRATIVE_ADAPTATION_RATE")
    min_weight: float = Field(default=0.05, alias="NARRATIVE_MIN_WEIGHT")
    max_weight: float = Field(default=0.5, alias="NARRATIVE_MAX_WEIGHT")
    # Pair correlation is an average of active factors, so it tops out near
    # 0.43 (identical theme, stage, strength and membership). Pairs above
    # this are penalized as competitors.
    correlation_threshold: float = Field(default=0.35, alias="NARRATIVE_CORRELATION_THRESHOLD")

    # ── Retention ──
    feature_cache_size: int = Field(default=5000, alias="NARRATIVE_FEATURE_CACHE_SIZE")
    signature_history_depth: int = Field(default=10, alias="NARRATIVE_SIGNATURE_HISTORY_DEPTH")
    registry_size: int = Field(default=200, alias="NARRATIVE_REGISTRY_SIZE")

    # ── Logging ──
    # Empty = console only. Set a path to also write a flushing debug log.
    log_file: str = Field(default="", alias="NARRATIVE_LOG_FILE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    def get_feature_weights(self) -> Dict[str, float]:
        return _parse_weights(self.feature_weights, DEFAULT_FEATURE_WEIGHTS)

    def get_lifecycle_thresholds(self) -> Dict[str, float]:
        return _parse_weights(self.lifecycle_thresholds, DEFAULT_LIFECYCLE_THRESHOLDS)

    def get_base_weights(self) -> Dict[str, float]:
        return _parse_weights(self.base_weights, DEFAULT_BASE_WEIGHTS)


def _parse_weights(raw: str, defaults: Dict[str, float]) -> Dict[str, float]:
    """Parse a JSON weight table, filling missing keys from defaults.

    Unknown keys are ignored so a stale env override cannot inject
    components the engine does not compute.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return dict(defaults)
    if not isinstance(parsed, dict):
        return dict(defaults)
    return {k: float(parsed.get(k, v)) for k, v in defaults.items()}


@lru_cache()
def get_settings() -> NarrativeSettings:
    """Get cached settings instance."""
    return NarrativeSettings()


DEFAULT_FEATURE_WEIGHTS = {"textual": 0.3, "onchain": 0.3, "social": 0.2, "market": 0.2}
DEFAULT_LIFECYCLE_THRESHOLDS = {"emerging": 30.0, "growing": 60.0, "peak": 80.0}
DEFAULT_BASE_WEIGHTS = {
    "volume": 0.35,
    "social": 0.25,
    "liquidity": 0.20,
    "holders": 0.10,
    "price_volatility": 0.10,
}


# ══════════════════════════════════════════════════════════════════════════════
# THEME CATALOG
# ══════════════════════════════════════════════════════════════════════════════
# keywords feed both the word-frequency score and the word-boundary regex.
# weight scales the theme's score (higher = theme wins ties more easily).

THEME_CATALOG: Dict[str, Dict[str, Any]] = {
    "animals": {
        "label": "Animal",
        "keywords": ["dog", "doge", "shib", "shiba", "puppy", "cat", "kitten", "bear",
                     "bull", "tiger", "lion", "wolf", "fox", "rabbit", "bird", "fish",
                     "frog", "pepe"],
        "weight": 1.0,
    },
    "ai": {
        "label": "AI",
        "keywords": ["ai", "artificial", "intelligence", "neural", "machine", "learning",
                     "gpt", "chat", "bot", "robot", "tech", "protocol", "network"],
        "weight": 1.2,
    },
    "gaming": {
        "label": "Gaming",
        "keywords": ["game", "gaming", "play", "metaverse", "nft", "avatar", "virtual",
                     "vr", "ar", "world", "quest", "adventure"],
        "weight": 1.1,
    },
    "defi": {
        "label": "DeFi",
        "keywords": ["defi", "finance", "yield", "farm", "stake", "liquidity", "swap",
                     "bridge", "lending", "borrowing", "treasury", "vault"],
        "weight": 1.0,
    },
    "meme": {
        "label": "Meme",
        "keywords": ["meme", "moon", "rocket", "diamond", "hands", "hodl", "ape", "chad",
                     "wojak", "based", "cringe"],
        "weight": 0.9,
    },
    "food": {
        "label": "Food",
        "keywords": ["pizza", "burger", "taco", "sushi", "cake", "cookie", "bread",
                     "donut", "sandwich", "pasta"],
        "weight": 0.8,
    },
    "political": {
        "label": "Political",
        "keywords": ["trump", "biden", "political", "election", "vote", "democracy",
                     "republican", "democrat", "president"],
        "weight": 1.1,
    },
    "rwa": {
        "label": "Real World Asset",
        "keywords": ["real", "estate", "gold", "silver", "commodity", "asset", "bond",
                     "treasury", "backed", "reserve"],
        "weight": 1.3,
    },
    "space": {
        "label": "Space",
        "keywords": ["space", "mars", "moon", "lunar", "solar", "galaxy", "star",
                     "planet", "cosmos", "orbit", "rocket"],
        "weight": 1.0,
    },
    "energy": {
        "label": "Energy",
        "keywords": ["energy", "solar", "wind", "green", "carbon", "climate",
                     "renewable", "sustainable", "eco"],
        "weight": 1.1,
    },
}

# Boolean textual features. Substring match against "name symbol", lower-cased.
KEYWORD_FLAGS: Dict[str, List[str]] = {
    "is_dog": ["dog", "doge", "shib", "puppy", "canine"],
    "is_cat": ["cat", "kitten", "feline", "meow"],
    "is_animal": ["dog", "cat", "bird", "fish", "bear", "bull", "tiger", "lion",
                  "wolf", "fox", "rabbit"],
    "is_ai": ["ai", "artificial", "intelligence", "neural", "machine", "learning",
              "gpt", "chat", "bot"],
    "is_tech": ["tech", "protocol", "network", "chain", "crypto", "defi", "web3"],
    "is_meme": ["meme", "pepe", "wojak", "chad", "moon", "rocket", "diamond", "hands"],
    "is_food": ["pizza", "burger", "taco", "sushi", "cake", "cookie", "bread"],
    "is_utility": ["utility", "tool", "service", "platform", "infrastructure"],
    "is_gaming": ["game", "gaming", "play", "metaverse", "nft", "avatar"],
    "is_political": ["trump", "biden", "political", "election", "vote"],
    "is_finance": ["finance", "bank", "treasury", "yield", "stake", "farm"],
    "is_rwa": ["gold", "silver", "estate", "commodity", "backed", "reserve"],
}


# ══════════════════════════════════════════════════════════════════════════════
# SCORING TABLES
# ══════════════════════════════════════════════════════════════════════════════

# Theme-specific bonus multipliers (keys: volatility, social, community, growth).
# Themes without an entry get no theme adjustment.
THEME_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "animals": {"social": 1.7, "community": 1.6, "volatility": 1.3},
    "ai": {"growth": 1.5, "social": 1.3, "volatility": 1.3},
    "gaming": {"community": 1.5, "social": 1.4, "growth": 1.2},
    "defi": {"community": 1.2, "volatility": 1.0},
    "meme": {"social": 1.9, "volatility": 1.7, "community": 1.6},
    "food": {"social": 1.3, "community": 1.3},
    "political": {"social": 2.0, "volatility": 1.8, "community": 1.5},
    "rwa": {"community": 1.1, "growth": 1.1},
    "space": {"growth": 1.5, "social": 1.3, "volatility": 1.3},
    "energy": {"growth": 1.3, "community": 1.2},
}

# Per-component lifecycle multipliers. Keys name score components (the five
# weighted ones plus the auxiliary novelty and community signals).
LIFECYCLE_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "emerging": {"social": 1.6, "volume": 1.4, "novelty": 1.5, "price_volatility": 1.3},
    "growing": {"volume": 1.5, "social": 1.4, "community": 1.3, "holders": 1.2},
    "peak": {"volume": 1.3, "liquidity": 1.2, "price_volatility": 1.4, "social": 1.1},
    "declining": {"volume": 0.7, "social": 0.8, "liquidity": 0.9, "holders": 0.8},
    "mature": {"liquidity": 1.2, "holders": 1.1, "volume": 1.0, "social": 0.9},
}

# Applied to the whole score after the per-component lifecycle deltas.
STAGE_SCORE_MULTIPLIERS: Dict[str, float] = {
    "emerging": 1.1,
    "growing": 1.2,
    "peak": 1.0,
    "declining": 0.8,
    "mature": 0.9,
}

# Applied to overall narrative strength by the characterizer.
STAGE_STRENGTH_MULTIPLIERS: Dict[str, float] = {
    "emerging": 0.8,
    "growing": 1.2,
    "peak": 1.0,
    "declining": 0.6,
}

VOLATILITY_BONUS = {"stable": 0.1, "low": 0.3, "moderate": 0.6, "high": 0.8, "extreme": 1.0}
SOCIAL_BONUS = {"minimal": 0.1, "low": 0.3, "moderate": 0.6, "high": 0.8, "viral": 1.0}
COMMUNITY_BONUS = {"micro": 0.2, "small": 0.4, "medium": 0.6, "large": 0.8, "massive": 1.0}


# ══════════════════════════════════════════════════════════════════════════════
# CATEGORY THRESHOLDS
# ══════════════════════════════════════════════════════════════════════════════
# (exclusive lower bound, level, description), checked top-down.
# The final tuple (None, ...) is the fallback.

CategoryTable = List[Tuple[Any, str, str]]

VOLATILITY_LEVELS: CategoryTable = [
    (200, "extreme", "Extremely volatile with explosive price movements"),
    (100, "high", "Highly volatile with significant price swings"),
    (50, "moderate", "Moderately volatile with notable price changes"),
    (20, "low", "Low volatility with steady price movement"),
    (None, "stable", "Stable pricing with minimal fluctuations"),
]

COMMUNITY_LEVELS: CategoryTable = [
    (50000, "massive", "Massive community with widespread adoption"),
    (10000, "large", "Large, active community with strong engagement"),
    (2000, "medium", "Medium-sized community with growing interest"),
    (500, "small", "Small but dedicated community"),
    (None, "micro", "Emerging community with early adopters"),
]

MARKET_CAP_LEVELS: CategoryTable = [
    (1_000_000_000, "mega", ""),
    (100_000_000, "large", ""),
    (10_000_000, "medium", ""),
    (1_000_000, "small", ""),
    (None, "micro", ""),
]

LIQUIDITY_LEVELS: CategoryTable = [
    (10_000_000, "deep", ""),
    (1_000_000, "good", ""),
    (100_000, "moderate", ""),
    (10_000, "shallow", ""),
    (None, "thin", ""),
]

VOLUME_LEVELS: CategoryTable = [
    (50_000_000, "massive", ""),
    (10_000_000, "high", ""),
    (1_000_000, "moderate", ""),
    (100_000, "low", ""),
    (None, "minimal", ""),
]

SOCIAL_LEVELS: CategoryTable = [
    (10000, "viral", "Viral social media presence with massive engagement"),
    (1000, "high", "High social activity with strong community buzz"),
    (100, "moderate", "Moderate social presence with growing awareness"),
    (10, "low", "Limited social activity with niche following"),
    (None, "minimal", "Minimal social presence, mostly under the radar"),
]

# Ages are upper bounds in hours (checked bottom-up: first bound the age is below).
AGE_LEVELS: List[Tuple[float, str]] = [
    (24, "new"),
    (168, "fresh"),
    (720, "mature"),
]
AGE_FALLBACK = "established"

# Emergence pattern by creation-time spread (seconds) and its momentum.
EMERGENCE_WINDOWS: List[Tuple[float, str]] = [
    (3600, "burst"),
    (86400, "rapid"),
    (7 * 86400, "gradual"),
]
EMERGENCE_FALLBACK = "extended"
EMERGENCE_MOMENTUM = {"burst": 0.8, "rapid": 0.6, "gradual": 0.3, "extended": 0.1}

LIFECYCLE_DESCRIPTIONS = {
    "emerging": "Early-stage narrative with developing momentum",
    "growing": "Expanding narrative with increasing adoption",
    "peak": "Peak narrative with maximum visibility and activity",
    "declining": "Declining narrative with reduced momentum",
}


# ══════════════════════════════════════════════════════════════════════════════
# NAME GENERATION TABLES
# ══════════════════════════════════════════════════════════════════════════════

NAME_TEMPLATES = {
    "theme-basic": "{theme} Narrative",
    "theme-keyword": "{keyword} {theme} Trend",
    "keyword-frequency": "{word} Token Wave",
    "pattern-prefix": "{fragment} Series",
    "pattern-suffix": "{fragment} Collection",
}

PATTERN_NAME_CONFIDENCE = {"pattern-prefix": 0.7, "pattern-suffix": 0.6}

# Market-behaviour names. metric names a field of the aggregate market metrics.
BEHAVIOR_NAMES: List[Dict[str, Any]] = [
    {
        "source": "behavior-volatility",
        "name": "High Volatility Movers",
        "metric": "abs_avg_price_change",
        "threshold": 100,
        "confidence": 0.8,
        "keywords": ["volatile", "explosive"],
    },
    {
        "source": "behavior-volume",
        "name": "Volume Surge Narrative",
        "metric": "total_volume",
        "threshold": 1_000_000,
        "confidence": 0.7,
        "keywords": ["volume", "surge"],
    },
    {
        "source": "behavior-community",
        "name": "Community-Driven Movement",
        "metric": "total_holders",
        "threshold": 10000,
        "confidence": 0.8,
        "keywords": ["community", "holders"],
    },
]

FALLBACK_NAME = "Unclassified Narrative"
