"""
Feature extraction tests: input coercion, vector bounds, caching and
per-family failure isolation.
"""

import math
from datetime import datetime, timezone

from narrative_engine.config import KEYWORD_FLAGS
from narrative_engine.features import (
    FEATURE_FAMILIES,
    FeatureCache,
    combine_vector,
    extract_all_features,
    extract_features,
)
from narrative_engine.features.textual import compute_textual_features, hashed_embedding
from narrative_engine.providers import HistoricalMetricProvider
from narrative_engine.schemas import TokenDescriptor

VECTOR_DIM = 5 + len(KEYWORD_FLAGS) + 10 + 10 + 8 + 9


# ════════════════════════════════════════════════════════════════════
# TokenDescriptor coercion
# ════════════════════════════════════════════════════════════════════

def test_camel_case_aliases_are_accepted():
    token = TokenDescriptor.model_validate({
        "address": "0xabc",
        "name": "Doge Moon",
        "symbol": "DMOON",
        "volume24h": 1200,
        "marketCap": 50_000,
        "priceChange24h": -12.5,
        "socialMentions": 42,
        "createdAt": "2024-05-30T12:00:00Z",
    })
    assert token.volume_24h == 1200
    assert token.market_cap == 50_000
    assert token.price_change_24h == -12.5
    assert token.social_mentions == 42
    assert token.created_at == datetime(2024, 5, 30, 12, 0, tzinfo=timezone.utc)


def test_missing_negative_and_garbage_numbers_become_zero():
    token = TokenDescriptor.model_validate({
        "address": "0x1",
        "holders": -50,
        "liquidity": None,
        "volume24h": "not a number",
        "marketCap": float("nan"),
        "priceChange24h": float("inf"),
    })
    assert token.holders == 0
    assert token.liquidity == 0
    assert token.volume_24h == 0
    assert token.market_cap == 0
    assert token.price_change_24h == 0
    assert token.price == 0


def test_epoch_milliseconds_timestamp():
    token = TokenDescriptor(address="0x2", created_at=1_717_243_200_000)
    assert token.created_at == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_cache_key_tracks_update_time(token_factory, now):
    a = token_factory("0x3", updated_at=now)
    b = token_factory("0x3", updated_at=now.replace(hour=13))
    assert a.cache_key[0] == b.cache_key[0]
    assert a.cache_key != b.cache_key


def test_cache_key_tracks_metrics_without_update_time(token_factory):
    before = token_factory("0x3")
    after = before.model_copy(update={"volume_24h": 9_000_000.0})
    assert before.updated_at is None
    assert before.cache_key == token_factory("0x3").cache_key
    assert before.cache_key != after.cache_key


# ════════════════════════════════════════════════════════════════════
# Textual features
# ════════════════════════════════════════════════════════════════════

def test_keyword_flags(token_factory):
    features = compute_textual_features(token_factory("0x4", "Doge Moon", "DMOON"))
    assert features["keywords"]["is_dog"] is True
    assert features["keywords"]["is_meme"] is True
    assert features["keywords"]["is_food"] is False
    assert features["has_numbers"] is False


def test_hashed_embedding_is_stable_and_normalized():
    first = hashed_embedding("pepe frog coin", 10)
    second = hashed_embedding("pepe frog coin", 10)
    assert first == second
    assert math.isclose(sum(first), 1.0)
    assert hashed_embedding("", 10) == [0.0] * 10


# ════════════════════════════════════════════════════════════════════
# Combined vector
# ════════════════════════════════════════════════════════════════════

def test_vector_components_are_finite_and_bounded(token_factory, settings, now):
    weights = settings.get_feature_weights()
    extremes = [
        token_factory("0x5", "A" * 200, "SYM123!", price=1e9, volume_24h=1e15,
                      holders=1e12, liquidity=1e14, market_cap=1e16,
                      price_change_24h=1e6, social_mentions=1e9, transactions=1e12,
                      engagement=5, sentiment=-9, price_change_1h=-1e4, price_change_7d=1e5),
        token_factory("0x6", "", "", price=0, volume_24h=0, holders=0, liquidity=0,
                      market_cap=0, price_change_24h=-100, social_mentions=0, created_at=None),
    ]
    ceiling = max(weights.values())
    for record in extract_all_features(extremes, settings, now=now):
        assert len(record.vector) == VECTOR_DIM
        for v in record.vector:
            assert math.isfinite(v), f"Non-finite component in {record.address}"
            assert 0.0 <= v <= ceiling + 1e-9, f"Component {v} out of range"


def test_group_weights_scale_sub_vectors(token_factory, settings, now):
    record = extract_features(token_factory("0x7", "Cat Coin", "CAT"), settings, now=now)
    zero_textual = combine_vector(
        {"textual": record.textual, "onchain": record.onchain,
         "social": record.social, "market": record.market},
        {"textual": 0.0, "onchain": 0.3, "social": 0.2, "market": 0.2},
    )
    textual_dim = 5 + len(KEYWORD_FLAGS) + 10
    assert all(v == 0.0 for v in zero_textual[:textual_dim])
    assert zero_textual[textual_dim:] == record.vector[textual_dim:]


# ════════════════════════════════════════════════════════════════════
# Cache + failure isolation
# ════════════════════════════════════════════════════════════════════

def test_feature_cache_hits_until_token_changes(token_factory, settings, now):
    cache = FeatureCache(max_size=10)
    token = token_factory("0x8", "Pizza Pie", "PZA", updated_at=now)

    first = extract_features(token, settings, cache=cache, now=now)
    second = extract_features(token, settings, cache=cache, now=now)
    assert second is first
    assert cache.hits == 1 and cache.misses == 1

    changed = token_factory("0x8", "Pizza Pie", "PZA", updated_at=now.replace(hour=14), holders=9000)
    third = extract_features(changed, settings, cache=cache, now=now)
    assert third is not first
    assert cache.misses == 2


def test_feature_cache_is_bounded(token_factory, settings, now):
    cache = FeatureCache(max_size=2)
    for i in range(5):
        extract_features(token_factory(f"0x{i}"), settings, cache=cache, now=now)
    assert len(cache) == 2


class _BrokenHolderProvider(HistoricalMetricProvider):
    def holder_growth(self, token):
        raise RuntimeError("holder series unavailable")


def test_failing_family_falls_back_to_empty_group(token_factory, settings, now):
    record = extract_features(token_factory("0x9", "Bear Bull", "BB"), settings,
                              provider=_BrokenHolderProvider(), now=now)
    assert record.onchain == {}
    assert record.textual and record.social and record.market
    assert len(record.vector) == VECTOR_DIM
    assert all(math.isfinite(v) for v in record.vector)


def test_feature_families_order():
    assert FEATURE_FAMILIES == ("textual", "onchain", "social", "market")
