"""
Token input snapshot and per-token feature record.

TokenDescriptor is what the data-acquisition collaborator hands us. It is
frozen: a run never mutates its inputs. Both snake_case and the upstream
camelCase keys are accepted (volume24h, marketCap, priceChange24h, ...),
and every numeric field is coerced so that missing, null or garbage values
become 0 instead of failing validation.

FeatureRecord is the extractor's output: four raw feature groups plus the
weighted, normalized combined vector used by the clustering ensemble.
"""

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# Counts and money amounts that cannot be negative.
_NON_NEGATIVE_FIELDS = (
    "price", "volume_24h", "holders", "liquidity", "market_cap",
    "social_mentions", "transactions", "engagement",
)
_SIGNED_FIELDS = ("price_change_24h", "price_change_1h", "price_change_7d", "sentiment")

# Epoch values above this are milliseconds (year 5138 in seconds).
_EPOCH_MS_CUTOFF = 1e11


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class TokenDescriptor(BaseModel):
    """External token snapshot. Immutable per run."""
    address: str
    name: str = ""
    symbol: str = ""
    price: float = 0.0
    volume_24h: float = Field(default=0.0, validation_alias=_alias("volume_24h", "volume24h", "volume"))
    holders: float = 0.0
    liquidity: float = 0.0
    market_cap: float = Field(default=0.0, validation_alias=_alias("market_cap", "marketCap"))
    price_change_24h: float = Field(
        default=0.0, validation_alias=_alias("price_change_24h", "priceChange24h"),
    )
    social_mentions: float = Field(
        default=0.0, validation_alias=_alias("social_mentions", "socialMentions"),
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=_alias("created_at", "createdAt", "timestamp"),
    )
    updated_at: Optional[datetime] = Field(
        default=None, validation_alias=_alias("updated_at", "updatedAt"),
    )

    # Optional extended metrics
    transactions: float = 0.0
    sentiment: float = 0.0
    engagement: float = 0.0
    price_change_1h: float = Field(default=0.0, validation_alias=_alias("price_change_1h", "priceChange1h"))
    price_change_7d: float = Field(default=0.0, validation_alias=_alias("price_change_7d", "priceChange7d"))

    class Config:
        frozen = True
        populate_by_name = True
        extra = "ignore"

    @field_validator("name", "symbol", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator(*_NON_NEGATIVE_FIELDS, mode="before")
    @classmethod
    def _coerce_non_negative(cls, v: Any) -> float:
        x = _finite_or_zero(v)
        return x if x > 0 else 0.0

    @field_validator(*_SIGNED_FIELDS, mode="before")
    @classmethod
    def _coerce_signed(cls, v: Any) -> float:
        return _finite_or_zero(v)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> Optional[datetime]:
        """Accept datetimes, ISO strings and epoch seconds/milliseconds."""
        if v is None or v == "":
            return None
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            if not math.isfinite(v) or v <= 0:
                return None
            seconds = v / 1000.0 if v > _EPOCH_MS_CUTOFF else float(v)
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(v, datetime):
            return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
        if isinstance(v, str):
            try:
                parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                logger.debug(f"Unparseable timestamp {v!r}, treating as unknown")
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        return None

    @property
    def cache_key(self) -> Tuple[str, str]:
        """(identity, snapshot digest) key for the feature cache.

        The digest covers every field, update time included, so a token
        whose metrics changed between runs never hits a stale entry.
        """
        digest = hashlib.md5(self.model_dump_json().encode()).hexdigest()
        return (self.address, digest)


def _finite_or_zero(v: Any) -> float:
    if v is None or isinstance(v, bool):
        return 0.0
    try:
        x = float(v)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


class FeatureRecord(BaseModel):
    """Extracted features for one token."""
    token: TokenDescriptor
    textual: Dict[str, Any] = Field(default_factory=dict)
    onchain: Dict[str, Any] = Field(default_factory=dict)
    social: Dict[str, Any] = Field(default_factory=dict)
    market: Dict[str, Any] = Field(default_factory=dict)
    vector: List[float] = Field(default_factory=list)

    @property
    def address(self) -> str:
        return self.token.address
