"""
Numeric helpers shared by the feature, clustering and scoring layers.

Every metric in the engine is mapped to a bounded range before it is
combined with anything else. These helpers make that mapping total:
NaN, inf and None never escape them.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence


def safe_float(value, default: float = 0.0) -> float:
    """Coerce anything to a finite float, falling back to default."""
    try:
        x = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(x):
        return default
    return x


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return min(hi, max(lo, safe_float(value, lo)))


def normalize(value: float, lo: float, hi: float) -> float:
    """Map value from [lo, hi] to [0, 1], clamping out-of-range input."""
    if hi <= lo:
        return 0.0
    return clamp((safe_float(value) - lo) / (hi - lo))


def log_normalize(value: float, hi: float) -> float:
    """Log-scale a heavy-tailed non-negative quantity into [0, 1].

    ln(value + 1) / hi, so hi is the natural-log ceiling
    (hi=20 saturates around 485M).
    """
    return normalize(math.log(max(0.0, safe_float(value)) + 1.0), 0.0, hi)


def mean(values: Iterable[float]) -> float:
    vals = list(values)
    if not vals:
        return 0.0
    return sum(vals) / len(vals)


def variance(values: Sequence[float]) -> float:
    """Population variance (0.0 for fewer than two values)."""
    if len(values) < 2:
        return 0.0
    m = mean(values)
    return sum((v - m) ** 2 for v in values) / len(values)


def ensure_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def age_seconds(created_at: Optional[datetime], now: datetime) -> float:
    """Seconds between creation and now. Unknown creation time = age 0."""
    created = ensure_utc(created_at)
    if created is None:
        return 0.0
    return max(0.0, (ensure_utc(now) - created).total_seconds())


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]
