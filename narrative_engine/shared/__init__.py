"""
Shared utilities used across all engine layers.

- helpers.py: bounded normalization, variance, age arithmetic
"""

from narrative_engine.shared.helpers import (
    safe_float,
    clamp,
    normalize,
    log_normalize,
    mean,
    variance,
    ensure_utc,
    age_seconds,
    capitalize,
)
