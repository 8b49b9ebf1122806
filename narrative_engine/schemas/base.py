"""
Common enums used across the entire engine.

These define the vocabulary of the system: lifecycle stages, trend
directions, emergence patterns and correlation classes.
"""

from enum import Enum


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS - Classification Types
# ══════════════════════════════════════════════════════════════════════════════

class LifecycleStage(str, Enum):
    """Narrative maturity phase."""
    EMERGING = "emerging"
    GROWING = "growing"
    PEAK = "peak"
    DECLINING = "declining"
    MATURE = "mature"


class TrendDirection(str, Enum):
    """Score movement versus the previous run."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class EmergencePattern(str, Enum):
    """How tightly member tokens were created together."""
    BURST = "burst"           # < 1 hour spread
    RAPID = "rapid"           # < 24 hours
    GRADUAL = "gradual"       # < 7 days
    EXTENDED = "extended"


class CorrelationType(str, Enum):
    """Pairwise narrative correlation class."""
    STRONG_POSITIVE = "strong_positive"
    MODERATE_POSITIVE = "moderate_positive"
    WEAK = "weak"
    MODERATE_NEGATIVE = "moderate_negative"
    STRONG_NEGATIVE = "strong_negative"
