"""
Narrative scoring.

- components.py: base components, base score, auxiliary signals
- adjustments.py: theme / lifecycle / activity adjustments
- correlation.py: pair correlation, labels, penalty/bonus
- scorer.py: AdaptiveScorer (staged pipeline + strength fallback)
"""

from .scorer import AdaptiveScorer, classify_trend
from .correlation import classify_correlation, correlation_matrix, pair_correlation, token_overlap
from .components import BASE_COMPONENTS
