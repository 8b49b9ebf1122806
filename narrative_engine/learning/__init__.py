"""
Online adaptation of the scorer's base weights.

- weight_learner.py: rank correlation, bounded normalization, apply_adaptation()
"""

from .weight_learner import apply_adaptation, bounded_normalize, rank_correlation
