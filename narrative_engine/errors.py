"""
Engine exception hierarchy.

These are raised inside a stage and caught at that stage's boundary (one
cluster, one strategy, one scoring pass). They never escape
NarrativePipeline.run(); the pipeline turns them into diagnostics.
"""


class NarrativeEngineError(Exception):
    """Base class for recoverable engine failures."""


class ClusteringError(NarrativeEngineError):
    """A clustering strategy could not run on the given vectors."""


class CharacterizationError(NarrativeEngineError):
    """One cluster could not be turned into a narrative profile."""


class ScoringError(NarrativeEngineError):
    """The scorer produced an unusable intermediate value."""
