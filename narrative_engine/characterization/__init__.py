"""
Narrative characterization: clusters → named, profiled narratives.

- content.py: word frequencies, keyword hits, name patterns, aggregates
- naming.py: four name generators, top-five ranking
- themes.py: weighted theme scoring, novelty
- profile.py: volatility / community / market / social / temporal
- lifecycle.py: lifecycle score and stage
- assessment.py: overall strength and confidence
- registry.py: bounded profile registry
- characterizer.py: NarrativeCharacterizer (orchestrates the above)
"""

from .characterizer import NarrativeCharacterizer, detect_significant_changes, narrative_id
from .registry import NarrativeRegistry
from .content import analyze_cluster_content
from .themes import identify_themes, compute_novelty
from .naming import generate_names
from .lifecycle import classify_lifecycle
from .assessment import narrative_confidence, narrative_strength
