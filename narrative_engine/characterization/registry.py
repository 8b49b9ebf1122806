"""
Bounded narrative registry.

Holds the durable NarrativeProfiles between runs. Insertion order doubles
as recency: touching a profile moves it to the end, and once the registry
exceeds max_size the least recently touched profile is evicted.
"""

import logging
from collections import OrderedDict
from typing import List, Optional

from narrative_engine.schemas.narratives import NarrativeProfile

logger = logging.getLogger(__name__)


class NarrativeRegistry:
    def __init__(self, max_size: int = 200):
        self.max_size = max(1, max_size)
        self._profiles: "OrderedDict[str, NarrativeProfile]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, narrative_id: str) -> bool:
        return narrative_id in self._profiles

    def get(self, narrative_id: str) -> Optional[NarrativeProfile]:
        return self._profiles.get(narrative_id)

    def by_signature(self, digest: str) -> Optional[NarrativeProfile]:
        for profile in self._profiles.values():
            if profile.signature == digest:
                return profile
        return None

    def put(self, profile: NarrativeProfile) -> None:
        self._profiles[profile.id] = profile
        self._profiles.move_to_end(profile.id)
        while len(self._profiles) > self.max_size:
            evicted_id, _ = self._profiles.popitem(last=False)
            logger.debug(f"Registry full ({self.max_size}), evicted {evicted_id}")

    def profiles(self) -> List[NarrativeProfile]:
        return list(self._profiles.values())
