"""
Similarity matcher - application layer
"""
import logging
from typing import List, Optional, Sequence

from goldenface.domain.errors import VectorServiceError
from goldenface.domain.geometry import round_half_up
from goldenface.domain.interfaces import VectorIndexInterface
from goldenface.domain.models import PHI, MatchResult

logger = logging.getLogger(__name__)

# Neutral probe used by the health check
PROBE_VECTOR = (round(PHI, 3), 1.0, round(PHI, 3), 1.0, 1.0)


class SimilarityMatcher:
    """Maps nearest-neighbour queries onto ranked match results"""

    def __init__(self, index: VectorIndexInterface, default_top_k: int = 3):
        self.index = index
        self.default_top_k = default_top_k

    def match(self, vector: Sequence[float], k: Optional[int] = None) -> List[MatchResult]:
        """Query the index; the service's ordering is kept as-is.

        An empty reference set gives an empty list. Service failures raise
        VectorServiceError.
        """
        top_k = self.default_top_k if k is None else k
        if top_k < 1:
            raise ValueError("topK must be at least 1")

        raw = self.index.query(list(vector), top_k)
        logger.debug(f"{self.index.name} returned {len(raw)} matches for topK={top_k}")

        return [
            MatchResult(
                rank=position + 1,
                reference_id=str(ref_id),
                similarity=int(round_half_up(score * 100)),
                score=float(score),
                metadata=dict(metadata or {}),
            )
            for position, (ref_id, score, metadata) in enumerate(raw)
        ]

    def health(self) -> dict:
        """Probe the index with a neutral vector"""
        if not self.index.is_ready():
            return {"status": "disconnected", "error": "Vector index not configured"}

        try:
            matches = self.index.query(list(PROBE_VECTOR), 1)
        except VectorServiceError as e:
            return {"status": "disconnected", "error": str(e)}

        return {
            "status": "connected" if matches else "empty",
            "index": self.index.name,
            "vectorDimensions": len(PROBE_VECTOR),
            "sampleMatchCount": len(matches),
        }
