"""
Aggregate statistics accumulator - application layer
"""
import logging
from datetime import datetime, timezone
from typing import Callable

from goldenface.domain.errors import PersistenceError
from goldenface.domain.interfaces import StatsStoreInterface
from goldenface.domain.models import SCORE_BUCKETS, FaceShape, GlobalStats

logger = logging.getLogger(__name__)

DEFAULT_STATS_ID = "global_tracker"

# (ceiling, bucket), upper bound inclusive
_BUCKET_CEILINGS = tuple(zip((20, 40, 60, 80, 100), SCORE_BUCKETS))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def score_bucket(score: float) -> str:
    for ceiling, bucket in _BUCKET_CEILINGS:
        if score <= ceiling:
            return bucket
    return SCORE_BUCKETS[-1]


class StatisticsAccumulator:
    """Running counters updated once per completed analysis"""

    def __init__(
        self,
        store: StatsStoreInterface,
        stat_id: str = DEFAULT_STATS_ID,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.stat_id = stat_id
        self.clock = clock

    def record_outcome(self, score: float, shape: FaceShape) -> GlobalStats:
        """Apply one analysis to the singleton.

        Counters move in a single atomic store operation; averageScore is
        derived afterwards and may briefly lag under concurrent writers. A failed
        averageScore write is logged, not raised.
        """
        shape = FaceShape(shape)
        if shape is FaceShape.UNKNOWN:
            raise ValueError("Cannot record an outcome without a face shape")
        if not 0 <= score <= 100:
            raise ValueError(f"Score must be within 0-100, got {score}")

        increments = {
            "totalScans": 1,
            "scoreSum": score,
            f"shapeDistribution.{shape.value}": 1,
            f"scoreDistribution.{score_bucket(score)}": 1,
        }
        doc = self.store.increment(self.stat_id, increments, {"lastUpdated": self.clock()})

        stats = GlobalStats.from_document(doc)
        if stats.total_scans > 0:
            stats.average_score = stats.score_sum / stats.total_scans
            try:
                self.store.set_fields(self.stat_id, {"averageScore": stats.average_score})
            except PersistenceError as e:
                # Counters are already committed; the stored average catches up on the next write
                logger.warning(f"averageScore not updated: {e}")

        logger.debug(f"Recorded outcome {score} / {shape.value}; total scans {stats.total_scans}")
        return stats

    def get_stats(self) -> GlobalStats:
        return GlobalStats.from_document(self.store.get(self.stat_id))
