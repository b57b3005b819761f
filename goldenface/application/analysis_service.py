"""
Face analysis service - application layer
"""
import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from goldenface.application.match_service import SimilarityMatcher
from goldenface.application.stats_service import StatisticsAccumulator, utcnow
from goldenface.domain.embedding import embed
from goldenface.domain.errors import PersistenceError, VectorServiceError
from goldenface.domain.interfaces import ScanRepositoryInterface
from goldenface.domain.models import (
    AnalysisResult,
    FaceShape,
    GlobalStats,
    HealthStatus,
    MatchResult,
    RatioSet,
    ScanRecord,
    ScoringConfig,
)
from goldenface.domain.scoring import DEFAULT_SCORING, classify, compare_to_ideal, score
from goldenface.domain.stabilizer import CaptureSession, RatioBuffer

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


class AnalysisService:
    """Runs a completed capture through scoring, matching and persistence"""

    def __init__(
        self,
        matcher: SimilarityMatcher,
        accumulator: StatisticsAccumulator,
        scans: ScanRepositoryInterface,
        scoring: ScoringConfig = DEFAULT_SCORING,
        match_timeout: float = 5.0,
        buffer_capacity: int = 10,
        min_samples: int = 5,
        scan_ttl_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.matcher = matcher
        self.accumulator = accumulator
        self.scans = scans
        self.scoring = scoring
        self.match_timeout = match_timeout
        self.buffer_capacity = buffer_capacity
        self.min_samples = min_samples
        self.scan_ttl_days = scan_ttl_days
        self.clock = clock
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="match")

    def new_session(self) -> CaptureSession:
        """Fresh capture session with its own buffer"""
        session = CaptureSession(RatioBuffer(self.buffer_capacity, self.min_samples))
        session.start()
        return session

    def analyze_frames(
        self,
        frames: Iterable[Any],
        device_id: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> AnalysisResult:
        """Reduce and stabilize raw detector frames, then analyze.

        Raises InsufficientSamplesError when too few frames had a usable face.
        """
        session = self.new_session()
        for frame in frames:
            session.on_frame(frame)
        ratios = session.finish()
        return self.analyze(ratios, device_id=device_id, top_k=top_k)

    def analyze(
        self,
        ratios: RatioSet,
        device_id: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> AnalysisResult:
        """Score, classify, match and record one stabilized ratio set.

        Matching and persistence are best effort: their failures are logged
        and reported as warnings on the result.
        """
        if top_k is not None and top_k < 1:
            raise ValueError("topK must be at least 1")

        # Match runs alongside scoring
        future = self._executor.submit(self.matcher.match, embed(ratios), top_k)

        scores = score(ratios, self.scoring)
        result = AnalysisResult(
            ratios=ratios,
            scores=scores,
            face_shape=classify(ratios),
            comparison=compare_to_ideal(ratios, self.scoring),
        )

        self._collect_match(future, result)
        self._persist(result, device_id)
        return result

    def _collect_match(self, future: Future, result: AnalysisResult) -> None:
        try:
            matches = future.result(timeout=self.match_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(f"Similarity match timed out after {self.match_timeout}s")
            result.match_status = "unavailable"
            result.warnings.append("Similarity match timed out")
            return
        except VectorServiceError as e:
            logger.warning(f"Similarity match failed: {e}")
            result.match_status = "unavailable"
            result.warnings.append("Similarity service unavailable")
            return
        except Exception as e:
            logger.exception(f"Unexpected similarity match error: {e}")
            result.match_status = "unavailable"
            result.warnings.append("Similarity match failed")
            return

        result.matches = matches
        result.match_status = "ok" if matches else "empty"

    def _persist(self, result: AnalysisResult, device_id: Optional[str]) -> None:
        saved = True

        if device_id:
            try:
                record = self._save_record(
                    device_id,
                    result.ratios,
                    result.scores.total,
                    result.face_shape,
                    self._match_summary(result.top_match),
                )
                result.scan_id = record.scan_id
            except PersistenceError as e:
                logger.error(f"Failed to save scan: {e}")
                result.warnings.append("Scan could not be saved")
                saved = False

        try:
            self.accumulator.record_outcome(result.scores.total, result.face_shape)
        except PersistenceError as e:
            logger.error(f"Failed to record statistics: {e}")
            result.warnings.append("Statistics could not be updated")
            saved = False

        result.persisted = saved

    @staticmethod
    def _match_summary(match: Optional[MatchResult]) -> Optional[Dict[str, Any]]:
        if match is None:
            return None
        return {
            "name": match.name,
            "similarity": match.similarity,
            "description": match.metadata.get("description", ""),
        }

    def _save_record(
        self,
        device_id: str,
        ratios: RatioSet,
        total_score: float,
        face_shape: FaceShape,
        celebrity_match: Optional[Dict[str, Any]],
    ) -> ScanRecord:
        record = ScanRecord.create(
            scan_id=uuid.uuid4().hex,
            device_id=device_id,
            ratios=ratios,
            total_score=total_score,
            face_shape=face_shape,
            now=self.clock(),
            ttl_days=self.scan_ttl_days,
            celebrity_match=celebrity_match,
        )
        return self.scans.save(record)

    def save_scan(
        self,
        device_id: str,
        ratios: RatioSet,
        total_score: float,
        face_shape: FaceShape,
        celebrity_match: Optional[Dict[str, Any]] = None,
    ) -> ScanRecord:
        """Store a client-computed result and count it in the statistics.

        Raises PersistenceError if the record itself cannot be saved.
        """
        record = self._save_record(device_id, ratios, total_score, face_shape, celebrity_match)
        try:
            self.accumulator.record_outcome(total_score, face_shape)
        except PersistenceError as e:
            logger.error(f"Scan {record.scan_id} saved but statistics not updated: {e}")
        return record

    def list_scans(self, device_id: str, limit: int = 10, page: int = 1) -> Tuple[List[ScanRecord], int]:
        return self.scans.list_by_device(device_id, limit=limit, page=page)

    def delete_scan(self, scan_id: str, device_id: str) -> bool:
        return self.scans.delete(scan_id, device_id)

    def get_stats(self) -> GlobalStats:
        return self.accumulator.get_stats()

    def match(self, ratios: RatioSet, top_k: Optional[int] = None) -> List[MatchResult]:
        """Direct similarity query; raises VectorServiceError on failure"""
        return self.matcher.match(embed(ratios), top_k)

    def match_health(self) -> dict:
        return self.matcher.health()

    def get_health(self) -> HealthStatus:
        """Get service health status"""
        return HealthStatus(
            status="ok",
            vector_index=self.matcher.index.name,
            store=self.scans.name,
            version=VERSION,
        )

    def is_ready(self) -> bool:
        """Scoring never depends on the vector index, so only storage counts"""
        return self.scans is not None and self.accumulator is not None

    def close(self) -> None:
        self._executor.shutdown(wait=False)
