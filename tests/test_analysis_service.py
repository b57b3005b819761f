"""Tests for the analysis service."""

import threading
from unittest.mock import MagicMock

import pytest

from goldenface.application.analysis_service import AnalysisService
from goldenface.application.match_service import SimilarityMatcher
from goldenface.application.stats_service import StatisticsAccumulator
from goldenface.domain.errors import InsufficientSamplesError, PersistenceError, VectorServiceError
from goldenface.domain.interfaces import ScanRepositoryInterface, StatsStoreInterface, VectorIndexInterface
from goldenface.domain.models import FaceShape, RatioSet
from goldenface.infrastructure.memory_index import InMemoryVectorIndex
from goldenface.infrastructure.memory_store import InMemoryScanRepository, InMemoryStatsStore
from tests.conftest import IDEAL_RATIOS, make_frame, make_mesh


class _SlowIndex(InMemoryVectorIndex):
    """Blocks queries until released."""

    def __init__(self, references=()):
        super().__init__(references)
        self.release = threading.Event()

    def query(self, vector, top_k):
        self.release.wait(5)
        return super().query(vector, top_k)


def _service(index=None, stats_store=None, scans=None, clock=None, **kwargs):
    index = index if index is not None else InMemoryVectorIndex()
    stats_store = stats_store or InMemoryStatsStore()
    scans = scans or InMemoryScanRepository()
    extra = {"clock": clock} if clock else {}
    return AnalysisService(
        matcher=SimilarityMatcher(index),
        accumulator=StatisticsAccumulator(stats_store),
        scans=scans,
        **extra,
        **kwargs,
    )


class TestAnalyze:
    def test_golden_ratios_end_to_end(self, references):
        service = _service(InMemoryVectorIndex(references))
        result = service.analyze(RatioSet.from_dict(IDEAL_RATIOS))

        assert result.scores.total == 100.0
        assert result.face_shape is FaceShape.OVAL
        assert result.match_status == "ok"
        assert result.top_match.reference_id == "golden"
        assert result.top_match.similarity == 100
        assert [m.rank for m in result.matches] == [1, 2, 3]
        assert result.persisted is True
        assert result.warnings == []
        assert len(result.comparison) == 5

    def test_records_outcome(self):
        stats_store = InMemoryStatsStore()
        service = _service(stats_store=stats_store)
        service.analyze(RatioSet.from_dict(IDEAL_RATIOS))
        service.analyze(RatioSet(1.3, 1.0, 1.618, 1.0, 1.0))

        stats = service.get_stats()
        assert stats.total_scans == 2
        assert stats.shape_distribution["Oval"] == 1
        assert stats.shape_distribution["Round"] == 1

    def test_saves_scan_for_device(self, references, clock):
        scans = InMemoryScanRepository(clock=clock)
        service = _service(InMemoryVectorIndex(references), scans=scans, clock=clock)
        result = service.analyze(RatioSet.from_dict(IDEAL_RATIOS), device_id="device-1")

        records, total = service.list_scans("device-1")
        assert total == 1
        assert records[0].scan_id == result.scan_id
        assert records[0].total_score == 100.0
        assert records[0].celebrity_match["name"] == "Golden"

    def test_empty_reference_set(self):
        result = _service().analyze(RatioSet.from_dict(IDEAL_RATIOS))
        assert result.matches == []
        assert result.match_status == "empty"
        assert result.scores.total == 100.0

    def test_match_failure_keeps_score(self):
        index = MagicMock(spec=VectorIndexInterface)
        index.query.side_effect = VectorServiceError("unreachable")
        result = _service(index).analyze(RatioSet.from_dict(IDEAL_RATIOS))

        assert result.matches is None
        assert result.match_status == "unavailable"
        assert result.scores.total == 100.0
        assert result.face_shape is FaceShape.OVAL
        assert result.persisted is True
        assert result.warnings

    def test_match_timeout_keeps_score(self, references):
        index = _SlowIndex(references)
        service = _service(index, match_timeout=0.05)
        try:
            result = service.analyze(RatioSet.from_dict(IDEAL_RATIOS))
        finally:
            index.release.set()

        assert result.match_status == "unavailable"
        assert result.scores.total == 100.0
        assert service.get_stats().total_scans == 1
        assert any("timed out" in w for w in result.warnings)

    def test_persistence_failure_keeps_result(self):
        stats_store = MagicMock(spec=StatsStoreInterface)
        stats_store.increment.side_effect = PersistenceError("down")
        scans = MagicMock(spec=ScanRepositoryInterface)
        scans.save.side_effect = PersistenceError("down")

        result = _service(stats_store=stats_store, scans=scans).analyze(
            RatioSet.from_dict(IDEAL_RATIOS), device_id="device-1",
        )

        assert result.scores.total == 100.0
        assert result.face_shape is FaceShape.OVAL
        assert result.persisted is False
        assert result.scan_id is None
        assert len(result.warnings) == 2

    def test_average_write_failure_still_persisted(self):
        stats_store = MagicMock(spec=StatsStoreInterface)
        stats_store.increment.return_value = {"_id": "global_tracker", "totalScans": 1, "scoreSum": 100.0}
        stats_store.set_fields.side_effect = PersistenceError("down")

        result = _service(stats_store=stats_store).analyze(RatioSet.from_dict(IDEAL_RATIOS))

        assert result.persisted is True
        assert result.warnings == []
        stats_store.increment.assert_called_once()

    def test_invalid_top_k(self):
        with pytest.raises(ValueError):
            _service().analyze(RatioSet.from_dict(IDEAL_RATIOS), top_k=0)


class TestAnalyzeFrames:
    def test_frames_are_stabilized(self):
        frames = [make_frame()] * 3 + [None] + [make_mesh()] * 3
        result = _service().analyze_frames(frames)
        assert result.ratios.face_structure == pytest.approx(1.6)
        assert result.scores.total == 98.5
        assert result.face_shape is FaceShape.OVAL

    def test_insufficient_frames(self):
        service = _service()
        with pytest.raises(InsufficientSamplesError):
            service.analyze_frames([make_frame()] * 4 + [None] * 3)
        assert service.get_stats().total_scans == 0

    def test_sessions_are_independent(self):
        service = _service()
        a, b = service.new_session(), service.new_session()
        a.on_frame(make_frame())
        assert len(b.buffer) == 0


class TestScans:
    def test_save_scan_records_outcome(self):
        service = _service()
        record = service.save_scan("device", RatioSet.from_dict(IDEAL_RATIOS), 88.0, FaceShape.HEART)

        assert service.list_scans("device")[0][0].scan_id == record.scan_id
        stats = service.get_stats()
        assert stats.shape_distribution["Heart"] == 1
        assert stats.score_distribution["81-100"] == 1

    def test_save_scan_survives_stats_failure(self):
        stats_store = MagicMock(spec=StatsStoreInterface)
        stats_store.increment.side_effect = PersistenceError("down")
        service = _service(stats_store=stats_store)
        record = service.save_scan("device", RatioSet.from_dict(IDEAL_RATIOS), 88.0, FaceShape.HEART)
        assert record.device_id == "device"

    def test_save_scan_raises_when_record_fails(self):
        scans = MagicMock(spec=ScanRepositoryInterface)
        scans.save.side_effect = PersistenceError("down")
        with pytest.raises(PersistenceError):
            _service(scans=scans).save_scan("device", RatioSet.from_dict(IDEAL_RATIOS), 88.0, FaceShape.HEART)

    def test_delete_scan(self):
        service = _service()
        record = service.save_scan("device", RatioSet.from_dict(IDEAL_RATIOS), 88.0, FaceShape.OVAL)
        assert service.delete_scan(record.scan_id, "other") is False
        assert service.delete_scan(record.scan_id, "device") is True
