"""Tests for the document stores."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from goldenface.domain.errors import PersistenceError
from goldenface.domain.models import FaceShape, RatioSet, ScanRecord
from goldenface.infrastructure.memory_store import InMemoryScanRepository, InMemoryStatsStore
from goldenface.infrastructure.mongo_store import MongoScanRepository, MongoStatsStore


def _record(scan_id, device_id, clock, ttl_days=7):
    return ScanRecord.create(
        scan_id=scan_id,
        device_id=device_id,
        ratios=RatioSet(1.6, 1.0, 1.6, 1.0, 1.0),
        total_score=98.5,
        face_shape=FaceShape.OVAL,
        now=clock(),
        ttl_days=ttl_days,
    )


class TestInMemoryStatsStore:
    def test_dotted_increment_and_set(self):
        store = InMemoryStatsStore()
        doc = store.increment("s", {"a": 1, "nested.b": 2.5}, {"when": "now"})
        assert doc == {"_id": "s", "a": 1, "nested": {"b": 2.5}, "when": "now"}

        doc = store.increment("s", {"a": 1, "nested.b": 1}, {})
        assert doc["a"] == 2
        assert doc["nested"]["b"] == 3.5

    def test_returned_document_is_a_copy(self):
        store = InMemoryStatsStore()
        doc = store.increment("s", {"nested.b": 1}, {})
        doc["nested"]["b"] = 100
        assert store.get("s")["nested"]["b"] == 1


class TestInMemoryScanRepository:
    def test_list_newest_first_with_pagination(self, clock):
        repo = InMemoryScanRepository(clock=clock)
        for i in range(5):
            repo.save(_record(f"scan-{i}", "device", clock))
            clock.advance(minutes=1)
        repo.save(_record("other", "someone-else", clock))

        page, total = repo.list_by_device("device", limit=2, page=1)
        assert total == 5
        assert [r.scan_id for r in page] == ["scan-4", "scan-3"]

        page, _ = repo.list_by_device("device", limit=2, page=3)
        assert [r.scan_id for r in page] == ["scan-0"]

    def test_records_expire_after_ttl(self, clock):
        repo = InMemoryScanRepository(clock=clock)
        record = repo.save(_record("scan", "device", clock))
        assert (record.expire_at - record.created_at).days == 7

        clock.advance(days=6, hours=23)
        assert repo.list_by_device("device")[1] == 1

        clock.advance(hours=1)
        assert repo.list_by_device("device") == ([], 0)

    def test_delete_checks_ownership(self, clock):
        repo = InMemoryScanRepository(clock=clock)
        repo.save(_record("scan", "owner", clock))
        assert repo.delete("scan", "intruder") is False
        assert repo.delete("scan", "owner") is True
        assert repo.delete("scan", "owner") is False


class TestMongoStatsStore:
    def test_increment_is_one_upsert(self):
        collection = MagicMock()
        collection.find_one_and_update.return_value = {"_id": "g", "totalScans": 1}
        store = MongoStatsStore(collection)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)

        doc = store.increment("g", {"totalScans": 1, "shapeDistribution.Oval": 1}, {"lastUpdated": now})

        assert doc == {"_id": "g", "totalScans": 1}
        collection.find_one_and_update.assert_called_once_with(
            {"_id": "g"},
            {"$inc": {"totalScans": 1, "shapeDistribution.Oval": 1}, "$set": {"lastUpdated": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        collection.find_one.assert_not_called()

    def test_set_fields(self):
        collection = MagicMock()
        MongoStatsStore(collection).set_fields("g", {"averageScore": 70.0})
        collection.update_one.assert_called_once_with({"_id": "g"}, {"$set": {"averageScore": 70.0}})

    def test_errors_are_translated(self):
        collection = MagicMock()
        collection.find_one_and_update.side_effect = PyMongoError("down")
        with pytest.raises(PersistenceError):
            MongoStatsStore(collection).increment("g", {"totalScans": 1}, {})


class TestMongoScanRepository:
    def test_creates_ttl_index(self):
        collection = MagicMock()
        MongoScanRepository(collection)
        first = collection.create_index.call_args_list[0]
        assert first.args[0] == [("expireAt", 1)]
        assert first.kwargs == {"expireAfterSeconds": 0}

    def test_save_inserts_document(self, clock):
        collection = MagicMock()
        repo = MongoScanRepository(collection, ensure_indexes=False)
        repo.save(_record("scan", "device", clock))

        doc = collection.insert_one.call_args.args[0]
        assert doc["_id"] == "scan"
        assert doc["deviceId"] == "device"
        assert doc["results"]["faceShape"] == "Oval"
        assert doc["ratios"]["faceStructure"] == 1.6

    def test_list_round_trips_documents(self, clock):
        collection = MagicMock()
        doc = _record("scan", "device", clock).to_document()
        cursor = MagicMock()
        cursor.sort.return_value.skip.return_value.limit.return_value = [doc]
        collection.find.return_value = cursor
        collection.count_documents.return_value = 11

        records, total = MongoScanRepository(collection, ensure_indexes=False).list_by_device("device", limit=5, page=2)

        assert total == 11
        assert records[0].scan_id == "scan"
        assert records[0].face_shape is FaceShape.OVAL
        cursor.sort.return_value.skip.assert_called_once_with(5)

    def test_delete_filters_by_owner(self):
        collection = MagicMock()
        collection.delete_one.return_value.deleted_count = 0
        assert MongoScanRepository(collection, ensure_indexes=False).delete("scan", "intruder") is False
        collection.delete_one.assert_called_once_with({"_id": "scan", "deviceId": "intruder"})

    def test_errors_are_translated(self, clock):
        collection = MagicMock()
        collection.insert_one.side_effect = PyMongoError("down")
        with pytest.raises(PersistenceError):
            MongoScanRepository(collection, ensure_indexes=False).save(_record("scan", "device", clock))
