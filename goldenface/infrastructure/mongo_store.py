"""
MongoDB document stores
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from goldenface.domain.errors import PersistenceError
from goldenface.domain.interfaces import ScanRepositoryInterface, StatsStoreInterface
from goldenface.domain.models import ScanRecord

logger = logging.getLogger(__name__)


def connect(uri: str, db_name: str, timeout_ms: int = 5000):
    """Open a client and return the database handle"""
    logger.info(f"Connecting to MongoDB database {db_name}")
    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
    return client[db_name]


class MongoStatsStore(StatsStoreInterface):
    """Statistics singleton stored as one document with a fixed _id"""

    def __init__(self, collection: Collection):
        self.collection = collection

    def increment(
        self,
        stat_id: str,
        increments: Mapping[str, float],
        fields: Mapping[str, Any],
    ) -> Dict[str, Any]:
        try:
            # Single upsert-with-increment; no read before write
            return self.collection.find_one_and_update(
                {"_id": stat_id},
                {"$inc": dict(increments), "$set": dict(fields)},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Statistics increment failed: {e}") from e

    def set_fields(self, stat_id: str, fields: Mapping[str, Any]) -> None:
        try:
            self.collection.update_one({"_id": stat_id}, {"$set": dict(fields)})
        except PyMongoError as e:
            raise PersistenceError(f"Statistics update failed: {e}") from e

    def get(self, stat_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.collection.find_one({"_id": stat_id})
        except PyMongoError as e:
            raise PersistenceError(f"Statistics read failed: {e}") from e


class MongoScanRepository(ScanRepositoryInterface):
    """Scan records expired by a TTL index on expireAt"""

    def __init__(self, collection: Collection, ensure_indexes: bool = True):
        self.collection = collection
        if ensure_indexes:
            self.ensure_indexes()

    @property
    def name(self) -> str:
        return "mongodb"

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_index([("expireAt", ASCENDING)], expireAfterSeconds=0)
            self.collection.create_index([("deviceId", ASCENDING), ("createdAt", DESCENDING)])
        except PyMongoError as e:
            logger.error(f"Failed to create scan indexes: {e}")
            raise PersistenceError(f"Index creation failed: {e}") from e

    def save(self, record: ScanRecord) -> ScanRecord:
        try:
            self.collection.insert_one(record.to_document())
        except PyMongoError as e:
            raise PersistenceError(f"Scan insert failed: {e}") from e
        return record

    def list_by_device(self, device_id: str, limit: int = 10, page: int = 1) -> Tuple[List[ScanRecord], int]:
        try:
            cursor = (
                self.collection.find({"deviceId": device_id})
                .sort("createdAt", DESCENDING)
                .skip((page - 1) * limit)
                .limit(limit)
            )
            records = [ScanRecord.from_document(doc) for doc in cursor]
            total = self.collection.count_documents({"deviceId": device_id})
        except PyMongoError as e:
            raise PersistenceError(f"Scan query failed: {e}") from e
        return records, total

    def delete(self, scan_id: str, device_id: str) -> bool:
        try:
            result = self.collection.delete_one({"_id": scan_id, "deviceId": device_id})
        except PyMongoError as e:
            raise PersistenceError(f"Scan delete failed: {e}") from e
        return result.deleted_count > 0
