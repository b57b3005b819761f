"""
In-process document stores
"""
import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from goldenface.domain.interfaces import ScanRepositoryInterface, StatsStoreInterface
from goldenface.domain.models import ScanRecord

logger = logging.getLogger(__name__)


def _resolve(doc: Dict[str, Any], path: str) -> Tuple[Dict[str, Any], str]:
    """Walk a dotted path, creating nested documents on the way"""
    *parents, leaf = path.split(".")
    node = doc
    for key in parents:
        node = node.setdefault(key, {})
    return node, leaf


class InMemoryStatsStore(StatsStoreInterface):
    """Statistics documents guarded by a lock per compound update"""

    def __init__(self):
        self._lock = threading.Lock()
        self._docs: Dict[str, Dict[str, Any]] = {}

    def increment(
        self,
        stat_id: str,
        increments: Mapping[str, float],
        fields: Mapping[str, Any],
    ) -> Dict[str, Any]:
        with self._lock:
            doc = self._docs.setdefault(stat_id, {"_id": stat_id})
            for path, amount in increments.items():
                node, leaf = _resolve(doc, path)
                node[leaf] = node.get(leaf, 0) + amount
            for path, value in fields.items():
                node, leaf = _resolve(doc, path)
                node[leaf] = value
            return copy.deepcopy(doc)

    def set_fields(self, stat_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            doc = self._docs.setdefault(stat_id, {"_id": stat_id})
            for path, value in fields.items():
                node, leaf = _resolve(doc, path)
                node[leaf] = value

    def get(self, stat_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(stat_id)
            return copy.deepcopy(doc) if doc is not None else None


class InMemoryScanRepository(ScanRepositoryInterface):
    """Scan records with expiry applied on access"""

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._lock = threading.Lock()
        self._records: Dict[str, ScanRecord] = {}
        self.clock = clock

    @property
    def name(self) -> str:
        return "memory"

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [sid for sid, rec in self._records.items() if rec.expire_at <= now]
        for sid in expired:
            del self._records[sid]
        if expired:
            logger.debug(f"Purged {len(expired)} expired scans")

    def save(self, record: ScanRecord) -> ScanRecord:
        with self._lock:
            self._records[record.scan_id] = record
        return record

    def list_by_device(self, device_id: str, limit: int = 10, page: int = 1) -> Tuple[List[ScanRecord], int]:
        with self._lock:
            self._purge_expired()
            records = [r for r in self._records.values() if r.device_id == device_id]

        records.sort(key=lambda r: r.created_at, reverse=True)
        start = (page - 1) * limit
        return records[start:start + limit], len(records)

    def delete(self, scan_id: str, device_id: str) -> bool:
        with self._lock:
            self._purge_expired()
            record = self._records.get(scan_id)
            if record is None or record.device_id != device_id:
                return False
            del self._records[scan_id]
            return True
