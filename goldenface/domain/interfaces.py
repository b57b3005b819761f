"""
Domain interfaces (ports)
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import ReferenceVector, ScanRecord

# (id, score, metadata) as returned by a vector index, best first
RawMatch = Tuple[str, float, Dict[str, Any]]


class VectorIndexInterface(ABC):
    """Interface for the external vector similarity service"""

    @abstractmethod
    def query(self, vector: Sequence[float], top_k: int) -> List[RawMatch]:
        """Return up to top_k nearest references, best first"""
        pass

    @abstractmethod
    def upsert(self, references: Sequence[ReferenceVector]) -> int:
        """Insert or replace reference vectors, returning the count written"""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the index is configured"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


class StatsStoreInterface(ABC):
    """Interface for the statistics singleton storage"""

    @abstractmethod
    def increment(
        self,
        stat_id: str,
        increments: Mapping[str, float],
        fields: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Atomically create-if-absent, apply increments and field sets.

        Keys may be dotted paths into nested counters. Returns the document
        after the update.
        """
        pass

    @abstractmethod
    def set_fields(self, stat_id: str, fields: Mapping[str, Any]) -> None:
        """Overwrite plain fields on the document"""
        pass

    @abstractmethod
    def get(self, stat_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the document, None if it was never created"""
        pass


class ScanRepositoryInterface(ABC):
    """Interface for per-analysis records"""

    @abstractmethod
    def save(self, record: ScanRecord) -> ScanRecord:
        pass

    @abstractmethod
    def list_by_device(
        self, device_id: str, limit: int = 10, page: int = 1
    ) -> Tuple[List[ScanRecord], int]:
        """Newest first page of records and the total count for the device"""
        pass

    @abstractmethod
    def delete(self, scan_id: str, device_id: str) -> bool:
        """Delete a record owned by device_id, False if not found"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass
