"""
In-process vector index with brute-force cosine ranking
"""
import logging
import threading
from typing import Dict, List, Sequence

import numpy as np

from goldenface.domain.interfaces import RawMatch, VectorIndexInterface
from goldenface.domain.models import ReferenceVector

logger = logging.getLogger(__name__)


class InMemoryVectorIndex(VectorIndexInterface):
    """Reference set held in memory; used offline and in tests"""

    def __init__(self, references: Sequence[ReferenceVector] = ()):
        self._lock = threading.Lock()
        self._references: Dict[str, ReferenceVector] = {}
        if references:
            self.upsert(references)

    @property
    def name(self) -> str:
        return "memory"

    def is_ready(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._references)

    def upsert(self, references: Sequence[ReferenceVector]) -> int:
        with self._lock:
            for ref in references:
                self._references[ref.id] = ref
        return len(references)

    def query(self, vector: Sequence[float], top_k: int) -> List[RawMatch]:
        with self._lock:
            refs = list(self._references.values())
        if not refs:
            return []

        query = np.asarray(vector, dtype=np.float64)
        matrix = np.asarray([ref.values for ref in refs], dtype=np.float64)
        if matrix.shape[1] != query.shape[0]:
            raise ValueError(f"Query has {query.shape[0]} dimensions, index has {matrix.shape[1]}")

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)

        # Stable sort keeps insertion order among ties
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            (refs[i].id, float(scores[i]), dict(refs[i].metadata))
            for i in order
        ]
