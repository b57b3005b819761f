"""
Embedding vectors for similarity search
"""
from typing import Sequence

import numpy as np

from .models import EmbeddingVector, RatioSet


def embed(ratios: RatioSet) -> EmbeddingVector:
    """Raw ratios in canonical order; no scaling is applied"""
    return tuple(float(v) for v in ratios.values())


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """(a . b) / (|a| |b|)"""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.ndim != 1:
        raise ValueError(f"Vectors must be 1-D and of equal length, got {va.shape} and {vb.shape}")

    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        raise ValueError("Cosine similarity is undefined for a zero vector")
    return float(np.dot(va, vb) / denom)
