"""
Domain models/entities
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Golden ratio
PHI = 1.618033988749895

# Canonical ratio order (wire keys)
RATIO_KEYS = (
    "faceStructure",
    "ruleOfFifths",
    "nasalOral",
    "verticalThirds",
    "symmetry",
)

RATIO_NAMES = {
    "faceStructure": "Face Structure",
    "ruleOfFifths": "Rule of Fifths",
    "nasalOral": "Nasal-Oral",
    "verticalThirds": "Vertical Thirds",
    "symmetry": "Symmetry",
}

EmbeddingVector = Tuple[float, float, float, float, float]


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round halves away from -inf, like Math.round"""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


class FaceShape(str, Enum):
    """Face shape classification"""
    OVAL = "Oval"
    SQUARE = "Square"
    ROUND = "Round"
    OBLONG = "Oblong"
    HEART = "Heart"
    DIAMOND = "Diamond"
    UNKNOWN = "Unknown"

    @classmethod
    def classified(cls) -> List["FaceShape"]:
        """Labels that a real classification can produce"""
        return [shape for shape in cls if shape is not cls.UNKNOWN]


@dataclass(frozen=True)
class LandmarkPoint:
    """Normalized image-space landmark (z is ignored for planar ratios)"""
    x: float
    y: float
    z: float = 0.0

    def __post_init__(self):
        if not all(math.isfinite(c) for c in (self.x, self.y, self.z)):
            raise ValueError(f"Landmark coordinates must be finite, got ({self.x}, {self.y}, {self.z})")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LandmarkPoint":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            z=float(data.get("z", 0.0) or 0.0),
        )


@dataclass(frozen=True)
class RatioSet:
    """Five dimensionless facial ratios (per frame or stabilized)"""
    face_structure: float
    rule_of_fifths: float
    nasal_oral: float
    vertical_thirds: float
    symmetry: float

    def values(self) -> Tuple[float, ...]:
        """Values in canonical key order"""
        return (
            self.face_structure,
            self.rule_of_fifths,
            self.nasal_oral,
            self.vertical_thirds,
            self.symmetry,
        )

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for JSON serialization"""
        return dict(zip(RATIO_KEYS, self.values()))

    @classmethod
    def from_values(cls, values) -> "RatioSet":
        face_structure, rule_of_fifths, nasal_oral, vertical_thirds, symmetry = values
        return cls(
            face_structure=face_structure,
            rule_of_fifths=rule_of_fifths,
            nasal_oral=nasal_oral,
            vertical_thirds=vertical_thirds,
            symmetry=symmetry,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RatioSet":
        """Build from wire keys, validating every value"""
        if not isinstance(data, Mapping):
            raise ValueError("ratios must be an object")

        missing = [key for key in RATIO_KEYS if data.get(key) is None]
        if missing:
            raise ValueError(f"Missing ratio values: {', '.join(missing)}")

        values = []
        for key in RATIO_KEYS:
            raw = data[key]
            if isinstance(raw, bool):
                raise ValueError(f"Ratio {key} must be a number")
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"Ratio {key} must be a number")
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"Ratio {key} must be a positive number")
            values.append(value)

        if values[-1] > 1.0:
            raise ValueError("Ratio symmetry must be in (0, 1]")

        return cls.from_values(values)


@dataclass(frozen=True)
class ScoringConfig:
    """Ideal targets, weights and sensitivity used by the scoring engine"""
    ideals: Dict[str, float] = field(default_factory=lambda: {
        "faceStructure": PHI,
        "ruleOfFifths": 1.0,
        "nasalOral": PHI,
        "verticalThirds": 1.0,
        "symmetry": 1.0,
    })
    weights: Dict[str, float] = field(default_factory=lambda: {
        "faceStructure": 0.25,
        "ruleOfFifths": 0.20,
        "nasalOral": 0.20,
        "verticalThirds": 0.15,
        "symmetry": 0.20,
    })
    sensitivity: float = 3.0

    def __post_init__(self):
        if set(self.ideals) != set(RATIO_KEYS) or set(self.weights) != set(RATIO_KEYS):
            raise ValueError(f"ideals and weights must cover exactly {RATIO_KEYS}")
        if any(target <= 0 for target in self.ideals.values()):
            raise ValueError("ideal targets must be positive")
        if not math.isclose(sum(self.weights.values()), 1.0, abs_tol=1e-9):
            raise ValueError("weights must sum to 1.0")
        if self.sensitivity <= 0:
            raise ValueError("sensitivity must be positive")


@dataclass(frozen=True)
class ScoreSet:
    """Per-ratio scores and the weighted total (all 0-100)"""
    individual: Dict[str, float]
    total: float

    def to_dict(self) -> dict:
        return {
            "individual": dict(self.individual),
            "total": self.total,
        }


@dataclass(frozen=True)
class RatioComparison:
    """One ratio against its ideal target, for display"""
    key: str
    name: str
    actual: float
    ideal: float
    deviation: float
    deviation_percent: float

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "actual": self.actual,
            "ideal": self.ideal,
            "deviation": self.deviation,
            "deviationPercent": self.deviation_percent,
        }


@dataclass(frozen=True)
class ReferenceVector:
    """Precomputed reference entry stored in the vector index"""
    id: str
    values: EmbeddingVector
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "values": list(self.values),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class MatchResult:
    """Ranked reference returned by a similarity query"""
    rank: int
    reference_id: str
    similarity: int  # integer percentage
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.get("name") or "Unknown"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "rank": self.rank,
            "id": self.reference_id,
            "name": self.name,
            "similarity": self.similarity,
            "description": self.metadata.get("description", ""),
            "advice": self.metadata.get("advice", ""),
            "imageUrl": self.metadata.get("imageUrl"),
            "metadata": dict(self.metadata),
        }


SCORE_BUCKETS = ("0-20", "21-40", "41-60", "61-80", "81-100")


@dataclass
class GlobalStats:
    """Aggregate statistics singleton"""
    total_scans: int = 0
    score_sum: float = 0.0
    average_score: float = 0.0
    shape_distribution: Dict[str, int] = field(
        default_factory=lambda: {shape.value: 0 for shape in FaceShape.classified()}
    )
    score_distribution: Dict[str, int] = field(
        default_factory=lambda: {bucket: 0 for bucket in SCORE_BUCKETS}
    )
    last_updated: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Optional[Mapping[str, Any]]) -> "GlobalStats":
        """Build from a store document, filling absent counters with zero"""
        stats = cls()
        if not doc:
            return stats

        stats.total_scans = int(doc.get("totalScans", 0))
        stats.score_sum = float(doc.get("scoreSum", 0.0))
        stats.average_score = float(doc.get("averageScore", 0.0))
        for shape, count in (doc.get("shapeDistribution") or {}).items():
            stats.shape_distribution[shape] = int(count)
        for bucket, count in (doc.get("scoreDistribution") or {}).items():
            stats.score_distribution[bucket] = int(count)
        stats.last_updated = doc.get("lastUpdated")
        return stats

    def to_dict(self) -> dict:
        return {
            "totalScans": self.total_scans,
            "averageScore": round_half_up(self.average_score, 1),
            "shapeDistribution": dict(self.shape_distribution),
            "scoreDistribution": dict(self.score_distribution),
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass
class ScanRecord:
    """Persisted result of one completed analysis (no imagery)"""
    scan_id: str
    device_id: str
    ratios: RatioSet
    total_score: float
    face_shape: FaceShape
    created_at: datetime
    expire_at: datetime
    celebrity_match: Optional[Dict[str, Any]] = None

    @classmethod
    def create(
        cls,
        scan_id: str,
        device_id: str,
        ratios: RatioSet,
        total_score: float,
        face_shape: FaceShape,
        now: datetime,
        ttl_days: int = 7,
        celebrity_match: Optional[Dict[str, Any]] = None,
    ) -> "ScanRecord":
        return cls(
            scan_id=scan_id,
            device_id=device_id,
            ratios=ratios,
            total_score=total_score,
            face_shape=face_shape,
            created_at=now,
            expire_at=now + timedelta(days=ttl_days),
            celebrity_match=celebrity_match,
        )

    def to_document(self) -> dict:
        """Store representation"""
        return {
            "_id": self.scan_id,
            "deviceId": self.device_id,
            "ratios": self.ratios.to_dict(),
            "results": {
                "totalScore": self.total_score,
                "faceShape": self.face_shape.value,
                "celebrityMatch": self.celebrity_match,
            },
            "createdAt": self.created_at,
            "expireAt": self.expire_at,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ScanRecord":
        results = doc.get("results") or {}
        return cls(
            scan_id=str(doc["_id"]),
            device_id=doc["deviceId"],
            ratios=RatioSet.from_dict(doc["ratios"]),
            total_score=float(results["totalScore"]),
            face_shape=FaceShape(results["faceShape"]),
            created_at=doc["createdAt"],
            expire_at=doc["expireAt"],
            celebrity_match=results.get("celebrityMatch"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.scan_id,
            "deviceId": self.device_id,
            "ratios": self.ratios.to_dict(),
            "results": {
                "totalScore": self.total_score,
                "faceShape": self.face_shape.value,
                "celebrityMatch": self.celebrity_match,
            },
            "createdAt": self.created_at.isoformat(),
            "expireAt": self.expire_at.isoformat(),
        }


@dataclass
class AnalysisResult:
    """Result of one completed analysis"""
    ratios: RatioSet
    scores: ScoreSet
    face_shape: FaceShape
    comparison: List[RatioComparison] = field(default_factory=list)
    matches: Optional[List[MatchResult]] = None
    match_status: str = "skipped"  # ok, empty, unavailable, skipped
    scan_id: Optional[str] = None
    persisted: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def top_match(self) -> Optional[MatchResult]:
        return self.matches[0] if self.matches else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "ratios": self.ratios.to_dict(),
            "scores": self.scores.to_dict(),
            "faceShape": self.face_shape.value,
            "comparison": [c.to_dict() for c in self.comparison],
            "matches": [m.to_dict() for m in self.matches] if self.matches is not None else None,
            "topMatch": self.top_match.to_dict() if self.top_match else None,
            "matchStatus": self.match_status,
            "scanId": self.scan_id,
            "persisted": self.persisted,
            "warnings": list(self.warnings),
        }


@dataclass
class HealthStatus:
    """Service health status"""
    status: str
    vector_index: str
    store: str
    version: str

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "vectorIndex": self.vector_index,
            "store": self.store,
            "version": self.version,
        }
