"""
Scoring and face-shape classification
"""
from typing import Callable, List, Optional, Tuple

from .geometry import round_half_up
from .models import (
    RATIO_KEYS,
    RATIO_NAMES,
    FaceShape,
    RatioComparison,
    RatioSet,
    ScoreSet,
    ScoringConfig,
)

DEFAULT_SCORING = ScoringConfig()

# Evaluated top to bottom, first match wins. The order matters at the
# boundaries: faceStructure in (1.68, 1.75] only reaches the Heart/Diamond rules.
CLASSIFICATION_RULES: Tuple[Tuple[Callable[[RatioSet], bool], FaceShape], ...] = (
    (lambda r: 1.55 <= r.face_structure <= 1.68, FaceShape.OVAL),
    (lambda r: r.face_structure < 1.35, FaceShape.ROUND),
    (lambda r: r.face_structure < 1.55, FaceShape.SQUARE),
    (lambda r: r.face_structure > 1.75, FaceShape.OBLONG),
    (lambda r: r.vertical_thirds > 1.15, FaceShape.HEART),
)
FALLBACK_SHAPE = FaceShape.DIAMOND


def score_ratio(actual: float, ideal: float, sensitivity: float = DEFAULT_SCORING.sensitivity) -> float:
    """Linear decay from 100 at the ideal, floored at 0 past ideal/sensitivity"""
    deviation = abs(actual - ideal) / ideal
    return round_half_up(max(0.0, 100 * (1 - sensitivity * deviation)), 1)


def score(ratios: Optional[RatioSet], config: ScoringConfig = DEFAULT_SCORING) -> Optional[ScoreSet]:
    """Per-ratio scores and their weighted total; None without input"""
    if ratios is None:
        return None

    values = ratios.to_dict()
    individual = {
        key: score_ratio(values[key], config.ideals[key], config.sensitivity)
        for key in RATIO_KEYS
    }
    total = sum(individual[key] * config.weights[key] for key in RATIO_KEYS)
    return ScoreSet(individual=individual, total=round_half_up(total, 1))


def classify(ratios: Optional[RatioSet]) -> FaceShape:
    if ratios is None:
        return FaceShape.UNKNOWN

    for predicate, shape in CLASSIFICATION_RULES:
        if predicate(ratios):
            return shape
    return FALLBACK_SHAPE


def compare_to_ideal(ratios: Optional[RatioSet], config: ScoringConfig = DEFAULT_SCORING) -> List[RatioComparison]:
    """Deviation of each ratio from its ideal, in canonical order"""
    if ratios is None:
        return []

    values = ratios.to_dict()
    comparison = []
    for key in RATIO_KEYS:
        ideal = config.ideals[key]
        deviation = abs(values[key] - ideal)
        comparison.append(RatioComparison(
            key=key,
            name=RATIO_NAMES[key],
            actual=values[key],
            ideal=ideal,
            deviation=round_half_up(deviation, 3),
            deviation_percent=round_half_up(deviation / ideal * 100, 1),
        ))
    return comparison
