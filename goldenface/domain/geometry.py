"""
Ratio reducer: facial landmarks -> five dimensionless ratios
"""
import math
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .models import LandmarkPoint, RatioSet, round_half_up

# MediaPipe FaceMesh indices for the named landmarks
LANDMARK_INDICES = {
    # Eyes
    "leftEyeOuter": 33,
    "leftEyeInner": 133,
    "rightEyeInner": 362,
    "rightEyeOuter": 263,
    # Nose
    "noseTip": 1,
    "noseBottom": 2,
    "noseLeft": 129,
    "noseRight": 358,
    # Mouth
    "mouthLeft": 61,
    "mouthRight": 291,
    # Face structure
    "chin": 152,
    "foreheadTop": 10,
    "leftCheekbone": 234,
    "rightCheekbone": 454,
}

REQUIRED_LANDMARKS = tuple(LANDMARK_INDICES)

Landmarks = Mapping[str, LandmarkPoint]


def distance_2d(p1: LandmarkPoint, p2: LandmarkPoint) -> float:
    """Planar distance; depth is ignored because z estimates are noisy"""
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def _as_point(value: Any) -> Optional[LandmarkPoint]:
    if value is None:
        return None
    if isinstance(value, LandmarkPoint):
        return value
    if isinstance(value, Mapping):
        return LandmarkPoint.from_dict(value)
    # [x, y] or [x, y, z]
    return LandmarkPoint(*(float(v) for v in value))


def extract_landmarks(mesh: Sequence[Any]) -> Optional[Dict[str, LandmarkPoint]]:
    """Pick the named landmarks out of a full ordered mesh.

    Returns None when the mesh is empty or too short to contain them.
    """
    if not mesh:
        return None

    needed = max(LANDMARK_INDICES.values())
    if len(mesh) <= needed:
        return None

    points = {}
    for name, index in LANDMARK_INDICES.items():
        point = _as_point(mesh[index])
        if point is None:
            return None
        points[name] = point
    return points


def parse_frame(frame: Union[None, Mapping[str, Any], Sequence[Any]]) -> Optional[Dict[str, LandmarkPoint]]:
    """Normalize one detector frame into named landmarks.

    A frame is None (no face), a mapping of landmark name to point, or the
    detector's full ordered point list.
    """
    if frame is None:
        return None
    if isinstance(frame, Mapping):
        points = {}
        for name in REQUIRED_LANDMARKS:
            point = _as_point(frame.get(name))
            if point is None:
                return None
            points[name] = point
        return points
    return extract_landmarks(frame)


def reduce(landmarks: Optional[Landmarks]) -> Optional[RatioSet]:
    """Compute the five facial ratios from named landmarks.

    Returns None when a landmark is missing or the geometry is degenerate
    (zero-length reference distance); callers treat that as no face detected
    this frame.
    """
    if not landmarks:
        return None
    if any(landmarks.get(name) is None for name in REQUIRED_LANDMARKS):
        return None

    lm = landmarks

    # Face length (forehead to chin) over zygomatic width
    face_length = distance_2d(lm["foreheadTop"], lm["chin"])
    face_width = distance_2d(lm["leftCheekbone"], lm["rightCheekbone"])

    # Inner-corner gap over average eye width
    inter_eye = distance_2d(lm["leftEyeInner"], lm["rightEyeInner"])
    left_eye_width = distance_2d(lm["leftEyeOuter"], lm["leftEyeInner"])
    right_eye_width = distance_2d(lm["rightEyeOuter"], lm["rightEyeInner"])
    avg_eye_width = (left_eye_width + right_eye_width) / 2

    mouth_width = distance_2d(lm["mouthLeft"], lm["mouthRight"])
    nose_width = distance_2d(lm["noseLeft"], lm["noseRight"])

    forehead_height = distance_2d(lm["foreheadTop"], lm["noseTip"])
    lower_face_height = distance_2d(lm["noseBottom"], lm["chin"])

    # Cheekbone offsets from the nose-chin midline
    center_x = (lm["noseTip"].x + lm["chin"].x) / 2
    left_offset = abs(lm["leftCheekbone"].x - center_x)
    right_offset = abs(lm["rightCheekbone"].x - center_x)

    denominators = (face_width, avg_eye_width, nose_width, lower_face_height, max(left_offset, right_offset))
    if any(d <= 0 for d in denominators):
        return None

    ratios = (
        face_length / face_width,
        inter_eye / avg_eye_width,
        mouth_width / nose_width,
        forehead_height / lower_face_height,
        min(left_offset, right_offset) / max(left_offset, right_offset),
    )
    # Huge finite coordinates can still overflow a distance
    if not all(math.isfinite(r) for r in ratios):
        return None

    rounded = [round_half_up(r, 3) for r in ratios]

    if any(r <= 0 for r in rounded):
        return None

    return RatioSet.from_values(rounded)
