"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from goldenface.domain.geometry import LANDMARK_INDICES
from goldenface.domain.models import LandmarkPoint, RatioSet, ReferenceVector


# Front-facing face: faceStructure 1.6, ruleOfFifths 1.0, nasalOral 1.6,
# verticalThirds 1.0, symmetry 1.0
FACE_POINTS = {
    "foreheadTop": (0.5, 0.1),
    "chin": (0.5, 0.9),
    "leftCheekbone": (0.25, 0.5),
    "rightCheekbone": (0.75, 0.5),
    "leftEyeOuter": (0.25, 0.4),
    "leftEyeInner": (0.4, 0.4),
    "rightEyeInner": (0.55, 0.4),
    "rightEyeOuter": (0.7, 0.4),
    "noseTip": (0.5, 0.5),
    "noseBottom": (0.5, 0.5),
    "noseLeft": (0.45, 0.55),
    "noseRight": (0.55, 0.55),
    "mouthLeft": (0.42, 0.7),
    "mouthRight": (0.58, 0.7),
}

IDEAL_RATIOS = {
    "faceStructure": 1.618,
    "ruleOfFifths": 1.0,
    "nasalOral": 1.618,
    "verticalThirds": 1.0,
    "symmetry": 1.0,
}


def make_landmarks(overrides=None, z=0.0):
    """Named landmark mapping, optionally with some points moved."""
    points = dict(FACE_POINTS)
    points.update(overrides or {})
    return {name: LandmarkPoint(x, y, z) for name, (x, y) in points.items()}


def make_frame(overrides=None):
    """Wire-format frame (named mapping of {x, y, z} dicts)."""
    return {
        name: {"x": p.x, "y": p.y, "z": p.z}
        for name, p in make_landmarks(overrides).items()
    }


def make_mesh(overrides=None, size=478):
    """Full detector mesh with the named points at their indices."""
    mesh = [{"x": 0.0, "y": 0.0, "z": 0.0} for _ in range(size)]
    for name, point in make_frame(overrides).items():
        mesh[LANDMARK_INDICES[name]] = point
    return mesh


@pytest.fixture
def landmarks():
    return make_landmarks()


@pytest.fixture
def ideal_ratios():
    return RatioSet.from_dict(IDEAL_RATIOS)


@pytest.fixture
def references():
    return [
        ReferenceVector("golden", (1.618, 1.0, 1.618, 1.0, 1.0), {"name": "Golden", "description": "Balanced"}),
        ReferenceVector("long", (1.9, 1.1, 1.4, 0.9, 0.95), {"name": "Long"}),
        ReferenceVector("wide", (1.3, 0.8, 1.7, 1.2, 0.9), {"name": "Wide"}),
    ]


class FixedClock:
    """Controllable clock for persistence tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock()
