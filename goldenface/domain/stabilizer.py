"""
Temporal stabilizer: sliding window of per-frame ratios -> averaged ratios
"""
import logging
import math
from collections import deque
from typing import Any, Iterable, Optional

from .errors import InsufficientSamplesError
from .geometry import parse_frame, reduce
from .models import RatioSet

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10
DEFAULT_MIN_SAMPLES = 5


def stabilize(samples: Iterable[RatioSet], min_samples: int = DEFAULT_MIN_SAMPLES) -> RatioSet:
    """Per-key arithmetic mean over the samples.

    Raises InsufficientSamplesError when fewer than min_samples are given.
    """
    samples = list(samples)
    if len(samples) < min_samples or not samples:
        raise InsufficientSamplesError(len(samples), min_samples)

    columns = zip(*(s.values() for s in samples))
    return RatioSet.from_values([math.fsum(col) / len(samples) for col in columns])


class RatioBuffer:
    """Fixed-capacity FIFO of the most recent per-frame ratio sets"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, min_samples: int = DEFAULT_MIN_SAMPLES):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if not 1 <= min_samples <= capacity:
            raise ValueError("min_samples must be between 1 and capacity")
        self.capacity = capacity
        self.min_samples = min_samples
        self._samples = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)

    def push(self, ratios: RatioSet) -> None:
        """Append, evicting the oldest entry once full"""
        self._samples.append(ratios)

    def clear(self) -> None:
        self._samples.clear()

    def is_ready(self) -> bool:
        return len(self._samples) >= self.min_samples

    def stabilize(self) -> RatioSet:
        return stabilize(self._samples, self.min_samples)


class CaptureSession:
    """One capture session; owns its buffer exclusively"""

    def __init__(self, buffer: Optional[RatioBuffer] = None):
        self.buffer = buffer if buffer is not None else RatioBuffer()
        self.frames_seen = 0
        self.frames_dropped = 0

    def start(self) -> None:
        """Reset for a new capture"""
        self.buffer.clear()
        self.frames_seen = 0
        self.frames_dropped = 0

    def on_frame(self, frame: Any) -> Optional[RatioSet]:
        """Reduce one detector frame and buffer it.

        Returns the frame's ratios, or None when no usable face was found.
        """
        self.frames_seen += 1
        try:
            ratios = reduce(parse_frame(frame))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Dropping malformed frame {self.frames_seen}: {e}")
            ratios = None

        if ratios is None:
            self.frames_dropped += 1
            return None

        self.buffer.push(ratios)
        return ratios

    def finish(self) -> RatioSet:
        """Stabilized ratios for the session so far"""
        logger.debug(
            f"Stabilizing session: {len(self.buffer)} buffered, "
            f"{self.frames_dropped}/{self.frames_seen} frames dropped"
        )
        return self.buffer.stabilize()
