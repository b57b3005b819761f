"""
Domain errors
"""


class GoldenFaceError(Exception):
    """Base class for service errors"""


class InsufficientSamplesError(GoldenFaceError):
    """Too few stable frames were buffered to produce a result"""

    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(
            f"Insufficient samples: {count} of {required} required. "
            "Ensure good lighting and face the camera directly."
        )


class VectorServiceError(GoldenFaceError):
    """The vector similarity service failed or is unreachable"""


class PersistenceError(GoldenFaceError):
    """A record or statistics write/read failed"""
