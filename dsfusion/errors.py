"""
Error types for dsfusion.

Every failure the combination engine can report is an EvidenceError subclass
carrying an ErrorKind, so callers can branch on the kind (directly, or through
combination.try_combine) instead of matching exception classes.
"""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of deterministic evidence/combination failures."""
    COMBINATION_NOT_POSSIBLE = "combination_not_possible"
    TOTAL_CONFLICT = "total_conflict"
    INVALID_RESULT = "invalid_result"
    MALFORMED_FRAME = "malformed_frame"
    DEGENERATE_DISTANCE = "degenerate_distance"
    INVALID_DISTRIBUTION = "invalid_distribution"


class EvidenceError(Exception):
    """Base class for all dsfusion evidence errors."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CombinationNotPossible(EvidenceError):
    """Fewer than two mass distributions were supplied."""
    kind = ErrorKind.COMBINATION_NOT_POSSIBLE


class TotalConflict(EvidenceError):
    """Dempster's conflict mass reached 1, so 1 - K cannot normalize."""
    kind = ErrorKind.TOTAL_CONFLICT


class InvalidResult(EvidenceError):
    """A combined distribution does not sum to 1 within tolerance."""
    kind = ErrorKind.INVALID_RESULT


class MalformedFrame(EvidenceError):
    """A hypothesis is absent from the frame, or inputs disagree on it."""
    kind = ErrorKind.MALFORMED_FRAME


class DegenerateDistance(EvidenceError):
    """A distribution without focal elements reached the scalar product."""
    kind = ErrorKind.DEGENERATE_DISTANCE


class InvalidDistribution(EvidenceError):
    """A distribution could not be built from the supplied focal elements."""
    kind = ErrorKind.INVALID_DISTRIBUTION
