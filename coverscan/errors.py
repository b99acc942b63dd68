"""Error kinds reported by the scanning pipeline."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """What went wrong during a scan."""

    DETECTION_UNAVAILABLE = "detection_unavailable"
    NO_CONTOUR_FOUND = "no_contour_found"
    INVALID_QUAD = "invalid_quad"
    RECTIFICATION_FAILED = "rectification_failed"


class ScanError(Exception):
    """Base class for errors surfaced to the caller of a scan."""

    kind: ErrorKind = ErrorKind.RECTIFICATION_FAILED

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class InvalidQuad(ScanError):
    """The corners do not describe a rectifiable region."""

    kind = ErrorKind.INVALID_QUAD


class RectificationFailed(ScanError):
    """Neither rectification path could produce an image."""

    kind = ErrorKind.RECTIFICATION_FAILED


class InvalidStateError(RuntimeError):
    """An operation was requested in a session state that does not allow it."""
