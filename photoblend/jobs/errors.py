"""
Typed failures of the compositing pipeline.

Every stage raises one of these immediately; the job runner is the only place
that turns them into a failed ``CompositeResult``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    INVALID_MASK = "InvalidMask"
    EMPTY_REGION = "EmptyRegion"
    MATERIAL_UNAVAILABLE = "MaterialUnavailable"
    INVALID_STRENGTH = "InvalidStrength"
    ENCODING_FAILURE = "EncodingFailure"
    INTERNAL = "Internal"


class CompositeError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={self.message!r})"


class InvalidMaskError(CompositeError):
    """Fewer than 3 vertices, coincident neighbours, or non-finite coordinates."""

    kind = ErrorKind.INVALID_MASK


class EmptyRegionError(CompositeError):
    """The mask covers no photo pixel at or above the alpha threshold."""

    kind = ErrorKind.EMPTY_REGION


class MaterialUnavailableError(CompositeError):
    """The reference texture could not be fetched, decoded or scaled."""

    kind = ErrorKind.MATERIAL_UNAVAILABLE


class InvalidStrengthError(CompositeError):
    kind = ErrorKind.INVALID_STRENGTH


class EncodingFailureError(CompositeError):
    kind = ErrorKind.ENCODING_FAILURE


class CalibrationError(ValueError):
    """Reference measurement is too short or too small to calibrate from."""
