"""Composite jobs: request/result model, errors and the runner."""

from .errors import (
    ErrorKind,
    CompositeError,
    InvalidMaskError,
    EmptyRegionError,
    MaterialUnavailableError,
    InvalidStrengthError,
    EncodingFailureError,
    CalibrationError,
)

__all__ = [
    "ErrorKind",
    "CompositeError",
    "InvalidMaskError",
    "EmptyRegionError",
    "MaterialUnavailableError",
    "InvalidStrengthError",
    "EncodingFailureError",
    "CalibrationError",
]
