"""
Error taxonomy for the flight planning core.

Every failure raised by this package carries an ``ErrorKind`` so the
presentation layer can tell "nothing to show" apart from "the input was
invalid" without parsing messages.

    - NO_REFERENCE_FRAME: conversion requested before an origin exists
    - INVALID_GEOMETRY: degenerate polygon, radius or wall input
    - INVALID_OPTICS_INPUT: non-positive or non-finite optics parameters
    - EMPTY_PATTERN: valid geometry that produced zero waypoints
"""

from enum import Enum


class ErrorKind(Enum):
    """Machine-readable category attached to every planning error."""
    NO_REFERENCE_FRAME = "NoReferenceFrame"
    INVALID_GEOMETRY = "InvalidGeometry"
    INVALID_OPTICS_INPUT = "InvalidOpticsInput"
    EMPTY_PATTERN = "EmptyPattern"


class GeoflightError(ValueError):
    """Base class for all planning errors."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class NoReferenceFrameError(GeoflightError):
    """Raised when a local/global conversion is requested with no origin set."""
    kind = ErrorKind.NO_REFERENCE_FRAME


class InvalidGeometryError(GeoflightError):
    """Raised for malformed pattern geometry."""
    kind = ErrorKind.INVALID_GEOMETRY


class InvalidOpticsInputError(GeoflightError):
    """Raised for camera/lens parameters that cannot produce a finite result."""
    kind = ErrorKind.INVALID_OPTICS_INPUT


class EmptyPatternError(GeoflightError):
    """Raised when valid geometry yields no waypoints."""
    kind = ErrorKind.EMPTY_PATTERN
