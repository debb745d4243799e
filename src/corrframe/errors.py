"""Exception types raised while converting a fixed-format HDF5 group."""

from __future__ import annotations


class LayoutError(ValueError):
    """Base class for malformed block/axis layouts."""


class ShapeMismatchError(LayoutError):
    """Real and imaginary block parts do not share one shape."""


class InvalidShapeError(LayoutError):
    """Block array cannot be reshaped into per-channel payload matrices."""


class SchemaError(LayoutError):
    """Required keys are missing or level/label arrays are inconsistent."""


class LabelIndexError(LayoutError, IndexError):
    """A label points outside its level array."""


__all__ = [
    "InvalidShapeError",
    "LabelIndexError",
    "LayoutError",
    "SchemaError",
    "ShapeMismatchError",
]
