"""Input validation helpers shared across the package."""

from __future__ import annotations

import numpy as np

from corrframe.errors import InvalidShapeError, SchemaError


def as_1d_array(values: np.ndarray, name: str, *, dtype: np.dtype | None = None) -> np.ndarray:
    """Return a validated 1D NumPy array (empty arrays are allowed)."""

    array = np.asarray(values, dtype=dtype)
    if array.ndim != 1:
        raise SchemaError(f"{name} must be a 1D array, got shape {array.shape}.")
    return array


def as_2d_array(values: np.ndarray, name: str, *, dtype: np.dtype | None = None) -> np.ndarray:
    """Return a validated non-empty 2D NumPy array."""

    array = np.asarray(values, dtype=dtype)
    if array.ndim != 2:
        raise InvalidShapeError(
            f"{name} must be a 2D array with shape (num_channels, flat_length), got {array.shape}."
        )
    if array.shape[0] == 0 or array.shape[1] == 0:
        raise InvalidShapeError(f"{name} cannot have empty dimensions.")
    return array


def as_label_array(values: np.ndarray, name: str, *, length: int) -> np.ndarray:
    """Return a 1D integer label array of exactly ``length`` entries."""

    array = as_1d_array(values, name)
    if array.shape[0] != length:
        raise SchemaError(f"{name} has length {array.shape[0]}, expected {length} (num_channels).")
    if array.size and not np.issubdtype(array.dtype, np.integer):
        raise SchemaError(f"{name} must hold integer labels, got dtype {array.dtype}.")
    return array.astype(np.int64, copy=False)


def as_positive_int(value: object, name: str) -> int:
    """Return ``value`` as a positive int, rejecting bools and fractional numbers."""

    if isinstance(value, (bool, np.bool_)):
        raise InvalidShapeError(f"{name} must be a positive integer, got {value!r}.")
    if isinstance(value, (int, np.integer)):
        result = int(value)
    elif isinstance(value, (float, np.floating)) and float(value).is_integer():
        result = int(value)
    else:
        raise InvalidShapeError(f"{name} must be a positive integer, got {value!r}.")
    if result <= 0:
        raise InvalidShapeError(f"{name} must be a positive integer, got {result}.")
    return result


__all__ = ["as_1d_array", "as_2d_array", "as_label_array", "as_positive_int"]
