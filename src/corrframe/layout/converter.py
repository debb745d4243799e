"""Convert a pandas fixed-format block group into a channel table.

The source group stores one frame as a contiguous ``block0_values`` array of
shape ``(num_channels, flat_length)`` (optionally split into ``.r``/``.i``
parts) plus a column MultiIndex encoded as ``axis1_level<i>`` level arrays and
zero-based ``axis1_label<i>`` code arrays. Each channel's flat vector lists
every time slice of configuration 0, then every time slice of configuration 1,
and so on, i.e. it is the column-major fill of a ``(time_extent,
configurations)`` matrix.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
import pandas as pd

from corrframe.dataio.schema import (
    DEFAULT_COLUMN_PREFIX,
    DEFAULT_PAYLOAD_COLUMN,
    DEFAULT_TIME_LEVEL_KEY,
    discover_metadata_dimensions,
    label_key,
    level_key,
    split_block_keys,
    table_columns,
)
from corrframe.errors import InvalidShapeError, LabelIndexError, SchemaError, ShapeMismatchError
from corrframe.utils.validation import as_1d_array, as_2d_array, as_label_array, as_positive_int

PayloadRows = Literal["configurations", "time_slices"]
PAYLOAD_ROWS_OPTIONS: tuple[str, ...] = ("configurations", "time_slices")


def combine_block_parts(raw_group: Mapping[str, Any]) -> np.ndarray:
    """Return the complex ``(num_channels, flat_length)`` payload block.

    ``block0_values.r`` and ``block0_values.i`` are recombined as ``r + i*1j``.
    A lone ``block0_values`` dataset is accepted as-is (real or complex).
    """

    real_key, imag_key = split_block_keys(raw_group)
    real_raw = raw_group[real_key]
    if imag_key is None:
        block = _as_numeric_block(real_raw, real_key)
        return block.astype(np.complex128)

    imag_raw = raw_group[imag_key]
    real_shape = np.shape(real_raw)
    imag_shape = np.shape(imag_raw)
    if real_shape != imag_shape:
        raise ShapeMismatchError(
            f"{real_key} has shape {real_shape} but {imag_key} has shape {imag_shape}."
        )
    real = _as_numeric_block(real_raw, real_key)
    imag = _as_numeric_block(imag_raw, imag_key)
    if np.iscomplexobj(real) or np.iscomplexobj(imag):
        raise SchemaError(f"{real_key} and {imag_key} must both be real-valued.")

    block = np.empty(real.shape, dtype=np.complex128)
    block.real = real
    block.imag = imag
    return block


def split_payloads(
    block: np.ndarray,
    *,
    time_extent: int,
    payload_rows: PayloadRows = "configurations",
) -> np.ndarray:
    """Split each block row into one payload matrix.

    Returns a 1D object array of ``num_channels`` independent complex matrices
    shaped ``(configurations, time_extent)``, or ``(time_extent,
    configurations)`` when ``payload_rows="time_slices"``.
    """

    values = as_2d_array(block, "block")
    extent = as_positive_int(time_extent, "time_extent")
    _validate_payload_rows(payload_rows)

    num_channels, flat_length = values.shape
    if flat_length % extent != 0:
        raise InvalidShapeError(
            f"flat_length {flat_length} is not divisible by time_extent {extent}."
        )
    configurations = flat_length // extent

    # Column-major fill of (time, configuration) then transpose equals a
    # row-major reshape to (configuration, time).
    matrices = values.reshape(num_channels, configurations, extent)
    if payload_rows == "time_slices":
        matrices = matrices.transpose(0, 2, 1)

    cells = np.empty(num_channels, dtype=object)
    for channel in range(num_channels):
        cells[channel] = np.array(matrices[channel], copy=True, order="C")
    return cells


def validate_factor(
    levels: Any,
    labels: Any,
    *,
    num_channels: int,
    levels_name: str = "levels",
    labels_name: str = "labels",
) -> tuple[pd.Index, np.ndarray]:
    """Return ``(categories, codes)`` after the schema checks for one dimension.

    Label values are not range-checked here.
    """

    categories = pd.Index(as_1d_array(levels, levels_name))
    codes = as_label_array(labels, labels_name, length=num_channels)
    if categories.hasnans:
        raise SchemaError(f"{levels_name} contains missing values.")
    if not categories.is_unique:
        duplicated = categories[categories.duplicated()].unique().tolist()
        raise SchemaError(f"{levels_name} contains duplicate levels: {duplicated}.")
    return categories, codes


def resolve_factor(
    levels: Any,
    labels: Any,
    *,
    num_channels: int,
    levels_name: str = "levels",
    labels_name: str = "labels",
) -> pd.Categorical:
    """Build a categorical column from a level array and zero-based labels.

    The categories are the full level array in stored order, so levels that no
    channel uses are kept.
    """

    categories, codes = validate_factor(
        levels,
        labels,
        num_channels=num_channels,
        levels_name=levels_name,
        labels_name=labels_name,
    )
    return _factor_from_codes(categories, codes, levels_name=levels_name, labels_name=labels_name)


def _factor_from_codes(
    categories: pd.Index,
    codes: np.ndarray,
    *,
    levels_name: str,
    labels_name: str,
) -> pd.Categorical:
    out_of_range = (codes < 0) | (codes >= len(categories))
    if np.any(out_of_range):
        channel = int(np.flatnonzero(out_of_range)[0])
        raise LabelIndexError(
            f"{labels_name}[{channel}] = {int(codes[channel])} is out of range for "
            f"{levels_name} with {len(categories)} levels."
        )
    return pd.Categorical.from_codes(codes, categories=categories)


@dataclass(frozen=True)
class LayoutConverter:
    """Row-per-channel converter for one fixed-format block group.

    ``time_extent`` set here acts as the default when ``convert`` is called
    without one; with neither, the extent is the length of
    ``raw_group[time_level_key]``.
    """

    time_extent: int | None = None
    time_level_key: str = DEFAULT_TIME_LEVEL_KEY
    payload_rows: PayloadRows = "configurations"
    column_prefix: str = DEFAULT_COLUMN_PREFIX
    payload_column: str = DEFAULT_PAYLOAD_COLUMN

    def __post_init__(self) -> None:
        _validate_payload_rows(self.payload_rows)
        if self.time_extent is not None:
            as_positive_int(self.time_extent, "time_extent")
        if not self.payload_column:
            raise ValueError("payload_column cannot be empty.")

    def convert(self, raw_group: Mapping[str, Any], time_extent: int | None = None) -> pd.DataFrame:
        """Return the converted table: metadata columns first, payload column last."""

        if not isinstance(raw_group, Mapping):
            raise TypeError(f"raw_group must be a mapping, got {type(raw_group).__name__}.")

        block = combine_block_parts(raw_group)
        extent = self.resolve_time_extent(raw_group, time_extent)
        payloads = split_payloads(block, time_extent=extent, payload_rows=self.payload_rows)
        num_channels = block.shape[0]

        dimensions = discover_metadata_dimensions(raw_group.keys())
        columns = table_columns(
            len(dimensions),
            column_prefix=self.column_prefix,
            payload_column=self.payload_column,
        )

        # Every dimension passes the schema checks before any label is resolved.
        factors = [
            validate_factor(
                raw_group[level_key(index)],
                raw_group[label_key(index)],
                num_channels=num_channels,
                levels_name=level_key(index),
                labels_name=label_key(index),
            )
            for index in dimensions
        ]

        data: dict[str, Any] = {}
        for column, index, (categories, codes) in zip(columns[:-1], dimensions, factors):
            data[column] = _factor_from_codes(
                categories,
                codes,
                levels_name=level_key(index),
                labels_name=label_key(index),
            )
        data[self.payload_column] = payloads
        return pd.DataFrame(data, columns=list(columns), index=pd.RangeIndex(num_channels))

    def resolve_time_extent(self, raw_group: Mapping[str, Any], time_extent: int | None = None) -> int:
        if time_extent is not None:
            return as_positive_int(time_extent, "time_extent")
        if self.time_extent is not None:
            return as_positive_int(self.time_extent, "time_extent")
        if self.time_level_key not in raw_group:
            raise SchemaError(
                f"time_extent was not given and {self.time_level_key!r} is absent; cannot infer it."
            )
        time_levels = as_1d_array(raw_group[self.time_level_key], self.time_level_key)
        return as_positive_int(time_levels.shape[0], f"len({self.time_level_key})")


def convert_layout(
    raw_group: Mapping[str, Any],
    *,
    time_extent: int | None = None,
    time_level_key: str = DEFAULT_TIME_LEVEL_KEY,
    payload_rows: PayloadRows = "configurations",
    column_prefix: str = DEFAULT_COLUMN_PREFIX,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
) -> pd.DataFrame:
    """Functional wrapper around :meth:`LayoutConverter.convert`."""

    converter = LayoutConverter(
        time_level_key=time_level_key,
        payload_rows=payload_rows,
        column_prefix=column_prefix,
        payload_column=payload_column,
    )
    return converter.convert(raw_group, time_extent=time_extent)


def _as_numeric_block(values: Any, name: str) -> np.ndarray:
    array = as_2d_array(values, name)
    if not (np.issubdtype(array.dtype, np.number) or array.dtype == np.bool_):
        raise SchemaError(f"{name} must be numeric, got dtype {array.dtype}.")
    return array


def _validate_payload_rows(payload_rows: str) -> None:
    if payload_rows not in PAYLOAD_ROWS_OPTIONS:
        raise ValueError(
            f"payload_rows must be one of {PAYLOAD_ROWS_OPTIONS}, got {payload_rows!r}."
        )


__all__ = [
    "PAYLOAD_ROWS_OPTIONS",
    "LayoutConverter",
    "PayloadRows",
    "combine_block_parts",
    "convert_layout",
    "resolve_factor",
    "split_payloads",
    "validate_factor",
]
