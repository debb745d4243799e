"""Key conventions for pandas fixed-format groups and converted tables."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

import pandas as pd

from corrframe.errors import SchemaError

BLOCK_VALUES_KEY = "block0_values"
REAL_SUFFIX = ".r"
IMAG_SUFFIX = ".i"
BLOCK_REAL_KEY = BLOCK_VALUES_KEY + REAL_SUFFIX
BLOCK_IMAG_KEY = BLOCK_VALUES_KEY + IMAG_SUFFIX

LABEL_PREFIX = "axis1_label"
LEVEL_PREFIX = "axis1_level"
DEFAULT_TIME_LEVEL_KEY = "axis0_level1"

DEFAULT_COLUMN_PREFIX = "C"
DEFAULT_PAYLOAD_COLUMN = "Payload"

_LABEL_KEY_PATTERN = re.compile(rf"^{re.escape(LABEL_PREFIX)}(\d+)$")


def label_key(index: int) -> str:
    return f"{LABEL_PREFIX}{index}"


def level_key(index: int) -> str:
    return f"{LEVEL_PREFIX}{index}"


def discover_metadata_dimensions(keys: Any) -> list[int]:
    """Return the metadata dimension indices named by ``axis1_label<i>`` keys.

    Indices are sorted numerically (``axis1_label10`` after ``axis1_label2``)
    and must cover ``0..K-1`` with no gaps. The matching ``axis1_level<i>`` key
    must exist for every index.
    """

    key_set = {str(key) for key in keys}
    indices: list[int] = []
    for key in sorted(key_set):
        match = _LABEL_KEY_PATTERN.match(key)
        if match is None:
            continue
        suffix = match.group(1)
        if str(int(suffix)) != suffix:
            raise SchemaError(f"{key!r} has a leading zero; expected {label_key(int(suffix))!r}.")
        indices.append(int(suffix))
    indices.sort()

    expected = list(range(len(indices)))
    if indices != expected:
        missing = sorted(set(expected) - set(indices))
        raise SchemaError(
            f"{LABEL_PREFIX} keys must be contiguous from 0; found {indices}, missing {missing}."
        )

    missing_levels = [level_key(index) for index in indices if level_key(index) not in key_set]
    if missing_levels:
        raise SchemaError(f"Missing level arrays for discovered labels: {missing_levels}.")
    return indices


def metadata_column_names(
    count: int,
    *,
    column_prefix: str = DEFAULT_COLUMN_PREFIX,
) -> tuple[str, ...]:
    """Return ``(C0, C1, ..., C{count-1})`` style metadata column names."""

    if count < 0:
        raise ValueError("count must be non-negative.")
    return tuple(f"{column_prefix}{index}" for index in range(count))


def table_columns(
    count: int,
    *,
    column_prefix: str = DEFAULT_COLUMN_PREFIX,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
) -> tuple[str, ...]:
    """Return the full converted-table column order: metadata then payload."""

    metadata = metadata_column_names(count, column_prefix=column_prefix)
    if payload_column in metadata:
        raise ValueError(f"payload_column {payload_column!r} collides with a metadata column.")
    return metadata + (payload_column,)


def split_block_keys(raw_group: Mapping[str, Any]) -> tuple[str, str | None]:
    """Return ``(real_key, imag_key)`` for the payload block of ``raw_group``.

    ``imag_key`` is ``None`` for a single real- or complex-valued
    ``block0_values`` dataset.
    """

    has_real = BLOCK_REAL_KEY in raw_group
    has_imag = BLOCK_IMAG_KEY in raw_group
    if has_real and has_imag:
        return BLOCK_REAL_KEY, BLOCK_IMAG_KEY
    if has_real or has_imag:
        present = BLOCK_REAL_KEY if has_real else BLOCK_IMAG_KEY
        raise SchemaError(f"Found {present!r} without its counterpart; both parts are required.")
    if BLOCK_VALUES_KEY in raw_group:
        return BLOCK_VALUES_KEY, None
    raise SchemaError(
        f"Group has no payload block: expected {BLOCK_REAL_KEY!r}/{BLOCK_IMAG_KEY!r} "
        f"or {BLOCK_VALUES_KEY!r}."
    )


def metadata_columns_of(
    table: pd.DataFrame,
    *,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
) -> list[str]:
    """Return the metadata columns of a converted table, in table order."""

    validate_converted_table(table, payload_column=payload_column)
    return [str(column) for column in table.columns[:-1]]


def validate_converted_table(
    table: pd.DataFrame,
    *,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
) -> pd.DataFrame:
    """Check that ``table`` looks like a converted table (payload column last)."""

    if not isinstance(table, pd.DataFrame):
        raise TypeError(f"Expected a pandas DataFrame, got {type(table).__name__}.")
    if len(table.columns) == 0 or table.columns[-1] != payload_column:
        raise ValueError(
            f"Converted table must end with the {payload_column!r} column; got {list(table.columns)}."
        )
    return table


__all__ = [
    "BLOCK_IMAG_KEY",
    "BLOCK_REAL_KEY",
    "BLOCK_VALUES_KEY",
    "DEFAULT_COLUMN_PREFIX",
    "DEFAULT_PAYLOAD_COLUMN",
    "DEFAULT_TIME_LEVEL_KEY",
    "IMAG_SUFFIX",
    "LABEL_PREFIX",
    "LEVEL_PREFIX",
    "REAL_SUFFIX",
    "discover_metadata_dimensions",
    "label_key",
    "level_key",
    "metadata_column_names",
    "metadata_columns_of",
    "split_block_keys",
    "table_columns",
    "validate_converted_table",
]
