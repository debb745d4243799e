"""Flatten converted channel tables and write them to CSV/Parquet."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from corrframe.dataio.schema import DEFAULT_PAYLOAD_COLUMN, metadata_columns_of
from corrframe.layout.converter import PAYLOAD_ROWS_OPTIONS, PayloadRows

LONG_VALUE_COLUMNS: tuple[str, ...] = ("configuration", "time_slice", "real", "imag")
SUMMARY_VALUE_COLUMNS: tuple[str, ...] = ("n_configurations", "n_time_slices", "mean_real", "mean_imag")


# ---------------------------------------------------------------------------
# Table reshaping
# ---------------------------------------------------------------------------

def to_long_frame(
    table: pd.DataFrame,
    *,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
    payload_rows: PayloadRows = "configurations",
) -> pd.DataFrame:
    """Return one row per (channel, configuration, time slice).

    Columns are ``channel``, the metadata columns (categorical dtype kept),
    then ``configuration``, ``time_slice``, ``real`` and ``imag``.
    ``payload_rows`` must match the orientation the table was converted with.
    """

    metadata = metadata_columns_of(table, payload_column=payload_column)
    matrices = [_payload_matrix(value, payload_rows) for value in table[payload_column]]
    columns = ["channel", *metadata, *LONG_VALUE_COLUMNS]
    if len(matrices) == 0:
        return pd.DataFrame(columns=columns)

    sizes = np.array([matrix.size for matrix in matrices], dtype=int)
    channel_index = np.repeat(np.arange(len(matrices)), sizes)

    configuration: list[np.ndarray] = []
    time_slice: list[np.ndarray] = []
    for matrix in matrices:
        rows, cols = np.indices(matrix.shape)
        configuration.append(rows.ravel())
        time_slice.append(cols.ravel())
    flat = np.concatenate([matrix.ravel() for matrix in matrices])

    data: dict[str, object] = {"channel": channel_index}
    for column in metadata:
        data[column] = table[column].iloc[channel_index].reset_index(drop=True)
    data["configuration"] = np.concatenate(configuration)
    data["time_slice"] = np.concatenate(time_slice)
    data["real"] = flat.real.astype(float)
    data["imag"] = flat.imag.astype(float)
    return pd.DataFrame(data, columns=columns)


def summarize_table(
    table: pd.DataFrame,
    *,
    payload_column: str = DEFAULT_PAYLOAD_COLUMN,
    payload_rows: PayloadRows = "configurations",
) -> pd.DataFrame:
    """Return one summary row per channel: metadata, payload shape and means."""

    metadata = metadata_columns_of(table, payload_column=payload_column)
    matrices = [_payload_matrix(value, payload_rows) for value in table[payload_column]]

    summary = table.loc[:, metadata].reset_index(drop=True)
    summary["n_configurations"] = [int(matrix.shape[0]) for matrix in matrices]
    summary["n_time_slices"] = [int(matrix.shape[1]) for matrix in matrices]
    summary["mean_real"] = [float(np.mean(matrix.real)) for matrix in matrices]
    summary["mean_imag"] = [float(np.mean(matrix.imag)) for matrix in matrices]
    return summary


def _payload_matrix(value: object, payload_rows: str) -> np.ndarray:
    if payload_rows not in PAYLOAD_ROWS_OPTIONS:
        raise ValueError(f"payload_rows must be one of {PAYLOAD_ROWS_OPTIONS}, got {payload_rows!r}.")
    matrix = np.asarray(value)
    if matrix.ndim != 2:
        raise ValueError(f"Payload cells must be 2D matrices, got shape {matrix.shape}.")
    # Normalise to (configuration, time_slice).
    if payload_rows == "time_slices":
        matrix = matrix.T
    return matrix


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------

def write_dataframe_csv(frame: pd.DataFrame, path: str | Path) -> Path:
    """Write a DataFrame to CSV, creating parent directories."""

    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(destination, index=False)
    return destination


def write_table_parquet(
    frame: pd.DataFrame,
    path: str | Path,
    *,
    compression: str = "snappy",
) -> Path:
    """Write a flat (long or summary) table to Parquet via pyarrow."""

    for column in frame.columns:
        if frame[column].dtype == object and frame[column].map(lambda v: isinstance(v, np.ndarray)).any():
            raise ValueError(
                f"Column {column!r} holds matrices; flatten the table with to_long_frame first."
            )
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    frame.to_parquet(destination, engine="pyarrow", compression=compression, index=False)
    return destination


__all__ = [
    "LONG_VALUE_COLUMNS",
    "SUMMARY_VALUE_COLUMNS",
    "summarize_table",
    "to_long_frame",
    "write_dataframe_csv",
    "write_table_parquet",
]
