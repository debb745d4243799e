"""Reusable export helpers for converted channel tables."""

from corrframe.pipeline.export import (
    LONG_VALUE_COLUMNS,
    SUMMARY_VALUE_COLUMNS,
    summarize_table,
    to_long_frame,
    write_dataframe_csv,
    write_table_parquet,
)

__all__ = [
    "LONG_VALUE_COLUMNS",
    "SUMMARY_VALUE_COLUMNS",
    "summarize_table",
    "to_long_frame",
    "write_dataframe_csv",
    "write_table_parquet",
]
