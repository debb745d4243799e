#!/usr/bin/env python3
"""Convert one pandas fixed-format HDF5 group into a row-per-channel table."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from corrframe.dataio.io_hdf5 import DEFAULT_GROUP, load_raw_group
from corrframe.dataio.schema import DEFAULT_TIME_LEVEL_KEY
from corrframe.layout.converter import PAYLOAD_ROWS_OPTIONS, LayoutConverter
from corrframe.pipeline.export import (
    summarize_table,
    to_long_frame,
    write_dataframe_csv,
    write_table_parquet,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "source",
        type=Path,
        help="Input HDF5 file written in the pandas fixed format.",
    )
    parser.add_argument(
        "--group",
        default=DEFAULT_GROUP,
        help=f"HDF5 group holding the block/axis arrays (default: {DEFAULT_GROUP}).",
    )
    parser.add_argument(
        "--time-extent",
        type=int,
        default=None,
        help="Time slices per configuration. Inferred from --time-level-key when omitted.",
    )
    parser.add_argument(
        "--time-level-key",
        default=DEFAULT_TIME_LEVEL_KEY,
        help=f"Axis-0 level array whose length is the time extent (default: {DEFAULT_TIME_LEVEL_KEY}).",
    )
    parser.add_argument(
        "--payload-rows",
        choices=PAYLOAD_ROWS_OPTIONS,
        default="configurations",
        help="Which axis forms the rows of each payload matrix (default: configurations).",
    )
    parser.add_argument(
        "--long-csv-out",
        type=Path,
        default=None,
        help="Optional output CSV with one row per (channel, configuration, time slice).",
    )
    parser.add_argument(
        "--long-parquet-out",
        type=Path,
        default=None,
        help="Optional output Parquet file with the same long-format rows.",
    )
    parser.add_argument(
        "--summary-csv-out",
        type=Path,
        default=None,
        help="Optional output CSV with one summary row per channel.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log HDF5 loading details.",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.time_extent is not None and args.time_extent <= 0:
        parser.error("--time-extent must be positive.")
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    raw_group = load_raw_group(args.source, args.group)
    converter = LayoutConverter(
        time_level_key=args.time_level_key,
        payload_rows=args.payload_rows,
    )
    table = converter.convert(raw_group, time_extent=args.time_extent)
    metadata = [column for column in table.columns if column != converter.payload_column]

    first_payload = table[converter.payload_column].iloc[0]
    print(f"Channels: {len(table)}")
    print(f"Columns: {list(table.columns)}")
    print(f"Payload shape ({args.payload_rows} as rows): {tuple(first_payload.shape)}")
    for column in metadata:
        levels = table[column].cat.categories
        print(f"  {column}: {len(levels)} levels, {int(table[column].nunique())} used")

    if args.long_csv_out is not None or args.long_parquet_out is not None:
        long_frame = to_long_frame(table, payload_rows=args.payload_rows)
        print(f"Long-format rows: {len(long_frame)}")
        if args.long_csv_out is not None:
            print(f"Long CSV: {write_dataframe_csv(long_frame, args.long_csv_out)}")
        if args.long_parquet_out is not None:
            print(f"Long Parquet: {write_table_parquet(long_frame, args.long_parquet_out)}")

    if args.summary_csv_out is not None:
        summary = summarize_table(table, payload_rows=args.payload_rows)
        print(f"Summary CSV: {write_dataframe_csv(summary, args.summary_csv_out)}")


if __name__ == "__main__":
    main()
