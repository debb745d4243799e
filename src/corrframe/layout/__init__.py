"""Block-layout conversion for fixed-format correlator groups."""

from corrframe.layout.converter import (
    PAYLOAD_ROWS_OPTIONS,
    LayoutConverter,
    combine_block_parts,
    convert_layout,
    resolve_factor,
    split_payloads,
    validate_factor,
)

__all__ = [
    "PAYLOAD_ROWS_OPTIONS",
    "LayoutConverter",
    "combine_block_parts",
    "convert_layout",
    "resolve_factor",
    "split_payloads",
    "validate_factor",
]
