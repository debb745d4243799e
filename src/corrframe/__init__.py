"""Row-per-channel tables from pandas fixed-format HDF5 correlator groups."""

from corrframe.layout.converter import LayoutConverter, convert_layout

__all__ = ["LayoutConverter", "convert_layout"]
