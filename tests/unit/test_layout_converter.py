"""Unit tests for layout.converter."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from corrframe.errors import (
    InvalidShapeError,
    LabelIndexError,
    LayoutError,
    SchemaError,
    ShapeMismatchError,
)
from corrframe.layout.converter import (
    LayoutConverter,
    combine_block_parts,
    convert_layout,
    resolve_factor,
    split_payloads,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

MOMENTA = np.array(["p0", "p1", "p2"])
IRREPS = np.array(["A1g", "T1u"])


def _raw_group(
    *,
    num_channels: int = 5,
    configurations: int = 4,
    time_extent: int = 3,
    seed: int = 0,
) -> dict[str, np.ndarray]:
    rng = np.random.default_rng(seed=seed)
    flat_length = configurations * time_extent
    return {
        "block0_values.r": rng.normal(size=(num_channels, flat_length)),
        "block0_values.i": rng.normal(size=(num_channels, flat_length)),
        "axis0_level0": np.arange(configurations),
        "axis0_level1": np.arange(time_extent),
        "axis1_level0": MOMENTA,
        "axis1_label0": np.arange(num_channels) % len(MOMENTA),
        "axis1_level1": IRREPS,
        "axis1_label1": (np.arange(num_channels) // 2) % len(IRREPS),
    }


# ---------------------------------------------------------------------------
# Table shape and columns
# ---------------------------------------------------------------------------

def test_convert_layout_returns_one_row_per_channel() -> None:
    table = convert_layout(_raw_group())

    assert isinstance(table, pd.DataFrame)
    assert len(table) == 5
    assert list(table.columns) == ["C0", "C1", "Payload"]
    assert isinstance(table.index, pd.RangeIndex)
    for payload in table["Payload"]:
        assert payload.shape == (4, 3)
        assert np.iscomplexobj(payload)


def test_convert_layout_end_to_end_correlator_sizes() -> None:
    raw = _raw_group(num_channels=33, configurations=32, time_extent=48, seed=7)
    raw["axis1_level0"] = np.array([f"p{index}" for index in range(11)])
    raw["axis1_label0"] = np.arange(33) % 11
    raw["axis1_level1"] = np.array([f"g{index}" for index in range(33)])
    raw["axis1_label1"] = np.arange(33)[::-1]

    table = convert_layout(raw)

    assert len(table) == 33
    assert list(table.columns) == ["C0", "C1", "Payload"]
    assert all(payload.shape == (32, 48) for payload in table["Payload"])
    assert table["C1"].iloc[0] == "g32"


def test_convert_layout_without_metadata_has_payload_only() -> None:
    raw = _raw_group()
    for key in ("axis1_level0", "axis1_label0", "axis1_level1", "axis1_label1"):
        del raw[key]

    table = convert_layout(raw)

    assert list(table.columns) == ["Payload"]
    assert len(table) == 5


def test_convert_layout_custom_column_names() -> None:
    table = convert_layout(_raw_group(), column_prefix="meta_", payload_column="corr")
    assert list(table.columns) == ["meta_0", "meta_1", "corr"]


# ---------------------------------------------------------------------------
# Payload reconstruction
# ---------------------------------------------------------------------------

def test_payload_matches_column_major_fill_then_transpose() -> None:
    raw = _raw_group(num_channels=3, configurations=4, time_extent=6, seed=3)
    table = convert_layout(raw)

    for channel in range(3):
        flat = raw["block0_values.r"][channel] + 1j * raw["block0_values.i"][channel]
        expected = np.reshape(flat, (6, 4), order="F").T
        assert np.array_equal(table["Payload"].iloc[channel], expected)


def test_payload_cells_combine_real_and_imaginary_parts_exactly() -> None:
    raw = _raw_group(configurations=2, time_extent=5)
    table = convert_layout(raw)

    payload = table["Payload"].iloc[4]
    # configuration 1, time slice 3 sits at flat index 1 * 5 + 3.
    assert payload[1, 3].real == raw["block0_values.r"][4, 8]
    assert payload[1, 3].imag == raw["block0_values.i"][4, 8]


def test_payload_rows_time_slices_returns_untransposed_matrix() -> None:
    raw = _raw_group(configurations=4, time_extent=3)
    by_configuration = convert_layout(raw)
    by_time = convert_layout(raw, payload_rows="time_slices")

    for left, right in zip(by_configuration["Payload"], by_time["Payload"]):
        assert right.shape == (3, 4)
        assert np.array_equal(right, left.T)


def test_payload_cells_are_independent_copies() -> None:
    raw = _raw_group()
    table = convert_layout(raw)

    table["Payload"].iloc[0][0, 0] = 1000.0 + 0j
    assert table["Payload"].iloc[1][0, 0] != 1000.0 + 0j
    assert raw["block0_values.r"][0, 0] != 1000.0


def test_real_only_block_is_accepted_with_zero_imaginary_part() -> None:
    raw = _raw_group()
    real = raw.pop("block0_values.r")
    raw.pop("block0_values.i")
    raw["block0_values"] = real

    table = convert_layout(raw)

    payload = table["Payload"].iloc[2]
    assert np.array_equal(payload.real, real[2].reshape(4, 3))
    assert np.all(payload.imag == 0.0)


def test_split_payloads_returns_object_array() -> None:
    block = np.arange(12, dtype=complex).reshape(2, 6)
    cells = split_payloads(block, time_extent=3)

    assert cells.dtype == object
    assert cells.shape == (2,)
    assert np.array_equal(cells[1], np.array([[6, 7, 8], [9, 10, 11]], dtype=complex))


# ---------------------------------------------------------------------------
# Time extent
# ---------------------------------------------------------------------------

def test_time_extent_inferred_from_axis0_level1() -> None:
    raw = _raw_group(configurations=6, time_extent=2)
    table = convert_layout(raw)
    assert table["Payload"].iloc[0].shape == (6, 2)


def test_explicit_time_extent_overrides_inference() -> None:
    raw = _raw_group(configurations=6, time_extent=2)
    table = convert_layout(raw, time_extent=4)
    assert table["Payload"].iloc[0].shape == (3, 4)


def test_converter_default_time_extent_used_when_call_omits_it() -> None:
    raw = _raw_group(configurations=6, time_extent=2)
    del raw["axis0_level1"]

    table = LayoutConverter(time_extent=3).convert(raw)

    assert table["Payload"].iloc[0].shape == (4, 3)


def test_custom_time_level_key() -> None:
    raw = _raw_group(configurations=6, time_extent=2)
    raw["axis0_level0"], raw["axis0_level1"] = raw["axis0_level1"], raw["axis0_level0"]

    table = convert_layout(raw, time_level_key="axis0_level0")

    assert table["Payload"].iloc[0].shape == (6, 2)


def test_missing_time_extent_source_raises_schema_error() -> None:
    raw = _raw_group()
    del raw["axis0_level1"]
    with pytest.raises(SchemaError, match="cannot infer"):
        convert_layout(raw)


@pytest.mark.parametrize("time_extent", [0, -3, 2.5, True])
def test_invalid_time_extent_raises_invalid_shape(time_extent) -> None:
    with pytest.raises(InvalidShapeError, match="positive integer"):
        convert_layout(_raw_group(), time_extent=time_extent)


# ---------------------------------------------------------------------------
# Categorical metadata
# ---------------------------------------------------------------------------

def test_metadata_columns_resolve_levels_by_zero_based_labels() -> None:
    raw = _raw_group(num_channels=7)
    table = convert_layout(raw)

    expected_c0 = [MOMENTA[label] for label in raw["axis1_label0"]]
    expected_c1 = [IRREPS[label] for label in raw["axis1_label1"]]
    assert table["C0"].tolist() == expected_c0
    assert table["C1"].tolist() == expected_c1
    assert isinstance(table["C0"].dtype, pd.CategoricalDtype)


def test_unused_levels_are_kept_in_stored_order() -> None:
    raw = _raw_group(num_channels=4)
    raw["axis1_level0"] = np.array(["z", "a", "m", "unused"])
    raw["axis1_label0"] = np.array([2, 0, 2, 1])

    table = convert_layout(raw)

    assert list(table["C0"].cat.categories) == ["z", "a", "m", "unused"]
    assert table["C0"].tolist() == ["m", "z", "m", "a"]


def test_metadata_dimensions_sorted_numerically_not_by_key_order() -> None:
    raw = _raw_group(num_channels=3)
    for key in ("axis1_level0", "axis1_label0", "axis1_level1", "axis1_label1"):
        del raw[key]
    dimensions = list(range(12))
    for index in reversed(dimensions):
        raw[f"axis1_label{index}"] = np.array([0, 1, 0])
        raw[f"axis1_level{index}"] = np.array([f"d{index}a", f"d{index}b"])

    table = convert_layout(raw)

    assert list(table.columns) == [f"C{index}" for index in dimensions] + ["Payload"]
    assert table["C10"].tolist() == ["d10a", "d10b", "d10a"]
    assert table["C2"].tolist() == ["d2a", "d2b", "d2a"]


def test_convert_is_deterministic() -> None:
    raw = _raw_group(num_channels=9)
    shuffled = {key: raw[key] for key in sorted(raw, reverse=True)}

    first = convert_layout(raw)
    second = convert_layout(shuffled)

    pd.testing.assert_frame_equal(first.drop(columns="Payload"), second.drop(columns="Payload"))
    for left, right in zip(first["Payload"], second["Payload"]):
        assert np.array_equal(left, right)


def test_convert_does_not_mutate_input() -> None:
    raw = _raw_group()
    snapshot = {key: np.array(value, copy=True) for key, value in raw.items()}

    convert_layout(raw)

    assert set(raw) == set(snapshot)
    for key, value in snapshot.items():
        assert np.array_equal(raw[key], value)


def test_resolve_factor_builds_categorical() -> None:
    factor = resolve_factor(np.array([10.0, 20.0]), np.array([1, 1, 0]), num_channels=3)
    assert isinstance(factor, pd.Categorical)
    assert list(factor) == [20.0, 20.0, 10.0]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_shape_mismatch_between_real_and_imaginary_parts() -> None:
    raw = {
        "block0_values.r": np.zeros((5, 96)),
        "block0_values.i": np.zeros((5, 95)),
    }
    with pytest.raises(ShapeMismatchError, match=r"\(5, 96\)"):
        convert_layout(raw, time_extent=48)


def test_indivisible_flat_length_raises_invalid_shape() -> None:
    raw = {
        "block0_values.r": np.zeros((2, 100)),
        "block0_values.i": np.zeros((2, 100)),
        "axis1_level0": np.array(["a", "b"]),
        "axis1_label0": np.array([0, 1]),
    }
    with pytest.raises(InvalidShapeError, match="not divisible"):
        convert_layout(raw, time_extent=48)


def test_missing_block_raises_schema_error() -> None:
    raw = _raw_group()
    del raw["block0_values.r"]
    del raw["block0_values.i"]
    with pytest.raises(SchemaError, match="no payload block"):
        convert_layout(raw)


def test_lone_real_part_raises_schema_error() -> None:
    raw = _raw_group()
    del raw["block0_values.i"]
    with pytest.raises(SchemaError, match="counterpart"):
        convert_layout(raw)


def test_non_2d_block_raises_invalid_shape() -> None:
    raw = _raw_group()
    raw["block0_values.r"] = raw["block0_values.r"].ravel()
    raw["block0_values.i"] = raw["block0_values.i"].ravel()
    with pytest.raises(InvalidShapeError, match="2D"):
        convert_layout(raw)


def test_label_gap_raises_schema_error() -> None:
    raw = _raw_group()
    raw["axis1_label3"] = raw.pop("axis1_label1")
    raw["axis1_level3"] = raw.pop("axis1_level1")
    with pytest.raises(SchemaError, match="contiguous"):
        convert_layout(raw)


def test_missing_level_array_raises_schema_error() -> None:
    raw = _raw_group()
    del raw["axis1_level1"]
    with pytest.raises(SchemaError, match="axis1_level1"):
        convert_layout(raw)


def test_label_length_mismatch_raises_schema_error() -> None:
    raw = _raw_group(num_channels=5)
    raw["axis1_label0"] = np.array([0, 1, 2])
    with pytest.raises(SchemaError, match="expected 5"):
        convert_layout(raw)


def test_non_integer_labels_raise_schema_error() -> None:
    raw = _raw_group(num_channels=5)
    raw["axis1_label0"] = np.zeros(5, dtype=float)
    with pytest.raises(SchemaError, match="integer"):
        convert_layout(raw)


def test_duplicate_levels_raise_schema_error() -> None:
    raw = _raw_group()
    raw["axis1_level1"] = np.array(["A1g", "A1g"])
    with pytest.raises(SchemaError, match="duplicate"):
        convert_layout(raw)


@pytest.mark.parametrize("bad_label", [3, -1])
def test_out_of_range_label_raises_index_error(bad_label: int) -> None:
    raw = _raw_group(num_channels=5)
    raw["axis1_label0"] = np.array([0, 1, bad_label, 0, 1])

    with pytest.raises(IndexError, match=r"axis1_label0\[2\]"):
        convert_layout(raw)
    with pytest.raises(LabelIndexError):
        convert_layout(raw)


def test_lone_leading_zero_label_key_raises_schema_error() -> None:
    raw = _raw_group(num_channels=2, configurations=2, time_extent=3)
    raw["axis1_label0"] = np.array([0, 1])
    raw["axis1_label01"] = raw.pop("axis1_label1")[:2]

    with pytest.raises(SchemaError, match="leading zero"):
        convert_layout(raw, time_extent=3)


def test_schema_errors_win_over_out_of_range_labels() -> None:
    raw = _raw_group(num_channels=3, configurations=2, time_extent=2)
    raw["axis1_level0"] = np.array(["only"])
    raw["axis1_label0"] = np.array([0, 5, 0])
    raw["axis1_label1"] = np.array([0, 1])

    with pytest.raises(SchemaError, match="expected 3"):
        convert_layout(raw)


def test_conversion_errors_share_layout_error_base() -> None:
    for error in (ShapeMismatchError, InvalidShapeError, SchemaError, LabelIndexError):
        assert issubclass(error, LayoutError)
        assert issubclass(error, ValueError)


def test_non_mapping_input_raises_type_error() -> None:
    with pytest.raises(TypeError, match="mapping"):
        LayoutConverter().convert([("block0_values", np.zeros((1, 1)))])


def test_invalid_payload_rows_rejected() -> None:
    with pytest.raises(ValueError, match="payload_rows"):
        LayoutConverter(payload_rows="columns")


def test_combine_block_parts_rejects_complex_parts() -> None:
    raw = {
        "block0_values.r": np.ones((2, 2), dtype=complex),
        "block0_values.i": np.ones((2, 2)),
    }
    with pytest.raises(SchemaError, match="real-valued"):
        combine_block_parts(raw)
