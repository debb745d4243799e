"""Read/write helpers that materialise one HDF5 group as a mapping of arrays."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import h5py
import numpy as np

from corrframe.dataio.schema import IMAG_SUFFIX, REAL_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "data"
HDF5_SUFFIXES = (".h5", ".hdf5", ".hdf")

_COMPLEX_COMPOUND = np.dtype([("r", "<f8"), ("i", "<f8")])


def load_raw_group(path: str | Path, group: str = DEFAULT_GROUP) -> dict[str, np.ndarray]:
    """Load every dataset directly under ``group`` into memory.

    Complex data is split into ``<name>.r``/``<name>.i`` arrays, whether it is
    stored as a compound ``(r, i)`` type or as a native complex type. String
    datasets come back as arrays of ``str``.
    """

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(source)

    arrays: dict[str, np.ndarray] = {}
    with h5py.File(source, "r") as handle:
        if group not in handle:
            raise KeyError(f"Group {group!r} not found in {source}.")
        node = handle[group]
        if not isinstance(node, h5py.Group):
            raise TypeError(f"{group!r} in {source} is not a group.")

        for name, child in node.items():
            if not isinstance(child, h5py.Dataset):
                logger.debug(f"Skipping non-dataset member '{group}/{name}'")
                continue
            arrays.update(_read_dataset(name, child))

    logger.info(f"Loaded {len(arrays)} arrays from '{source}' group '{group}'")
    return arrays


def save_raw_group(
    path: str | Path,
    arrays: Mapping[str, Any],
    *,
    group: str = DEFAULT_GROUP,
    complex_as_compound: bool = True,
    overwrite: bool = True,
) -> Path:
    """Write ``arrays`` as datasets of one group in a new HDF5 file.

    Complex arrays are stored as a compound ``(r, i)`` type by default, the
    way PyTables stores them; ``load_raw_group`` splits them again.
    """

    destination = Path(path)
    if destination.suffix not in HDF5_SUFFIXES:
        raise ValueError(f"path must end with one of {HDF5_SUFFIXES}")
    if destination.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing file: {destination}")
    if len(arrays) == 0:
        raise ValueError("arrays cannot be empty.")
    for key in arrays:
        if not key:
            raise ValueError("Array keys cannot be empty.")
        if "/" in key:
            raise ValueError(f"Array key {key!r} cannot contain '/'.")

    destination.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(destination, "w") as handle:
        target = handle.require_group(group)
        for key, value in arrays.items():
            _write_dataset(target, key, np.asarray(value), complex_as_compound=complex_as_compound)

    logger.info(f"Wrote {len(arrays)} arrays to '{destination}' group '{group}'")
    return destination


def list_groups(path: str | Path) -> list[str]:
    """Return the names of the top-level groups in an HDF5 file."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(source)
    with h5py.File(source, "r") as handle:
        return sorted(name for name, child in handle.items() if isinstance(child, h5py.Group))


def _read_dataset(name: str, dataset: h5py.Dataset) -> dict[str, np.ndarray]:
    if h5py.check_string_dtype(dataset.dtype) is not None:
        decoded = dataset.asstr()[()]
        return {name: np.asarray(decoded, dtype=object).astype(str)}

    data = np.asarray(dataset[()])
    names = data.dtype.names
    if names is not None:
        if "r" in names and "i" in names:
            return {
                name + REAL_SUFFIX: np.asarray(data["r"]),
                name + IMAG_SUFFIX: np.asarray(data["i"]),
            }
        logger.debug(f"Keeping compound dataset '{name}' with fields {names} unsplit")
        return {name: data}
    if np.iscomplexobj(data):
        return {
            name + REAL_SUFFIX: np.ascontiguousarray(data.real),
            name + IMAG_SUFFIX: np.ascontiguousarray(data.imag),
        }
    return {name: data}


def _write_dataset(
    target: h5py.Group,
    key: str,
    array: np.ndarray,
    *,
    complex_as_compound: bool,
) -> None:
    if array.dtype.kind == "U" or (array.dtype.kind == "O" and _all_strings(array)):
        target.create_dataset(
            key,
            data=array.astype(str).astype(object),
            dtype=h5py.string_dtype(encoding="utf-8"),
        )
    elif np.iscomplexobj(array) and complex_as_compound:
        compound = np.empty(array.shape, dtype=_COMPLEX_COMPOUND)
        compound["r"] = array.real
        compound["i"] = array.imag
        target.create_dataset(key, data=compound)
    else:
        target.create_dataset(key, data=array)


def _all_strings(array: np.ndarray) -> bool:
    return all(isinstance(item, str) for item in array.ravel())


__all__ = ["DEFAULT_GROUP", "list_groups", "load_raw_group", "save_raw_group"]
