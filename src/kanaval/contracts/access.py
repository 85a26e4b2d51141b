"""h5py-backed access primitives for the state file.

These helpers open groups and datasets by name and check their HDF5 type
class and dataspace before anything is read, failing with a
``ValidationError`` of the matching kind.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import h5py
import numpy as np

from kanaval.contracts.base import context, require
from kanaval.contracts.failure import ErrorKind, ValidationError

Node = Union[h5py.File, h5py.Group]


class ElementType(str, Enum):
    """HDF5 datatype classes recognised by the schema."""
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"


_TYPE_CLASSES = {
    ElementType.INTEGER: h5py.h5t.INTEGER,
    ElementType.FLOAT: h5py.h5t.FLOAT,
    ElementType.STRING: h5py.h5t.STRING,
}


def kind_of(handle: Node, name: str) -> Optional[str]:
    """Return ``"group"``, ``"dataset"`` or None for a child of ``handle``."""
    if name not in handle:
        return None
    cls = handle.get(name, getclass=True)
    if cls is h5py.Group:
        return "group"
    if cls is h5py.Dataset:
        return "dataset"
    return None


def exists(handle: Node, name: str) -> bool:
    return name in handle


def list_children(handle: Node) -> List[str]:
    """Names of the children of ``handle`` in container order."""
    return list(handle.keys())


def open_group(handle: Node, name: str) -> h5py.Group:
    require(
        kind_of(handle, name) == "group",
        f"'{name}' group does not exist",
        ErrorKind.MISSING_GROUP,
    )
    return handle[name]


def open_stage(handle: Node, name: str) -> h5py.Group:
    """Open a top-level stage group, recording the stage on failure."""
    if kind_of(handle, name) != "group":
        raise ValidationError(
            ErrorKind.MISSING_STAGE, f"'{name}' group does not exist", stage=name
        )
    return handle[name]


def element_type(dataset: h5py.Dataset) -> Optional[ElementType]:
    type_class = dataset.id.get_type().get_class()
    for etype, cls in _TYPE_CLASSES.items():
        if cls == type_class:
            return etype
    return None


def open_dataset(
    handle: Node,
    name: str,
    dtype: Optional[ElementType] = None,
    shape: Optional[Sequence[int]] = None,
) -> h5py.Dataset:
    """Open a dataset and check its type class and dimensions.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Parent node.

    name : str
        Name of the dataset.

    dtype : ElementType, optional
        Expected type class. Not checked if None.

    shape : sequence of int, optional
        Exact expected extents. An empty sequence requires a scalar.
        Not checked if None.

    Raises
    ------
    ValidationError
        MISSING_DATASET, WRONG_TYPE or WRONG_SHAPE.
    """
    require(
        kind_of(handle, name) == "dataset",
        f"'{name}' dataset does not exist",
        ErrorKind.MISSING_DATASET,
    )
    dataset = handle[name]

    if dtype is not None:
        require(
            element_type(dataset) == dtype,
            f"'{name}' dataset should be of type {ElementType(dtype).value}",
            ErrorKind.WRONG_TYPE,
        )

    if shape is not None:
        require(
            dataset.shape is not None and tuple(dataset.shape) == tuple(int(s) for s in shape),
            f"'{name}' dataset does not have the expected dimensions",
            ErrorKind.WRONG_SHAPE,
        )

    return dataset


def open_scalar(handle: Node, name: str, dtype: ElementType) -> h5py.Dataset:
    dataset = open_dataset(handle, name, dtype)
    require(
        dataset.shape == (),
        f"'{name}' dataset should be a scalar",
        ErrorKind.WRONG_SHAPE,
    )
    return dataset


def dataset_shape(handle: Node, name: str, dtype: Optional[ElementType] = None) -> Tuple[int, ...]:
    dataset = open_dataset(handle, name, dtype)
    return tuple(dataset.shape or ())


def _decode(value, name: str) -> str:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError(ErrorKind.WRONG_TYPE, f"'{name}' is not a valid UTF-8 string") from None
    return str(value)


def load_scalar(handle: Node, name: str, dtype: ElementType) -> Union[int, float, str]:
    """Read a scalar dataset as a Python ``int``, ``float`` or ``str``."""
    dataset = open_scalar(handle, name, dtype)
    value = dataset[()]
    if dtype == ElementType.INTEGER:
        return int(value)
    if dtype == ElementType.FLOAT:
        return float(value)
    return _decode(value, name)


def load_integer(handle: Node, name: str) -> int:
    return load_scalar(handle, name, ElementType.INTEGER)


def load_float(handle: Node, name: str) -> float:
    return load_scalar(handle, name, ElementType.FLOAT)


def load_string(handle: Node, name: str) -> str:
    return load_scalar(handle, name, ElementType.STRING)


def read_vector(dataset: h5py.Dataset, dtype: ElementType):
    """Read an already-opened dataset as a 1-dimensional vector."""
    require(
        dataset.shape is not None and len(dataset.shape) == 1,
        f"expected a 1-dimensional {ElementType(dtype).value} dataset",
        ErrorKind.WRONG_SHAPE,
    )
    values = dataset[()]
    if dtype == ElementType.STRING:
        name = dataset.name.rsplit("/", 1)[-1]
        return [_decode(v, name) for v in values]
    if dtype == ElementType.INTEGER:
        return np.asarray(values, dtype=np.int64)
    return np.asarray(values, dtype=np.float64)


def load_vector(handle: Node, name: str, dtype: ElementType):
    """Read a 1-dimensional dataset.

    Integer and float vectors are returned as numpy arrays, string vectors
    as a list of ``str``.
    """
    dataset = open_dataset(handle, name, dtype)
    with context(f"failed to load {ElementType(dtype).value} vector from '{name}'"):
        return read_vector(dataset, dtype)
