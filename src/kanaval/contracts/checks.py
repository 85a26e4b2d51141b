"""Checks shared by several stage validators."""

import logging
from typing import Collection, Optional, Sequence

import numpy as np

from kanaval.contracts.access import ElementType, load_vector, open_dataset
from kanaval.contracts.base import context, require
from kanaval.contracts.failure import ErrorKind

logger = logging.getLogger(__name__)


def is_sorted_unique(values: Sequence) -> bool:
    """Whether ``values`` is strictly increasing.

    Empty and single-element inputs are trivially sorted and unique.
    Works for numeric arrays and lists of strings.
    """
    if isinstance(values, np.ndarray) and values.dtype.kind in "iuf":
        return bool(np.all(values[1:] > values[:-1]))
    return all(values[i] < values[i + 1] for i in range(len(values) - 1))


def check_unique(values: Sequence) -> bool:
    """Whether ``values`` has no duplicates, in any order."""
    if isinstance(values, np.ndarray):
        return np.unique(values).size == values.size
    return len(set(values)) == len(values)


def check_enum(value: str, allowed: Collection[str], field: str, message: Optional[str] = None) -> str:
    require(
        value in allowed,
        message or f"unrecognized value '{value}' for the '{field}'",
        ErrorKind.INVALID_ENUM,
    )
    return value


def check_positive(value, message: str) -> None:
    require(value > 0, message, ErrorKind.OUT_OF_RANGE)


def check_non_negative(value, message: str) -> None:
    require(value >= 0, message, ErrorKind.OUT_OF_RANGE)


def count_kept(discards: np.ndarray) -> int:
    """Number of zero entries in a discard vector."""
    return int(np.count_nonzero(np.asarray(discards) == 0))


def check_discard_vector(results, num_cells: int) -> int:
    """Validate ``discards`` in a results group and count retained cells.

    Parameters
    ----------
    results : h5py.Group
        The stage's ``results`` group.

    num_cells : int
        Expected length of the discard vector.

    Returns
    -------
    int
        Number of zero-valued entries, in ``[0, num_cells]``.
    """
    with context("failed to retrieve discard information from 'results'"):
        dataset = open_dataset(results, "discards", ElementType.INTEGER, (num_cells,))
        return count_kept(dataset[()])


def check_block_method(method: str, features) -> str:
    """Check ``block_method`` against the methods allowed by ``features``."""
    return check_enum(method, features.block_methods, "block_method")


def check_cluster_assignment(clusters, num_cells: int, upper_bound: Optional[int] = None) -> int:
    """Validate a cluster assignment vector and return the number of clusters.

    Parameters
    ----------
    clusters : array-like
        Integer labels, one per cell.

    num_cells : int
        Expected length.

    upper_bound : int, optional
        Exclusive upper limit on the labels, e.g. ``k`` for k-means.

    Returns
    -------
    int
        ``max(clusters) + 1``, or 0 when there are no cells.

    Raises
    ------
    ValidationError
        WRONG_SHAPE, OUT_OF_RANGE or EMPTY_CLUSTER.
    """
    labels = np.asarray(clusters, dtype=np.int64)
    require(
        labels.shape == (num_cells,),
        "'clusters' dataset does not have the expected dimensions",
        ErrorKind.WRONG_SHAPE,
    )
    if num_cells == 0:
        return 0

    if upper_bound is not None:
        require(
            labels.min() >= 0 and labels.max() < upper_bound,
            "entries in 'clusters' are out of range for the given 'k'",
            ErrorKind.OUT_OF_RANGE,
        )
    else:
        require(
            labels.min() >= 0,
            "entries in 'clusters' should be non-negative",
            ErrorKind.OUT_OF_RANGE,
        )

    nclusters = int(labels.max()) + 1
    # More labels than cells means some label is unused.
    require(
        nclusters <= num_cells,
        "each cluster must be represented at least once in 'clusters'",
        ErrorKind.EMPTY_CLUSTER,
    )
    counts = np.bincount(labels, minlength=nclusters)
    require(
        bool(np.all(counts > 0)),
        "each cluster must be represented at least once in 'clusters'",
        ErrorKind.EMPTY_CLUSTER,
    )
    return nclusters


def check_pca_results(results, max_pcs: int, num_cells: int) -> int:
    """Validate ``var_exp`` and ``pcs`` in a PCA results group.

    Returns
    -------
    int
        Observed number of PCs, the length of ``var_exp``.
    """
    var_exp = open_dataset(results, "var_exp", ElementType.FLOAT)
    require(
        var_exp.shape is not None and len(var_exp.shape) == 1,
        "'var_exp' dataset does not have the expected dimensions",
        ErrorKind.WRONG_SHAPE,
    )

    observed = int(var_exp.shape[0])
    require(
        observed <= max_pcs,
        "length of 'var_exp' dataset exceeds the requested number of PCs",
        ErrorKind.TOO_MANY_COMPONENTS,
    )

    open_dataset(results, "pcs", ElementType.FLOAT, (num_cells, observed))
    logger.debug("Observed %d of %d requested PCs", observed, max_pcs)
    return observed


def check_index_vector(handle, name: str, message: str) -> np.ndarray:
    """Load an integer vector that must be non-negative, sorted and unique."""
    indices = load_vector(handle, name, ElementType.INTEGER)
    require(
        bool(np.all(indices >= 0)),
        f"{message} should be non-negative",
        ErrorKind.OUT_OF_RANGE,
    )
    require(
        is_sorted_unique(indices),
        f"{message} should be unique and sorted",
        ErrorKind.NOT_UNIQUE_OR_SORTED,
    )
    return indices
