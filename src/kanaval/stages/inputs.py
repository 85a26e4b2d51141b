"""Validation of the ``inputs`` stage.

Two layouts exist. Legacy and v2 files describe one or more matrices
through ``parameters/format`` and a flat ``parameters/files`` manifest.
v3 files describe a list of ``parameters/datasets``, each with its own
files and options. Both report the number of cells, the number of blocks
and the feature count of every modality in use.
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

import h5py
import numpy as np

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    context,
    kind_of,
    list_children,
    load_integer,
    load_string,
    load_vector,
    open_dataset,
    open_group,
    open_stage,
    require,
)
from kanaval.contracts.access import element_type
from kanaval.contracts.checks import check_index_vector, is_sorted_unique, check_unique
from kanaval.schemas.base import KanavalRecord
from kanaval.schemas.context import InputsSummary
from kanaval.schemas.modality import MODALITY_ORDER, RNA
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "inputs"

MATRIX_MARKET_TYPES = ("mtx", "genes", "annotations")
SINGLE_FILE_FORMATS = ("10X", "H5AD")


class InputLayout(KanavalRecord):
    """Facts from ``inputs/parameters`` needed to check ``inputs/results``."""

    num_matrices: int
    multi_matrix: bool
    multi_sample: bool
    subset_size: Optional[int] = None


def check_byte_ranges(ranges: Sequence[Tuple[int, int]], message: str) -> None:
    """Embedded files must tile the payload from offset 0 without gaps."""
    position = 0
    for offset, size in ranges:
        require(offset == position, message, ErrorKind.INCONSISTENT_COUNT)
        position += size


def check_format_files(fmt: str, types: List[str]) -> None:
    """Check the file types declared for one matrix against its format."""
    if fmt == "MatrixMarket":
        for t in types:
            require(
                t in MATRIX_MARKET_TYPES,
                f"unknown file type '{t}' when format is 'MatrixMarket'",
                ErrorKind.INVALID_ENUM,
            )

        counts = Counter(types)
        require(
            counts["mtx"] == 1,
            "expected exactly one 'mtx' file when format is 'MatrixMarket'",
            ErrorKind.INCONSISTENT_COUNT,
        )
        require(
            counts["genes"] <= 1,
            "expected no more than one 'genes' file when format is 'MatrixMarket'",
            ErrorKind.INCONSISTENT_COUNT,
        )
        require(
            counts["annotations"] <= 1,
            "expected no more than one 'annotations' file when format is 'MatrixMarket'",
            ErrorKind.INCONSISTENT_COUNT,
        )

    elif fmt in SINGLE_FILE_FORMATS:
        require(
            types == ["h5"],
            f"expected exactly one 'h5' file when format is '{fmt}'",
            ErrorKind.INCONSISTENT_COUNT,
        )


def check_subset_cells(subset: h5py.Group, allow_ranges: bool) -> Optional[int]:
    """Validate a cell subset and return its size when given as indices.

    A subset is either a sorted vector of ``indices``, or a ``field`` of the
    cell annotations with the retained ``values`` (or, from v3, the retained
    numeric ``ranges``).
    """
    if "indices" in subset:
        indices = check_index_vector(subset, "indices", "indices in 'subset/indices'")
        return int(indices.size)

    open_dataset(subset, "field", ElementType.STRING, ())

    if allow_ranges and "values" not in subset:
        ranges = open_dataset(subset, "ranges", ElementType.FLOAT)
        require(
            ranges.shape is not None and len(ranges.shape) == 2,
            "'subset/ranges' should be a 2-dimensional float dataset",
            ErrorKind.WRONG_SHAPE,
        )
        require(
            ranges.shape[1] == 2,
            "'subset/ranges' should have two columns",
            ErrorKind.WRONG_SHAPE,
        )
        # Rows are [start, end) intervals, so the row-major flattening must be sorted.
        flat = np.asarray(ranges[()], dtype=np.float64).ravel()
        require(
            bool(np.all(np.diff(flat) >= 0)),
            "'subset/ranges' should specify sorted, non-overlapping intervals",
            ErrorKind.NOT_UNIQUE_OR_SORTED,
        )
        return None

    values = open_dataset(subset, "values", ElementType.STRING)
    require(
        values.shape is not None and len(values.shape) == 1,
        "'subset/values' should be a 1-dimensional string dataset",
        ErrorKind.WRONG_SHAPE,
    )
    return None


def check_identities(values: np.ndarray, label: str) -> None:
    require(
        bool(np.all(values >= 0)),
        f"{label} contains negative values",
        ErrorKind.OUT_OF_RANGE,
    )
    require(
        check_unique(values),
        f"{label} contains duplicate values",
        ErrorKind.NOT_UNIQUE_OR_SORTED,
    )


# =============================================================================
# Legacy and v2 layout
# =============================================================================

def _validate_parameters(params: h5py.Group, embedded: bool, features: SchemaFeatures) -> InputLayout:
    fmt = open_dataset(params, "format", ElementType.STRING)
    if fmt.shape == ():
        formats = [load_string(params, "format")]
        multi_matrix = False
    else:
        require(
            features.multi_matrix_inputs,
            "'format' should be a scalar string in version 1.0",
            ErrorKind.WRONG_SHAPE,
        )
        formats = load_vector(params, "format", ElementType.STRING)
        multi_matrix = True

    files = open_group(params, "files")
    nfiles = len(list_children(files))

    if multi_matrix:
        sample_groups = load_vector(params, "sample_groups", ElementType.INTEGER)
        require(
            len(sample_groups) == len(formats),
            "'sample_groups' and 'format' should have the same length",
            ErrorKind.INCONSISTENT_COUNT,
        )
        require(
            int(sample_groups.sum()) == nfiles,
            "sum of 'sample_groups' is not equal to the length of 'files'",
            ErrorKind.INCONSISTENT_COUNT,
        )

        names = load_vector(params, "sample_names", ElementType.STRING)
        require(
            len(names) == len(formats),
            "'sample_names' and 'format' should have the same length",
            ErrorKind.INCONSISTENT_COUNT,
        )
        if features.sorted_names:
            require(
                is_sorted_unique(names),
                "duplicated or unsorted values in 'sample_names'",
                ErrorKind.NOT_UNIQUE_OR_SORTED,
            )
        else:
            require(
                check_unique(names),
                "duplicated values in 'sample_names'",
                ErrorKind.DUPLICATE_NAME,
            )
        runs = [int(g) for g in sample_groups]
    else:
        runs = [nfiles]

    position = 0
    byte_ranges = []
    for fmt_name, run in zip(formats, runs):
        types = []
        for _ in range(run):
            current = str(position)
            with context(f"failed to retrieve information for file {current}"):
                entry = open_group(files, current)
                open_dataset(entry, "name", ElementType.STRING, ())
                types.append(load_string(entry, "type"))
                if embedded:
                    byte_ranges.append((load_integer(entry, "offset"), load_integer(entry, "size")))
                else:
                    open_dataset(entry, "id", ElementType.STRING, ())
            position += 1
        check_format_files(fmt_name, types)

    if embedded:
        check_byte_ranges(byte_ranges, "offsets and sizes of 'files' are not sorted and contiguous")

    multi_sample = multi_matrix
    if not multi_matrix and "sample_factor" in params:
        open_dataset(params, "sample_factor", ElementType.STRING, ())
        multi_sample = True

    subset_size = None
    if "subset" in params:
        subset_size = check_subset_cells(open_group(params, "subset"), allow_ranges=False)

    return InputLayout(
        num_matrices=len(formats),
        multi_matrix=multi_matrix,
        multi_sample=multi_sample,
        subset_size=subset_size,
    )


def _validate_results(results: h5py.Group, layout: InputLayout, features: SchemaFeatures) -> InputsSummary:
    if features.multimodal:
        num_cells = load_integer(results, "num_cells")
        counts = open_group(results, "num_features")
        present = list_children(counts)
        modalities = [m for m in MODALITY_ORDER if m in present]
        modalities += sorted(m for m in present if m not in MODALITY_ORDER)
        require(
            len(modalities) > 0,
            "number of modalities should be positive",
            ErrorKind.INCONSISTENT_COUNT,
        )
        num_features = {m: load_integer(counts, m) for m in modalities}
    else:
        dims = load_vector(results, "dimensions", ElementType.INTEGER)
        require(dims.size == 2, "'dimensions' should be a dataset of length 2", ErrorKind.WRONG_SHAPE)
        require(
            bool(np.all(dims >= 0)),
            "'dimensions' should contain non-negative integers",
            ErrorKind.OUT_OF_RANGE,
        )
        num_features = {RNA: int(dims[0])}
        num_cells = int(dims[1])

    require(num_cells > 0, "number of cells should be a positive integer", ErrorKind.OUT_OF_RANGE)

    num_samples = load_integer(results, "num_samples") if "num_samples" in results else 1
    require(num_samples > 0, "number of samples should be a positive integer", ErrorKind.OUT_OF_RANGE)
    if layout.multi_matrix:
        require(
            num_samples == layout.num_matrices,
            "'num_samples' should be equal to the number of matrices",
            ErrorKind.INCONSISTENT_COUNT,
        )
    elif not layout.multi_sample:
        require(
            num_samples == 1,
            "'num_samples' should be 1 for single matrix inputs without 'sample_factor'",
            ErrorKind.INCONSISTENT_COUNT,
        )

    if features.multimodal:
        identities = open_group(results, "identities")
        for modality, count in num_features.items():
            label = f"'identities' for modality '{modality}'"
            idx = load_vector(identities, modality, ElementType.INTEGER)
            require(
                idx.size == count,
                f"{label} should have length equal to its number of features",
                ErrorKind.WRONG_SHAPE,
            )
            check_identities(idx, label)

    elif features.gene_identities:
        idx = load_vector(results, "identities", ElementType.INTEGER)
        require(
            idx.size == num_features[RNA],
            "'identities' should have length equal to the number of genes",
            ErrorKind.WRONG_SHAPE,
        )
        check_identities(idx, "'identities'")

    elif layout.multi_matrix:
        idx = load_vector(results, "indices", ElementType.INTEGER)
        require(
            idx.size == num_features[RNA],
            "'indices' should have length equal to the number of genes",
            ErrorKind.WRONG_SHAPE,
        )
        check_identities(idx, "'indices'")

    else:
        perm = load_vector(results, "permutation", ElementType.INTEGER)
        require(
            perm.size == num_features[RNA],
            "'permutation' should have length equal to the number of genes",
            ErrorKind.WRONG_SHAPE,
        )
        require(
            bool(np.all((perm >= 0) & (perm < perm.size))),
            "'permutation' contains out-of-range values",
            ErrorKind.OUT_OF_RANGE,
        )
        require(check_unique(perm), "duplicated index in 'permutation'", ErrorKind.NOT_UNIQUE_OR_SORTED)

    if layout.subset_size is not None:
        require(
            layout.subset_size == num_cells,
            "inconsistent number of cells in 'parameters/subset/indices' and 'results/num_cells'",
            ErrorKind.INCONSISTENT_COUNT,
        )

    return InputsSummary(num_cells=num_cells, num_blocks=num_samples, num_features=num_features)


def validate_inputs(handle: h5py.Group, embedded: bool, features: SchemaFeatures) -> InputsSummary:
    """Validate the legacy or v2 ``inputs`` stage.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    embedded : bool
        Whether input files are embedded (byte ranges) or linked (ids).

    features : SchemaFeatures
        Layout rules for the file's format version.

    Returns
    -------
    InputsSummary
        Number of cells, number of samples and feature counts per modality.
    """
    stage = open_stage(handle, STAGE)

    with stage_parameters(stage, STAGE) as params:
        layout = _validate_parameters(params, embedded, features)

    with stage_results(stage, STAGE) as results:
        summary = _validate_results(results, layout, features)

    logger.debug(
        "inputs: %d cells, %d samples, features %s",
        summary.num_cells, summary.num_blocks, summary.num_features,
    )
    return summary


# =============================================================================
# v3 layout
# =============================================================================

def _check_datasets(params: h5py.Group, embedded: bool) -> int:
    datasets = open_group(params, "datasets")
    ndatasets = len(list_children(datasets))
    used_names = set()
    position = 0

    for d in range(ndatasets):
        with context(f"failed to check parameters for dataset {d}"):
            entry = open_group(datasets, str(d))
            load_string(entry, "format")

            name = load_string(entry, "name")
            require(
                name not in used_names,
                f"detected duplicate dataset name '{name}'",
                ErrorKind.DUPLICATE_NAME,
            )
            used_names.add(name)

            files = open_group(entry, "files")
            for f in range(len(list_children(files))):
                with context(f"failed to inspect details for file {f}"):
                    current = open_group(files, str(f))
                    load_string(current, "type")
                    load_string(current, "name")

                    if embedded:
                        offset = load_integer(current, "offset")
                        require(offset >= 0, "offset should be non-negative", ErrorKind.OUT_OF_RANGE)
                        require(
                            offset == position,
                            "byte range is not contiguous with previous file",
                            ErrorKind.INCONSISTENT_COUNT,
                        )
                        size = load_integer(current, "size")
                        require(size >= 0, "size should be non-negative", ErrorKind.OUT_OF_RANGE)
                        position += size
                    else:
                        load_string(current, "id")

            if "options" in entry:
                options = open_group(entry, "options")
                with context("failed to load options"):
                    for option in list_children(options):
                        require(
                            kind_of(options, option) == "dataset",
                            f"option '{option}' should be a dataset",
                            ErrorKind.WRONG_TYPE,
                        )

    return ndatasets


def _check_feature_identities(results: h5py.Group) -> Dict[str, int]:
    identities = open_group(results, "feature_identities")
    num_features = {}

    with context("failed to load 'feature_identities'"):
        for modality in MODALITY_ORDER:
            if modality not in identities:
                continue
            idx = np.sort(load_vector(identities, modality, ElementType.INTEGER))
            require(
                (idx.size == 0 or idx[0] >= 0) and is_sorted_unique(idx),
                f"identities for modality '{modality}' should be unique and non-negative",
                ErrorKind.NOT_UNIQUE_OR_SORTED,
            )
            num_features[modality] = int(idx.size)

    require(
        len(num_features) > 0,
        "'feature_identities' should contain at least one recognized modality",
        ErrorKind.MISSING_DATASET,
    )
    return num_features


def _check_feature_names(results: h5py.Group, num_features: Dict[str, int]) -> None:
    if "feature_names" not in results:
        return

    names = open_group(results, "feature_names")
    with context("failed to load 'feature_names'"):
        for modality, count in num_features.items():
            if modality not in names:
                continue
            dataset = open_dataset(names, modality)
            require(
                element_type(dataset) == ElementType.STRING,
                f"names for modality '{modality}' should be a string dataset",
                ErrorKind.WRONG_TYPE,
            )
            require(
                dataset.shape is not None and len(dataset.shape) == 1,
                f"names for modality '{modality}' should be a 1-dimensional string dataset",
                ErrorKind.WRONG_SHAPE,
            )
            require(
                dataset.shape[0] == count,
                f"names for modality '{modality}' should be of length equal to 'feature_identities/{modality}'",
                ErrorKind.WRONG_SHAPE,
            )


def validate_inputs_v3(handle: h5py.Group, embedded: bool) -> InputsSummary:
    """Validate the v3 ``inputs`` stage.

    Returns
    -------
    InputsSummary
        Number of cells, number of blocks and feature counts for each of
        RNA, ADT and CRISPR that is present, in that order.
    """
    stage = open_stage(handle, STAGE)

    subset_size = None
    has_block = False
    with stage_parameters(stage, STAGE) as params:
        ndatasets = _check_datasets(params, embedded)

        if "subset" in params:
            subset = open_group(params, "subset")
            if "cells" in subset:
                subset_size = check_subset_cells(open_group(subset, "cells"), allow_ranges=True)

        if ndatasets == 1 and "block_factor" in params:
            load_string(params, "block_factor")
            has_block = True

    with stage_results(stage, STAGE) as results:
        num_cells = load_integer(results, "num_cells")
        require(num_cells > 0, "number of cells should be a positive integer", ErrorKind.OUT_OF_RANGE)
        if subset_size is not None:
            require(
                num_cells == subset_size,
                "number of cells should be equal to the length of 'parameters/subset/indices'",
                ErrorKind.INCONSISTENT_COUNT,
            )

        num_blocks = load_integer(results, "num_blocks")
        require(num_blocks > 0, "number of blocks should be a positive integer", ErrorKind.OUT_OF_RANGE)
        if ndatasets > 1 or not has_block:
            require(
                num_blocks == ndatasets,
                "number of blocks should be equal to the number of datasets",
                ErrorKind.INCONSISTENT_COUNT,
            )

        num_features = _check_feature_identities(results)
        _check_feature_names(results, num_features)

    logger.debug(
        "inputs: %d datasets, %d cells, %d blocks, features %s",
        ndatasets, num_cells, num_blocks, num_features,
    )
    return InputsSummary(num_cells=num_cells, num_blocks=num_blocks, num_features=num_features)
