"""Validation of the ``custom_selections`` stage.

Users may define arbitrary subsets of cells and request marker statistics
for each subset against all other cells. Selections are stored as index
vectors into the filtered cells.
"""

import logging
from typing import List, Mapping

import h5py
import numpy as np

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    context,
    list_children,
    load_vector,
    open_dataset,
    open_group,
    open_stage,
    require,
)
from kanaval.contracts.checks import check_unique, is_sorted_unique
from kanaval.schemas.modality import RNA
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results
from kanaval.stages.marker_detection import check_marker_parameters, marker_effects

logger = logging.getLogger(__name__)

STAGE = "custom_selections"


def _check_selection(selections: h5py.Group, name: str, num_cells: int, sorted_names: bool) -> None:
    indices = load_vector(selections, name, ElementType.INTEGER)
    require(
        indices.size == 0 or (indices.min() >= 0 and indices.max() < num_cells),
        f"indices out of range for selection '{name}'",
        ErrorKind.OUT_OF_RANGE,
    )
    if sorted_names:
        require(
            is_sorted_unique(indices),
            f"indices should be sorted and unique for selection '{name}'",
            ErrorKind.NOT_UNIQUE_OR_SORTED,
        )
    else:
        require(
            check_unique(indices),
            f"indices should be unique for selection '{name}'",
            ErrorKind.NOT_UNIQUE_OR_SORTED,
        )


def _check_selection_markers(group: h5py.Group, num_features: int, effects) -> None:
    dims = (num_features,)
    open_dataset(group, "means", ElementType.FLOAT, dims)
    open_dataset(group, "detected", ElementType.FLOAT, dims)
    for effect in effects:
        open_dataset(group, effect, ElementType.FLOAT, dims)


def validate_custom_selections(
    handle: h5py.Group,
    num_cells: int,
    num_features: Mapping[str, int],
    features: SchemaFeatures,
) -> List[str]:
    """Validate custom selections and their marker statistics.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_cells : int
        Number of cells after filtering; selection indices must lie below it.

    num_features : mapping
        Feature count of each modality in use.

    features : SchemaFeatures
        Layout rules for the file's version.

    Returns
    -------
    list of str
        Names of the selections.
    """
    stage = open_stage(handle, STAGE)

    with stage_parameters(stage, STAGE) as params:
        compute_auc = check_marker_parameters(params, features)
        selections = open_group(params, "selections")
        names = list_children(selections)
        for name in names:
            _check_selection(selections, name, num_cells, features.sorted_names)
    effects = marker_effects(compute_auc)

    with stage_results(stage, STAGE) as results:
        parent = "per_selection" if features.multimodal else "markers"
        markers = open_group(results, parent)
        require(
            len(list_children(markers)) == len(names),
            f"number of groups in '{parent}' is not consistent with the expected number of selections",
            ErrorKind.INCONSISTENT_COUNT,
        )

        for name in names:
            with context(f"failed to retrieve statistics for selection '{name}' in 'results/{parent}'"):
                selection = open_group(markers, name)
                if not features.multimodal:
                    _check_selection_markers(selection, num_features[RNA], effects)
                    continue
                for modality, count in num_features.items():
                    with context(f"failed to retrieve statistics for modality '{modality}'"):
                        _check_selection_markers(open_group(selection, modality), count, effects)

    logger.debug("custom_selections: %d selections", len(names))
    return names
