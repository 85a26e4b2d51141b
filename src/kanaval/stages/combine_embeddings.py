"""Validation of the ``combine_embeddings`` stage (v2.0 onwards).

The per-modality PCs are concatenated into a single embedding. A
``combined`` matrix is only stored when more than one modality takes part;
with a single modality its PCs are used directly.
"""

import logging
from typing import Dict, Mapping, Sequence

import h5py

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    context,
    list_children,
    load_float,
    open_dataset,
    open_group,
    open_scalar,
    open_stage,
    require,
)
from kanaval.schemas.modality import ADT, CRISPR, RNA
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "combine_embeddings"

WEIGHT_FIELDS = (("rna_weight", RNA), ("adt_weight", ADT), ("crispr_weight", CRISPR))


def _check_weights(params: h5py.Group, modalities: Sequence[str]) -> None:
    with context("failed to retrieve weights from 'parameters'"):
        weights = open_group(params, "weights")
        if not list_children(weights):
            return

        values = [load_float(weights, modality) for modality in modalities]
        require(
            any(v > 0 for v in values),
            "at least one modality should have a positive weight",
            ErrorKind.OUT_OF_RANGE,
        )


def validate_combine_embeddings_v2(
    handle: h5py.Group,
    num_cells: int,
    num_pcs: Mapping[str, int],
) -> int:
    """Validate the v2 ``combine_embeddings`` stage.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_cells : int
        Number of cells after filtering.

    num_pcs : mapping
        Observed PCs for each modality in use.

    Returns
    -------
    int
        Total dimensionality, the sum of the in-use modalities' PCs.
    """
    stage = open_stage(handle, STAGE)
    modalities = list(num_pcs)
    total_dims = sum(num_pcs.values())

    with stage_parameters(stage, STAGE) as params:
        open_scalar(params, "approximate", ElementType.INTEGER)
        if "weights" in params:
            _check_weights(params, modalities)

    with stage_results(stage, STAGE) as results:
        if len(modalities) > 1:
            open_dataset(results, "combined", ElementType.FLOAT, (num_cells, total_dims))

    logger.debug("combine_embeddings: modalities=%s, total_dims=%d", modalities, total_dims)
    return total_dims


def validate_combine_embeddings_v3(
    handle: h5py.Group,
    num_cells: int,
    num_pcs: Mapping[str, int],
) -> int:
    """Validate the v3 ``combine_embeddings`` stage.

    A modality takes part when its weight is positive and its PCs are
    available. Returns the total dimensionality of the participants.
    """
    stage = open_stage(handle, STAGE)

    active: Dict[str, int] = {}
    with stage_parameters(stage, STAGE) as params:
        open_scalar(params, "approximate", ElementType.INTEGER)
        for field, modality in WEIGHT_FIELDS:
            if load_float(params, field) > 0 and modality in num_pcs:
                active[modality] = num_pcs[modality]
        require(
            len(active) > 0,
            "could not find any available modality with non-zero weight",
            ErrorKind.OUT_OF_RANGE,
        )

    total_dims = sum(active.values())
    with stage_results(stage, STAGE) as results:
        if len(active) > 1:
            open_dataset(results, "combined", ElementType.FLOAT, (num_cells, total_dims))

    logger.debug("combine_embeddings: active=%s, total_dims=%d", list(active), total_dims)
    return total_dims
