"""Validation of the ``cell_filtering`` stage (v2.0 onwards).

Cell filtering combines the per-modality QC discards. A combined
``discards`` vector is only stored when more than one modality
contributes; otherwise the surviving cell count comes from the single
contributing QC stage, or is simply the number of cells.
"""

import logging
from typing import Mapping, Optional

import h5py

from kanaval.contracts import context, load_integer, open_group, open_stage, validate_optional_or_required
from kanaval.contracts.checks import check_discard_vector
from kanaval.schemas.modality import ADT, CRISPR, RNA
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "cell_filtering"

FILTER_FLAGS = (("use_rna", RNA), ("use_adt", ADT), ("use_crispr", CRISPR))


def validate_cell_filtering_v2(handle: h5py.Group, num_cells: int, num_qc_modalities: int) -> Optional[int]:
    """Validate the v2 ``cell_filtering`` stage.

    Returns the number of retained cells from the combined ``discards``, or
    None when the vector is absent and not required.
    """
    stage = open_stage(handle, STAGE)
    with context(f"failed to retrieve parameters from '{STAGE}'", stage=STAGE):
        open_group(stage, "parameters")

    with stage_results(stage, STAGE) as results:
        remaining = validate_optional_or_required(
            results, "discards", num_qc_modalities > 1, lambda: check_discard_vector(results, num_cells)
        )

    logger.debug("cell_filtering: %d contributing modalities, remaining=%s", num_qc_modalities, remaining)
    return remaining


def validate_cell_filtering_v3(handle: h5py.Group, num_cells: int, qc_remaining: Mapping[str, int]) -> int:
    """Validate the v3 ``cell_filtering`` stage.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_cells : int
        Number of cells before filtering.

    qc_remaining : mapping
        Cells retained by each in-use modality's quality control.

    Returns
    -------
    int
        Number of cells after filtering.
    """
    stage = open_stage(handle, STAGE)

    contributing = []
    with stage_parameters(stage, STAGE) as params:
        for flag, modality in FILTER_FLAGS:
            if load_integer(params, flag) and modality in qc_remaining:
                contributing.append(modality)

    with stage_results(stage, STAGE) as results:
        if len(contributing) > 1:
            remaining = check_discard_vector(results, num_cells)
        elif contributing:
            remaining = qc_remaining[contributing[0]]
        else:
            remaining = num_cells

    logger.debug("cell_filtering: contributing=%s, remaining=%d", contributing, remaining)
    return remaining
