"""Validation of the ``batch_correction`` stage (v2.0 onwards)."""

import logging

import h5py

from kanaval.contracts import (
    ElementType,
    check_enum,
    check_positive,
    load_integer,
    load_string,
    open_dataset,
    open_scalar,
    open_stage,
    validate_optional_or_required,
)
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "batch_correction"

METHODS = ("none", "mnn")


def validate_batch_correction(handle: h5py.Group, num_cells: int, total_dims: int, num_blocks: int) -> None:
    """Validate batch correction of the combined embedding.

    A ``corrected`` embedding is required when MNN correction is applied
    to more than one block.
    """
    stage = open_stage(handle, STAGE)

    with stage_parameters(stage, STAGE) as params:
        check_positive(
            load_integer(params, "num_neighbors"),
            "number of neighbors should be positive in 'num_neighbors'",
        )
        open_scalar(params, "approximate", ElementType.INTEGER)
        method = check_enum(load_string(params, "method"), METHODS, "method")

    with stage_results(stage, STAGE) as results:
        validate_optional_or_required(
            results,
            "corrected",
            method == "mnn" and num_blocks > 1,
            lambda: open_dataset(results, "corrected", ElementType.FLOAT, (num_cells, total_dims)),
        )

    logger.debug("batch_correction: method=%s, blocks=%d", method, num_blocks)
