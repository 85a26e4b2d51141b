"""Validation of the normalization stages.

RNA and CRISPR normalization store nothing beyond their ``parameters`` and
``results`` groups. ADT normalization records the clustering used to
compute size factors, and the size factors themselves.
"""

import logging

import h5py

from kanaval.contracts import (
    ElementType,
    check_non_negative,
    load_integer,
    open_dataset,
    open_stage,
    validate_optional_or_required,
)
from kanaval.stages.base import check_stage_groups, stage_parameters, stage_results

logger = logging.getLogger(__name__)

ADT_STAGE = "adt_normalization"


def validate_normalization(handle: h5py.Group, stage_name: str = "normalization") -> None:
    """Validate a normalization stage that only needs its two groups."""
    stage = open_stage(handle, stage_name)
    check_stage_groups(stage, stage_name)
    logger.debug("%s: groups present", stage_name)


def validate_adt_normalization(handle: h5py.Group, num_cells: int, in_use: bool) -> None:
    """Validate ``adt_normalization``.

    ``size_factors`` holds one value per filtered cell. It is required
    when ADT is in use and checked only if present otherwise.
    """
    stage = open_stage(handle, ADT_STAGE)

    with stage_parameters(stage, ADT_STAGE) as params:
        check_non_negative(
            load_integer(params, "num_pcs"),
            "number of PCs used for ADT normalization should be non-negative",
        )
        check_non_negative(
            load_integer(params, "num_clusters"),
            "number of clusters used for ADT normalization should be non-negative",
        )

    with stage_results(stage, ADT_STAGE) as results:
        validate_optional_or_required(
            results,
            "size_factors",
            in_use,
            lambda: open_dataset(results, "size_factors", ElementType.FLOAT, (num_cells,)),
        )
