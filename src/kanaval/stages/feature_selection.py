"""Validation of the ``feature_selection`` stage."""

import logging
from typing import Optional

import h5py

from kanaval.contracts import ElementType, ErrorKind, load_float, open_dataset, open_stage, require
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "feature_selection"

STATISTICS = ("means", "vars", "fitted", "resids")


def validate_feature_selection(handle: h5py.Group, num_genes: Optional[int], in_use: bool = True) -> None:
    """Validate the per-gene variance model.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_genes : int or None
        Number of RNA features. None when RNA is not in use.

    in_use : bool
        Whether RNA is in use. Per-gene statistics are required if so;
        otherwise they are skipped, as their length is unknown.
    """
    stage = open_stage(handle, STAGE)

    with stage_parameters(stage, STAGE) as params:
        span = load_float(params, "span")
        require(0 <= span <= 1, "LOWESS span should lie in [0, 1]", ErrorKind.OUT_OF_RANGE)

    with stage_results(stage, STAGE) as results:
        if in_use and num_genes is not None:
            for name in STATISTICS:
                open_dataset(results, name, ElementType.FLOAT, (num_genes,))

    logger.debug("feature_selection: span=%s, genes=%s", span, num_genes)
