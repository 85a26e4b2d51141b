"""Validation of the per-modality PCA stages.

One implementation covers ``pca`` (legacy and v2 RNA), ``adt_pca`` and the
v3 ``rna_pca``/``adt_pca``/``crispr_pca`` stages. The descriptor decides
whether ``num_hvgs`` is expected; the schema features decide whether RNA
carries a ``block_method`` and whether a legacy MNN-corrected embedding is
stored alongside the PCs.
"""

import logging
from typing import Optional

import h5py

from kanaval.contracts import (
    ElementType,
    check_block_method,
    check_pca_results,
    check_positive,
    load_integer,
    load_string,
    open_dataset,
    open_stage,
)
from kanaval.schemas.modality import RNA, PcaModality
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)


def validate_pca(
    handle: h5py.Group,
    descriptor: PcaModality,
    num_cells: int,
    in_use: bool,
    features: SchemaFeatures,
    stage_name: Optional[str] = None,
) -> Optional[int]:
    """Validate one modality's PCA stage.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    descriptor : PcaModality
        The modality and its stage name.

    num_cells : int
        Number of cells after filtering.

    in_use : bool
        Whether the modality is in use. Results of an unused modality are
        checked only if ``pcs`` is present.

    features : SchemaFeatures
        Layout rules for the file's version.

    stage_name : str, optional
        Name of the stage group. Defaults to the descriptor's stage.

    Returns
    -------
    int or None
        Observed number of PCs, or None when the modality is not in use.
    """
    name = stage_name or descriptor.stage
    stage = open_stage(handle, name)

    block_method = None
    with stage_parameters(stage, name) as params:
        if descriptor.requires_hvgs:
            check_positive(load_integer(params, "num_hvgs"), "number of HVGs must be positive in 'num_hvgs'")
        max_pcs = load_integer(params, "num_pcs")
        check_positive(max_pcs, "number of PCs must be positive in 'num_pcs'")
        if descriptor.modality != RNA or features.pca_block_method:
            block_method = check_block_method(load_string(params, "block_method"), features)

    observed = None
    with stage_results(stage, name) as results:
        if in_use or "pcs" in results:
            observed = check_pca_results(results, max_pcs, num_cells)
            if features.legacy_mnn_pca and block_method == "mnn":
                open_dataset(results, "corrected", ElementType.FLOAT, (num_cells, observed))

    logger.debug("%s: requested %d PCs, observed %s", name, max_pcs, observed)
    return observed if in_use else None
