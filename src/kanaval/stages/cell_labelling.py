"""Validation of the ``cell_labelling`` stage.

Clusters are labelled against human and mouse reference datasets. Each
reference used yields one label per cluster; with several references an
``integrated`` assignment picks the best reference for each cluster.
"""

import logging
from typing import Set

import h5py

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    list_children,
    load_vector,
    open_dataset,
    open_group,
    open_stage,
    require,
)
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "cell_labelling"

SPECIES_REFERENCES = ("human_references", "mouse_references")


def validate_cell_labelling(handle: h5py.Group, num_clusters: int) -> Set[str]:
    """Validate reference-based labels for each cluster.

    Returns the set of declared reference names.
    """
    stage = open_stage(handle, STAGE)

    references: Set[str] = set()
    with stage_parameters(stage, STAGE) as params:
        for species in SPECIES_REFERENCES:
            for ref in load_vector(params, species, ElementType.STRING):
                require(
                    ref not in references,
                    f"duplicated reference '{ref}' in '{species}'",
                    ErrorKind.DUPLICATE_NAME,
                )
                references.add(ref)

    with stage_results(stage, STAGE) as results:
        per_reference = open_group(results, "per_reference")
        used = list_children(per_reference)
        for name in used:
            require(
                name in references,
                f"reference '{name}' in 'results/per_reference' not listed in the parameters",
                ErrorKind.INVALID_ENUM,
            )
            open_dataset(per_reference, name, ElementType.STRING, (num_clusters,))

        if len(used) > 1:
            integrated = load_vector(results, "integrated", ElementType.STRING)
            require(
                len(integrated) == num_clusters,
                "'integrated' should have length equal to the number of clusters",
                ErrorKind.WRONG_SHAPE,
            )
            for ref in integrated:
                require(
                    ref in references,
                    f"reference '{ref}' not listed in the parameters",
                    ErrorKind.INVALID_ENUM,
                )

    logger.debug("cell_labelling: %d references declared, %d used", len(references), len(used))
    return references
