"""Validation of the ``neighbor_index`` stage."""

import h5py

from kanaval.contracts import ElementType, open_scalar, open_stage
from kanaval.stages.base import stage_parameters, stage_results

STAGE = "neighbor_index"


def validate_neighbor_index(handle: h5py.Group) -> None:
    stage = open_stage(handle, STAGE)
    with stage_parameters(stage, STAGE) as params:
        open_scalar(params, "approximate", ElementType.INTEGER)
    with stage_results(stage, STAGE):
        pass
