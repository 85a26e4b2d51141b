"""Validation of the t-SNE and UMAP stages.

Both store a 2-dimensional embedding as separate ``x`` and ``y`` vectors
with one entry per filtered cell.
"""

import h5py

from kanaval.contracts import (
    ElementType,
    check_positive,
    load_float,
    load_integer,
    open_dataset,
    open_stage,
)
from kanaval.stages.base import stage_parameters, stage_results

TSNE_STAGE = "tsne"
UMAP_STAGE = "umap"


def _check_coordinates(stage: h5py.Group, name: str, num_cells: int) -> None:
    with stage_results(stage, name) as results:
        open_dataset(results, "x", ElementType.FLOAT, (num_cells,))
        open_dataset(results, "y", ElementType.FLOAT, (num_cells,))


def validate_tsne(handle: h5py.Group, num_cells: int) -> None:
    stage = open_stage(handle, TSNE_STAGE)
    with stage_parameters(stage, TSNE_STAGE) as params:
        check_positive(load_float(params, "perplexity"), "'perplexity' value should be positive")
        check_positive(load_integer(params, "iterations"), "'iterations' should be positive")
        load_integer(params, "animate")
    _check_coordinates(stage, TSNE_STAGE, num_cells)


def validate_umap(handle: h5py.Group, num_cells: int) -> None:
    stage = open_stage(handle, UMAP_STAGE)
    with stage_parameters(stage, UMAP_STAGE) as params:
        check_positive(load_integer(params, "num_neighbors"), "'num_neighbors' value should be positive")
        check_positive(load_integer(params, "num_epochs"), "'num_epochs' should be positive")
        check_positive(load_float(params, "min_dist"), "'min_dist' should be positive")
        load_integer(params, "animate")
    _check_coordinates(stage, UMAP_STAGE, num_cells)
