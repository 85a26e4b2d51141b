"""Validation of the clustering stages.

``choose_clustering`` names the method whose assignments feed marker
detection and cell labelling. Both ``kmeans_cluster`` and
``snn_graph_cluster`` are always present; only the chosen one must hold
``clusters``, but the other is still checked if it stored any.
"""

import logging

import h5py

from kanaval.contracts import (
    ElementType,
    check_cluster_assignment,
    check_enum,
    check_non_negative,
    check_positive,
    load_float,
    load_integer,
    load_string,
    open_dataset,
    open_stage,
    validate_optional_or_required,
)
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

CHOOSE_STAGE = "choose_clustering"
KMEANS_STAGE = "kmeans_cluster"
SNN_STAGE = "snn_graph_cluster"

METHODS = ("kmeans", "snn_graph")
SNN_SCHEMES = ("rank", "jaccard", "number")
SNN_ALGORITHMS = ("multilevel", "walktrap", "leiden")


def validate_choose_clustering(handle: h5py.Group) -> str:
    """Return the chosen clustering method, ``"kmeans"`` or ``"snn_graph"``."""
    stage = open_stage(handle, CHOOSE_STAGE)
    with stage_parameters(stage, CHOOSE_STAGE) as params:
        method = check_enum(
            load_string(params, "method"),
            METHODS,
            "method",
            "'method' should be either 'kmeans' or 'snn_graph'",
        )
    with stage_results(stage, CHOOSE_STAGE):
        pass
    return method


def _check_clusters(results: h5py.Group, num_cells: int, upper_bound=None) -> int:
    dataset = open_dataset(results, "clusters", ElementType.INTEGER, (num_cells,))
    return check_cluster_assignment(dataset[()], num_cells, upper_bound)


def validate_kmeans_cluster(handle: h5py.Group, num_cells: int, in_use: bool) -> int:
    """Validate ``kmeans_cluster`` and return the number of clusters found.

    Labels must lie in ``[0, k)`` and every cluster must be non-empty.
    Returns 0 when no assignment is stored.
    """
    stage = open_stage(handle, KMEANS_STAGE)

    with stage_parameters(stage, KMEANS_STAGE) as params:
        k = load_integer(params, "k")
        check_positive(k, "number of clusters 'k' must be positive")

    with stage_results(stage, KMEANS_STAGE) as results:
        nclusters = validate_optional_or_required(
            results, "clusters", in_use, lambda: _check_clusters(results, num_cells, k)
        )

    logger.debug("kmeans_cluster: k=%d, in_use=%s, clusters=%s", k, in_use, nclusters)
    return nclusters or 0


def validate_snn_graph_cluster(
    handle: h5py.Group,
    num_cells: int,
    in_use: bool,
    features: SchemaFeatures,
) -> int:
    """Validate ``snn_graph_cluster`` and return the number of clusters found.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_cells : int
        Number of cells after filtering.

    in_use : bool
        Whether graph-based clustering was the chosen method.

    features : SchemaFeatures
        v3 files select among several community detection algorithms;
        earlier files carry a single ``resolution``.

    Returns
    -------
    int
        Number of clusters, or 0 when no assignment is stored.
    """
    stage = open_stage(handle, SNN_STAGE)

    with stage_parameters(stage, SNN_STAGE) as params:
        check_positive(load_integer(params, "k"), "number of neighbors 'k' must be positive")
        check_enum(
            load_string(params, "scheme"),
            SNN_SCHEMES,
            "scheme",
            "'scheme' must be one of 'rank', 'jaccard' or 'number'",
        )

        if features.snn_algorithms:
            check_enum(
                load_string(params, "algorithm"),
                SNN_ALGORITHMS,
                "algorithm",
                "'algorithm' must be one of 'multilevel', 'walktrap' or 'leiden'",
            )
            check_non_negative(
                load_float(params, "multilevel_resolution"),
                "'multilevel_resolution' must be non-negative",
            )
            check_non_negative(
                load_float(params, "leiden_resolution"),
                "'leiden_resolution' must be non-negative",
            )
            check_non_negative(
                load_integer(params, "walktrap_steps"),
                "'walktrap_steps' must be non-negative",
            )
        else:
            check_non_negative(load_float(params, "resolution"), "'resolution' must be non-negative")

    with stage_results(stage, SNN_STAGE) as results:
        nclusters = validate_optional_or_required(
            results, "clusters", in_use, lambda: _check_clusters(results, num_cells)
        )

    logger.debug("snn_graph_cluster: in_use=%s, clusters=%s", in_use, nclusters)
    return nclusters or 0
