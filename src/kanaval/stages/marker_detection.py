"""Validation of the ``marker_detection`` stage.

Marker statistics are stored per cluster, and from v2.0 per modality as
well. Every cluster group holds per-feature ``means`` and ``detected``
plus one group per effect size summarising its pairwise comparisons.
"""

import logging
from typing import Mapping

import h5py

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    check_non_negative,
    context,
    list_children,
    load_float,
    load_integer,
    open_dataset,
    open_group,
    open_stage,
    require,
)
from kanaval.schemas.modality import RNA
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)

STAGE = "marker_detection"

EFFECTS = ("lfc", "delta_detected", "cohen", "auc")
SUMMARIES = ("mean", "min", "min_rank")


def marker_effects(compute_auc: bool) -> tuple:
    """Effect sizes that are stored, given the ``compute_auc`` setting."""
    if compute_auc:
        return EFFECTS
    return tuple(e for e in EFFECTS if e != "auc")


def check_marker_parameters(params: h5py.Group, features: SchemaFeatures) -> bool:
    """Check the marker parameters shared with custom selections.

    Returns whether AUCs were computed. Files before v3.0 always store them.
    """
    if not features.optional_auc:
        return True
    compute_auc = bool(load_integer(params, "compute_auc"))
    check_non_negative(load_float(params, "lfc_threshold"), "'lfc_threshold' must be non-negative")
    return compute_auc


def check_cluster_markers(
    group: h5py.Group,
    num_features: int,
    num_clusters: int,
    parent: str,
    effects=EFFECTS,
) -> None:
    """Check the per-cluster marker statistics under ``group``.

    Parameters
    ----------
    group : h5py.Group
        Group holding one child ``"0"`` to ``"<num_clusters - 1>"`` per cluster.

    num_features : int
        Length of every statistic.

    num_clusters : int
        Expected number of cluster groups.

    parent : str
        Path of ``group`` used in error messages.

    effects : tuple of str
        Effect sizes to check.
    """
    require(
        len(list_children(group)) == num_clusters,
        f"number of groups in '{parent}' is not consistent with the expected number of clusters",
        ErrorKind.INCONSISTENT_COUNT,
    )

    dims = (num_features,)
    for i in range(num_clusters):
        with context(f"failed to retrieve statistics for cluster {i} in '{parent}'"):
            cluster = open_group(group, str(i))
            open_dataset(cluster, "means", ElementType.FLOAT, dims)
            open_dataset(cluster, "detected", ElementType.FLOAT, dims)

            for effect in effects:
                with context(f"failed to retrieve summary statistic for '{effect}'"):
                    summaries = open_group(cluster, effect)
                    for name in SUMMARIES:
                        open_dataset(summaries, name, ElementType.FLOAT, dims)


def validate_marker_detection(
    handle: h5py.Group,
    num_clusters: int,
    num_features: Mapping[str, int],
    features: SchemaFeatures,
) -> None:
    """Validate per-cluster marker statistics for every modality in use.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    num_clusters : int
        Number of clusters produced by the chosen clustering method.

    num_features : mapping
        Feature count of each modality in use.

    features : SchemaFeatures
        Layout rules; decide between ``per_cluster/<modality>`` and the
        legacy ``clusters`` group, and whether ``compute_auc`` is honoured.
    """
    stage = open_stage(handle, STAGE)

    with stage_parameters(stage, STAGE) as params:
        compute_auc = check_marker_parameters(params, features)
    effects = marker_effects(compute_auc)

    with stage_results(stage, STAGE) as results:
        if features.multimodal:
            per_cluster = open_group(results, "per_cluster")
            for modality, count in num_features.items():
                check_cluster_markers(
                    open_group(per_cluster, modality),
                    count,
                    num_clusters,
                    f"per_cluster/{modality}",
                    effects,
                )
        else:
            check_cluster_markers(open_group(results, "clusters"), num_features[RNA], num_clusters, "clusters", effects)

    logger.debug("marker_detection: %d clusters, compute_auc=%s", num_clusters, compute_auc)
