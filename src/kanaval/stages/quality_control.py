"""Validation of the per-modality quality control stages.

RNA, ADT and CRISPR quality control share a layout: scalar parameters,
per-cell ``metrics``, per-block ``thresholds`` and a ``discards`` vector.
The modality-specific field names come from a
:class:`~kanaval.schemas.modality.QualityControlModality` descriptor.
"""

import logging
from typing import Optional

import h5py

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    context,
    load_float,
    load_integer,
    open_dataset,
    open_group,
    open_scalar,
    open_stage,
    require,
    validate_optional_or_required,
)
from kanaval.contracts.checks import check_discard_vector
from kanaval.schemas.context import QualityControlSummary
from kanaval.schemas.modality import QualityControlModality
from kanaval.schemas.version import SchemaFeatures
from kanaval.stages.base import stage_parameters, stage_results

logger = logging.getLogger(__name__)


def _check_metrics(results: h5py.Group, descriptor: QualityControlModality, num_cells: int) -> None:
    with context("failed to retrieve metrics from 'results'"):
        metrics = open_group(results, "metrics")
        for name, dtype in descriptor.metrics:
            open_dataset(metrics, name, dtype, (num_cells,))


def _check_thresholds(results: h5py.Group, descriptor: QualityControlModality, num_blocks: int) -> None:
    with context("failed to retrieve thresholds from 'results'"):
        thresholds = open_group(results, "thresholds")
        for name in descriptor.thresholds:
            open_dataset(thresholds, name, ElementType.FLOAT, (num_blocks,))


def validate_quality_control(
    handle: h5py.Group,
    descriptor: QualityControlModality,
    num_cells: int,
    num_blocks: int,
    in_use: bool,
    features: SchemaFeatures,
    stage_name: Optional[str] = None,
) -> QualityControlSummary:
    """Validate one modality's quality control stage.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file.

    descriptor : QualityControlModality
        Parameter, metric and threshold names for the modality.

    num_cells : int
        Number of cells before filtering.

    num_blocks : int
        Number of blocks; thresholds are reported per block.

    in_use : bool
        Whether the modality is present in the inputs. Results of an unused
        modality are only checked where they are present.

    features : SchemaFeatures
        Layout rules; decides whether parameters carry a ``skip`` flag.

    stage_name : str, optional
        Name of the stage group. Defaults to the descriptor's stage.

    Returns
    -------
    QualityControlSummary
        Whether QC was skipped, and the number of retained cells (None if
        the modality is not in use, ``num_cells`` if skipped).
    """
    name = stage_name or descriptor.stage
    stage = open_stage(handle, name)

    skipped = False
    with stage_parameters(stage, name) as params:
        for field in descriptor.integer_parameters:
            open_scalar(params, field, ElementType.INTEGER)
        for field in descriptor.string_parameters:
            open_scalar(params, field, ElementType.STRING)
        for bound in descriptor.float_parameters:
            require(bound.contains(load_float(params, bound.name)), bound.message, ErrorKind.OUT_OF_RANGE)
        if features.qc_skip_flag:
            skipped = bool(load_integer(params, "skip"))

    filtering = in_use and not skipped
    with stage_results(stage, name) as results:
        validate_optional_or_required(
            results, "metrics", filtering, lambda: _check_metrics(results, descriptor, num_cells)
        )
        validate_optional_or_required(
            results, "thresholds", filtering, lambda: _check_thresholds(results, descriptor, num_blocks)
        )
        retained = validate_optional_or_required(
            results, "discards", filtering, lambda: check_discard_vector(results, num_cells)
        )

    if not in_use:
        remaining = None
    elif skipped:
        remaining = num_cells
    else:
        remaining = retained

    logger.debug("%s: in_use=%s, skipped=%s, remaining=%s", name, in_use, skipped, remaining)
    return QualityControlSummary(skipped=skipped, remaining=remaining)
