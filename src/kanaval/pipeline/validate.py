"""Top-level validation entry points."""

import logging
from pathlib import Path
from typing import Optional, Union

import h5py

from kanaval.pipeline.variants import PIPELINES
from kanaval.schemas.context import DerivedContext
from kanaval.schemas.version import SchemaFeatures, Variant, parse_version
from kanaval.stages.metadata import read_format_version

__all__ = ['validate', 'validate_file']

logger = logging.getLogger(__name__)


def validate(handle: h5py.Group, embedded: bool, version: Union[int, str]) -> DerivedContext:
    """Validate an open state file against the schema of ``version``.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file. The caller owns the handle; it is neither
        modified nor closed.

    embedded : bool
        True if input files are embedded in the session file as byte
        ranges, False if they are linked by identifier.

    version : int or str
        Format version, either encoded (``3000000``) or dotted (``"3.0.0"``).

    Returns
    -------
    DerivedContext
        Values derived while validating, e.g. cell and cluster counts.

    Raises
    ------
    ValidationError
        At the first violated rule, with breadcrumbs naming the stage.

    Examples
    --------
    >>> with h5py.File("state.h5", "r") as handle:
    ...     ctx = validate(handle, embedded=True, version="3.0.0")
    >>> ctx.num_clusters
    """
    features = SchemaFeatures.from_version(parse_version(version))
    pipeline = PIPELINES[Variant(features.variant)](handle, embedded, features)

    logger.info("Validating state file: version %s, %s layout", features.label, features.variant)
    ctx = pipeline.run()
    logger.info(
        "State file is valid: %s cells, %s after filtering, %s clusters",
        ctx.num_cells, ctx.filtered_cells, ctx.num_clusters,
    )
    return ctx


def validate_file(
    path: Union[str, Path],
    embedded: bool = True,
    version: Optional[Union[int, str]] = None,
) -> DerivedContext:
    """Open an HDF5 state file read-only and validate it.

    When ``version`` is None it is read from ``_metadata/format_version``,
    which only v3 files carry.
    """
    with h5py.File(path, "r") as handle:
        if version is None:
            version = read_format_version(handle)
            logger.debug("Read format version %s from %s", version, path)
        return validate(handle, embedded, version)
