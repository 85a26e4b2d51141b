"""Derived values threaded between stage validators.

Each stage reads the context accumulated so far and hands back a delta.
The pipeline merges deltas into a new ``DerivedContext``; a value, once
set, is never overwritten.
"""

from typing import Dict, Optional, Tuple

from kanaval.schemas.base import KanavalRecord


class InputsSummary(KanavalRecord):
    """What the ``inputs`` stage tells the rest of the pipeline."""

    num_cells: int
    num_blocks: int
    num_features: Dict[str, int]

    @property
    def modalities(self) -> Tuple[str, ...]:
        return tuple(self.num_features)


class QualityControlSummary(KanavalRecord):
    """Outcome of one quality control stage.

    ``remaining`` is None when the modality is not in use.
    """

    skipped: bool = False
    remaining: Optional[int] = None


class DerivedContext(KanavalRecord):
    """Accumulated cross-stage facts for a single validation run.

    Attributes
    ----------
    num_cells : int
        Cells before filtering.
    num_blocks : int
        Blocks (samples) used for per-block QC thresholds.
    num_features : dict
        Feature count per modality in use, in modality order.
    qc_remaining : dict
        Cells retained by each in-use modality's quality control.
    qc_contributing : tuple of str
        Modalities whose quality control filters cells.
    filtered_cells : int
        Cells remaining after cell filtering.
    num_pcs : dict
        Observed PCs per modality in use.
    total_dims : int
        Dimensionality of the combined embedding.
    cluster_method : str
        Clustering method chosen in ``choose_clustering``.
    num_clusters : int
        Clusters produced by the chosen method.
    """

    num_cells: Optional[int] = None
    num_blocks: Optional[int] = None
    num_features: Optional[Dict[str, int]] = None
    qc_remaining: Optional[Dict[str, int]] = None
    qc_contributing: Optional[Tuple[str, ...]] = None
    filtered_cells: Optional[int] = None
    num_pcs: Optional[Dict[str, int]] = None
    total_dims: Optional[int] = None
    cluster_method: Optional[str] = None
    num_clusters: Optional[int] = None

    @property
    def modalities(self) -> Tuple[str, ...]:
        return tuple(self.num_features or ())

    def in_use(self, modality: str) -> bool:
        return modality in (self.num_features or {})

    def merge(self, **delta) -> "DerivedContext":
        """Return a new context with ``delta`` applied.

        Raises
        ------
        ValueError
            If a field in ``delta`` is unknown or already set.
        """
        for key in delta:
            if key not in type(self).model_fields:
                raise ValueError(f"unknown context field '{key}'")
            if getattr(self, key) is not None:
                raise ValueError(f"context field '{key}' is already set")
        return type(self).model_validate({**self.model_dump(), **delta})
