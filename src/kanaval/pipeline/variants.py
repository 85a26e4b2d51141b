"""Pipeline variants, one per range of format versions.

Each variant lists its stages in file order. A step receives the
``DerivedContext`` built so far and returns the values it derived, which
are merged into a new context before the next step runs. The first
failing check aborts the run with a ``ValidationError``.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import h5py

from kanaval.schemas.context import DerivedContext
from kanaval.schemas.modality import ADT, CRISPR, PCA, QUALITY_CONTROL, RNA
from kanaval.schemas.version import SchemaFeatures, Variant
from kanaval.stages import (
    validate_adt_normalization,
    validate_batch_correction,
    validate_cell_filtering_v2,
    validate_cell_filtering_v3,
    validate_cell_labelling,
    validate_choose_clustering,
    validate_combine_embeddings_v2,
    validate_combine_embeddings_v3,
    validate_custom_selections,
    validate_feature_selection,
    validate_inputs,
    validate_inputs_v3,
    validate_kmeans_cluster,
    validate_marker_detection,
    validate_metadata,
    validate_neighbor_index,
    validate_normalization,
    validate_pca,
    validate_quality_control,
    validate_snn_graph_cluster,
    validate_tsne,
    validate_umap,
)

__all__ = ['PipelineVariant', 'LegacyPipeline', 'V2Pipeline', 'V3Pipeline', 'PIPELINES']

logger = logging.getLogger(__name__)

Delta = Optional[Dict[str, Any]]


class PipelineVariant:
    """Ordered stage validators for one layout of the state file.

    Subclasses set ``steps`` and the per-modality stage names. Each entry
    of ``steps`` names a ``_<step>`` method.

    Parameters
    ----------
    handle : h5py.File or h5py.Group
        Root of the state file. Never closed here.

    embedded : bool
        Whether input files are embedded in the session file.

    features : SchemaFeatures
        Layout rules for the file's format version.
    """

    steps: Tuple[str, ...] = ()
    quality_control_stages: Tuple[Tuple[str, str], ...] = ()
    normalization_stages: Tuple[str, ...] = ()
    pca_stages: Tuple[Tuple[str, str], ...] = ()

    def __init__(self, handle: h5py.Group, embedded: bool, features: SchemaFeatures):
        self.handle = handle
        self.embedded = embedded
        self.features = features

    def run(self) -> DerivedContext:
        """Validate every stage in order and return the derived values."""
        ctx = DerivedContext()
        for step in self.steps:
            logger.debug("Validating step: %s", step)
            delta = getattr(self, f"_{step}")(ctx)
            if delta:
                ctx = ctx.merge(**delta)
        logger.debug("Derived context: %s", ctx.model_dump())
        return ctx

    # ------------------------------------------------------------------
    # Steps shared by all layouts
    # ------------------------------------------------------------------

    def _inputs(self, ctx: DerivedContext) -> Delta:
        summary = validate_inputs(self.handle, self.embedded, self.features)
        return summary.model_dump()

    def _quality_control(self, ctx: DerivedContext) -> Delta:
        remaining = {}
        contributing = []
        for modality, stage in self.quality_control_stages:
            in_use = ctx.in_use(modality)
            summary = validate_quality_control(
                self.handle,
                QUALITY_CONTROL[modality],
                ctx.num_cells,
                ctx.num_blocks,
                in_use,
                self.features,
                stage_name=stage,
            )
            if summary.remaining is not None:
                remaining[modality] = summary.remaining
            if in_use and not summary.skipped:
                contributing.append(modality)
        return {"qc_remaining": remaining, "qc_contributing": tuple(contributing)}

    def _normalization(self, ctx: DerivedContext) -> Delta:
        for stage in self.normalization_stages:
            if stage == "adt_normalization":
                validate_adt_normalization(self.handle, ctx.filtered_cells, ctx.in_use(ADT))
            else:
                validate_normalization(self.handle, stage)
        return None

    def _feature_selection(self, ctx: DerivedContext) -> Delta:
        validate_feature_selection(self.handle, ctx.num_features.get(RNA), ctx.in_use(RNA))
        return None

    def _pca(self, ctx: DerivedContext) -> Delta:
        num_pcs = {}
        for modality, stage in self.pca_stages:
            observed = validate_pca(
                self.handle,
                PCA[modality],
                ctx.filtered_cells,
                ctx.in_use(modality),
                self.features,
                stage_name=stage,
            )
            if observed is not None:
                num_pcs[modality] = observed
        return {"num_pcs": num_pcs}

    def _neighbor_index(self, ctx: DerivedContext) -> Delta:
        validate_neighbor_index(self.handle)
        return None

    def _choose_clustering(self, ctx: DerivedContext) -> Delta:
        return {"cluster_method": validate_choose_clustering(self.handle)}

    def _snn_graph_cluster(self, ctx: DerivedContext) -> Delta:
        in_use = ctx.cluster_method == "snn_graph"
        found = validate_snn_graph_cluster(self.handle, ctx.filtered_cells, in_use, self.features)
        return {"num_clusters": found} if in_use else None

    def _kmeans_cluster(self, ctx: DerivedContext) -> Delta:
        in_use = ctx.cluster_method == "kmeans"
        found = validate_kmeans_cluster(self.handle, ctx.filtered_cells, in_use)
        return {"num_clusters": found} if in_use else None

    def _tsne(self, ctx: DerivedContext) -> Delta:
        validate_tsne(self.handle, ctx.filtered_cells)
        return None

    def _umap(self, ctx: DerivedContext) -> Delta:
        validate_umap(self.handle, ctx.filtered_cells)
        return None

    def _marker_detection(self, ctx: DerivedContext) -> Delta:
        validate_marker_detection(self.handle, ctx.num_clusters, ctx.num_features, self.features)
        return None

    def _custom_selections(self, ctx: DerivedContext) -> Delta:
        validate_custom_selections(self.handle, ctx.filtered_cells, ctx.num_features, self.features)
        return None

    def _cell_labelling(self, ctx: DerivedContext) -> Delta:
        validate_cell_labelling(self.handle, ctx.num_clusters)
        return None


class LegacyPipeline(PipelineVariant):
    """Layout of v1 files: RNA only, no cell filtering or embedding stages."""

    steps = (
        "inputs",
        "quality_control",
        "cell_filtering",
        "normalization",
        "feature_selection",
        "pca",
        "combine_embeddings",
        "neighbor_index",
        "choose_clustering",
        "snn_graph_cluster",
        "kmeans_cluster",
        "tsne",
        "umap",
        "marker_detection",
        "custom_selections",
        "cell_labelling",
    )
    quality_control_stages = ((RNA, "quality_control"),)
    normalization_stages = ("normalization",)
    pca_stages = ((RNA, "pca"),)

    def _cell_filtering(self, ctx: DerivedContext) -> Delta:
        # No stage of its own; RNA QC decides which cells survive.
        return {"filtered_cells": ctx.qc_remaining[RNA]}

    def _combine_embeddings(self, ctx: DerivedContext) -> Delta:
        return {"total_dims": ctx.num_pcs[RNA]}


class V2Pipeline(PipelineVariant):
    """Layout of v2 files: RNA and ADT, combined embeddings, batch correction."""

    steps = (
        "inputs",
        "quality_control",
        "cell_filtering",
        "normalization",
        "feature_selection",
        "pca",
        "combine_embeddings",
        "batch_correction",
        "neighbor_index",
        "choose_clustering",
        "snn_graph_cluster",
        "kmeans_cluster",
        "tsne",
        "umap",
        "marker_detection",
        "custom_selections",
        "cell_labelling",
    )
    quality_control_stages = ((RNA, "quality_control"), (ADT, "adt_quality_control"))
    normalization_stages = ("normalization", "adt_normalization")
    pca_stages = ((RNA, "pca"), (ADT, "adt_pca"))

    def _cell_filtering(self, ctx: DerivedContext) -> Delta:
        filtered = validate_cell_filtering_v2(self.handle, ctx.num_cells, len(ctx.qc_contributing))
        if filtered is None:
            # At most one modality filters when the combined vector is absent.
            contributing = ctx.qc_contributing
            filtered = ctx.qc_remaining[contributing[0]] if contributing else ctx.num_cells
        return {"filtered_cells": filtered}

    def _combine_embeddings(self, ctx: DerivedContext) -> Delta:
        return {"total_dims": validate_combine_embeddings_v2(self.handle, ctx.filtered_cells, ctx.num_pcs)}

    def _batch_correction(self, ctx: DerivedContext) -> Delta:
        validate_batch_correction(self.handle, ctx.filtered_cells, ctx.total_dims, ctx.num_blocks)
        return None


class V3Pipeline(V2Pipeline):
    """Layout of v3 files: RNA, ADT and CRISPR, plus ``_metadata``."""

    steps = V2Pipeline.steps + ("metadata",)
    quality_control_stages = (
        (RNA, "rna_quality_control"),
        (ADT, "adt_quality_control"),
        (CRISPR, "crispr_quality_control"),
    )
    normalization_stages = ("rna_normalization", "adt_normalization", "crispr_normalization")
    pca_stages = ((RNA, "rna_pca"), (ADT, "adt_pca"), (CRISPR, "crispr_pca"))

    def _inputs(self, ctx: DerivedContext) -> Delta:
        return validate_inputs_v3(self.handle, self.embedded).model_dump()

    def _cell_filtering(self, ctx: DerivedContext) -> Delta:
        return {"filtered_cells": validate_cell_filtering_v3(self.handle, ctx.num_cells, ctx.qc_remaining)}

    def _combine_embeddings(self, ctx: DerivedContext) -> Delta:
        return {"total_dims": validate_combine_embeddings_v3(self.handle, ctx.filtered_cells, ctx.num_pcs)}

    def _metadata(self, ctx: DerivedContext) -> Delta:
        validate_metadata(self.handle, self.features.version)
        return None


PIPELINES = {
    Variant.LEGACY: LegacyPipeline,
    Variant.V2: V2Pipeline,
    Variant.V3: V3Pipeline,
}
