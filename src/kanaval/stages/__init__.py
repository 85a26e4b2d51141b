"""Stage validators.

One module per analysis step. Each validator opens its stage group, checks
``parameters`` and ``results`` against the values derived by earlier
stages, and returns what later stages need.

- inputs: input files and per-modality feature counts
- quality_control: RNA, ADT and CRISPR QC metrics and discards
- cell_filtering: combined discards
- normalization, feature_selection, pca, combine_embeddings, batch_correction
- neighbor_index, clustering, visualization
- marker_detection, custom_selections, cell_labelling
- metadata: v3 ``_metadata`` group
"""

from kanaval.stages.inputs import validate_inputs, validate_inputs_v3
from kanaval.stages.quality_control import validate_quality_control
from kanaval.stages.cell_filtering import validate_cell_filtering_v2, validate_cell_filtering_v3
from kanaval.stages.normalization import validate_normalization, validate_adt_normalization
from kanaval.stages.feature_selection import validate_feature_selection
from kanaval.stages.pca import validate_pca
from kanaval.stages.combine_embeddings import validate_combine_embeddings_v2, validate_combine_embeddings_v3
from kanaval.stages.batch_correction import validate_batch_correction
from kanaval.stages.neighbor_index import validate_neighbor_index
from kanaval.stages.clustering import (
    validate_choose_clustering,
    validate_kmeans_cluster,
    validate_snn_graph_cluster,
)
from kanaval.stages.visualization import validate_tsne, validate_umap
from kanaval.stages.marker_detection import validate_marker_detection
from kanaval.stages.custom_selections import validate_custom_selections
from kanaval.stages.cell_labelling import validate_cell_labelling
from kanaval.stages.metadata import read_format_version, validate_metadata

__all__ = [
    "validate_inputs",
    "validate_inputs_v3",
    "validate_quality_control",
    "validate_cell_filtering_v2",
    "validate_cell_filtering_v3",
    "validate_normalization",
    "validate_adt_normalization",
    "validate_feature_selection",
    "validate_pca",
    "validate_combine_embeddings_v2",
    "validate_combine_embeddings_v3",
    "validate_batch_correction",
    "validate_neighbor_index",
    "validate_choose_clustering",
    "validate_kmeans_cluster",
    "validate_snn_graph_cluster",
    "validate_tsne",
    "validate_umap",
    "validate_marker_detection",
    "validate_custom_selections",
    "validate_cell_labelling",
    "read_format_version",
    "validate_metadata",
]
