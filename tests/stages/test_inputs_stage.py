"""Tests for the inputs stage, legacy/v2 and v3 layouts."""

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from kanaval.contracts import ErrorKind, ValidationError
from kanaval.schemas.version import encode_version
from kanaval.stages.inputs import validate_inputs, validate_inputs_v3
from tests.helpers.builders import (
    LEGACY_VERSION,
    NUM_CELLS,
    NUM_FEATURES,
    V2_VERSION,
    V3_VERSION,
    replace,
    write_scalar,
    write_strings,
)


def make_multi_matrix(root, names=("A", "B")):
    """Turn a single-matrix legacy/v2 layout into two MatrixMarket samples."""
    params = root["inputs/parameters"]
    del params["format"]
    write_strings(params, "format", ["MatrixMarket", "MatrixMarket"])
    replace(params, "sample_groups", [1, 1])
    write_strings(params, "sample_names", names)
    del params["files/1/type"]
    write_scalar(params["files/1"], "type", "mtx")
    replace(root["inputs/results"], "num_samples", len(names))


class TestLegacyInputs:
    """Test the single-modality inputs layout."""

    @pytest.mark.parametrize("version", [
        encode_version(1, 0, 0),
        encode_version(1, 1, 0),
        LEGACY_VERSION,
    ])
    def test_valid_legacy_file(self, make_state, features, version):
        """Every legacy release reports RNA only."""
        root = make_state(version)
        summary = validate_inputs(root, True, features(version))
        assert summary.num_cells == NUM_CELLS
        assert summary.num_blocks == 1
        assert summary.num_features == {"RNA": NUM_FEATURES["RNA"]}

    def test_multiple_matrices(self, make_state, features):
        """Each matrix is a block."""
        root = make_state(LEGACY_VERSION)
        make_multi_matrix(root)
        summary = validate_inputs(root, True, features(LEGACY_VERSION))
        assert summary.num_blocks == 2

    def test_zero_cells_rejected(self, make_state, features):
        """The cell count in 'dimensions' must be positive."""
        root = make_state(LEGACY_VERSION)
        replace(root["inputs/results"], "dimensions", [NUM_FEATURES["RNA"], 0])
        with pytest.raises(ValidationError, match="number of cells should be a positive integer"):
            validate_inputs(root, True, features(LEGACY_VERSION))

    def test_multiple_formats_rejected_in_v1_0(self, make_state, features):
        """Only scalar formats existed in v1.0."""
        version = encode_version(1, 0, 0)
        root = make_state(version)
        make_multi_matrix(root)
        with pytest.raises(ValidationError, match="'format' should be a scalar string in version 1.0"):
            validate_inputs(root, True, features(version))

    def test_sample_groups_must_cover_files(self, make_state, features):
        """Groups must add up to the number of files."""
        root = make_state(LEGACY_VERSION)
        make_multi_matrix(root)
        replace(root["inputs/parameters"], "sample_groups", [1, 2])

        with pytest.raises(ValidationError) as excinfo:
            validate_inputs(root, True, features(LEGACY_VERSION))

        err = excinfo.value
        assert err.kind is ErrorKind.INCONSISTENT_COUNT
        assert err.reason == "sum of 'sample_groups' is not equal to the length of 'files'"
        assert err.breadcrumbs == ["failed to retrieve parameters from 'inputs'"]
        assert err.stage == "inputs"

    def test_matrix_market_needs_one_mtx(self, make_state, features):
        """A MatrixMarket matrix without 'mtx' is incomplete."""
        root = make_state(LEGACY_VERSION)
        del root["inputs/parameters/files/0/type"]
        write_scalar(root["inputs/parameters/files/0"], "type", "genes")
        with pytest.raises(ValidationError, match="expected exactly one 'mtx' file"):
            validate_inputs(root, True, features(LEGACY_VERSION))

    def test_byte_ranges_must_be_contiguous(self, make_state, features):
        """Embedded files tile the payload."""
        root = make_state(LEGACY_VERSION)
        replace(root["inputs/parameters/files/1"], "offset", 999)
        with pytest.raises(ValidationError, match="not sorted and contiguous") as excinfo:
            validate_inputs(root, True, features(LEGACY_VERSION))
        assert excinfo.value.kind is ErrorKind.INCONSISTENT_COUNT

    def test_linked_files_use_identifiers(self, make_state, features):
        """Linked files carry an 'id' instead of byte ranges."""
        root = make_state(LEGACY_VERSION, embedded=False)
        assert validate_inputs(root, False, features(LEGACY_VERSION)).num_cells == NUM_CELLS

        with pytest.raises(ValidationError, match="'offset' dataset does not exist"):
            validate_inputs(root, True, features(LEGACY_VERSION))

    def test_v1_0_permutation_must_be_unique(self, make_state, features):
        """Gene permutations cannot repeat an index."""
        version = encode_version(1, 0, 0)
        root = make_state(version)
        replace(root["inputs/results"], "permutation", np.zeros(NUM_FEATURES["RNA"]))
        with pytest.raises(ValidationError, match="duplicated index in 'permutation'"):
            validate_inputs(root, True, features(version))

    def test_subset_indices_must_match_cells(self, make_state, features):
        """A subset by indices fixes the number of cells."""
        root = make_state(LEGACY_VERSION)
        subset = root["inputs/parameters"].create_group("subset")
        replace(subset, "indices", np.arange(50))
        with pytest.raises(ValidationError) as excinfo:
            validate_inputs(root, True, features(LEGACY_VERSION))
        assert excinfo.value.kind is ErrorKind.INCONSISTENT_COUNT


class TestMultimodalInputs:
    """Test the v2 per-modality results."""

    def test_valid_v2_file(self, make_state, features):
        """RNA and ADT feature counts are reported."""
        root = make_state(V2_VERSION)
        summary = validate_inputs(root, True, features(V2_VERSION))
        assert summary.num_features == {"RNA": NUM_FEATURES["RNA"], "ADT": NUM_FEATURES["ADT"]}

    def test_duplicate_sample_names_before_v2_1(self, make_state, features):
        """Before v2.1 names must be unique but need not be sorted."""
        version = encode_version(2, 0, 0)
        root = make_state(version)
        make_multi_matrix(root, names=("B", "A"))
        assert validate_inputs(root, True, features(version)).num_blocks == 2

        del root["inputs/parameters/sample_names"]
        write_strings(root["inputs/parameters"], "sample_names", ["A", "A"])
        with pytest.raises(ValidationError) as excinfo:
            validate_inputs(root, True, features(version))
        assert excinfo.value.kind is ErrorKind.DUPLICATE_NAME

    def test_unsorted_sample_names_from_v2_1(self, make_state, features):
        """From v2.1 names must also be sorted."""
        root = make_state(V2_VERSION)
        make_multi_matrix(root, names=("B", "A"))
        with pytest.raises(ValidationError, match="duplicated or unsorted values in 'sample_names'") as excinfo:
            validate_inputs(root, True, features(V2_VERSION))
        assert excinfo.value.kind is ErrorKind.NOT_UNIQUE_OR_SORTED

    def test_modalities_follow_canonical_order(self, make_state, features):
        """RNA comes before ADT whatever order the file lists them in."""
        root = make_state(V2_VERSION)
        summary = validate_inputs(root, True, features(V2_VERSION))
        assert list(summary.num_features) == ["RNA", "ADT"]

    def test_cell_count_must_be_positive(self, make_state, features):
        """A non-positive 'num_cells' is rejected in the inputs stage."""
        root = make_state(V2_VERSION)
        replace(root["inputs/results"], "num_cells", -5)
        with pytest.raises(ValidationError, match="number of cells should be a positive integer") as excinfo:
            validate_inputs(root, True, features(V2_VERSION))
        assert excinfo.value.kind is ErrorKind.OUT_OF_RANGE
        assert excinfo.value.stage == "inputs"

    def test_sample_count_must_be_positive(self, make_state, features):
        """'num_samples' of zero is out of range."""
        root = make_state(V2_VERSION)
        replace(root["inputs/results"], "num_samples", 0)
        with pytest.raises(ValidationError, match="number of samples should be a positive integer") as excinfo:
            validate_inputs(root, True, features(V2_VERSION))
        assert excinfo.value.kind is ErrorKind.OUT_OF_RANGE

    def test_identities_length(self, make_state, features):
        """Identities match the modality's feature count."""
        root = make_state(V2_VERSION)
        replace(root["inputs/results/identities"], "ADT", np.arange(3))
        with pytest.raises(ValidationError, match="'identities' for modality 'ADT'"):
            validate_inputs(root, True, features(V2_VERSION))


class TestV3Inputs:
    """Test the v3 datasets layout."""

    def test_valid_v3_file(self, make_state):
        """All three modalities are reported in order."""
        root = make_state(V3_VERSION)
        summary = validate_inputs_v3(root, True)
        assert summary.num_cells == NUM_CELLS
        assert summary.num_blocks == 1
        assert summary.modalities == ("RNA", "ADT", "CRISPR")

    def test_duplicate_dataset_names(self, make_state):
        """Dataset names are unique."""
        root = make_state(V3_VERSION)
        extra = root["inputs/parameters/datasets"].create_group("1")
        write_scalar(extra, "format", "H5AD")
        write_scalar(extra, "name", "pbmc")

        with pytest.raises(ValidationError, match="detected duplicate dataset name 'pbmc'") as excinfo:
            validate_inputs_v3(root, True)
        err = excinfo.value
        assert err.kind is ErrorKind.DUPLICATE_NAME
        assert err.breadcrumbs == [
            "failed to retrieve parameters from 'inputs'",
            "failed to check parameters for dataset 1",
        ]

    def test_duplicate_feature_identities(self, make_state):
        """Identities within a modality are unique."""
        root = make_state(V3_VERSION)
        replace(root["inputs/results/feature_identities"], "ADT", [0, 0, 1])
        with pytest.raises(ValidationError) as excinfo:
            validate_inputs_v3(root, True)
        err = excinfo.value
        assert err.kind is ErrorKind.NOT_UNIQUE_OR_SORTED
        assert err.breadcrumbs == [
            "failed to retrieve results from 'inputs'",
            "failed to load 'feature_identities'",
        ]

    def test_feature_names_length(self, make_state):
        """Names, where stored, match the identities."""
        root = make_state(V3_VERSION)
        del root["inputs/results/feature_names/RNA"]
        write_strings(root["inputs/results/feature_names"], "RNA", ["a", "b"])
        with pytest.raises(ValidationError, match="names for modality 'RNA' should be of length"):
            validate_inputs_v3(root, True)

    def test_feature_names_are_optional(self, make_state):
        """Files without names are valid."""
        root = make_state(V3_VERSION)
        del root["inputs/results/feature_names"]
        assert validate_inputs_v3(root, True).num_features["CRISPR"] == NUM_FEATURES["CRISPR"]

    def test_blocks_must_match_datasets(self, make_state):
        """Without a block factor each dataset is one block."""
        root = make_state(V3_VERSION)
        replace(root["inputs/results"], "num_blocks", 3)
        with pytest.raises(ValidationError, match="number of blocks should be equal to the number of datasets"):
            validate_inputs_v3(root, True)

    def test_block_factor_allows_blocks(self, make_state):
        """A single dataset may be split by a block factor."""
        root = make_state(V3_VERSION)
        write_scalar(root["inputs/parameters"], "block_factor", "sample")
        replace(root["inputs/results"], "num_blocks", 3)
        assert validate_inputs_v3(root, True).num_blocks == 3

    def test_subset_indices(self, make_state):
        """Subset indices determine the cell count."""
        root = make_state(V3_VERSION)
        cells = root["inputs/parameters"].create_group("subset").create_group("cells")
        replace(cells, "indices", np.arange(0, 2 * NUM_CELLS, 2))
        assert validate_inputs_v3(root, True).num_cells == NUM_CELLS

        replace(cells, "indices", np.arange(10))
        with pytest.raises(ValidationError) as excinfo:
            validate_inputs_v3(root, True)
        assert excinfo.value.kind is ErrorKind.INCONSISTENT_COUNT

    def test_subset_ranges_must_not_overlap(self, make_state):
        """Numeric ranges are sorted, non-overlapping intervals."""
        root = make_state(V3_VERSION)
        cells = root["inputs/parameters"].create_group("subset").create_group("cells")
        write_scalar(cells, "field", "sum")
        cells.create_dataset("ranges", data=np.array([[0.0, 1.0], [0.5, 2.0]]))
        with pytest.raises(ValidationError, match="sorted, non-overlapping intervals"):
            validate_inputs_v3(root, True)

    def test_missing_stage(self, h5_root):
        """An empty file has no inputs."""
        with pytest.raises(ValidationError) as excinfo:
            validate_inputs_v3(h5_root, True)
        err = excinfo.value
        assert err.kind is ErrorKind.MISSING_STAGE
        assert err.stage == "inputs"
