"""Tests for the h5py-backed access primitives."""

import h5py
import numpy as np
import pytest

pytestmark = pytest.mark.unit

from kanaval.contracts import (
    ElementType,
    ErrorKind,
    ValidationError,
    exists,
    kind_of,
    list_children,
    load_float,
    load_integer,
    load_string,
    load_vector,
    open_dataset,
    open_group,
    open_scalar,
    open_stage,
)
from kanaval.contracts.access import dataset_shape, element_type
from tests.helpers.builders import write_floats, write_ints, write_scalar, write_strings


@pytest.fixture
def root(h5_root):
    group = h5_root.create_group("stage")
    write_scalar(group, "count", 5)
    write_scalar(group, "ratio", 0.5)
    write_scalar(group, "label", "mt-")
    write_ints(group, "indices", [0, 2, 4])
    write_floats(group, "matrix", (3, 2))
    write_strings(group, "names", ["a", "b"])
    group.create_group("child")
    return h5_root


class TestLookup:
    """Test node lookup helpers."""

    def test_kind_of_reports_groups_and_datasets(self, root):
        """Groups, datasets and absent names are told apart."""
        stage = root["stage"]
        assert kind_of(stage, "child") == "group"
        assert kind_of(stage, "count") == "dataset"
        assert kind_of(stage, "missing") is None

    def test_exists_and_list_children(self, root):
        """Membership and child listing follow the container."""
        stage = root["stage"]
        assert exists(stage, "names")
        assert not exists(stage, "missing")
        assert set(list_children(stage)) == {"count", "ratio", "label", "indices", "matrix", "names", "child"}

    def test_open_group_missing(self, root):
        """A missing group is reported by name."""
        with pytest.raises(ValidationError, match="'results' group does not exist") as excinfo:
            open_group(root["stage"], "results")
        assert excinfo.value.kind is ErrorKind.MISSING_GROUP

    def test_open_group_rejects_dataset(self, root):
        """A dataset in place of a group is a missing group."""
        with pytest.raises(ValidationError, match="'count' group does not exist"):
            open_group(root["stage"], "count")

    def test_open_stage_records_stage(self, root):
        """A missing top-level stage sets the stage on the error."""
        with pytest.raises(ValidationError, match="'tsne' group does not exist") as excinfo:
            open_stage(root, "tsne")
        assert excinfo.value.kind is ErrorKind.MISSING_STAGE
        assert excinfo.value.stage == "tsne"


class TestDatasets:
    """Test type and shape checks on datasets."""

    def test_open_dataset_missing(self, root):
        """Absent datasets fail with MISSING_DATASET."""
        with pytest.raises(ValidationError, match="'sums' dataset does not exist") as excinfo:
            open_dataset(root["stage"], "sums")
        assert excinfo.value.kind is ErrorKind.MISSING_DATASET

    def test_open_dataset_wrong_type(self, root):
        """Integer data is not accepted as float."""
        with pytest.raises(ValidationError, match="'count' dataset should be of type float") as excinfo:
            open_dataset(root["stage"], "count", ElementType.FLOAT)
        assert excinfo.value.kind is ErrorKind.WRONG_TYPE

    def test_open_dataset_wrong_shape(self, root):
        """Extents must match exactly."""
        with pytest.raises(ValidationError, match="'matrix' dataset does not have the expected dimensions") as excinfo:
            open_dataset(root["stage"], "matrix", ElementType.FLOAT, (2, 3))
        assert excinfo.value.kind is ErrorKind.WRONG_SHAPE

    def test_open_dataset_matching_shape(self, root):
        """A dataset with the expected type and extents is returned."""
        dataset = open_dataset(root["stage"], "matrix", ElementType.FLOAT, (3, 2))
        assert dataset.shape == (3, 2)
        assert dataset_shape(root["stage"], "matrix") == (3, 2)

    def test_open_scalar_rejects_vector(self, root):
        """A vector is not a scalar."""
        with pytest.raises(ValidationError, match="'indices' dataset should be a scalar"):
            open_scalar(root["stage"], "indices", ElementType.INTEGER)

    def test_element_type_of_unsigned_and_fixed_strings(self, h5_root):
        """Unsigned integers and fixed-length strings map to their classes."""
        h5_root.create_dataset("u", data=np.uint8(3))
        h5_root.create_dataset("s", data=np.bytes_("abc"))
        assert element_type(h5_root["u"]) == ElementType.INTEGER
        assert element_type(h5_root["s"]) == ElementType.STRING


class TestLoaders:
    """Test scalar and vector loaders."""

    def test_load_scalars(self, root):
        """Scalars come back as Python types."""
        stage = root["stage"]
        assert load_integer(stage, "count") == 5
        assert load_float(stage, "ratio") == 0.5
        assert load_string(stage, "label") == "mt-"

    def test_load_string_vector(self, root):
        """String vectors are decoded to str."""
        assert load_vector(root["stage"], "names", ElementType.STRING) == ["a", "b"]

    def test_load_integer_vector(self, root):
        """Integer vectors are returned as int64 arrays."""
        values = load_vector(root["stage"], "indices", ElementType.INTEGER)
        assert values.dtype == np.int64
        assert values.tolist() == [0, 2, 4]

    def test_load_vector_rejects_matrix(self, root):
        """Only 1-dimensional datasets are vectors."""
        with pytest.raises(ValidationError) as excinfo:
            load_vector(root["stage"], "matrix", ElementType.FLOAT)
        err = excinfo.value
        assert err.kind is ErrorKind.WRONG_SHAPE
        assert err.breadcrumbs == ["failed to load float vector from 'matrix'"]
        assert err.reason == "expected a 1-dimensional float dataset"

    def test_load_string_rejects_invalid_utf8(self, h5_root):
        """Undecodable bytes are a type failure, not a crash."""
        h5_root.create_dataset("app", data=np.bytes_(b"\xff\xfekana"))
        with pytest.raises(ValidationError, match="'app' is not a valid UTF-8 string") as excinfo:
            load_string(h5_root, "app")
        assert excinfo.value.kind is ErrorKind.WRONG_TYPE

    def test_load_string_vector_rejects_invalid_utf8(self, h5_root):
        """Vector entries are decoded with the same rule."""
        h5_root.create_dataset("names", data=np.array([b"ok", b"\xff\xfe"]))
        with pytest.raises(ValidationError) as excinfo:
            load_vector(h5_root, "names", ElementType.STRING)
        err = excinfo.value
        assert err.kind is ErrorKind.WRONG_TYPE
        assert err.breadcrumbs == ["failed to load string vector from 'names'"]
        assert err.reason == "'names' is not a valid UTF-8 string"

    def test_load_integer_from_float_fails(self, root):
        """The type class must match exactly."""
        with pytest.raises(ValidationError, match="'ratio' dataset should be of type integer"):
            load_integer(root["stage"], "ratio")
