"""Tests for format version parsing and the features it implies."""

import pytest

pytestmark = pytest.mark.unit

from kanaval.schemas.version import (
    SchemaFeatures,
    Variant,
    encode_version,
    format_version,
    parse_version,
    variant_for,
)


class TestEncoding:
    """Test encoded integer versions."""

    def test_encode(self):
        """Components are packed in base 1000."""
        assert encode_version(2, 1, 3) == 2_001_003
        assert encode_version(3) == 3_000_000

    def test_encode_rejects_overflowing_components(self):
        """Minor and patch must fit in three digits."""
        with pytest.raises(ValueError, match="invalid version components"):
            encode_version(1, 1000, 0)

    def test_format(self):
        """Encoded versions render as dotted strings."""
        assert format_version(1_002_000) == "1.2.0"
        assert format_version(3_000_005) == "3.0.5"

    @pytest.mark.parametrize("value,expected", [
        (2_001_000, 2_001_000),
        ("3.0.0", 3_000_000),
        ("1.1", 1_001_000),
        ("2000000", 2_000_000),
        (" 2.1.0 ", 2_001_000),
    ])
    def test_parse(self, value, expected):
        """Integers, dotted strings and digit strings are accepted."""
        assert parse_version(value) == expected

    @pytest.mark.parametrize("value", ["three", "3.x", -1, True, "1.2.3.4"])
    def test_parse_rejects_garbage(self, value):
        """Anything else is a ValueError."""
        with pytest.raises(ValueError):
            parse_version(value)


class TestVariants:
    """Test the mapping from versions to layouts."""

    @pytest.mark.parametrize("version,variant", [
        (1_000_000, Variant.LEGACY),
        (1_999_999, Variant.LEGACY),
        (2_000_000, Variant.V2),
        (2_999_999, Variant.V2),
        (3_000_000, Variant.V3),
        (4_000_000, Variant.V3),
    ])
    def test_variant_boundaries(self, version, variant):
        """Layouts change at v2.0 and v3.0."""
        assert variant_for(version) is variant


class TestSchemaFeatures:
    """Test the feature flags derived from a version."""

    def test_v1_0(self):
        """The earliest layout has none of the later features."""
        features = SchemaFeatures.from_version(encode_version(1, 0, 0))
        assert features.variant == Variant.LEGACY
        assert not features.multi_matrix_inputs
        assert not features.pca_block_method
        assert not features.gene_identities
        assert not features.multimodal

    def test_v1_1(self):
        """v1.1 adds multiple matrices and MNN-corrected PCA."""
        features = SchemaFeatures.from_version(encode_version(1, 1, 0))
        assert features.multi_matrix_inputs
        assert features.pca_block_method
        assert features.legacy_mnn_pca
        assert not features.gene_identities
        assert "mnn" in features.block_methods

    def test_v2_0(self):
        """v2.0 is multimodal and blocks PCA by weighting."""
        features = SchemaFeatures.from_version(encode_version(2, 0, 0))
        assert features.multimodal
        assert not features.legacy_mnn_pca
        assert not features.qc_skip_flag
        assert not features.sorted_names
        assert features.block_methods == ("none", "regress", "weight")

    def test_v2_1(self):
        """v2.1 adds the QC skip flag and sorted names."""
        features = SchemaFeatures.from_version(encode_version(2, 1, 0))
        assert features.qc_skip_flag
        assert features.sorted_names
        assert not features.snn_algorithms

    def test_v3_0(self):
        """v3.0 drops the skip flag and adds optional AUCs."""
        features = SchemaFeatures.from_version(encode_version(3, 0, 0))
        assert features.variant == Variant.V3
        assert not features.qc_skip_flag
        assert features.snn_algorithms
        assert features.optional_auc
        assert features.label == "3.0.0"

    def test_features_are_frozen(self):
        """Feature records cannot be modified."""
        features = SchemaFeatures.from_version(encode_version(3, 0, 0))
        with pytest.raises(Exception):
            features.multimodal = False
