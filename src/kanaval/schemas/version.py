"""Format versions and the schema features they imply.

Versions are integers encoded as ``major * 1_000_000 + minor * 1_000 + patch``.
``SchemaFeatures.from_version`` is the only place where version numbers are
compared; stage validators receive the resulting flags instead.
"""

import re
from enum import Enum
from typing import Tuple, Union

from pydantic import Field

from kanaval.schemas.base import KanavalRecord

V1_1 = 1_001_000
V1_2 = 1_002_000
V2_0 = 2_000_000
V2_1 = 2_001_000
V3_0 = 3_000_000

_DOTTED = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?$")


class Variant(str, Enum):
    """Pipeline layouts, one per range of format versions."""
    LEGACY = "legacy"
    V2 = "v2"
    V3 = "v3"


def encode_version(major: int, minor: int = 0, patch: int = 0) -> int:
    if min(major, minor, patch) < 0 or minor >= 1000 or patch >= 1000:
        raise ValueError(f"invalid version components {major}.{minor}.{patch}")
    return major * 1_000_000 + minor * 1_000 + patch


def format_version(version: int) -> str:
    """Render an encoded version as ``"major.minor.patch"``."""
    return f"{version // 1_000_000}.{(version // 1_000) % 1_000}.{version % 1_000}"


def parse_version(value: Union[int, str]) -> int:
    """Parse ``"3.0.0"``, ``"3.0"``, ``"3000000"`` or an int into an encoded version.

    Raises
    ------
    ValueError
        If the value is neither an encoded integer nor a dotted version.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid version {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"invalid version {value!r}")
        return value

    text = str(value).strip()
    if text.isdigit():
        return int(text)

    match = _DOTTED.match(text)
    if match is None:
        raise ValueError(f"invalid version {value!r}")
    major, minor, patch = match.groups()
    return encode_version(int(major), int(minor), int(patch or 0))


def variant_for(version: int) -> Variant:
    if version < V2_0:
        return Variant.LEGACY
    if version < V3_0:
        return Variant.V2
    return Variant.V3


class SchemaFeatures(KanavalRecord):
    """Version-dependent layout rules consumed by the stage validators.

    Attributes
    ----------
    multi_matrix_inputs : bool
        ``inputs/parameters/format`` may be a vector of formats (v1.1+).
    pca_block_method : bool
        RNA PCA parameters carry ``block_method`` (v1.1+).
    legacy_mnn_pca : bool
        RNA PCA stores an MNN-corrected embedding when ``block_method`` is
        ``"mnn"`` (v1.1 up to v2.0).
    gene_identities : bool
        Legacy inputs store ``identities`` rather than ``permutation``/``indices`` (v1.2+).
    multimodal : bool
        Results are stored per modality (v2.0+).
    qc_skip_flag : bool
        Quality control parameters carry a ``skip`` flag (v2.1 up to v3.0).
    sorted_names : bool
        Sample names and custom selections must be sorted as well as unique (v2.1+).
    snn_algorithms : bool
        Graph clustering selects among several community detection
        algorithms instead of storing a single ``resolution`` (v3.0+).
    optional_auc : bool
        Marker statistics honour a ``compute_auc`` flag (v3.0+).
    """

    version: int = Field(ge=0)
    variant: Variant
    multi_matrix_inputs: bool
    pca_block_method: bool
    legacy_mnn_pca: bool
    gene_identities: bool
    multimodal: bool
    qc_skip_flag: bool
    sorted_names: bool
    snn_algorithms: bool
    optional_auc: bool
    block_methods: Tuple[str, ...]

    @classmethod
    def from_version(cls, version: int) -> "SchemaFeatures":
        variant = variant_for(version)
        return cls(
            version=version,
            variant=variant,
            multi_matrix_inputs=version >= V1_1,
            pca_block_method=version >= V1_1,
            legacy_mnn_pca=V1_1 <= version < V2_0,
            gene_identities=version >= V1_2,
            multimodal=version >= V2_0,
            qc_skip_flag=V2_1 <= version < V3_0,
            sorted_names=version >= V2_1,
            snn_algorithms=version >= V3_0,
            optional_auc=version >= V3_0,
            block_methods=("none", "regress", "mnn") if version < V2_0 else ("none", "regress", "weight"),
        )

    @property
    def label(self) -> str:
        return format_version(self.version)
