"""Modality descriptors for the per-modality stages.

RNA, ADT and CRISPR quality control and PCA share one implementation each;
the differences between modalities (stage names, parameter fields, metric
and threshold names) live in the descriptors below.
"""

from typing import Optional, Tuple

from kanaval.contracts.access import ElementType
from kanaval.schemas.base import KanavalRecord

RNA = "RNA"
ADT = "ADT"
CRISPR = "CRISPR"

MODALITY_ORDER = (RNA, ADT, CRISPR)


class BoundedFloat(KanavalRecord):
    """A float parameter with a lower bound and an optional upper bound."""

    name: str
    lower: float = 0.0
    upper: Optional[float] = None
    upper_open: bool = False
    message: str

    def contains(self, value: float) -> bool:
        if value < self.lower:
            return False
        if self.upper is None:
            return True
        return value < self.upper if self.upper_open else value <= self.upper


NMADS = BoundedFloat(name="nmads", message="number of MADs in 'nmads' should be non-negative")


class QualityControlModality(KanavalRecord):
    """Layout of one modality's quality control stage."""

    modality: str
    stage: str
    integer_parameters: Tuple[str, ...] = ()
    string_parameters: Tuple[str, ...] = ()
    float_parameters: Tuple[BoundedFloat, ...] = (NMADS,)
    metrics: Tuple[Tuple[str, ElementType], ...]
    thresholds: Tuple[str, ...]


class PcaModality(KanavalRecord):
    """Layout of one modality's PCA stage."""

    modality: str
    stage: str
    requires_hvgs: bool = False


RNA_QC = QualityControlModality(
    modality=RNA,
    stage="rna_quality_control",
    integer_parameters=("use_mito_default",),
    string_parameters=("mito_prefix",),
    metrics=(
        ("sums", ElementType.FLOAT),
        ("detected", ElementType.INTEGER),
        ("proportion", ElementType.FLOAT),
    ),
    thresholds=("sums", "detected", "proportion"),
)

ADT_QC = QualityControlModality(
    modality=ADT,
    stage="adt_quality_control",
    string_parameters=("igg_prefix",),
    float_parameters=(
        NMADS,
        BoundedFloat(
            name="min_detected_drop",
            upper=1.0,
            upper_open=True,
            message="minimum detected drop should lie in [0, 1)",
        ),
    ),
    metrics=(
        ("sums", ElementType.FLOAT),
        ("detected", ElementType.INTEGER),
        ("igg_total", ElementType.FLOAT),
    ),
    thresholds=("detected", "igg_total"),
)

CRISPR_QC = QualityControlModality(
    modality=CRISPR,
    stage="crispr_quality_control",
    metrics=(
        ("sums", ElementType.FLOAT),
        ("detected", ElementType.INTEGER),
        ("max_proportion", ElementType.FLOAT),
        ("max_index", ElementType.INTEGER),
    ),
    thresholds=("max_count",),
)

QUALITY_CONTROL = {RNA: RNA_QC, ADT: ADT_QC, CRISPR: CRISPR_QC}

PCA = {
    RNA: PcaModality(modality=RNA, stage="rna_pca", requires_hvgs=True),
    ADT: PcaModality(modality=ADT, stage="adt_pca"),
    CRISPR: PcaModality(modality=CRISPR, stage="crispr_pca"),
}
