"""Strict pydantic bases shared by every kanaval schema.

Two flavours exist: ``KanavalBaseModel`` for user-facing options such as
``CLIConfig``, and the frozen ``KanavalRecord`` for values derived while
walking a state file (schema features, modality layouts, stage summaries).
"""

from pydantic import BaseModel, ConfigDict


class KanavalBaseModel(BaseModel):
    """Base model for kanaval schemas.

    Unknown fields are rejected, assignments are re-validated, enum fields
    hold their plain values and strings are stripped.
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,      # SchemaFeatures.variant is stored as "legacy"/"v2"/"v3"
        str_strip_whitespace=True,
    )


class KanavalRecord(KanavalBaseModel):
    """Immutable record passed between validation stages.

    Records are never updated in place; ``DerivedContext.merge`` builds a
    new one.
    """

    model_config = ConfigDict(frozen=True)
