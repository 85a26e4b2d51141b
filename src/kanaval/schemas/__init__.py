"""Pydantic schemas for kanaval.

Exports
-------
SchemaFeatures : class
    Version-dependent layout rules, derived from a format version
DerivedContext : class
    Immutable record of values threaded between stages
CLIConfig : class
    Command-line options
"""

from kanaval.schemas.base import KanavalBaseModel, KanavalRecord
from kanaval.schemas.version import (
    SchemaFeatures,
    Variant,
    encode_version,
    format_version,
    parse_version,
)
from kanaval.schemas.context import DerivedContext, InputsSummary, QualityControlSummary
from kanaval.schemas.cli import CLIConfig

__all__ = [
    'KanavalBaseModel',
    'KanavalRecord',
    'SchemaFeatures',
    'Variant',
    'encode_version',
    'format_version',
    'parse_version',
    'DerivedContext',
    'InputsSummary',
    'QualityControlSummary',
    'CLIConfig',
]
