"""Validation contracts: errors, access primitives and shared checks.

Every stage validator is built from these pieces. Checks fail immediately
with a ``ValidationError``; enclosing stages only add breadcrumbs and
re-raise.

Key principle:
- Pydantic validates configuration and derived records
- Contracts validate the state file
"""

from kanaval.contracts.failure import ErrorKind, ValidationError
from kanaval.contracts.base import require, context, validate_optional_or_required
from kanaval.contracts.access import (
    ElementType,
    open_group,
    open_stage,
    open_dataset,
    open_scalar,
    load_scalar,
    load_integer,
    load_float,
    load_string,
    load_vector,
    list_children,
    kind_of,
    exists,
)
from kanaval.contracts.checks import (
    is_sorted_unique,
    check_enum,
    check_positive,
    check_non_negative,
    check_block_method,
    check_discard_vector,
    check_cluster_assignment,
    check_pca_results,
)

__all__ = [
    "ErrorKind",
    "ValidationError",
    "require",
    "context",
    "validate_optional_or_required",
    "ElementType",
    "open_group",
    "open_stage",
    "open_dataset",
    "open_scalar",
    "load_scalar",
    "load_integer",
    "load_float",
    "load_string",
    "load_vector",
    "list_children",
    "kind_of",
    "exists",
    "is_sorted_unique",
    "check_enum",
    "check_positive",
    "check_non_negative",
    "check_block_method",
    "check_discard_vector",
    "check_cluster_assignment",
    "check_pca_results",
]
