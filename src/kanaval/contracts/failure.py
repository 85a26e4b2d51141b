"""Structured failure type for state file validation.

Every check in kanaval raises the same exception type. The error carries
its kind, the root-cause reason and the chain of breadcrumbs added by the
enclosing stages, so callers can inspect where a file went wrong instead of
parsing a message.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Taxonomy of validation failures."""
    MISSING_STAGE = "missing_stage"
    MISSING_GROUP = "missing_group"
    MISSING_DATASET = "missing_dataset"
    WRONG_TYPE = "wrong_type"
    WRONG_SHAPE = "wrong_shape"
    INVALID_ENUM = "invalid_enum"
    OUT_OF_RANGE = "out_of_range"
    TOO_MANY_COMPONENTS = "too_many_components"
    NOT_UNIQUE_OR_SORTED = "not_unique_or_sorted"
    EMPTY_CLUSTER = "empty_cluster"
    DUPLICATE_NAME = "duplicate_name"
    INCONSISTENT_COUNT = "inconsistent_count"
    VERSION_MISMATCH = "version_mismatch"


class ValidationError(RuntimeError):
    """Raised when a state file does not conform to its format version.

    Attributes
    ----------
    kind : ErrorKind
        Category of the root cause.
    reason : str
        Message of the innermost failed check.
    breadcrumbs : list of str
        Context messages, outermost first.
    stage : str or None
        Top-level stage group in which the failure occurred.

    Notes
    -----
    ``str(err)`` renders the breadcrumbs followed by the reason, each
    nested entry on its own line prefixed by ``"  - "``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        reason: str,
        breadcrumbs: Optional[List[str]] = None,
        stage: Optional[str] = None,
    ):
        self.kind = ErrorKind(kind)
        self.reason = reason
        self.breadcrumbs = list(breadcrumbs or [])
        self.stage = stage
        super().__init__(reason)

    def wrap(self, message: str, stage: Optional[str] = None) -> "ValidationError":
        """Push a context message onto the front of the breadcrumb chain.

        ``stage`` is recorded only if no stage has been recorded yet.
        """
        self.breadcrumbs.insert(0, message)
        if stage is not None and self.stage is None:
            self.stage = stage
        return self

    @property
    def chain(self) -> List[str]:
        return self.breadcrumbs + [self.reason]

    def __str__(self) -> str:
        return "\n  - ".join(self.chain)

    def __repr__(self) -> str:
        return (
            f"ValidationError(kind={self.kind.value!r}, stage={self.stage!r}, "
            f"reason={self.reason!r})"
        )
