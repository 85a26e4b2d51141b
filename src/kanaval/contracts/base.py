"""Base enforcement utilities.

``require()`` is the single raising mechanism for every check. ``context()``
adds a breadcrumb to any failure escaping its block, which is how stage and
sub-field names end up in the final message.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from kanaval.contracts.failure import ErrorKind, ValidationError

T = TypeVar("T")


def require(condition: bool, message: str, kind: ErrorKind) -> None:
    """Enforce a schema rule.

    Parameters
    ----------
    condition : bool
        The rule that must hold. If False, ValidationError is raised.

    message : str
        Human-readable description of the violated rule.

    kind : ErrorKind
        Category reported on the raised error.

    Raises
    ------
    ValidationError
        If condition is False.

    Examples
    --------
    >>> require(nmads >= 0, "number of MADs in 'nmads' should be non-negative",
    ...         ErrorKind.OUT_OF_RANGE)
    """
    if not condition:
        raise ValidationError(kind, message)


@contextmanager
def context(message: str, stage: Optional[str] = None) -> Iterator[None]:
    """Wrap failures raised inside the block with ``message``.

    Parameters
    ----------
    message : str
        Breadcrumb describing what was being checked.

    stage : str, optional
        Name of the top-level stage, recorded on the error.
    """
    try:
        yield
    except ValidationError as err:
        err.wrap(message, stage=stage)
        raise


def validate_optional_or_required(
    handle,
    name: str,
    required: bool,
    checker: Callable[[], T],
) -> Optional[T]:
    """Run ``checker`` when ``name`` is required or present in ``handle``.

    Conditionally optional artifacts may be absent when not in use, but
    when they are present they are held to the same rules as when they
    are required.

    Returns
    -------
    The checker's result, or None if the check was skipped.
    """
    if required or name in handle:
        return checker()
    return None
