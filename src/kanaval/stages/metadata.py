"""Validation of the ``_metadata`` group (v3.0 onwards)."""

import h5py

from kanaval.contracts import ErrorKind, context, load_integer, load_string, open_group, require

STAGE = "_metadata"


def read_format_version(handle: h5py.Group) -> int:
    """Read ``_metadata/format_version`` from a state file."""
    with context(f"failed to check the '{STAGE}'", stage=STAGE):
        return load_integer(open_group(handle, STAGE), "format_version")


def validate_metadata(handle: h5py.Group, version: int) -> None:
    """Check that ``_metadata`` agrees with the version being validated."""
    with context(f"failed to check the '{STAGE}'", stage=STAGE):
        metadata = open_group(handle, STAGE)
        stored = load_integer(metadata, "format_version")
        require(
            stored == version,
            "'format_version' is not consistent with kana file version",
            ErrorKind.VERSION_MISMATCH,
        )
        load_string(metadata, "application_name")
        load_string(metadata, "application_version")
