"""CLIConfig: command-line options for the validator.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional

from pydantic import field_validator

from kanaval.schemas.base import KanavalBaseModel
from kanaval.schemas.version import parse_version


class CLIConfig(KanavalBaseModel):
    """Options for validating one state file from the command line.

    Notes
    -----
    ``version`` accepts an encoded integer or a dotted string such as
    ``"2.1.0"``. When omitted, the version is read from the file's
    ``_metadata/format_version``.

    Usage
    -----
        cli_cfg = CLIConfig(state_file="session.h5", version="3.0.0")
    """

    state_file: str
    version: Optional[int] = None
    embedded: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("version", mode="before")
    @classmethod
    def normalise_version(cls, value):
        if value is None:
            return None
        return parse_version(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value
