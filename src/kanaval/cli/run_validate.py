"""Command-line runner for validating a state file.

Usage:
    kanaval-validate state.h5
    kanaval-validate state.h5 --version 2.1.0 --linked
    kanaval-validate state.h5 -v

Exit status is 0 for a valid file, 1 for an invalid or unreadable file
and 2 for usage errors.
"""

import sys
import argparse
import logging
from typing import List, Optional

import pydantic

from kanaval.contracts import ValidationError
from kanaval.pipeline.validate import validate_file
from kanaval.schemas import CLIConfig, format_version

__all__ = ['main', 'run_validation', 'setup_logging']

logger = logging.getLogger(__name__)


def setup_logging(level: str = "WARNING") -> None:
    """Configure the root logger with a single console handler."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear existing handlers and add a console handler
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)


def run_validation(cli_cfg: CLIConfig) -> int:
    """Validate the file named in ``cli_cfg`` and report the outcome.

    Parameters
    ----------
    cli_cfg : CLIConfig
        Validated command-line options.

    Returns
    -------
    int
        0 if the file is valid, 1 otherwise.
    """
    try:
        ctx = validate_file(cli_cfg.state_file, embedded=cli_cfg.embedded, version=cli_cfg.version)
    except ValidationError as err:
        logger.debug("Validation failed in stage %s (%s)", err.stage, err.kind)
        print(f"Invalid state file: {cli_cfg.state_file}", file=sys.stderr)
        print(f"  - {err}", file=sys.stderr)
        return 1
    except OSError as err:
        print(f"Could not read {cli_cfg.state_file}: {err}", file=sys.stderr)
        return 1

    version = format_version(cli_cfg.version) if cli_cfg.version is not None else "from _metadata"
    print(f"Valid state file: {cli_cfg.state_file}")
    print(f"Version:  {version}")
    print(f"Cells:    {ctx.num_cells} ({ctx.filtered_cells} after filtering)")
    print(f"Clusters: {ctx.num_clusters}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the analysis state of a kana session file")
    parser.add_argument("state_file", help="Path to the HDF5 state file")
    parser.add_argument("--version", help="Format version (e.g. 2.1.0 or 2001000); read from _metadata if omitted")
    parser.add_argument("--linked", action="store_true", help="Input files are linked by identifier rather than embedded")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    try:
        cli_cfg = CLIConfig.model_validate({
            k: v
            for k, v in {
                "state_file": args.state_file,
                "version": args.version,
                "embedded": not args.linked,
                "log_level": "DEBUG" if args.verbose else None,
            }.items()
            if v is not None
        })
    except pydantic.ValidationError as err:
        parser.error(str(err))

    setup_logging(cli_cfg.log_level)
    return run_validation(cli_cfg)


if __name__ == "__main__":
    sys.exit(main())
