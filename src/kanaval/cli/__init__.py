"""Command-line interface for validating state files."""

from kanaval.cli.run_validate import main, run_validation

__all__ = ['main', 'run_validation']
