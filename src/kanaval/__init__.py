"""`kanaval` - validation of kana analysis state files.

Subpackages:
- contracts: Errors, HDF5 access primitives and shared checks
- schemas: Version features, modality descriptors and derived context
- stages: One validator per analysis step
- pipeline: Version dispatch and top-level entry points
- cli: Command-line runner
"""

from kanaval.contracts import ErrorKind, ValidationError
from kanaval.pipeline import validate, validate_file

__version__ = "0.1.0"

__all__ = ['ErrorKind', 'ValidationError', 'validate', 'validate_file', '__version__']
