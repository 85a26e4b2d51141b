"""Version dispatch and top-level validation.

- variants: ordered stage validators per layout (legacy, v2, v3)
- validate: ``validate()`` on an open handle, ``validate_file()`` on a path
"""

from kanaval.pipeline.variants import PIPELINES, LegacyPipeline, V2Pipeline, V3Pipeline
from kanaval.pipeline.validate import validate, validate_file

__all__ = [
    "PIPELINES",
    "LegacyPipeline",
    "V2Pipeline",
    "V3Pipeline",
    "validate",
    "validate_file",
]
