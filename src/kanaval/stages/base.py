"""Helpers shared by the stage validators.

Every stage group holds a ``parameters`` and a ``results`` group. Failures
while checking either are wrapped with a breadcrumb naming the stage.
"""

from contextlib import contextmanager
from typing import Iterator

import h5py

from kanaval.contracts import context, open_group


@contextmanager
def stage_parameters(stage: h5py.Group, name: str) -> Iterator[h5py.Group]:
    """Open ``parameters`` of a stage, wrapping failures in the block."""
    with context(f"failed to retrieve parameters from '{name}'", stage=name):
        yield open_group(stage, "parameters")


@contextmanager
def stage_results(stage: h5py.Group, name: str) -> Iterator[h5py.Group]:
    """Open ``results`` of a stage, wrapping failures in the block."""
    with context(f"failed to retrieve results from '{name}'", stage=name):
        yield open_group(stage, "results")


def check_stage_groups(stage: h5py.Group, name: str) -> None:
    """Check that a stage has its ``parameters`` and ``results`` groups."""
    with stage_parameters(stage, name):
        pass
    with stage_results(stage, name):
        pass
