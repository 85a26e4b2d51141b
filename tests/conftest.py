"""Root-level pytest fixtures for the kanaval test suite.

State files are written into in-memory HDF5 files (h5py ``core`` driver
without a backing store), so no test touches the disk unless it asks for
``state_path``.
"""

import uuid
import shutil
import tempfile
from pathlib import Path

import h5py
import pytest

from kanaval.schemas.version import SchemaFeatures
from tests.helpers.builders import build_state


# =============================================================================
# HDF5 Fixtures
# =============================================================================

@pytest.fixture
def h5_root():
    """Empty writable in-memory HDF5 file."""
    handle = h5py.File(f"{uuid.uuid4().hex}.h5", "w", driver="core", backing_store=False)
    yield handle
    handle.close()


@pytest.fixture
def make_state(h5_root):
    """Factory fixture writing a complete valid state file.

    Examples
    --------
    >>> def test_something(make_state):
    ...     root = make_state(V3_VERSION, modalities=("RNA",))
    ...     del root["tsne"]
    """
    def _make(version, **kwargs):
        return build_state(h5_root, version, **kwargs)

    return _make


@pytest.fixture
def features():
    """Factory for ``SchemaFeatures`` from an encoded version."""
    return SchemaFeatures.from_version


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def state_path(temp_dir):
    """Factory writing a complete state file to disk and returning its path."""
    def _make(version, **kwargs):
        path = temp_dir / "state.h5"
        with h5py.File(path, "w") as handle:
            build_state(handle, version, **kwargs)
        return path

    return _make
