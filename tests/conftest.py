"""Shared fixtures."""

import numpy as np
import pytest

from coverscan.detector import OpenCVBackend
from coverscan.geometry import Frame

from .helpers import FakeClock, FakeSource, make_cover_frame


@pytest.fixture
def backend():
    backend = OpenCVBackend()
    backend.initialize()
    return backend


@pytest.fixture
def cover_frame():
    return make_cover_frame()


@pytest.fixture
def blank_frame():
    return Frame(np.full((600, 800, 3), 30, dtype=np.uint8))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return FakeSource()
