"""Shared test fixtures and configuration."""

import pytest
import torch
import numpy as np

from neurocable.config import CableConfig


@pytest.fixture(autouse=True)
def set_random_seed():
    """Ensure reproducible tests by setting all random seeds.

    The engines themselves are deterministic; this keeps randomly generated
    stimuli identical between runs.
    """
    torch.manual_seed(42)
    np.random.seed(42)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(42)
    torch.backends.cudnn.deterministic = True
    torch.backends.cudnn.benchmark = False


def pytest_collection_modifyitems(config, items):
    """Skip ``cuda``-marked tests on machines without a CUDA device."""
    if torch.cuda.is_available():
        return
    skip_cuda = pytest.mark.skip(reason="CUDA not available")
    for item in items:
        if "cuda" in item.keywords:
            item.add_marker(skip_cuda)


@pytest.fixture
def device():
    """Get available device (prefer GPU if available)."""
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


@pytest.fixture
def cable_config():
    """Default configuration with a coarser step to keep Python loops short."""
    return CableConfig(dt_ms=0.05)


@pytest.fixture
def dt_ms():
    """Standard integration step for tests."""
    return 0.05
