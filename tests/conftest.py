"""Shared fixtures for pydcr tests."""

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def num_nodes():
    """Default number of nodes for tests."""
    return 12


@pytest.fixture
def modular_signal(rng, num_nodes):
    """Signal (N=12, T=120) with three planted 4-node modules.

    Each module shares a latent source; nodes add independent noise.
    """
    T = 120
    sources = rng.standard_normal((3, T))
    membership = np.repeat(np.arange(3), num_nodes // 3)
    return sources[membership] + 0.3 * rng.standard_normal((num_nodes, T))


@pytest.fixture
def planted_membership(num_nodes):
    """Module id of each node in modular_signal."""
    return np.repeat(np.arange(3), num_nodes // 3)


@pytest.fixture
def example_labels():
    """Worked example: N=4 nodes, W=3 windows."""
    return np.array([[1, 1, 2],
                     [1, 2, 2],
                     [2, 2, 2],
                     [1, 1, 1]])


@pytest.fixture
def roi_sets():
    """Two overlapping ROI sets over 12 nodes."""
    return {"dopamine": [0, 1, 2, 3], "serotonin": [3, 4, 5, 6, 7]}
