import numpy as np
import pytest

from regdrop.dataservice.dataset import Dataset


@pytest.fixture
def line_dataset():
    """Four 1-D points with distinct gaps (1, 2, 4) so no neighbour ties occur."""
    return Dataset(np.array([[0.0], [1.0], [3.0], [7.0]]), np.array([0.0, 0.0, 10.0, 10.0]))


@pytest.fixture
def flat_line_dataset():
    return Dataset(np.array([[0.0], [1.0], [3.0], [7.0]]), np.zeros(4))


@pytest.fixture
def outlier_dataset():
    """Ten 2-D grid points, identical targets except an outlier at position 0."""
    X = np.array([[i % 5, i // 5] for i in range(10)], dtype=float)
    y = np.ones(10)
    y[0] = 100.0
    return Dataset(X, y)


@pytest.fixture
def random_dataset():
    rng = np.random.default_rng(7)
    X = rng.uniform(0, 10, size=(40, 2))
    y = np.sin(X[:, 0]) + 0.5 * X[:, 1] + rng.normal(0, 0.1, size=40)
    return Dataset(X, y)
