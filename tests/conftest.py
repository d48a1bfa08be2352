"""Shared fixtures for the tree tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def square_points():
    """Corners and centre of the square [0, 10] x [0, 10]."""
    return np.array(
        [
            [0.0, 0.0],
            [10.0, 0.0],
            [0.0, 10.0],
            [10.0, 10.0],
            [5.0, 5.0],
        ]
    )


@pytest.fixture
def square_range():
    return np.array([[0.0, 10.0], [0.0, 10.0]])


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def subtree_indices(node):
    """Row indices of every point stored below ``node``."""
    stack = [node]
    found = []
    while stack:
        current = stack.pop()
        if current.is_leaf:
            found.append(current.index)
        elif current.is_stopped:
            found.extend(int(i) for i in current.indices)
        else:
            stack.extend(child for child in current.children if child is not None)
    return found
