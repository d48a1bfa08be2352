"""Tests for tree plotting."""

import matplotlib.pyplot as plt
import numpy as np
import pytest

from cquadtree import CompressedQuadtree, plot_query, plot_tree, stop_at_depth


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


def test_plot_tree_draws_every_node(square_points, square_range, tmp_path):
    tree = CompressedQuadtree(2, square_points, square_range)
    save_path = tmp_path / "tree.png"

    fig, ax = plot_tree(tree, sample=np.array([[1.0, 1.0]]), save_path=save_path, show=False)

    assert len(ax.patches) == sum(1 for _ in tree.iter_nodes())
    assert save_path.exists()


def test_plot_tree_with_stopped_regions(square_points, square_range):
    tree = CompressedQuadtree(2, square_points, square_range, end_build=stop_at_depth(1))
    fig, ax = plot_tree(tree, show=False)

    assert any(patch.get_hatch() == '//' for patch in ax.patches)


def test_plot_query(square_points, square_range):
    tree = CompressedQuadtree(2, square_points, square_range)
    neighbors = tree.knn(3, [0.0, 0.0])

    fig, ax = plot_query(tree, [0.0, 0.0], neighbors, show=False)
    assert "3 nearest neighbours" in ax.get_title()


def test_only_planar_trees(rng):
    tree = CompressedQuadtree(3, rng.uniform(0, 1, size=(10, 3)))
    with pytest.raises(ValueError):
        plot_tree(tree, show=False)
