"""Tests for tree construction and path compression."""

import numpy as np
import pytest

from cquadtree import BuildDepthError, CompressedQuadtree, stop_at_depth
from cquadtree.quadtree import MAX_DIMENSION

from conftest import subtree_indices


def internal_nodes(tree):
    return [node for node in tree.iter_nodes() if node.children is not None]


def test_root_region(square_points, square_range):
    """Root is the square centred on the range with the largest half extent."""
    tree = CompressedQuadtree(2, square_points, square_range)

    np.testing.assert_allclose(tree.root.mid, [5.0, 5.0])
    assert tree.root.radius == 5.0
    assert tree.nnodes == 4
    assert len(tree) == 5

    # the wider dimension sets the radius
    points = np.array([[0.0, 0.0], [20.0, 4.0]])
    tree = CompressedQuadtree(2, points, [[0.0, 20.0], [0.0, 4.0]])
    np.testing.assert_allclose(tree.root.mid, [10.0, 2.0])
    assert tree.root.radius == 10.0


def test_square_layout(square_points, square_range):
    """Centre point shares the lower-left orthant with the origin."""
    tree = CompressedQuadtree(2, square_points, square_range)
    root = tree.root

    assert root.n_children() == 4
    assert root.children[1].is_leaf and root.children[1].index == 1
    assert root.children[2].is_leaf and root.children[2].index == 2
    assert root.children[3].is_leaf and root.children[3].index == 3

    lower_left = root.children[0]
    np.testing.assert_allclose(lower_left.mid, [2.5, 2.5])
    assert lower_left.radius == 2.5
    assert lower_left.children[0].index == 0
    assert lower_left.children[3].index == 4


def test_compression_invariant(rng):
    """No internal node ever has fewer than two children."""
    for dimension in (1, 2, 3, 4):
        points = rng.uniform(-50, 50, size=(300, dimension))
        tree = CompressedQuadtree(dimension, points)
        for node in internal_nodes(tree):
            assert len(node.children) == 2 ** dimension
            assert node.n_children() >= 2
        assert len(tree.leaves()) == 300


def test_compression_cascades():
    """A chain of single-orthant levels collapses into one node."""
    points = np.array([[0.0, 0.0], [0.01, 0.01], [10.0, 10.0]])
    tree = CompressedQuadtree(2, points, [[0.0, 10.0], [0.0, 10.0]])

    close_pair = tree.root.children[0]
    assert close_pair.n_children() == 2
    assert close_pair.depth == 9
    assert close_pair.radius == pytest.approx(5.0 / 2 ** 9)
    assert sorted(subtree_indices(close_pair)) == [0, 1]
    assert tree.height() == 10


def test_child_regions_nest(rng):
    """Children are halvings of their parent, possibly several levels down."""
    points = rng.normal(0, 10, size=(200, 3))
    tree = CompressedQuadtree(3, points)

    for node in internal_nodes(tree):
        for child in node.children:
            if child is None:
                continue
            levels = child.depth - node.depth
            assert levels >= 1
            assert child.radius == pytest.approx(node.radius / 2 ** levels)
            assert np.all(np.abs(child.mid - node.mid) + child.radius <= node.radius + 1e-9)


def test_coverage(rng):
    """Every point sits inside the region of the leaf holding it."""
    points = rng.uniform(0, 1, size=(250, 2))
    tree = CompressedQuadtree(2, points)

    for leaf in tree.leaves():
        assert leaf.in_node(leaf.point)
        np.testing.assert_array_equal(leaf.point, points[leaf.index])

    for i, point in enumerate(points):
        node = tree.locate(point)
        assert node.is_leaf
        assert node.index == i


def test_leaves_refer_to_caller_points(square_points, square_range):
    tree = CompressedQuadtree(2, square_points, square_range)
    assert tree.points is square_points
    for leaf in tree.leaves():
        assert np.shares_memory(leaf.point, square_points)


def test_single_point():
    tree = CompressedQuadtree(2, np.array([[3.0, 4.0]]))
    assert tree.root.is_leaf
    assert tree.root.index == 0
    assert tree.height() == 0


def test_build_predicate_calls(square_points, square_range):
    """The predicate sees every node, leaves included."""
    calls = []

    def record(node, depth):
        calls.append((depth, node.is_leaf))
        return False

    CompressedQuadtree(2, square_points, square_range, end_build=record)

    assert len(calls) == 7
    assert calls[0] == (0, False)
    assert sum(1 for _, is_leaf in calls if is_leaf) == 5


def test_stop_at_depth(square_points, square_range):
    """Stopping leaves a node without children or point."""
    tree = CompressedQuadtree(2, square_points, square_range, end_build=stop_at_depth(1))

    stopped = tree.root.children[0]
    assert stopped.is_stopped
    assert sorted(stopped.indices.tolist()) == [0, 4]
    assert stopped.depth == 1
    assert len(tree.leaves()) == 3


def test_stop_at_root(square_points, square_range):
    tree = CompressedQuadtree(2, square_points, square_range, end_build=lambda node, depth: True)
    assert tree.root.is_stopped
    assert len(tree.root.indices) == 5


def test_coincident_points_raise():
    points = np.array([[1.0, 1.0], [2.0, 2.0], [1.0, 1.0]])
    with pytest.raises(BuildDepthError) as excinfo:
        CompressedQuadtree(2, points, max_depth=40)
    assert excinfo.value.depth == 40
    assert excinfo.value.n_points == 2


def test_max_depth_too_shallow():
    points = np.array([[0.0, 0.0], [0.01, 0.01], [10.0, 10.0]])
    with pytest.raises(BuildDepthError):
        CompressedQuadtree(2, points, [[0.0, 10.0], [0.0, 10.0]], max_depth=5)


def test_invalid_arguments(square_points, square_range):
    with pytest.raises(ValueError):
        CompressedQuadtree(2, np.empty((0, 2)))
    with pytest.raises(ValueError):
        CompressedQuadtree(3, square_points)
    with pytest.raises(ValueError):
        CompressedQuadtree(0, np.empty((1, 0)))
    with pytest.raises(ValueError):
        CompressedQuadtree(MAX_DIMENSION + 1, np.zeros((1, MAX_DIMENSION + 1)))
    with pytest.raises(ValueError):
        CompressedQuadtree(2, square_points, [0.0, 10.0])
    with pytest.raises(ValueError):
        CompressedQuadtree(2, square_points, [[10.0, 0.0], [0.0, 10.0]])
    with pytest.raises(ValueError):
        CompressedQuadtree(2, square_points, [[0.0, 5.0], [0.0, 5.0]])


def test_non_finite_coordinates_rejected(square_range):
    """NaN or infinite coordinates are refused before any region is built."""
    with_nan = np.array([[0.0, 0.0], [np.nan, 1.0], [10.0, 10.0]])
    with pytest.raises(ValueError, match="non-finite"):
        CompressedQuadtree(2, with_nan, square_range)
    with pytest.raises(ValueError, match="non-finite"):
        CompressedQuadtree(2, with_nan)

    with_inf = np.array([[0.0, 0.0], [np.inf, 1.0]])
    with pytest.raises(ValueError):
        CompressedQuadtree(2, with_inf)

    points = np.array([[0.0, 0.0], [10.0, 10.0]])
    with pytest.raises(ValueError):
        CompressedQuadtree(2, points, [[0.0, np.inf], [0.0, 10.0]])
    with pytest.raises(ValueError):
        CompressedQuadtree(2, points, [[np.nan, 10.0], [0.0, 10.0]])
