"""Tests for the run_knn command-line interface."""

import matplotlib.pyplot as plt
import numpy as np
import pytest

import run_knn
from cquadtree.utils import read_points, write_points


@pytest.fixture
def points_file(tmp_path, square_points):
    path = tmp_path / "points.txt"
    write_points(path, square_points)
    return path


def test_generate(tmp_path):
    path = tmp_path / "generated.txt"
    run_knn.main(["generate", str(path), "--n", "25", "--dim", "3", "--seed", "1"])

    points = read_points(path)
    assert points.shape == (25, 3)


def test_query(points_file, capsys):
    results = run_knn.run_query(points_file, [np.array([5.0, 4.0])], k=1)
    assert results == [[(4, 1.0)]]

    run_knn.main(["query", str(points_file), "--point", "0,0", "--point", "9,9", "-k", "2"])
    out = capsys.readouterr().out
    assert "Query [0.0, 0.0]" in out
    assert "Query [9.0, 9.0]" in out


def test_render(points_file, tmp_path):
    save_path = tmp_path / "tree.png"
    run_knn.main(["render", str(points_file), "--save", str(save_path), "--stop-depth", "1"])
    plt.close('all')

    assert save_path.exists()


def test_benchmark():
    recall, worst_ratio = run_knn.run_benchmark(n_points=400, dimension=2, n_queries=10, k=3)

    assert recall == 1.0
    assert worst_ratio == pytest.approx(1.0)


def test_benchmark_with_more_neighbours_than_points():
    recall, worst_ratio = run_knn.run_benchmark(n_points=6, dimension=2, n_queries=4, k=10)

    assert recall == 1.0
    assert np.isfinite(worst_ratio)
    assert worst_ratio == pytest.approx(1.0)


def test_parse_point():
    np.testing.assert_array_equal(run_knn.parse_point("1.5,-2"), [1.5, -2.0])
