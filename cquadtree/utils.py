"""General utility functions."""

import time
from functools import wraps
import numpy as np


def time_function(func):
    """
    Decorator to time function execution.
    For recursive functions, only times the top-level call.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not hasattr(wrapper, '_in_call'):
            wrapper._in_call = False

        if not wrapper._in_call:
            wrapper._in_call = True
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                elapsed = time.time() - start_time
                print(f"{func.__name__} took {elapsed:.6f} seconds")
                return result
            finally:
                wrapper._in_call = False
        else:
            return func(*args, **kwargs)

    return wrapper


def bounding_range(points):
    """
    Per-dimension coordinate range of a point array.

    Args:
        points: Array of shape (n, dim)

    Returns:
        Array of shape (dim, 2) holding (min, max) for each dimension
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[0] == 0:
        raise ValueError(f"Expected a non-empty (n, dim) array, got shape {points.shape}")
    return np.stack([points.min(axis=0), points.max(axis=0)], axis=1)


def squared_distances(points, query):
    """Squared euclidean distance from ``query`` to every row of ``points``."""
    diff = np.asarray(points, dtype=np.float64) - np.asarray(query, dtype=np.float64)
    return np.einsum('ij,ij->i', diff, diff)


def brute_force_knn(points, query, k):
    """
    Exact k nearest neighbours by linear scan.

    Args:
        points: Array of shape (n, dim)
        query: Query point of length dim
        k: Number of neighbours

    Returns:
        List of (index, squared_distance) pairs, ascending by distance
    """
    dists = squared_distances(points, query)
    order = np.argsort(dists, kind='stable')[:k]
    return [(int(i), float(dists[i])) for i in order]


def read_points(filepath, dimension=None):
    """
    Read a point file.

    The first line holds the point count, followed by one point per line
    with comma separated coordinates, e.g. ``12.5, 7``.

    Args:
        filepath: Path to the point file
        dimension: Expected number of coordinates per point (optional)

    Returns:
        Array of shape (n, dim)
    """
    with open(filepath, 'r') as f:
        lines = [line.strip() for line in f if line.strip()]

    if not lines:
        raise ValueError(f"{filepath}: empty point file")

    try:
        count = int(lines[0].split(',')[0])
    except ValueError:
        raise ValueError(f"{filepath}: invalid point count {lines[0]!r}") from None
    if count < 0:
        raise ValueError(f"{filepath}: invalid point count {count}")
    if len(lines) - 1 < count:
        raise ValueError(f"{filepath}: expected {count} points, found {len(lines) - 1}")

    rows = []
    for lineno, line in enumerate(lines[1:count + 1], start=2):
        try:
            row = [float(v) for v in line.split(',')]
        except ValueError:
            raise ValueError(f"{filepath}:{lineno}: invalid coordinates {line!r}") from None
        if dimension is None:
            dimension = len(row)
        if len(row) != dimension:
            raise ValueError(f"{filepath}:{lineno}: expected {dimension} coordinates, got {len(row)}")
        rows.append(row)

    if not rows:
        return np.empty((0, dimension or 0), dtype=np.float64)
    return np.array(rows, dtype=np.float64)


def write_points(filepath, points):
    """Write points in the format understood by ``read_points``."""
    points = np.asarray(points, dtype=np.float64)
    with open(filepath, 'w') as f:
        f.write(f"{points.shape[0]}\n")
        for row in points:
            f.write(", ".join(repr(float(v)) for v in row) + "\n")
