"""Batched nearest neighbour queries against a built tree."""

import numpy as np
from joblib import Parallel, delayed

from .utils import time_function


def _query_one(tree, query, k, eps):
    return tree.knn(k, query, eps)


@time_function
def knn_batch(tree, queries, k, eps=0.0, n_jobs=1):
    """
    Run ``tree.knn`` for every query point.

    The tree is never modified by a query, so queries are dispatched to
    joblib workers without any locking.

    Args:
        tree: CompressedQuadtree to search
        queries: Array of shape (m, dimension)
        k: Number of neighbours per query
        eps: Approximation factor
        n_jobs: Number of joblib workers

    Returns:
        Tuple of (indices, distances), both of shape (m, k). Missing
        neighbours are reported as index -1 and distance inf.
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
        raise ValueError(f"k must be a positive integer, got {k!r}")

    queries = np.asarray(queries, dtype=np.float64)
    if queries.ndim != 2 or queries.shape[1] != tree.dimension:
        raise ValueError(f"Expected queries of shape (m, {tree.dimension}), got {queries.shape}")

    if n_jobs == 1:
        results = [_query_one(tree, q, k, eps) for q in queries]
    else:
        results = Parallel(n_jobs=n_jobs, backend='loky')(
            delayed(_query_one)(tree, q, k, eps) for q in queries
        )

    indices = np.full((queries.shape[0], k), -1, dtype=np.int64)
    distances = np.full((queries.shape[0], k), np.inf, dtype=np.float64)
    for row, result in enumerate(results):
        for col, (index, dist) in enumerate(result):
            indices[row, col] = index
            distances[row, col] = dist

    return indices, distances
