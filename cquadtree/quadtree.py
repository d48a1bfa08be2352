"""
Compressed quadtree supporting approximate nearest neighbour queries.

The quadtree is generalised to any dimension: every internal node splits its
hypercube into 2**dim orthants around its centre. Chains of nodes with a
single non-empty orthant are collapsed, so the depth of the tree depends on
the number of points rather than on how closely they are clustered.

Based upon the description in:

    Eppstein, D., Goodrich, M. T., Sun, J. Z. (2008) The Skip Quadtree:
    A Simple Dynamic Data Structure for Multidimensional Data,
    Int. Journal on Computational Geometry and Applications, 18(1/2), pp. 131 - 160
"""

import bisect
import heapq
import itertools

import numpy as np

from .node import Node, LOCATE_EPS
from .utils import time_function, bounding_range

# every internal node allocates 2**dim child slots
MAX_DIMENSION = 16
DEFAULT_MAX_DEPTH = 128


class BuildDepthError(RuntimeError):
    """Raised when points can not be separated within the maximum depth."""

    def __init__(self, depth, n_points):
        super().__init__(
            f"{n_points} points still share a region at depth {depth}; "
            f"coincident points can not be separated (raise max_depth or "
            f"remove duplicates)"
        )
        self.depth = depth
        self.n_points = n_points


def never_stop(node, depth):
    """Default build predicate: subdivide until every leaf holds one point."""
    return False


def stop_at_depth(limit):
    """Build predicate halting subdivision once ``depth`` reaches ``limit``."""
    def end_build(node, depth):
        return depth >= limit
    return end_build


class CompressedQuadtree:
    """
    Static compressed 2**dim-ary tree over a caller-owned point array.

    Args:
        dimension: Number of coordinates per point
        points: Array of shape (n, dimension), n >= 1. Leaves refer to its
            rows; the row index is the identity reported by queries.
        coord_range: Optional (dimension, 2) array of per-dimension
            (min, max). Defaults to the bounding range of ``points``.
        end_build: Optional predicate ``(node, depth) -> bool`` consulted at
            every node. Returning True with more than one point left stops
            subdivision and leaves a stopped node behind.
        max_depth: Depth past which unseparated points raise BuildDepthError
    """

    def __init__(self, dimension, points, coord_range=None, end_build=None,
                 max_depth=DEFAULT_MAX_DEPTH):
        if isinstance(dimension, bool) or not isinstance(dimension, (int, np.integer)):
            raise ValueError(f"dimension must be an integer, got {dimension!r}")
        if dimension < 1 or dimension > MAX_DIMENSION:
            raise ValueError(f"dimension must be between 1 and {MAX_DIMENSION}, got {dimension}")

        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != dimension:
            raise ValueError(f"Expected points of shape (n, {dimension}), got {points.shape}")
        if points.shape[0] == 0:
            raise ValueError("Cannot build a tree from an empty point set")
        if not np.all(np.isfinite(points)):
            first = int(np.flatnonzero(~np.all(np.isfinite(points), axis=1))[0])
            raise ValueError(f"Point {first} {points[first].tolist()} has non-finite coordinates")
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        self.dimension = int(dimension)
        self.nnodes = 1 << self.dimension
        self.points = points
        self.max_depth = max_depth

        if coord_range is None:
            coord_range = bounding_range(points)
        mid, radius = self._root_region(coord_range)

        outside = np.any(np.abs(points - mid) - radius > LOCATE_EPS, axis=1)
        if np.any(outside):
            first = int(np.flatnonzero(outside)[0])
            raise ValueError(f"Point {first} {points[first].tolist()} lies outside the coordinate range")

        self._bits = 1 << np.arange(self.dimension)
        self.root = self.build(mid, radius, end_build or never_stop)

    def _root_region(self, coord_range):
        """Centre and shared half side length of the root hypercube."""
        coord_range = np.asarray(coord_range, dtype=np.float64)
        if coord_range.shape != (self.dimension, 2):
            raise ValueError(f"Expected coord_range of shape ({self.dimension}, 2), got {coord_range.shape}")
        if not np.all(np.isfinite(coord_range)):
            raise ValueError("coord_range must be finite")
        lo, hi = coord_range[:, 0], coord_range[:, 1]
        if np.any(lo > hi):
            raise ValueError("coord_range minimum exceeds maximum")

        mid = (lo + hi) / 2
        radius = float(np.max((hi - lo) / 2))
        return mid, radius

    @time_function
    def build(self, mid, radius, end_build):
        indices = np.arange(self.points.shape[0], dtype=np.int64)
        return self._partition(mid, radius, indices, end_build, 0)

    def _partition(self, mid, radius, indices, end_build, depth):
        node = Node(mid, radius, depth)

        # a single point always ends in a leaf, the predicate is only informed
        if indices.shape[0] == 1:
            index = int(indices[0])
            node.set_point(self.points[index], index)
            end_build(node, depth)
            return node

        if end_build(node, depth):
            node.set_indices(indices)
            return node

        if depth >= self.max_depth:
            raise BuildDepthError(depth, indices.shape[0])

        # orthant index: bit d set when coordinate d lies above the centre
        above = self.points[indices] > node.mid
        orthants = above.astype(np.int64) @ self._bits

        order = np.argsort(orthants, kind='stable')
        sorted_indices = indices[order]
        slots, starts, counts = np.unique(orthants[order], return_index=True, return_counts=True)

        new_radius = radius / 2.0
        children = [None] * self.nnodes
        for slot, start, count in zip(slots, starts, counts):
            slot_bits = (int(slot) & self._bits) != 0
            new_mid = node.mid + np.where(slot_bits, new_radius, -new_radius)
            children[slot] = self._partition(
                new_mid, new_radius, sorted_indices[start:start + count], end_build, depth + 1
            )

        # compress: a lone child takes the place of this node
        if slots.shape[0] < 2:
            return children[int(slots[0])]

        node.set_children(children)
        return node

    def knn(self, k, query, eps=0.0):
        """
        Approximate k nearest neighbours of ``query``.

        The search stops once the k-th best squared distance found so far is
        within a factor (1 + eps) of the smallest lower bound left in the
        queue. With eps=0 the result is exact, up to ties.

        Args:
            k: Number of neighbours, k >= 1
            query: Query point of length dimension
            eps: Approximation factor, applied to squared distances

        Returns:
            List of up to k (index, squared_distance) pairs, ascending by
            squared distance
        """
        query = self._check_query(k, query, eps)

        result_dists = []
        result_indices = []

        # sequence number keeps pops in push order among equal bounds
        counter = itertools.count()
        pq = [(0.0, next(counter), self.root)]

        while pq:
            node_dist, _, node = heapq.heappop(pq)

            if node.is_leaf:
                diff = node.point - query
                dist = float(diff @ diff)

                # ahead of every result that is not strictly closer
                pos = bisect.bisect_left(result_dists, dist)
                result_dists.insert(pos, dist)
                result_indices.insert(pos, node.index)

                if len(result_dists) > k:
                    result_dists.pop()
                    result_indices.pop()

            elif node.is_stopped:
                continue

            else:
                kth_dist = result_dists[-1] if len(result_dists) >= k else np.inf

                # everything left in the queue is at least node_dist away
                if kth_dist <= (1.0 + eps) * node_dist:
                    break

                for child in node.children:
                    if child is None:
                        continue
                    min_dist = self.min_dist_to_node(query, child)
                    if min_dist < kth_dist:
                        heapq.heappush(pq, (min_dist, next(counter), child))

        return list(zip(result_indices, result_dists))

    def knn_points(self, k, query, eps=0.0):
        """Like ``knn`` but returns (coordinates, squared_distances) arrays."""
        result = self.knn(k, query, eps)
        indices = np.array([index for index, _ in result], dtype=np.int64)
        dists = np.array([dist for _, dist in result], dtype=np.float64)
        return self.points[indices], dists

    def _check_query(self, k, query, eps):
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
            raise ValueError(f"k must be a positive integer, got {k!r}")
        if not eps >= 0:
            raise ValueError(f"eps must be non-negative, got {eps!r}")
        query = np.asarray(query, dtype=np.float64).reshape(-1)
        if query.shape[0] != self.dimension:
            raise ValueError(f"Expected a query point with {self.dimension} coordinates, got {query.shape[0]}")
        if not np.all(np.isfinite(query)):
            raise ValueError(f"Query point must be finite, got {query.tolist()}")
        return query

    @staticmethod
    def min_dist_to_node(pt, node):
        """
        Lower bound on the squared distance from ``pt`` to any point in ``node``.

        Zero when ``pt`` lies inside the region, otherwise the largest
        per-dimension gap to the region, squared.
        """
        lo, hi = node.bounds()
        gap = np.maximum(np.maximum(lo - pt, pt - hi), 0.0)
        if not np.any(gap > 0):
            return 0.0
        max_gap = float(gap.max())
        return max_gap * max_gap

    def locate(self, point):
        """
        Deepest node on the orthant path of ``point`` whose region contains it.

        For a point stored in the tree this is the leaf holding it.
        """
        point = np.asarray(point, dtype=np.float64).reshape(-1)
        node = self.root
        while node.children is not None:
            slot = int((point > node.mid).astype(np.int64) @ self._bits)
            child = node.children[slot]
            if child is None or not child.in_node(point):
                break
            node = child
        return node

    def iter_nodes(self):
        """Pre-order traversal of every node in the tree."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if node.children is not None:
                stack.extend(child for child in reversed(node.children) if child is not None)

    def leaves(self):
        return [node for node in self.iter_nodes() if node.is_leaf]

    def height(self):
        """Depth of the deepest node, counted in halvings of the root region."""
        return max(node.depth for node in self.iter_nodes())

    def __len__(self):
        return self.points.shape[0]

    def __repr__(self):
        return f"CompressedQuadtree(dimension={self.dimension}, points={len(self)})"
