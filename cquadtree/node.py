"""Hypercube regions of the compressed quadtree."""

import numpy as np

# tolerance for boundary points, absorbs rounding in repeated halving
LOCATE_EPS = 0.001


class Node:
    """
    A hypercube region with centre ``mid`` and half side length ``radius``.

    A node is one of:
      - a leaf, holding one point (``point``) and its row ``index``
      - an internal node, holding ``2**dim`` child slots (``None`` when empty)
      - a stopped node, where the build predicate halted subdivision; it has
        neither children nor a point, only the ``indices`` it covers
    """

    def __init__(self, mid, radius, depth=0):
        self.mid = np.asarray(mid, dtype=np.float64)
        self.radius = float(radius)
        self.depth = depth
        self.children = None
        self.point = None
        self.index = None
        self.indices = None

    def set_point(self, point, index):
        self.point = point
        self.index = index

    def set_children(self, children):
        self.children = children

    def set_indices(self, indices):
        self.indices = indices

    @property
    def is_leaf(self):
        return self.children is None and self.point is not None

    @property
    def is_stopped(self):
        return self.children is None and self.point is None

    def n_children(self):
        if self.children is None:
            return 0
        return sum(1 for child in self.children if child is not None)

    def in_node(self, pt):
        """Whether ``pt`` lies inside this region, within ``LOCATE_EPS``."""
        pt = np.asarray(pt, dtype=np.float64)
        offset = np.abs(pt - self.mid)
        return bool(np.all(offset - self.radius <= LOCATE_EPS))

    def bounds(self):
        """Lower and upper corners of the region."""
        return self.mid - self.radius, self.mid + self.radius

    def __repr__(self):
        if self.is_leaf:
            kind = f"leaf index={self.index}"
        elif self.is_stopped:
            n = 0 if self.indices is None else len(self.indices)
            kind = f"stopped points={n}"
        else:
            kind = f"internal children={self.n_children()}"
        return f"Node({kind}, mid={self.mid.tolist()}, radius={self.radius})"
