"""Point set management and file loading."""

import numpy as np

from .quadtree import CompressedQuadtree
from .utils import bounding_range, read_points, write_points


class PointSet:
    """Owns the point array that a tree's leaves refer to."""

    def __init__(self, points):
        """
        Initialize a point set.

        Args:
            points: Array-like of shape (n, dim)
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2:
            raise ValueError(f"Expected points of shape (n, dim), got {points.shape}")
        self.points = points

    @classmethod
    def from_file(cls, filepath, dimension=None):
        """Load a point set from a point file (count line, then ``x, y`` rows)."""
        return cls(read_points(filepath, dimension))

    def save(self, filepath):
        write_points(filepath, self.points)
        print(f"Points saved to {filepath}")

    @property
    def dimension(self):
        return self.points.shape[1]

    def coordinate_range(self):
        """Per-dimension (min, max), shape (dim, 2)."""
        return bounding_range(self.points)

    def build_tree(self, **kwargs):
        """
        Build a CompressedQuadtree over these points.

        Keyword arguments are passed on to CompressedQuadtree; the
        coordinate range defaults to this set's bounding range.
        """
        kwargs.setdefault('coord_range', self.coordinate_range())
        return CompressedQuadtree(self.dimension, self.points, **kwargs)

    def __getitem__(self, index):
        return self.points[index]

    def __len__(self):
        return len(self.points)
