"""
cquadtree - Compressed quadtrees for approximate nearest neighbour search

A static spatial index over points of any fixed dimension featuring:
- Orthant partitioning with path compression of single-child chains
- Build predicate hook for partial trees
- Best-first approximate k-nearest-neighbour search
- Parallel batch queries and 2-D plotting
"""

from .node import Node
from .point_set import PointSet
from .quadtree import BuildDepthError, CompressedQuadtree, never_stop, stop_at_depth
from .search import knn_batch
from .visualization import plot_query, plot_tree

__version__ = "1.0.0"
__all__ = ["BuildDepthError", "CompressedQuadtree", "Node", "PointSet", "knn_batch",
           "never_stop", "plot_query", "plot_tree", "stop_at_depth"]
