"""Visualization utilities for 2-D trees and query results."""

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle
import numpy as np


def _check_planar(tree):
    if tree.dimension != 2:
        raise ValueError(f"Only 2-D trees can be plotted, got dimension {tree.dimension}")


def _square(node, **kwargs):
    lo, _ = node.bounds()
    side = 2 * node.radius
    return Rectangle((lo[0], lo[1]), side, side, **kwargs)


def _finish(fig, ax, title, save_path, show):
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.set_aspect('equal')
    ax.autoscale_view()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=150)
        print(f"Plot saved to '{save_path}'")
    if show:
        plt.show()
    return fig, ax


def plot_tree(tree, sample=None, ax=None, save_path=None, show=True):
    """
    Draw the regions of a 2-D tree.

    Every leaf square is coloured after the point it stores; internal node
    outlines are grey and stopped regions are hatched.

    Args:
        tree: CompressedQuadtree with dimension 2
        sample: Optional (m, 2) array of extra points to draw
        ax: Optional matplotlib axes to draw into
        save_path: Optional path to save the figure
        show: Whether to call plt.show()

    Returns:
        Tuple of (figure, axes)
    """
    _check_planar(tree)
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))
    else:
        fig = ax.figure

    cmap = plt.get_cmap('tab20')
    for node in tree.iter_nodes():
        if node.is_leaf:
            colour = cmap(node.index % cmap.N)
            ax.add_patch(_square(node, edgecolor=colour, facecolor=colour, alpha=0.35, linewidth=1))
        elif node.is_stopped:
            ax.add_patch(_square(node, edgecolor='#555555', facecolor='none', hatch='//', linewidth=1))
        else:
            ax.add_patch(_square(node, edgecolor='0.7', facecolor='none', linewidth=0.8))

    ax.scatter(tree.points[:, 0], tree.points[:, 1], s=12, color='#2E86AB', zorder=3, label='Sites')
    if sample is not None:
        sample = np.asarray(sample, dtype=np.float64)
        ax.scatter(sample[:, 0], sample[:, 1], s=10, marker='x', color='#C73E1D', zorder=3, label='Sample')
    ax.legend(loc='best')

    title = f'Compressed Quadtree ({len(tree)} points, height {tree.height()})'
    return _finish(fig, ax, title, save_path, show)


def plot_query(tree, query, neighbors, ax=None, save_path=None, show=True):
    """
    Highlight a query point and the neighbours found for it.

    Args:
        tree: CompressedQuadtree with dimension 2
        query: Query point (x, y)
        neighbors: List of (index, squared_distance) pairs from tree.knn
        ax: Optional matplotlib axes to draw into
        save_path: Optional path to save the figure
        show: Whether to call plt.show()

    Returns:
        Tuple of (figure, axes)
    """
    _check_planar(tree)
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))
    else:
        fig = ax.figure

    query = np.asarray(query, dtype=np.float64)
    ax.scatter(tree.points[:, 0], tree.points[:, 1], s=12, color='0.6', label='Points')
    ax.scatter(query[0], query[1], s=60, marker='*', color='#C73E1D', zorder=4, label='Query')

    if neighbors:
        found = tree.points[[index for index, _ in neighbors]]
        ax.scatter(found[:, 0], found[:, 1], s=30, color='#2E86AB', zorder=3, label='Neighbours')
        # circle through the farthest neighbour returned
        radius = np.sqrt(neighbors[-1][1])
        ax.add_patch(plt.Circle((query[0], query[1]), radius, edgecolor='green',
                                facecolor='none', linestyle='--', linewidth=1))
    ax.legend(loc='best')

    title = f'{len(neighbors)} nearest neighbours of ({query[0]:g}, {query[1]:g})'
    return _finish(fig, ax, title, save_path, show)
