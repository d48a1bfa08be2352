#!/usr/bin/env python3
"""
Main entry point for compressed quadtree nearest neighbour search.

This script provides a command-line interface for querying, rendering and
benchmarking trees built from point files.
"""

import argparse
import time

import numpy as np

from cquadtree import PointSet, knn_batch, plot_query, plot_tree, stop_at_depth
from cquadtree.utils import brute_force_knn, write_points


def parse_point(text):
    """Parse a comma separated coordinate list such as ``5,4``."""
    try:
        return np.array([float(v) for v in text.split(',')], dtype=np.float64)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid point: {text!r}") from None


def build_tree(point_set, stop_depth=None, max_depth=None):
    kwargs = {}
    if stop_depth is not None:
        kwargs['end_build'] = stop_at_depth(stop_depth)
    if max_depth is not None:
        kwargs['max_depth'] = max_depth

    tree = point_set.build_tree(**kwargs)
    print(f"  Points: {len(tree)}  Dimension: {tree.dimension}  "
          f"Leaves: {len(tree.leaves())}  Height: {tree.height()}")
    return tree


def run_query(points_path, queries, k=1, eps=0.0, plot=False, max_depth=None):
    """Answer kNN queries against the points in ``points_path``."""
    print("\n" + "="*80)
    print("k-Nearest Neighbour Query")
    print("="*80)

    print(f"\nLoading points from {points_path}...")
    point_set = PointSet.from_file(points_path)
    tree = build_tree(point_set, max_depth=max_depth)

    results = []
    for query in queries:
        result = tree.knn(k, query, eps)
        results.append(result)

        print(f"\nQuery {query.tolist()} (k={k}, eps={eps}):")
        print(f"  {'Rank':<6} {'Index':<8} {'Squared Distance':<18} Point")
        print("  " + "-" * 60)
        for rank, (index, dist) in enumerate(result, 1):
            print(f"  {rank:<6} {index:<8} {dist:<18.6f} {point_set[index].tolist()}")

        if plot and tree.dimension == 2:
            plot_query(tree, query, result)

    return results


def run_render(points_path, sample_path=None, save_path='tree.png', stop_depth=None,
               show=False):
    """Render the regions of a 2-D tree."""
    print("\n" + "="*80)
    print("Render Tree")
    print("="*80)

    print(f"\nLoading points from {points_path}...")
    point_set = PointSet.from_file(points_path, dimension=2)
    sample = None
    if sample_path is not None:
        sample = PointSet.from_file(sample_path, dimension=2).points
        print(f"  Sample points: {len(sample)}")

    tree = build_tree(point_set, stop_depth=stop_depth)
    plot_tree(tree, sample=sample, save_path=save_path, show=show)
    return tree


def run_benchmark(n_points=10000, dimension=2, n_queries=200, k=5, eps=0.0, seed=0, n_jobs=1):
    """Compare tree queries against a brute force scan on random points."""
    print("\n" + "="*80)
    print(f"Benchmark: {n_points:,} points, {dimension}-D, k={k}, eps={eps}")
    print("="*80)

    rng = np.random.default_rng(seed)
    points = rng.uniform(0, 1000, size=(n_points, dimension))
    queries = rng.uniform(0, 1000, size=(n_queries, dimension))

    # at most n_points neighbours exist
    k = min(k, n_points)

    print(f"\nBuilding tree...")
    tree_start = time.time()
    tree = build_tree(PointSet(points))
    tree_time = time.time() - tree_start

    print(f"\nQuerying tree...")
    query_start = time.time()
    indices, distances = knn_batch(tree, queries, k, eps, n_jobs=n_jobs)
    query_time = time.time() - query_start

    print(f"\nQuerying brute force...")
    brute_start = time.time()
    exact = [brute_force_knn(points, q, k) for q in queries]
    brute_time = time.time() - brute_start

    hits = 0
    worst_ratio = 1.0
    for row, expected in enumerate(exact):
        hits += len(set(indices[row]) & {index for index, _ in expected})
        kth_exact = expected[-1][1]
        if kth_exact > 0:
            worst_ratio = max(worst_ratio, distances[row, -1] / kth_exact)

    print(f"\n{'='*70}")
    print(f"PERFORMANCE SUMMARY")
    print(f"{'='*70}")
    print(f"Tree build time:         {tree_time:.3f}s")
    print(f"Tree query time:         {query_time:.3f}s ({query_time / n_queries * 1000:.3f}ms/query)")
    print(f"Brute force time:        {brute_time:.3f}s ({brute_time / n_queries * 1000:.3f}ms/query)")
    print(f"Recall:                  {hits / (n_queries * k) * 100:.1f}%")
    print(f"Worst k-th ratio:        {worst_ratio:.4f} (bound {1 + eps:.4f})")
    print(f"{'='*70}\n")

    return hits / (n_queries * k), worst_ratio


def run_generate(output_path, n_points=100, dimension=2, scale=500.0, seed=0):
    """Write uniformly random points to a point file."""
    rng = np.random.default_rng(seed)
    points = rng.uniform(0, scale, size=(n_points, dimension))
    write_points(output_path, points)
    print(f"Wrote {n_points} {dimension}-D points to {output_path}")
    return points


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Compressed quadtree nearest neighbour search',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Three nearest neighbours of (5, 4)
  python run_knn.py query points.txt --point 5,4 -k 3

  # Approximate search
  python run_knn.py query points.txt --point 5,4 -k 3 --eps 0.5

  # Render the tree of a 2-D point file with sample points
  python run_knn.py render points.txt --sample sample.txt --save tree.png

  # Benchmark against brute force
  python run_knn.py bench --n 20000 --dim 3 -k 10 --jobs 4

  # Generate a random point file
  python run_knn.py generate points.txt --n 500
        """
    )

    subparsers = parser.add_subparsers(dest='mode', help='Mode')

    query_parser = subparsers.add_parser('query', help='k nearest neighbour query')
    query_parser.add_argument('points', type=str, help='Path to point file')
    query_parser.add_argument('--point', type=parse_point, action='append', required=True,
                              help='Query point as comma separated coordinates (repeatable)')
    query_parser.add_argument('-k', type=int, default=1, help='Number of neighbours')
    query_parser.add_argument('--eps', type=float, default=0.0, help='Approximation factor')
    query_parser.add_argument('--max-depth', type=int, default=None,
                              help='Depth at which unseparated points are reported')
    query_parser.add_argument('--plot', action='store_true', help='Plot 2-D results')

    render_parser = subparsers.add_parser('render', help='Render a 2-D tree')
    render_parser.add_argument('points', type=str, help='Path to point file')
    render_parser.add_argument('--sample', type=str, default=None, help='Path to sample point file')
    render_parser.add_argument('--save', type=str, default='tree.png', help='Output image path')
    render_parser.add_argument('--stop-depth', type=int, default=None,
                               help='Stop subdividing at this depth')
    render_parser.add_argument('--show', action='store_true', help='Open a plot window')

    bench_parser = subparsers.add_parser('bench', help='Benchmark against brute force')
    bench_parser.add_argument('--n', type=int, default=10000, help='Number of points')
    bench_parser.add_argument('--dim', type=int, default=2, help='Dimension')
    bench_parser.add_argument('--queries', type=int, default=200, help='Number of queries')
    bench_parser.add_argument('-k', type=int, default=5, help='Number of neighbours')
    bench_parser.add_argument('--eps', type=float, default=0.0, help='Approximation factor')
    bench_parser.add_argument('--seed', type=int, default=0, help='Random seed')
    bench_parser.add_argument('--jobs', type=int, default=1, help='Parallel query workers')

    generate_parser = subparsers.add_parser('generate', help='Write a random point file')
    generate_parser.add_argument('output', type=str, help='Output point file')
    generate_parser.add_argument('--n', type=int, default=100, help='Number of points')
    generate_parser.add_argument('--dim', type=int, default=2, help='Dimension')
    generate_parser.add_argument('--scale', type=float, default=500.0, help='Coordinate range')
    generate_parser.add_argument('--seed', type=int, default=0, help='Random seed')

    args = parser.parse_args(argv)

    if args.mode is None:
        print("No mode specified. Running benchmark with default settings...")
        run_benchmark()
        return

    if args.mode == 'query':
        run_query(args.points, args.point, k=args.k, eps=args.eps, plot=args.plot,
                  max_depth=args.max_depth)
    elif args.mode == 'render':
        run_render(args.points, args.sample, args.save, stop_depth=args.stop_depth,
                   show=args.show)
    elif args.mode == 'bench':
        run_benchmark(args.n, args.dim, args.queries, args.k, args.eps, args.seed, args.jobs)
    elif args.mode == 'generate':
        run_generate(args.output, args.n, args.dim, args.scale, args.seed)


if __name__ == '__main__':
    main()
