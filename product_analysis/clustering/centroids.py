"""Distance and centroid helpers for the k-means engine."""

from __future__ import annotations

import numpy as np

from ..exceptions import EmptyInputError, InvalidClusterCountError


def euclidean_distance(point_a: np.ndarray, point_b: np.ndarray) -> float:
    diff = np.asarray(point_a, dtype=float) - np.asarray(point_b, dtype=float)
    return float(np.sqrt(np.sum(diff * diff)))


def initialise_centroids(data: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Pick ``k`` distinct rows of ``data`` uniformly at random as starting centroids.

    Raises:
        EmptyInputError: If ``data`` has no rows
        InvalidClusterCountError: If ``k`` is below 1 or above the row count
    """
    n = len(data)
    if n == 0:
        raise EmptyInputError("Cannot initialise centroids from an empty dataset")
    if k < 1 or k > n:
        raise InvalidClusterCountError(f"k={k} is invalid for {n} data points")
    indices = rng.choice(n, size=k, replace=False)
    return np.array(data[indices], dtype=float, copy=True)


def assign_clusters(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the nearest centroid for every row.

    Ties go to the lowest centroid index.
    """
    # (n, k) matrix of squared distances
    diffs = data[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    distances = np.sum(diffs * diffs, axis=2)
    # argmin returns the first minimum, matching a strict "<" scan
    return np.argmin(distances, axis=1)


def update_centroids(data: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Mean of each cluster's members; clusters with no members keep their centroid."""
    new_centroids = np.array(centroids, dtype=float, copy=True)
    for cluster in range(len(centroids)):
        members = data[assignments == cluster]
        if len(members) > 0:
            new_centroids[cluster] = members.mean(axis=0)
    return new_centroids


def compute_wcss(data: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> float:
    """Within-cluster sum of squared distances to the assigned centroids."""
    diffs = data - centroids[assignments]
    return float(np.sum(diffs * diffs))
