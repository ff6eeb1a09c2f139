"""
Product Clustering Module

Segments products with a from-scratch k-means implementation run on the
min-max normalised price, units sold and promotion frequency features.

Key Features:
- Lloyd-style k-means with a WCSS convergence criterion and iteration cap
- Elbow sweep over k = 2..8
- Per-cluster profiles (size, average price, units, profit, promotion)
- Business-readable cluster names from an ordered rule table
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from ..config import MAX_CLUSTERS, MIN_CLUSTERS, ClusteringConfig
from ..data_preprocessing.sales_preprocessor import norm_column
from ..exceptions import EmptyInputError, InvalidClusterCountError
from .centroids import assign_clusters, compute_wcss, initialise_centroids, update_centroids


CLUSTER_FEATURES: Tuple[str, ...] = ("price", "units_sold", "promotion_frequency")

CONVERGED = "converged"
MAX_ITER_EXCEEDED = "max_iter_exceeded"

EMPTY_CLUSTER_NAME = "Empty Cluster"
DEFAULT_CLUSTER_NAME = "Premium Products"

# Evaluated top-down; the first matching rule names the cluster
CLUSTER_NAMING_RULES: List[Tuple[Callable[[float, float], bool], str]] = [
    (lambda price, units: price < 3 and units > 500, "Budget Best-Sellers"),
    (lambda price, units: price > 7 and units < 200, "Premium Low-Volume"),
    (lambda price, units: 3 <= price <= 7, "Mid-Range Steady"),
    (lambda price, units: units > 600, "High-Volume Movers"),
]


def name_cluster(avg_price: float, avg_units: float) -> str:
    """Business label for a cluster from its average price and units sold."""
    for condition, label in CLUSTER_NAMING_RULES:
        if condition(avg_price, avg_units):
            return label
    return DEFAULT_CLUSTER_NAME


@dataclass(frozen=True)
class KMeansResult:
    """Final state of one k-means run."""
    assignments: np.ndarray
    centroids: np.ndarray
    wcss: float
    n_iter: int
    status: str

    @property
    def converged(self) -> bool:
        return self.status == CONVERGED


@dataclass(frozen=True)
class ElbowPoint:
    k: int
    wcss: float

    def to_dict(self) -> Dict[str, Any]:
        return {"k": self.k, "wcss": self.wcss}


@dataclass(frozen=True)
class ClusterInfo:
    """Aggregate profile of one cluster in raw (un-normalised) units."""
    cluster: int
    name: str
    count: int
    avg_price: float
    avg_units: float
    avg_profit: float
    avg_promo: float

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster": self.cluster,
            "name": self.name,
            "count": self.count,
            "avgPrice": round(self.avg_price, 2),
            "avgUnits": round(self.avg_units),
            "avgProfit": round(self.avg_profit, 2),
            "avgPromo": round(self.avg_promo, 1),
        }


@dataclass(frozen=True)
class ClusterResult:
    """Clustering output for one choice of k."""
    k: int
    elbow_data: Tuple[ElbowPoint, ...]
    cluster_info: Tuple[ClusterInfo, ...]
    scatter_data: pl.DataFrame
    kmeans: KMeansResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k": self.k,
            "elbowData": [p.to_dict() for p in self.elbow_data],
            "clusterInfo": [c.to_dict() for c in self.cluster_info],
            "scatterData": self.scatter_data.to_dicts(),
            "wcss": self.kmeans.wcss,
            "iterations": self.kmeans.n_iter,
            "status": self.kmeans.status,
        }


class KMeans:
    """
    K-means clustering with random distinct-row initialisation.

    Each iteration assigns points to their nearest centroid, scores the
    assignment (WCSS against the centroids that produced it) and stops once the
    score changes by less than ``tol``. The returned centroids are always the
    ones that produced the returned assignment.
    """

    def __init__(self, n_clusters: int, max_iter: int = 100, tol: float = 1e-4,
                 rng: Optional[np.random.Generator] = None):
        self.n_clusters = n_clusters
        self.max_iter = max_iter
        self.tol = tol
        self.rng = rng if rng is not None else np.random.default_rng()

    def fit(self, data: np.ndarray) -> KMeansResult:
        data = np.asarray(data, dtype=float)
        if data.ndim != 2 or len(data) == 0:
            raise EmptyInputError("k-means needs a non-empty 2-D feature matrix")

        centroids = initialise_centroids(data, self.n_clusters, self.rng)
        prev_wcss = np.inf
        status = MAX_ITER_EXCEEDED
        n_iter = 0

        for n_iter in range(1, self.max_iter + 1):
            assignments = assign_clusters(data, centroids)
            wcss = compute_wcss(data, assignments, centroids)

            if abs(prev_wcss - wcss) < self.tol:
                status = CONVERGED
                break
            if n_iter == self.max_iter:
                break

            centroids = update_centroids(data, assignments, centroids)
            prev_wcss = wcss

        assignments.flags.writeable = False
        centroids.flags.writeable = False
        return KMeansResult(
            assignments=assignments,
            centroids=centroids,
            wcss=wcss,
            n_iter=n_iter,
            status=status,
        )


class ProductClusterer:
    """
    Product segmentation on normalised sales features.

    The elbow sweep and the fit for the selected k are separate calls so that
    k can be changed without recomputing the sweep.
    """

    def __init__(self, config: Optional[ClusteringConfig] = None,
                 features: Sequence[str] = CLUSTER_FEATURES,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialise the clusterer.

        Args:
            config: k-means parameters; ``random_state`` seeds every run
            features: Features whose normalised columns are clustered
            rng: Optional shared generator, overriding ``config.random_state``
        """
        self.config = config or ClusteringConfig()
        self.config.validate()
        self.features = tuple(features)
        self._rng = rng
        self.logger = logging.getLogger(__name__)

    def _generator(self) -> np.random.Generator:
        # A fresh seeded generator per run keeps re-fits reproducible
        if self._rng is not None:
            return self._rng
        return np.random.default_rng(self.config.random_state)

    def _kmeans(self, k: int, rng: np.random.Generator) -> KMeans:
        return KMeans(n_clusters=k, max_iter=self.config.max_iter, tol=self.config.tol, rng=rng)

    def feature_matrix(self, normalized: pl.DataFrame) -> np.ndarray:
        cols = [norm_column(f) for f in self.features]
        return normalized.select(cols).to_numpy().astype(float)

    def elbow_sweep(self, data: np.ndarray) -> List[ElbowPoint]:
        """
        WCSS of a full k-means fit for every k in the elbow range.

        Values of k larger than the number of points are skipped.
        """
        data = np.asarray(data, dtype=float)
        if len(data) == 0:
            raise EmptyInputError("Cannot run the elbow sweep on an empty dataset")

        rng = self._generator()
        points = []
        for k in range(self.config.elbow_k_min, self.config.elbow_k_max + 1):
            if k > len(data):
                self.logger.warning(f"Skipping k={k}: only {len(data)} data points")
                continue
            result = self._kmeans(k, rng).fit(data)
            points.append(ElbowPoint(k=k, wcss=result.wcss))
            self.logger.info(f"  k={k}: WCSS={result.wcss:.4f} ({result.n_iter} iterations, {result.status})")
        return points

    def fit(self, normalized: pl.DataFrame, k: Optional[int] = None,
            elbow_data: Sequence[ElbowPoint] = ()) -> ClusterResult:
        """
        Cluster the records for one k and profile the clusters.

        Args:
            normalized: Normalised records (must include the cleaned columns)
            k: Number of clusters, defaults to ``config.n_clusters``
            elbow_data: Previously computed elbow curve to carry on the result

        Returns:
            ClusterResult for this k
        """
        k = self.config.n_clusters if k is None else k
        if not MIN_CLUSTERS <= k <= MAX_CLUSTERS:
            raise InvalidClusterCountError(f"k must be between {MIN_CLUSTERS} and {MAX_CLUSTERS}, got {k}")
        if normalized.height == 0:
            raise EmptyInputError("No normalised records to cluster")
        if k > normalized.height:
            raise InvalidClusterCountError(f"k={k} exceeds the {normalized.height} available records")

        self.logger.info(f"Performing k-means clustering with {k} clusters on {normalized.height} products...")
        result = self._kmeans(k, self._generator()).fit(self.feature_matrix(normalized))

        cluster_info = self._profile_clusters(normalized, result.assignments, k)
        scatter = pl.DataFrame({
            "price": normalized["price"],
            "units_sold": normalized["units_sold"],
            "cluster": pl.Series("cluster", result.assignments, dtype=pl.Int64),
        })

        self.logger.info(
            f"Clustering complete - WCSS: {result.wcss:.4f}, iterations: {result.n_iter}, status: {result.status}"
        )
        return ClusterResult(
            k=k,
            elbow_data=tuple(elbow_data),
            cluster_info=tuple(cluster_info),
            scatter_data=scatter,
            kmeans=result,
        )

    def perform_clustering(self, normalized: pl.DataFrame, k: Optional[int] = None) -> ClusterResult:
        """Elbow sweep followed by the fit for the selected k."""
        elbow = self.elbow_sweep(self.feature_matrix(normalized))
        return self.fit(normalized, k, elbow_data=elbow)

    def _profile_clusters(self, normalized: pl.DataFrame, assignments: np.ndarray,
                          k: int) -> List[ClusterInfo]:
        price = normalized["price"].to_numpy().astype(float)
        units = normalized["units_sold"].to_numpy().astype(float)
        profit = normalized["profit"].to_numpy().astype(float)
        promo = normalized["promotion_frequency"].to_numpy().astype(float)

        profiles = []
        for cluster in range(k):
            mask = assignments == cluster
            count = int(mask.sum())
            if count == 0:
                self.logger.warning(f"Cluster {cluster} received no products")
                profiles.append(ClusterInfo(
                    cluster=cluster, name=EMPTY_CLUSTER_NAME, count=0,
                    avg_price=0.0, avg_units=0.0, avg_profit=0.0, avg_promo=0.0,
                ))
                continue

            avg_price = float(price[mask].mean())
            avg_units = float(units[mask].mean())
            profiles.append(ClusterInfo(
                cluster=cluster,
                name=name_cluster(avg_price, avg_units),
                count=count,
                avg_price=avg_price,
                avg_units=avg_units,
                avg_profit=float(profit[mask].mean()),
                avg_promo=float(promo[mask].mean()),
            ))
        return profiles
