# ==============================================
# Tests for the k-means clustering module
# ==============================================

import numpy as np
import polars as pl
import pytest

from product_analysis.clustering import KMeans, ProductClusterer, name_cluster
from product_analysis.clustering.centroids import (
    assign_clusters,
    compute_wcss,
    euclidean_distance,
    initialise_centroids,
    update_centroids,
)
from product_analysis.clustering.product_clustering import (
    CONVERGED,
    EMPTY_CLUSTER_NAME,
    MAX_ITER_EXCEEDED,
)
from product_analysis.config import ClusteringConfig
from product_analysis.data_preprocessing import parse_sales_text
from product_analysis.exceptions import (
    ConfigurationError,
    EmptyInputError,
    InvalidClusterCountError,
)

from conftest import make_csv


def two_blobs(seed=0, n=30):
    rng = np.random.default_rng(seed)
    a = rng.normal(0.1, 0.02, size=(n, 3))
    b = rng.normal(0.9, 0.02, size=(n, 3))
    return np.vstack([a, b])


class TestCentroidUtilities:
    def test_euclidean_distance(self):
        assert euclidean_distance([0, 0, 0], [1, 2, 2]) == pytest.approx(3.0)

    def test_initialise_picks_distinct_rows(self):
        data = np.arange(30, dtype=float).reshape(10, 3)
        centroids = initialise_centroids(data, 4, np.random.default_rng(0))
        rows = {tuple(c) for c in centroids}
        assert len(rows) == 4
        assert all(any(np.array_equal(c, d) for d in data) for c in centroids)

    def test_initialise_copies_data(self):
        data = np.zeros((3, 2))
        centroids = initialise_centroids(data, 2, np.random.default_rng(0))
        centroids[0, 0] = 5.0
        assert data[0, 0] == 0.0

    def test_initialise_rejects_k_above_rows(self):
        with pytest.raises(InvalidClusterCountError):
            initialise_centroids(np.zeros((3, 2)), 4, np.random.default_rng(0))

    def test_initialise_rejects_empty(self):
        with pytest.raises(EmptyInputError):
            initialise_centroids(np.zeros((0, 2)), 2, np.random.default_rng(0))

    def test_assign_nearest(self):
        data = np.array([[0.0, 0.0], [1.0, 1.0], [0.9, 0.8]])
        centroids = np.array([[0.0, 0.0], [1.0, 1.0]])
        assert assign_clusters(data, centroids).tolist() == [0, 1, 1]

    def test_ties_go_to_lowest_index(self):
        data = np.array([[0.5, 0.0]])
        centroids = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]])
        assert assign_clusters(data, centroids).tolist() == [0]

    def test_update_means_and_keeps_empty(self):
        data = np.array([[0.0, 0.0], [2.0, 2.0], [4.0, 4.0]])
        centroids = np.array([[0.0, 0.0], [3.0, 3.0], [9.0, 9.0]])
        updated = update_centroids(data, np.array([0, 1, 1]), centroids)
        np.testing.assert_allclose(updated, [[0.0, 0.0], [3.0, 3.0], [9.0, 9.0]])
        # Input centroids untouched
        assert centroids[1, 0] == 3.0

    def test_wcss(self):
        data = np.array([[0.0, 0.0], [2.0, 0.0]])
        centroids = np.array([[1.0, 0.0]])
        assert compute_wcss(data, np.array([0, 0]), centroids) == pytest.approx(2.0)


class TestKMeans:
    def test_separates_blobs(self):
        data = two_blobs()
        result = KMeans(2, rng=np.random.default_rng(3)).fit(data)
        assert result.status == CONVERGED
        assert len(set(result.assignments[:30])) == 1
        assert len(set(result.assignments[30:])) == 1
        assert result.assignments[0] != result.assignments[-1]

    def test_fixed_point_at_convergence(self):
        data = np.random.default_rng(5).uniform(size=(80, 3))
        result = KMeans(4, rng=np.random.default_rng(9)).fit(data)
        assert result.converged
        np.testing.assert_array_equal(assign_clusters(data, result.centroids), result.assignments)

    def test_fixed_point_when_iteration_cap_hit(self):
        data = np.random.default_rng(5).uniform(size=(80, 3))
        result = KMeans(4, max_iter=1, rng=np.random.default_rng(9)).fit(data)
        assert result.status == MAX_ITER_EXCEEDED
        assert result.n_iter == 1
        np.testing.assert_array_equal(assign_clusters(data, result.centroids), result.assignments)

    def test_returned_arrays_are_read_only(self):
        data = two_blobs()
        result = KMeans(2, rng=np.random.default_rng(3)).fit(data)
        with pytest.raises(ValueError):
            result.centroids[0, 0] = 99.0
        with pytest.raises(ValueError):
            result.assignments[0] = 1

    def test_wcss_matches_returned_state(self):
        data = two_blobs(seed=1)
        result = KMeans(3, rng=np.random.default_rng(2)).fit(data)
        assert result.wcss == pytest.approx(compute_wcss(data, result.assignments, result.centroids))

    def test_same_seed_same_result(self):
        data = np.random.default_rng(8).uniform(size=(50, 3))
        first = KMeans(3, rng=np.random.default_rng(21)).fit(data)
        second = KMeans(3, rng=np.random.default_rng(21)).fit(data)
        np.testing.assert_array_equal(first.assignments, second.assignments)
        assert first.wcss == second.wcss

    def test_input_not_mutated(self):
        data = two_blobs()
        copy = data.copy()
        KMeans(2, rng=np.random.default_rng(0)).fit(data)
        np.testing.assert_array_equal(data, copy)

    def test_empty_input(self):
        with pytest.raises(EmptyInputError):
            KMeans(2).fit(np.zeros((0, 3)))


class TestClusterNaming:
    @pytest.mark.parametrize("price, units, expected", [
        (2.0, 650, "Budget Best-Sellers"),
        (2.0, 501, "Budget Best-Sellers"),
        (8.0, 150, "Premium Low-Volume"),
        (3.0, 100, "Mid-Range Steady"),
        (7.0, 900, "Mid-Range Steady"),
        (8.0, 700, "High-Volume Movers"),
        (2.0, 500, "Premium Products"),
        (8.0, 300, "Premium Products"),
    ])
    def test_rule_order(self, price, units, expected):
        assert name_cluster(price, units) == expected


class TestProductClusterer:
    def test_elbow_covers_two_to_eight(self, sample_csv):
        normalized = parse_sales_text(sample_csv).normalized
        clusterer = ProductClusterer(ClusteringConfig(random_state=1))
        elbow = clusterer.elbow_sweep(clusterer.feature_matrix(normalized))
        assert [p.k for p in elbow] == list(range(2, 9))
        assert all(p.wcss >= 0 for p in elbow)

    def test_elbow_skips_k_above_row_count(self):
        data = np.random.default_rng(0).uniform(size=(5, 3))
        elbow = ProductClusterer(ClusteringConfig(random_state=0)).elbow_sweep(data)
        assert [p.k for p in elbow] == [2, 3, 4, 5]

    def test_fit_profiles_clusters(self, sample_csv):
        normalized = parse_sales_text(sample_csv).normalized
        result = ProductClusterer(ClusteringConfig(random_state=4)).fit(normalized, 3)
        assert result.k == 3
        assert len(result.cluster_info) == 3
        assert sum(c.count for c in result.cluster_info) == normalized.height
        assert result.scatter_data.columns == ["price", "units_sold", "cluster"]
        assert result.scatter_data.height == normalized.height
        assert result.elbow_data == ()

        for info in result.cluster_info:
            members = normalized.filter(result.scatter_data["cluster"] == info.cluster)
            if info.count:
                assert info.avg_price == pytest.approx(members["price"].mean())
                assert info.avg_profit == pytest.approx(members["profit"].mean())
                assert info.name == name_cluster(info.avg_price, info.avg_units)

    def test_fit_is_reproducible_with_seed(self, sample_csv):
        normalized = parse_sales_text(sample_csv).normalized
        clusterer = ProductClusterer(ClusteringConfig(random_state=12))
        first = clusterer.fit(normalized, 4)
        second = clusterer.fit(normalized, 4)
        np.testing.assert_array_equal(first.kmeans.assignments, second.kmeans.assignments)

    def test_perform_clustering_includes_elbow(self, sample_csv):
        normalized = parse_sales_text(sample_csv).normalized
        result = ProductClusterer(ClusteringConfig(random_state=2)).perform_clustering(normalized, 4)
        assert len(result.elbow_data) == 7
        assert result.k == 4

    @pytest.mark.parametrize("k", [1, 9])
    def test_k_out_of_range(self, sample_csv, k):
        normalized = parse_sales_text(sample_csv).normalized
        with pytest.raises(InvalidClusterCountError):
            ProductClusterer().fit(normalized, k)

    def test_k_above_record_count(self):
        rows = [
            {"product_id": "P1", "price": 2.0, "cost": 1.0, "units_sold": 600, "profit": 500.0},
            {"product_id": "P2", "price": 2.5, "cost": 1.0, "units_sold": 650, "profit": 550.0},
        ]
        normalized = parse_sales_text(make_csv(rows)).normalized
        with pytest.raises(InvalidClusterCountError):
            ProductClusterer().fit(normalized, 3)

    def test_empty_records(self):
        normalized = parse_sales_text("").normalized
        with pytest.raises(EmptyInputError):
            ProductClusterer().fit(normalized, 2)

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            ProductClusterer(ClusteringConfig(n_clusters=12))

    def test_identical_records_give_one_budget_cluster(self):
        rows = [
            {"product_id": f"P{i}", "product_name": "Gum", "category": "Snacks",
             "price": 2, "cost": 1, "units_sold": 600, "profit": 500}
            for i in range(20)
        ]
        normalized = parse_sales_text(make_csv(rows)).normalized
        result = ProductClusterer(ClusteringConfig(random_state=0)).fit(normalized, 2)

        non_empty = [c for c in result.cluster_info if not c.is_empty]
        assert len(non_empty) == 1
        assert non_empty[0].name == "Budget Best-Sellers"
        assert non_empty[0].count == 20
        assert non_empty[0].avg_price == pytest.approx(2.0)
        assert non_empty[0].avg_units == pytest.approx(600.0)

        empty = [c for c in result.cluster_info if c.is_empty]
        assert len(empty) == 1
        assert empty[0].name == EMPTY_CLUSTER_NAME
        assert empty[0].avg_price == 0.0

    def test_to_dict_is_serialisable(self, sample_csv):
        import json
        normalized = parse_sales_text(sample_csv).normalized
        result = ProductClusterer(ClusteringConfig(random_state=3)).perform_clustering(normalized)
        payload = json.loads(json.dumps(result.to_dict()))
        assert payload["k"] == 4
        assert len(payload["clusterInfo"]) == 4
        assert {"k", "wcss"} == set(payload["elbowData"][0])
