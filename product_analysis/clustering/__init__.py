"""
Clustering module for product segmentation.

Contains the from-scratch k-means engine, its centroid helpers and the
rule-based cluster naming.
"""

from .product_clustering import (
    CLUSTER_NAMING_RULES,
    ClusterInfo,
    ClusterResult,
    ElbowPoint,
    KMeans,
    KMeansResult,
    ProductClusterer,
    name_cluster,
)

__all__ = [
    'CLUSTER_NAMING_RULES',
    'ClusterInfo',
    'ClusterResult',
    'ElbowPoint',
    'KMeans',
    'KMeansResult',
    'ProductClusterer',
    'name_cluster',
]
