"""
Example usage of the product analysis pipeline.

This script demonstrates how to run preprocessing, clustering and profit
regression on a sales CSV file, then re-cluster with a different k without
recomputing the elbow curve or the regression.
"""

from pathlib import Path
import sys

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from product_analysis import AnalysisConfig, load_sales_text, refit_clusters, run_analysis
from product_analysis.visualisation import FigureExporter


def analyse_products(data_path: str = "data/products.csv"):
    """Example: full analysis of a product sales file."""
    print("Product Performance Analysis")
    print("=" * 50)

    config = AnalysisConfig().with_seed(42)

    try:
        result = run_analysis(load_sales_text(data_path), config)
    except FileNotFoundError:
        print("Sales data not found. Please ensure the data exists.")
        return None

    print(f"Products analysed: {result.summary.total_products:,}")
    print(f"Rows dropped during cleaning: {result.preprocess.rows_dropped:,}")

    print("\nElbow curve:")
    for point in result.clusters.elbow_data:
        print(f"  k={point.k}: WCSS={point.wcss:.3f}")

    print("\nClusters:")
    for info in result.clusters.cluster_info:
        print(f"  {info.cluster}: {info.name} ({info.count} products, avg price {info.avg_price:.2f})")

    if result.regression is not None:
        print(f"\nBest regression model: {result.regression.best_model}")
    else:
        print(f"\nRegression unavailable: {result.regression_error}")
    return result


def compare_cluster_counts(result, ks=(3, 5)):
    """Example: re-fit the clustering for other values of k."""
    config = AnalysisConfig().with_seed(42)
    for k in ks:
        refitted = refit_clusters(result, k, config)
        names = ", ".join(info.name for info in refitted.clusters.cluster_info)
        print(f"k={k}: WCSS={refitted.clusters.kmeans.wcss:.3f} -> {names}")


if __name__ == "__main__":
    analysis = analyse_products()
    if analysis is not None:
        compare_cluster_counts(analysis)
        FigureExporter("results/product_analysis").export_all(analysis.clusters, analysis.regression)
