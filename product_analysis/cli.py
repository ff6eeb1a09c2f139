"""
Command line entry point: run the full product analysis on a CSV file.

Example:
    product-analysis --input-path data/products.csv --k 4 --seed 42 \
        --output-dir results/analysis --figures
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import MAX_CLUSTERS, MIN_CLUSTERS, AnalysisConfig
from .exceptions import AnalysisError
from .pipeline import AnalysisResult, load_sales_text, run_analysis


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cluster products and model profit from a sales CSV file"
    )
    parser.add_argument("--input-path", type=str, required=True,
                        help="Path to the delimited sales file")
    parser.add_argument("--k", type=int, default=None,
                        help=f"Number of clusters ({MIN_CLUSTERS}-{MAX_CLUSTERS}, default from config or 4)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for centroid initialisation and the train/test split")
    parser.add_argument("--delimiter", type=str, default=None,
                        help="Field delimiter (default ',')")
    parser.add_argument("--config", type=str, default=None,
                        help="Optional JSON configuration file")
    parser.add_argument("--output-dir", type=str, default="results/product_analysis",
                        help="Directory for the JSON results and figures")
    parser.add_argument("--figures", action="store_true",
                        help="Also export PNG figures")
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def load_config(args: argparse.Namespace) -> AnalysisConfig:
    config = AnalysisConfig.from_json(args.config) if args.config else AnalysisConfig()
    data = config.to_dict()
    if args.k is not None:
        data["clustering"]["n_clusters"] = args.k
    if args.delimiter is not None:
        data["preprocessing"]["delimiter"] = args.delimiter
    config = AnalysisConfig.from_dict(data)
    if args.seed is not None:
        config = config.with_seed(args.seed)
    return config


def print_summary(result: AnalysisResult) -> None:
    summary = result.summary
    print("\n=== Dataset Overview ===")
    print(f"Products analysed: {summary.total_products:,} "
          f"({result.preprocess.rows_dropped:,} of {result.preprocess.rows_parsed:,} rows dropped)")
    print(f"Average profit: {summary.avg_profit:.2f}")
    print(f"Average units sold: {summary.avg_units_sold:.0f}")

    print(f"\n=== Product Clusters (k={result.clusters.k}) ===")
    for info in result.clusters.cluster_info:
        print(f"Cluster {info.cluster}: {info.name}")
        print(f"  Size: {info.count:,} products | Avg price: {info.avg_price:.2f} | "
              f"Avg units: {info.avg_units:.0f} | Avg profit: {info.avg_profit:.2f} | "
              f"Avg promotions: {info.avg_promo:.1f}")

    regression = result.regression
    print("\n=== Profit Regression ===")
    if regression is None:
        print(f"Not available: {result.regression_error}")
        return
    for label, scores in (("Linear", regression.linear_results), ("Polynomial", regression.poly_results)):
        if scores is None:
            print(f"{label}: could not be fitted ({regression.failures.get(label)})")
        else:
            print(f"{label}: MSE={scores.mse:.2f}, MAE={scores.mae:.2f}")
    print(f"Best model: {regression.best_model}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger = logging.getLogger("product_analysis")

    try:
        config = load_config(args)
        result = run_analysis(load_sales_text(args.input_path), config)
    except (AnalysisError, FileNotFoundError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    print_summary(result)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    results_path = output_dir / "analysis_results.json"
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2)
    print(f"\nResults saved to: {results_path}")

    if args.figures:
        from .visualisation.figures import FigureExporter
        paths = FigureExporter(output_dir).export_all(result.clusters, result.regression)
        for name, path in paths.items():
            print(f"Saved {name} figure to: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
