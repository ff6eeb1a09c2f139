"""
Static figure export for analysis results.

Produces PNG files for the elbow curve, the price/units cluster scatter and the
actual vs predicted profit plot of the best regression model.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from ..clustering.product_clustering import ClusterResult
from ..data_modelling.profit_regression import RegressionResult


class FigureExporter:
    """Write analysis figures to a directory."""

    def __init__(self, output_dir: Union[str, Path], figure_size: Tuple[int, int] = (10, 6),
                 dpi: int = 150, style: str = "whitegrid"):
        self.output_dir = Path(output_dir)
        self.figure_size = figure_size
        self.dpi = dpi
        self.style = style
        self.logger = logging.getLogger(__name__)

    def _save(self, fig, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        fig.savefig(path, dpi=self.dpi, bbox_inches="tight")
        plt.close(fig)
        self.logger.info(f"Saved figure to {path}")
        return path

    def plot_elbow(self, clusters: ClusterResult) -> Path:
        sns.set_style(self.style)
        fig, ax = plt.subplots(figsize=self.figure_size)
        ks = [p.k for p in clusters.elbow_data]
        wcss = [p.wcss for p in clusters.elbow_data]
        ax.plot(ks, wcss, marker="o")
        ax.axvline(clusters.k, color="grey", linestyle="--", alpha=0.6)
        ax.set_title("Elbow Method")
        ax.set_xlabel("Number of clusters (k)")
        ax.set_ylabel("WCSS")
        return self._save(fig, "elbow_curve.png")

    def plot_clusters(self, clusters: ClusterResult) -> Path:
        sns.set_style(self.style)
        fig, ax = plt.subplots(figsize=self.figure_size)
        names = {info.cluster: info.name for info in clusters.cluster_info}
        scatter = {
            "price": clusters.scatter_data["price"].to_list(),
            "units_sold": clusters.scatter_data["units_sold"].to_list(),
            "segment": [f"{c}: {names.get(c, c)}" for c in clusters.scatter_data["cluster"].to_list()],
        }
        sns.scatterplot(data=scatter, x="price", y="units_sold", hue="segment", ax=ax, alpha=0.7)
        ax.set_title(f"Product Clusters (k={clusters.k})")
        ax.set_xlabel("Price")
        ax.set_ylabel("Units Sold")
        return self._save(fig, "product_clusters.png")

    def plot_predictions(self, regression: RegressionResult) -> Path:
        sns.set_style(self.style)
        fig, ax = plt.subplots(figsize=self.figure_size)
        actual = regression.plot_data["actual"].to_numpy()
        predicted = regression.plot_data["predicted"].to_numpy()
        ax.scatter(actual, predicted, alpha=0.7)
        lo = min(actual.min(), predicted.min())
        hi = max(actual.max(), predicted.max())
        ax.plot([lo, hi], [lo, hi], color="grey", linestyle="--")
        ax.set_title(f"Actual vs Predicted Profit ({regression.best_model} model)")
        ax.set_xlabel("Actual profit")
        ax.set_ylabel("Predicted profit")
        return self._save(fig, "actual_vs_predicted.png")

    def export_all(self, clusters: ClusterResult,
                   regression: Optional[RegressionResult] = None) -> Dict[str, Path]:
        paths = {"clusters": self.plot_clusters(clusters)}
        if regression is not None:
            paths["predictions"] = self.plot_predictions(regression)
        if clusters.elbow_data:
            paths["elbow"] = self.plot_elbow(clusters)
        return paths
