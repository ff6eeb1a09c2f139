"""
Product performance analysis.

Preprocesses tabular sales records, segments products with k-means and models
profit with closed-form linear and polynomial regression.
"""

from .config import AnalysisConfig, ClusteringConfig, PreprocessingConfig, RegressionConfig
from .pipeline import AnalysisResult, load_sales_text, refit_clusters, run_analysis

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "ClusteringConfig",
    "PreprocessingConfig",
    "RegressionConfig",
    "AnalysisResult",
    "load_sales_text",
    "refit_clusters",
    "run_analysis",
]
