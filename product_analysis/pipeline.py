"""
End-to-end product analysis pipeline.

Every stage returns a new frozen result object; nothing is held in shared
mutable state between calls. ``refit_clusters`` swaps in a new clustering for a
different k while reusing the elbow curve and leaving the regression untouched.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .clustering.product_clustering import ClusterResult, ProductClusterer
from .config import AnalysisConfig
from .exceptions import EmptyInputError, SingularMatrixError
from .data_modelling.profit_regression import ProfitRegressor, RegressionResult
from .data_preprocessing.sales_preprocessor import (
    DatasetSummary,
    PreprocessResult,
    SalesPreprocessor,
    summarise_dataset,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything produced by one pipeline run."""
    preprocess: PreprocessResult
    summary: DatasetSummary
    clusters: ClusterResult
    regression: Optional[RegressionResult]
    regression_error: Optional[str] = None
    config: AnalysisConfig = field(default_factory=AnalysisConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preprocessing": self.preprocess.to_dict(),
            "summary": self.summary.to_dict(),
            "clustering": self.clusters.to_dict(),
            "regression": self.regression.to_dict() if self.regression else None,
            "regression_error": self.regression_error,
        }


def load_sales_text(path: Union[str, Path]) -> str:
    """Read a UTF-8 sales file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sales file not found: {path}")
    logger.info(f"Loading sales data from {path}")
    return path.read_text(encoding="utf-8")


def run_analysis(text: str, config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """
    Preprocess the text, then cluster the normalised records and regress profit
    on the cleaned records.

    Args:
        text: Delimited sales data, header row first
        config: Full analysis configuration (defaults if omitted)

    Returns:
        AnalysisResult bundling every stage's output
    """
    config = (config or AnalysisConfig()).validate()

    preprocess = SalesPreprocessor(config.preprocessing).preprocess(text)
    summary = summarise_dataset(preprocess.cleaned)

    clusters = ProductClusterer(config.clustering).perform_clustering(preprocess.normalized)
    # A failed regression leaves the clustering result intact
    regression, regression_error = None, None
    try:
        regression = ProfitRegressor(config.regression).perform_regression(preprocess.cleaned)
    except (SingularMatrixError, EmptyInputError) as e:
        logger.warning(f"Profit regression failed: {e}")
        regression_error = str(e)

    return AnalysisResult(
        preprocess=preprocess,
        summary=summary,
        clusters=clusters,
        regression=regression,
        regression_error=regression_error,
        config=config,
    )


def refit_clusters(result: AnalysisResult, k: int,
                   config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """
    Return a copy of ``result`` re-clustered with ``k`` clusters.

    Without ``config`` the run's own configuration (seed, iteration cap,
    tolerance) is reused.
    """
    config = (config or result.config).validate()
    clusters = ProductClusterer(config.clustering).fit(
        result.preprocess.normalized, k, elbow_data=result.clusters.elbow_data,
    )
    return dataclasses.replace(result, clusters=clusters, config=config)
