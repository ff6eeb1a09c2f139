"""
Configuration dataclasses for the product analysis pipeline.

Each engine takes its own config section; ``AnalysisConfig`` bundles them so a
whole run can be described by a single JSON document.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .exceptions import ConfigurationError


# Columns every input file has to provide
REQUIRED_COLUMNS: Tuple[str, ...] = (
    "product_id", "product_name", "category",
    "price", "cost", "units_sold", "profit",
)
# Numeric fields that must be present for a row to survive cleaning
REQUIRED_NUMERIC_FIELDS: Tuple[str, ...] = ("price", "cost", "units_sold", "profit")
OPTIONAL_FIELD_DEFAULTS: Dict[str, int] = {"promotion_frequency": 0, "shelf_level": 3}

MIN_CLUSTERS = 2
MAX_CLUSTERS = 8


@dataclass
class PreprocessingConfig:
    """Parsing, outlier and normalisation parameters."""
    delimiter: str = ","
    iqr_multiplier: float = 1.5
    outlier_fields: Tuple[str, ...] = ("price", "units_sold", "profit")
    normalise_features: Tuple[str, ...] = ("price", "units_sold", "promotion_frequency")

    def validate(self) -> None:
        if len(self.delimiter) != 1:
            raise ConfigurationError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.iqr_multiplier < 0:
            raise ConfigurationError("iqr_multiplier must be non-negative")
        if not self.normalise_features:
            raise ConfigurationError("normalise_features must name at least one feature")


@dataclass
class ClusteringConfig:
    """Configuration for k-means parameters."""
    n_clusters: int = 4
    max_iter: int = 100
    tol: float = 1e-4
    elbow_k_min: int = MIN_CLUSTERS
    elbow_k_max: int = MAX_CLUSTERS
    random_state: Optional[int] = None

    def validate(self) -> None:
        if not MIN_CLUSTERS <= self.n_clusters <= MAX_CLUSTERS:
            raise ConfigurationError(
                f"n_clusters must be between {MIN_CLUSTERS} and {MAX_CLUSTERS}, got {self.n_clusters}"
            )
        if self.max_iter < 1:
            raise ConfigurationError("max_iter must be at least 1")
        if self.tol <= 0:
            raise ConfigurationError("tol must be positive")
        if not 1 <= self.elbow_k_min <= self.elbow_k_max:
            raise ConfigurationError("elbow range must satisfy 1 <= elbow_k_min <= elbow_k_max")


@dataclass
class RegressionConfig:
    """Train/test split and solver parameters."""
    train_fraction: float = 0.7
    pivot_tolerance: float = 1e-12
    random_state: Optional[int] = None

    def validate(self) -> None:
        if not 0.0 < self.train_fraction < 1.0:
            raise ConfigurationError("train_fraction must lie strictly between 0 and 1")
        if self.pivot_tolerance < 0:
            raise ConfigurationError("pivot_tolerance must be non-negative")


@dataclass
class AnalysisConfig:
    """Complete configuration for one analysis run."""
    preprocessing: PreprocessingConfig = field(default_factory=PreprocessingConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    regression: RegressionConfig = field(default_factory=RegressionConfig)

    def validate(self) -> "AnalysisConfig":
        self.preprocessing.validate()
        self.clustering.validate()
        self.regression.validate()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        """Build a config from a (possibly partial) nested dictionary."""
        known = {"preprocessing", "clustering", "regression"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config sections: {sorted(unknown)}")

        try:
            pre = dict(data.get("preprocessing", {}))
            for key in ("outlier_fields", "normalise_features"):
                if key in pre:
                    pre[key] = tuple(pre[key])
            config = cls(
                preprocessing=PreprocessingConfig(**pre),
                clustering=ClusteringConfig(**data.get("clustering", {})),
                regression=RegressionConfig(**data.get("regression", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return config.validate()

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "AnalysisConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def with_seed(self, seed: Optional[int]) -> "AnalysisConfig":
        """Return a copy with the same seed applied to every random component."""
        data = self.to_dict()
        data["clustering"]["random_state"] = seed
        data["regression"]["random_state"] = seed
        return AnalysisConfig.from_dict(data)
