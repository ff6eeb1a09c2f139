"""
Profit Regression Module

Fits two closed-form least-squares models of product profit on a random
train/test split of the cleaned sales records:

- Linear: intercept, price, cost, units sold and promotion frequency
- Polynomial: the linear terms plus squares of price, cost and units sold and
  the price x units and cost x units interactions

Both models are solved with the normal equation and compared on the held-out
split; the one with the lower MSE is reported as the best model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np
import polars as pl

from ..config import RegressionConfig
from ..exceptions import EmptyInputError, SingularMatrixError
from .evaluation import EvaluationResult, evaluate
from .linear_algebra import solve_normal_equation


LINEAR = "Linear"
POLYNOMIAL = "Polynomial"

TARGET_COLUMN = "profit"

LINEAR_FEATURES: Tuple[str, ...] = (
    "intercept", "price", "cost", "units_sold", "promotion_frequency",
)
POLYNOMIAL_FEATURES: Tuple[str, ...] = LINEAR_FEATURES + (
    "price^2", "cost^2", "units_sold^2", "price*units_sold", "cost*units_sold",
)


def linear_design_matrix(df: pl.DataFrame) -> np.ndarray:
    """Rows of ``[1, price, cost, units_sold, promotion_frequency]``."""
    base = df.select(["price", "cost", "units_sold", "promotion_frequency"]).to_numpy().astype(float)
    return np.column_stack([np.ones(len(base)), base])


def polynomial_design_matrix(df: pl.DataFrame) -> np.ndarray:
    """Linear design matrix extended with second-order price/cost/units terms."""
    linear = linear_design_matrix(df)
    price, cost, units = linear[:, 1], linear[:, 2], linear[:, 3]
    return np.column_stack([
        linear,
        price * price,
        cost * cost,
        units * units,
        price * units,
        cost * units,
    ])


DESIGN_BUILDERS: Dict[str, Tuple[Callable[[pl.DataFrame], np.ndarray], Tuple[str, ...]]] = {
    LINEAR: (linear_design_matrix, LINEAR_FEATURES),
    POLYNOMIAL: (polynomial_design_matrix, POLYNOMIAL_FEATURES),
}


@dataclass(frozen=True)
class RegressionModel:
    """Fitted weights aligned to a fixed design-matrix column order."""
    name: str
    feature_names: Tuple[str, ...]
    weights: np.ndarray

    def predict(self, design: np.ndarray) -> np.ndarray:
        design = np.asarray(design, dtype=float)
        if design.ndim != 2 or design.shape[1] != len(self.weights):
            raise ValueError(
                f"{self.name} model expects {len(self.weights)} columns, got shape {design.shape}"
            )
        return design @ self.weights

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "weights": dict(zip(self.feature_names, (float(w) for w in self.weights))),
        }


@dataclass(frozen=True)
class RegressionResult:
    """Comparison of the linear and polynomial profit models."""
    linear_results: Optional[EvaluationResult]
    poly_results: Optional[EvaluationResult]
    plot_data: pl.DataFrame
    best_model: str
    models: Dict[str, RegressionModel] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    n_train: int = 0
    n_test: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linearResults": self.linear_results.to_dict() if self.linear_results else None,
            "polyResults": self.poly_results.to_dict() if self.poly_results else None,
            "bestModel": self.best_model,
            "plotData": self.plot_data.to_dicts(),
            "models": {name: model.to_dict() for name, model in self.models.items()},
            "failures": dict(self.failures),
            "n_train": self.n_train,
            "n_test": self.n_test,
        }


class ProfitRegressor:
    """
    Closed-form profit regression with a linear and a polynomial variant.

    Randomness only enters through the train/test shuffle, which draws from a
    numpy Generator seeded by ``config.random_state`` unless one is injected.
    """

    def __init__(self, config: Optional[RegressionConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialise the regressor.

        Args:
            config: Split and solver parameters
            rng: Optional random generator overriding ``config.random_state``
        """
        self.config = config or RegressionConfig()
        self.config.validate()
        self._rng = rng
        self.logger = logging.getLogger(__name__)

    def _generator(self) -> np.random.Generator:
        # A fresh seeded generator per split, as in ProductClusterer
        if self._rng is not None:
            return self._rng
        return np.random.default_rng(self.config.random_state)

    def train_test_split(self, cleaned: pl.DataFrame) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """
        Shuffle uniformly and split into train/test frames.

        The first ``floor(n * train_fraction)`` shuffled rows form the training set.
        """
        n = cleaned.height
        split_idx = int(np.floor(n * self.config.train_fraction))
        if split_idx == 0 or split_idx == n:
            raise EmptyInputError(
                f"{n} records cannot be split into non-empty train and test sets"
            )

        # Generator.permutation is a Fisher-Yates shuffle
        order = self._generator().permutation(n)
        shuffled = cleaned[order.tolist()]
        return shuffled.head(split_idx), shuffled.slice(split_idx)

    def fit(self, design: np.ndarray, target: np.ndarray, name: str = LINEAR) -> RegressionModel:
        """
        Solve the normal equation for one design matrix.

        Raises:
            SingularMatrixError: If X^T X cannot be inverted reliably
        """
        feature_names = DESIGN_BUILDERS[name][1] if name in DESIGN_BUILDERS else tuple(
            f"x{i}" for i in range(np.asarray(design).shape[1])
        )
        weights = solve_normal_equation(design, target, tolerance=self.config.pivot_tolerance)
        return RegressionModel(name=name, feature_names=feature_names, weights=weights)

    def perform_regression(self, cleaned: pl.DataFrame) -> RegressionResult:
        """
        Fit both model forms on a train split and compare them on the test split.

        Args:
            cleaned: Cleaned sales records

        Returns:
            RegressionResult with per-model errors and the winner's predictions

        Raises:
            EmptyInputError: If the records cannot be split
            SingularMatrixError: If neither model can be fitted
        """
        train, test = self.train_test_split(cleaned)
        self.logger.info(f"Regression split: {train.height} train / {test.height} test records")

        y_train = train[TARGET_COLUMN].to_numpy().astype(float)
        y_test = test[TARGET_COLUMN].to_numpy().astype(float)

        models: Dict[str, RegressionModel] = {}
        scores: Dict[str, EvaluationResult] = {}
        predictions: Dict[str, np.ndarray] = {}
        failures: Dict[str, str] = {}

        for name, (builder, _) in DESIGN_BUILDERS.items():
            try:
                model = self.fit(builder(train), y_train, name=name)
            except SingularMatrixError as e:
                self.logger.warning(f"{name} model could not be fitted: {e}")
                failures[name] = str(e)
                continue
            predictions[name] = model.predict(builder(test))
            scores[name] = evaluate(y_test, predictions[name])
            models[name] = model
            self.logger.info(
                f"{name} model - MSE: {scores[name].mse:.4f}, MAE: {scores[name].mae:.4f}"
            )

        if not models:
            raise SingularMatrixError(
                "Neither the linear nor the polynomial model could be fitted: "
                + "; ".join(f"{k}: {v}" for k, v in failures.items())
            )

        best = self._select_best(scores)
        plot_data = pl.DataFrame({
            "actual": y_test,
            "predicted": predictions[best],
        })

        self.logger.info(f"Best model: {best}")
        return RegressionResult(
            linear_results=scores.get(LINEAR),
            poly_results=scores.get(POLYNOMIAL),
            plot_data=plot_data,
            best_model=best,
            models=models,
            failures=failures,
            n_train=train.height,
            n_test=test.height,
        )

    @staticmethod
    def _select_best(scores: Dict[str, EvaluationResult]) -> str:
        """Linear wins only with a strictly lower MSE."""
        if LINEAR not in scores:
            return POLYNOMIAL
        if POLYNOMIAL not in scores:
            return LINEAR
        return LINEAR if scores[LINEAR].mse < scores[POLYNOMIAL].mse else POLYNOMIAL


def perform_regression(cleaned: pl.DataFrame, config: Optional[RegressionConfig] = None,
                       rng: Optional[Union[np.random.Generator, int]] = None) -> RegressionResult:
    """Run the linear vs polynomial comparison on cleaned records."""
    if isinstance(rng, (int, np.integer)):
        rng = np.random.default_rng(int(rng))
    return ProfitRegressor(config, rng=rng).perform_regression(cleaned)
