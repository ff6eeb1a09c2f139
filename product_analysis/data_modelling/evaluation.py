"""Error metrics for comparing actual and predicted values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from ..exceptions import EmptyInputError


@dataclass(frozen=True)
class EvaluationResult:
    """Held-out error of a single model."""
    mse: float
    mae: float

    def to_dict(self) -> Dict[str, Any]:
        return {"mse": self.mse, "mae": self.mae}


def _paired(actual: Sequence[float], predicted: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(actual, dtype=float).ravel()
    p = np.asarray(predicted, dtype=float).ravel()
    if a.shape != p.shape:
        raise ValueError(f"actual has {a.size} values but predicted has {p.size}")
    if a.size == 0:
        raise EmptyInputError("Cannot evaluate an empty set of predictions")
    return a, p


def mean_squared_error(actual: Sequence[float], predicted: Sequence[float]) -> float:
    a, p = _paired(actual, predicted)
    return float(np.mean((a - p) ** 2))


def mean_absolute_error(actual: Sequence[float], predicted: Sequence[float]) -> float:
    a, p = _paired(actual, predicted)
    return float(np.mean(np.abs(a - p)))


def evaluate(actual: Sequence[float], predicted: Sequence[float]) -> EvaluationResult:
    """Compute MSE and MAE for paired sequences."""
    return EvaluationResult(
        mse=mean_squared_error(actual, predicted),
        mae=mean_absolute_error(actual, predicted),
    )
