"""
Data Modelling Module

Profit regression for product sales data:
- Matrix helpers (transpose, multiply, Gauss-Jordan inversion)
- Linear and polynomial models solved with the normal equation
- MSE / MAE evaluation
"""

from .evaluation import EvaluationResult, evaluate, mean_absolute_error, mean_squared_error
from .linear_algebra import invert, multiply, solve_normal_equation, transpose
from .profit_regression import (
    ProfitRegressor, RegressionModel, RegressionResult,
    linear_design_matrix, polynomial_design_matrix, perform_regression
)

__all__ = [
    'EvaluationResult',
    'evaluate',
    'mean_absolute_error',
    'mean_squared_error',
    'invert',
    'multiply',
    'solve_normal_equation',
    'transpose',
    'ProfitRegressor',
    'RegressionModel',
    'RegressionResult',
    'linear_design_matrix',
    'polynomial_design_matrix',
    'perform_regression',
]
