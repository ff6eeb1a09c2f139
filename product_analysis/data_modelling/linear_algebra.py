"""
Dense matrix operations used by the regression engine.

Inversion is plain Gauss-Jordan elimination with partial pivoting so that the
behaviour on ill-conditioned normal equations is explicit and reported.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from ..exceptions import SingularMatrixError


MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]


def _as_matrix(matrix: MatrixLike, name: str = "matrix") -> np.ndarray:
    arr = np.array(matrix, dtype=float)
    if arr.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional, got shape {arr.shape}")
    return arr


def transpose(matrix: MatrixLike) -> np.ndarray:
    """Return the transpose of a 2-D matrix."""
    m = _as_matrix(matrix)
    rows, cols = m.shape
    result = np.empty((cols, rows), dtype=float)
    for i in range(rows):
        result[:, i] = m[i, :]
    return result


def multiply(a: MatrixLike, b: MatrixLike) -> np.ndarray:
    """
    Matrix product ``a @ b``.

    Raises:
        ValueError: If the inner dimensions do not agree
    """
    left = _as_matrix(a, "a")
    right = _as_matrix(b, "b")
    if left.shape[1] != right.shape[0]:
        raise ValueError(
            f"Cannot multiply {left.shape[0]}x{left.shape[1]} by {right.shape[0]}x{right.shape[1]}"
        )
    result = np.zeros((left.shape[0], right.shape[1]), dtype=float)
    for i in range(left.shape[0]):
        # Row i of the product is a weighted sum of the rows of b
        result[i, :] = left[i, :] @ right
    return result


def invert(matrix: MatrixLike, tolerance: float = 1e-12) -> np.ndarray:
    """
    Invert a square matrix by Gauss-Jordan elimination on ``[M | I]``.

    At each step the row with the largest absolute value in the pivot column is
    swapped into place. A pivot smaller than ``tolerance`` times the largest
    magnitude originally found in that column is treated as zero.

    Args:
        matrix: Square, non-singular matrix
        tolerance: Relative pivot threshold

    Returns:
        The inverse matrix

    Raises:
        ValueError: If the matrix is not square
        SingularMatrixError: If a zero or near-zero pivot is met
    """
    m = _as_matrix(matrix)
    n, cols = m.shape
    if n != cols:
        raise ValueError(f"Only square matrices can be inverted, got {n}x{cols}")
    if not np.all(np.isfinite(m)):
        raise SingularMatrixError("Matrix contains non-finite values")

    column_scale = np.abs(m).max(axis=0) if n else np.zeros(0)
    augmented = np.hstack([m, np.eye(n)])

    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if pivot_row != i:
            augmented[[i, pivot_row]] = augmented[[pivot_row, i]]

        pivot = augmented[i, i]
        if column_scale[i] == 0.0 or abs(pivot) <= tolerance * column_scale[i]:
            raise SingularMatrixError(
                f"Matrix is singular or near-singular (pivot {pivot:.3e} in column {i})",
                column=i,
            )

        augmented[i] /= pivot
        for k in range(n):
            if k != i:
                augmented[k] -= augmented[k, i] * augmented[i]

    inverse = augmented[:, n:]
    if not np.all(np.isfinite(inverse)):
        raise SingularMatrixError("Inversion produced non-finite values")
    return inverse


def solve_normal_equation(design: MatrixLike, target: Sequence[float],
                          tolerance: float = 1e-12) -> np.ndarray:
    """Least-squares weights ``w = (X^T X)^-1 X^T y``."""
    x = _as_matrix(design, "design")
    y = np.asarray(target, dtype=float).reshape(-1, 1)
    if x.shape[0] != y.shape[0]:
        raise ValueError(f"design has {x.shape[0]} rows but target has {y.shape[0]} values")

    xt = transpose(x)
    xtx_inv = invert(multiply(xt, x), tolerance=tolerance)
    return multiply(xtx_inv, multiply(xt, y)).ravel()
