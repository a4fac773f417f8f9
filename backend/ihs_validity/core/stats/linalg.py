"""
Small dense linear algebra on lists of lists.

Problem sizes here are tiny (at most ~25 predictors), so plain Python loops
are adequate. Matrices are row-major ``List[List[float]]``.
"""

import math
from typing import List, Optional, Sequence, Tuple

Matrix = List[List[float]]

# Pivots smaller than this are treated as a singular matrix
PIVOT_EPSILON = 1e-12


def gauss_jordan_inverse(matrix: Sequence[Sequence[float]]) -> Optional[Matrix]:
    """
    Invert a square matrix by Gauss-Jordan elimination with partial pivoting.

    Args:
        matrix: Square matrix (not modified)

    Returns:
        The inverse, or None when a pivot falls below PIVOT_EPSILON.
    """
    n = len(matrix)
    work = [list(map(float, row)) for row in matrix]
    inv = [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]

    for col in range(n):
        pivot_row = max(range(col, n), key=lambda r: abs(work[r][col]))
        if pivot_row != col:
            work[col], work[pivot_row] = work[pivot_row], work[col]
            inv[col], inv[pivot_row] = inv[pivot_row], inv[col]

        pivot = work[col][col]
        if abs(pivot) < PIVOT_EPSILON:
            return None

        for j in range(n):
            work[col][j] /= pivot
            inv[col][j] /= pivot

        for r in range(n):
            if r == col:
                continue
            factor = work[r][col]
            if factor == 0.0:
                continue
            for j in range(n):
                work[r][j] -= factor * work[col][j]
                inv[r][j] -= factor * inv[col][j]

    return inv


def mat_vec(matrix: Sequence[Sequence[float]], vector: Sequence[float]) -> List[float]:
    return [sum(a * b for a, b in zip(row, vector)) for row in matrix]


def _normal_equations(
    X: Sequence[Sequence[float]], y: Sequence[float]
) -> Tuple[Matrix, List[float]]:
    """Build X'X and X'y with an intercept column prepended to X."""
    p = len(X[0]) + 1
    xtx = [[0.0] * p for _ in range(p)]
    xty = [0.0] * p
    for row, target in zip(X, y):
        full = [1.0, *row]
        for a in range(p):
            xty[a] += full[a] * target
            for b in range(p):
                xtx[a][b] += full[a] * full[b]
    return xtx, xty


def predict(coefficients: Sequence[float], row: Sequence[float]) -> float:
    """Linear predictor with coefficients[0] as the intercept."""
    return coefficients[0] + sum(b * x for b, x in zip(coefficients[1:], row))


def ridge_fit(
    X: Sequence[Sequence[float]], y: Sequence[float], lam: float
) -> Optional[List[float]]:
    """
    Closed-form ridge regression (X'X + lambda I)^-1 X'y.

    The intercept (first coefficient) is not penalized. lam = 0 gives
    ordinary least squares.

    Returns:
        [intercept, b1, ..., bp], or None for empty input or a singular system.
    """
    if not X or not X[0]:
        return None
    xtx, xty = _normal_equations(X, y)
    for i in range(1, len(xtx)):
        xtx[i][i] += lam
    inv = gauss_jordan_inverse(xtx)
    if inv is None:
        return None
    return mat_vec(inv, xty)


def ols_fit(
    X: Sequence[Sequence[float]], y: Sequence[float]
) -> Optional[Tuple[List[float], Optional[float]]]:
    """
    Ordinary least squares with intercept.

    Returns:
        (coefficients, r_squared). r_squared is None when y is constant.
        The whole result is None when X'X is singular.
    """
    coefficients = ridge_fit(X, y, 0.0)
    if coefficients is None:
        return None

    y_mean = sum(y) / len(y)
    ss_res = 0.0
    ss_tot = 0.0
    for row, target in zip(X, y):
        err = target - predict(coefficients, row)
        ss_res += err * err
        ss_tot += (target - y_mean) ** 2

    if ss_tot <= 0:
        return coefficients, None
    r2 = 1.0 - ss_res / ss_tot
    return coefficients, max(0.0, min(1.0, r2))


def power_iteration(
    matrix: Sequence[Sequence[float]], iterations: int = 200
) -> Optional[Tuple[List[float], float]]:
    """
    Dominant eigenpair of a symmetric matrix by power iteration.

    Runs a fixed number of iterations, renormalizing the vector each step,
    then reports the Rayleigh quotient as the eigenvalue.

    Returns:
        (unit eigenvector, eigenvalue), or None if the iterate collapses to
        the zero vector.
    """
    n = len(matrix)
    v = [1.0 / math.sqrt(n)] * n
    for _ in range(iterations):
        w = mat_vec(matrix, v)
        norm = math.sqrt(sum(c * c for c in w))
        if norm <= 0 or not math.isfinite(norm):
            return None
        v = [c / norm for c in w]
    mv = mat_vec(matrix, v)
    eigenvalue = sum(a * b for a, b in zip(v, mv))
    return v, eigenvalue
