"""
Matrix preparation for principal component analysis.

This module turns a raw feature matrix into the standardized matrix and the
correlation matrix the eigensolver works on.
"""

import logging
import numpy as np
from typing import Any, Optional, Sequence

from ecopca.math.errors import DegenerateInputError
from ecopca.math.named_matrix import NamedMatrix, validate_feature_matrix

logger = logging.getLogger(__name__)

# A column whose standard deviation is within n machine epsilons of its mean
# magnitude is constant up to floating-point noise.
EPSILON = np.finfo(float).eps


class StandardizedMatrix(NamedMatrix):
    """
    A NamedMatrix whose columns have zero mean and unit sample variance.

    Keeps the column centers and scales used, so that further observations
    can be placed in the same coordinate system.
    """

    def __init__(self,
                 matrix: np.ndarray,
                 center: np.ndarray,
                 scale: np.ndarray,
                 rownames: Optional[Sequence[Any]] = None,
                 colnames: Optional[Sequence[Any]] = None,
                 groups: Optional[Sequence[Any]] = None):
        super().__init__(matrix, rownames, colnames, groups)
        self._center = np.array(center, dtype=float)
        self._scale = np.array(scale, dtype=float)
        self._center.flags.writeable = False
        self._scale.flags.writeable = False

    @property
    def center(self) -> np.ndarray:
        """Column means of the raw data."""
        return self._center

    @property
    def scale(self) -> np.ndarray:
        """Column sample standard deviations of the raw data."""
        return self._scale

    def __repr__(self) -> str:
        n_rows, n_cols = self.shape
        return f"StandardizedMatrix(rows={n_rows}, cols={n_cols})"


def column_means(nmat: NamedMatrix) -> np.ndarray:
    """
    Compute the mean of every column.

    Args:
        nmat: Feature matrix

    Returns:
        Array of column means
    """
    return np.mean(nmat.values, axis=0)


def column_stds(nmat: NamedMatrix) -> np.ndarray:
    """
    Compute the sample standard deviation (n - 1 denominator) of every column.

    Args:
        nmat: Feature matrix

    Returns:
        Array of column standard deviations
    """
    return np.std(nmat.values, axis=0, ddof=1)


def standardize(nmat: NamedMatrix) -> StandardizedMatrix:
    """
    Center every column on its mean and divide it by its sample standard deviation.

    Args:
        nmat: Feature matrix with complete numeric data

    Returns:
        StandardizedMatrix with the same names and group labels

    Raises:
        DegenerateInputError: If there are fewer than two observations or a
            column has zero variance
    """
    validate_feature_matrix(nmat)
    n_rows, n_cols = nmat.shape
    if n_rows < 2:
        raise DegenerateInputError(
            f"At least 2 observations are needed to standardize, got {n_rows}"
        )

    means = column_means(nmat)
    stds = column_stds(nmat)

    for name, mean, std in zip(nmat.colnames(), means, stds):
        if std == 0 or std <= n_rows * EPSILON * abs(mean):
            raise DegenerateInputError(
                f"Column '{name}' has zero variance and cannot be standardized",
                column=name
            )

    standardized = (nmat.values - means) / stds
    logger.debug(f"Standardized {n_rows} observations of {n_cols} variables")

    return StandardizedMatrix(
        standardized,
        center=means,
        scale=stds,
        rownames=nmat.rownames(),
        colnames=nmat.colnames(),
        groups=nmat.groups()
    )


def apply_standardization(nmat: NamedMatrix, reference: StandardizedMatrix) -> StandardizedMatrix:
    """
    Standardize new observations with the centers and scales of a previous run.

    Args:
        nmat: Feature matrix with the same columns as the reference
        reference: StandardizedMatrix whose center and scale are reused

    Returns:
        StandardizedMatrix of the new observations
    """
    validate_feature_matrix(nmat)
    if nmat.colnames() != reference.colnames():
        raise ValueError(
            f"Columns {nmat.colnames()} do not match reference columns {reference.colnames()}"
        )

    return StandardizedMatrix(
        (nmat.values - reference.center) / reference.scale,
        center=reference.center,
        scale=reference.scale,
        rownames=nmat.rownames(),
        colnames=nmat.colnames(),
        groups=nmat.groups()
    )


def _symmetric_cross_product(data: np.ndarray, denominator: float) -> np.ndarray:
    """
    Compute data^T data / denominator one upper-triangle entry at a time,
    mirroring each entry so the result is exactly symmetric.
    """
    n_cols = data.shape[1]
    result = np.zeros((n_cols, n_cols))
    for i in range(n_cols):
        for j in range(i, n_cols):
            value = np.dot(data[:, i], data[:, j]) / denominator
            result[i, j] = value
            result[j, i] = value
    return result


def correlation_matrix(standardized: StandardizedMatrix) -> NamedMatrix:
    """
    Compute the Pearson correlation matrix of a standardized matrix.

    Args:
        standardized: Output of standardize()

    Returns:
        Square NamedMatrix with variable names on both axes and a unit diagonal
    """
    data = standardized.values
    n_rows = data.shape[0]
    if n_rows < 2:
        raise DegenerateInputError(
            f"At least 2 observations are needed for correlations, got {n_rows}"
        )

    corr = _symmetric_cross_product(data, n_rows - 1)
    # Pearson correlations of standardized columns; clip round-off
    corr = np.clip(corr, -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)

    names = standardized.colnames()
    return NamedMatrix(corr, rownames=names, colnames=names)


def covariance_matrix(nmat: NamedMatrix) -> NamedMatrix:
    """
    Compute the sample covariance matrix of the centered, unscaled data.

    Args:
        nmat: Feature matrix

    Returns:
        Square NamedMatrix with variable names on both axes
    """
    validate_feature_matrix(nmat)
    data = nmat.values
    n_rows = data.shape[0]
    if n_rows < 2:
        raise DegenerateInputError(
            f"At least 2 observations are needed for covariances, got {n_rows}"
        )

    cov = _symmetric_cross_product(data - column_means(nmat), n_rows - 1)
    names = nmat.colnames()
    return NamedMatrix(cov, rownames=names, colnames=names)


def is_symmetric(matrix: np.ndarray, tol: float = 1e-12) -> bool:
    """
    Check whether a square matrix is symmetric within a tolerance.

    Args:
        matrix: Matrix to check
        tol: Absolute tolerance

    Returns:
        True if the matrix is square and symmetric
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    return bool(np.allclose(matrix, matrix.T, rtol=0.0, atol=tol))
