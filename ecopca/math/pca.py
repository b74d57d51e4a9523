"""
PCA (Principal Component Analysis) implementation for ecopca.

This module solves the eigenproblem of a correlation (or covariance) matrix
with cyclic Jacobi rotations and derives the statistics reported for an
analysis: variance explained, observation scores and variable loadings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import scipy.linalg

from ecopca.math.errors import (
    DegenerateInputError, InvalidComponentCountError, NumericalConvergenceError
)
from ecopca.math.named_matrix import NamedMatrix
from ecopca.math.prepare import correlation_matrix, standardize

logger = logging.getLogger(__name__)

DEFAULT_MAX_SWEEPS = 100
DEFAULT_TOLERANCE = 1e-12

DECOMPOSITION_METHODS = ('jacobi', 'lapack')
LOADINGS_SCALES = ('correlation', 'raw')


def normalize_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Vector to normalize

    Returns:
        Normalized vector
    """
    norm = np.linalg.norm(v)
    if norm == 0:
        return v
    return v / norm


def component_names(k: int) -> List[str]:
    """Return the labels PC1..PCk."""
    return [f"PC{i + 1}" for i in range(k)]


def check_component_count(k: Any, n_variables: int) -> int:
    """
    Check that k is an integer in [1, n_variables].

    Args:
        k: Requested number of components
        n_variables: Number of variables in the analysis

    Returns:
        k as an int

    Raises:
        InvalidComponentCountError: If k is not an integer or is out of range
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidComponentCountError(k, n_variables)
    if k < 1 or k > n_variables:
        raise InvalidComponentCountError(k, n_variables)
    return int(k)


def _as_array(matrix: Union[NamedMatrix, np.ndarray]) -> np.ndarray:
    if isinstance(matrix, NamedMatrix):
        return matrix.values
    return np.array(matrix, dtype=float)


def _off_diagonal_norm(a: np.ndarray) -> float:
    return float(np.sqrt(max(np.sum(a ** 2) - np.sum(np.diag(a) ** 2), 0.0)))


def jacobi_eigen(matrix: Union[NamedMatrix, np.ndarray],
                 max_sweeps: int = DEFAULT_MAX_SWEEPS,
                 tol: float = DEFAULT_TOLERANCE) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Eigendecomposition of a real symmetric matrix by cyclic Jacobi rotations.

    Each sweep zeroes every off-diagonal pair (p, q) once. Iteration stops
    when the off-diagonal Frobenius norm falls to tol times the norm of the
    whole matrix.

    Args:
        matrix: Real symmetric matrix
        max_sweeps: Maximum number of full sweeps
        tol: Relative convergence tolerance

    Returns:
        Tuple of (eigenvalues, eigenvectors as columns, sweeps used), unsorted

    Raises:
        ValueError: If the matrix is not square and symmetric
        NumericalConvergenceError: If the rotations do not converge within
            max_sweeps sweeps
    """
    a = _as_array(matrix)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ValueError(f"Matrix must be square, got shape {a.shape}")

    n = a.shape[0]
    total_norm = float(np.linalg.norm(a))
    if not np.allclose(a, a.T, rtol=0.0, atol=1e-9 * max(total_norm, 1.0)):
        raise ValueError("Matrix must be symmetric")

    # Work on the exactly symmetric part
    a = (a + a.T) / 2.0
    v = np.eye(n)

    if total_norm == 0:
        return np.zeros(n), v, 0

    threshold = tol * total_norm
    off_norm = 0.0

    for sweep in range(max_sweeps + 1):
        off_norm = _off_diagonal_norm(a)
        if off_norm <= threshold:
            logger.debug(f"Jacobi converged after {sweep} sweeps (off-diagonal norm {off_norm:.3e})")
            return np.diag(a).copy(), v, sweep

        if sweep == max_sweeps:
            break

        for p in range(n - 1):
            for q in range(p + 1, n):
                apq = a[p, q]
                if apq == 0.0:
                    continue

                theta = (a[q, q] - a[p, p]) / (2.0 * apq)
                sign = 1.0 if theta >= 0 else -1.0
                t = sign / (abs(theta) + np.sqrt(theta * theta + 1.0))
                c = 1.0 / np.sqrt(t * t + 1.0)
                s = t * c

                # A <- A P
                col_p = a[:, p].copy()
                col_q = a[:, q].copy()
                a[:, p] = c * col_p - s * col_q
                a[:, q] = s * col_p + c * col_q

                # A <- P^T A
                row_p = a[p, :].copy()
                row_q = a[q, :].copy()
                a[p, :] = c * row_p - s * row_q
                a[q, :] = s * row_p + c * row_q

                a[p, q] = 0.0
                a[q, p] = 0.0

                # V <- V P
                vec_p = v[:, p].copy()
                vec_q = v[:, q].copy()
                v[:, p] = c * vec_p - s * vec_q
                v[:, q] = s * vec_p + c * vec_q

    raise NumericalConvergenceError(
        f"Jacobi eigensolver did not converge after {max_sweeps} sweeps "
        f"(off-diagonal norm {off_norm:.3e}, threshold {threshold:.3e})",
        iterations=max_sweeps
    )


def _lapack_eigen(a: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    try:
        return scipy.linalg.eigh(a)
    except scipy.linalg.LinAlgError as exc:
        raise NumericalConvergenceError(f"LAPACK eigensolver failed: {exc}") from exc


def clamp_round_off(eigenvalues: np.ndarray, tol: float = DEFAULT_TOLERANCE) -> np.ndarray:
    """
    Set eigenvalues that are negative only through round-off to zero.

    Args:
        eigenvalues: Eigenvalues of a positive semi-definite matrix
        tol: Solver tolerance; the clamp threshold is never below 1e-10

    Returns:
        New array of non-negative eigenvalues

    Raises:
        DegenerateInputError: If an eigenvalue is clearly negative
    """
    values = np.array(eigenvalues, dtype=float)
    if values.size == 0:
        return values
    clamp = max(tol, 1e-10) * max(1.0, float(np.max(np.abs(values))))
    if np.any(values < -clamp):
        raise DegenerateInputError(
            f"Matrix is not positive semi-definite (smallest eigenvalue {values.min():.3e})"
        )
    values[values < 0] = 0.0
    return values


def fix_signs(eigenvectors: np.ndarray) -> np.ndarray:
    """
    Flip each eigenvector so its largest-magnitude coefficient is positive.

    Ties on magnitude are broken by the first such coefficient.

    Args:
        eigenvectors: Eigenvectors as columns

    Returns:
        New array of sign-normalized eigenvectors
    """
    fixed = np.array(eigenvectors, dtype=float)
    for j in range(fixed.shape[1]):
        idx = int(np.argmax(np.abs(fixed[:, j])))
        if fixed[idx, j] < 0:
            fixed[:, j] = -fixed[:, j]
    return fixed


def decompose(corr: Union[NamedMatrix, np.ndarray],
              method: str = 'jacobi',
              max_sweeps: int = DEFAULT_MAX_SWEEPS,
              tol: float = DEFAULT_TOLERANCE) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the full eigendecomposition of a correlation matrix.

    Eigenvalues are sorted in descending order. Each eigenvector (a column of
    the returned matrix) has unit length, and its largest-magnitude
    coefficient is positive, so repeated runs give identical signs.

    Args:
        corr: Symmetric positive semi-definite matrix
        method: 'jacobi' for the built-in solver, 'lapack' for scipy.linalg.eigh
        max_sweeps: Sweep bound for the Jacobi solver
        tol: Convergence tolerance for the Jacobi solver

    Returns:
        Tuple of (eigenvalues, eigenvectors as columns)

    Raises:
        ValueError: For an unknown method or a non-symmetric matrix
        NumericalConvergenceError: If the solver does not converge
        DegenerateInputError: If the matrix has a clearly negative eigenvalue
    """
    if method not in DECOMPOSITION_METHODS:
        raise ValueError(f"Unknown decomposition method: {method}")

    if method == 'jacobi':
        eigenvalues, eigenvectors, _ = jacobi_eigen(corr, max_sweeps=max_sweeps, tol=tol)
    else:
        a = _as_array(corr)
        if a.ndim != 2 or a.shape[0] != a.shape[1]:
            raise ValueError(f"Matrix must be square, got shape {a.shape}")
        eigenvalues, eigenvectors = _lapack_eigen((a + a.T) / 2.0)

    order = np.argsort(-eigenvalues, kind='stable')
    eigenvalues = np.array(eigenvalues[order], dtype=float)
    eigenvectors = np.array(eigenvectors[:, order], dtype=float)

    # Round-off can leave null-space eigenvalues slightly below zero
    eigenvalues = clamp_round_off(eigenvalues, tol)

    eigenvectors = np.column_stack(
        [normalize_vector(eigenvectors[:, j]) for j in range(eigenvectors.shape[1])]
    )

    return eigenvalues, fix_signs(eigenvectors)


def variance_explained(eigenvalues: Sequence[float]) -> pd.DataFrame:
    """
    Compute the importance of each component.

    Args:
        eigenvalues: Eigenvalues in descending order

    Returns:
        DataFrame indexed PC1..PCn with columns standard_deviation,
        proportion and cumulative_proportion

    Raises:
        DegenerateInputError: If an eigenvalue is clearly negative or the
            eigenvalues sum to zero
    """
    values = clamp_round_off(eigenvalues)
    total = float(np.sum(values))
    if not total > 0:
        raise DegenerateInputError(f"Eigenvalues sum to {total}; no variance to explain")

    proportion = np.clip(values / total, 0.0, 1.0)
    cumulative = np.cumsum(proportion)

    return pd.DataFrame(
        {
            'standard_deviation': np.sqrt(values),
            'proportion': proportion,
            'cumulative_proportion': cumulative,
        },
        index=component_names(len(values))
    )


def scores(standardized: Union[NamedMatrix, np.ndarray],
           eigenvectors: np.ndarray,
           k: int) -> NamedMatrix:
    """
    Project standardized observations onto the first k eigenvectors.

    Args:
        standardized: Standardized observations (rows) by variables (columns)
        eigenvectors: Eigenvectors as columns, in component order
        k: Number of components to keep

    Returns:
        NamedMatrix of scores, rows = observations, columns = PC1..PCk
    """
    eigenvectors = np.asarray(eigenvectors, dtype=float)
    k = check_component_count(k, eigenvectors.shape[1])

    if not isinstance(standardized, NamedMatrix):
        standardized = NamedMatrix(np.asarray(standardized, dtype=float))

    data = standardized.values
    if data.shape[1] != eigenvectors.shape[0]:
        raise ValueError(
            f"Data has {data.shape[1]} variables but eigenvectors have {eigenvectors.shape[0]} coefficients"
        )

    projected = data @ eigenvectors[:, :k]
    return NamedMatrix(
        projected,
        rownames=standardized.rownames(),
        colnames=component_names(k),
        groups=standardized.groups()
    )


def loadings(eigenvectors: np.ndarray,
             eigenvalues: Sequence[float],
             k: Optional[int] = None,
             scale: str = 'correlation',
             variables: Optional[Sequence[Any]] = None) -> NamedMatrix:
    """
    Compute variable loadings for the first k components.

    With scale='correlation' every eigenvector is multiplied by the square root
    of its eigenvalue, which for a correlation-matrix analysis gives the
    correlation between each variable and each component. With scale='raw'
    the unit-length eigenvector coefficients are returned unchanged.

    Args:
        eigenvectors: Eigenvectors as columns
        eigenvalues: Matching eigenvalues
        k: Number of components (defaults to all)
        scale: 'correlation' or 'raw'
        variables: Variable names for the rows

    Returns:
        NamedMatrix, rows = variables, columns = PC1..PCk
    """
    if scale not in LOADINGS_SCALES:
        raise ValueError(f"Unknown loadings scale: {scale}")

    eigenvectors = np.asarray(eigenvectors, dtype=float)
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    n_comps = eigenvectors.shape[1]
    k = n_comps if k is None else check_component_count(k, n_comps)

    coefficients = eigenvectors[:, :k]
    if scale == 'correlation':
        coefficients = coefficients * np.sqrt(np.clip(eigenvalues[:k], 0.0, None))

    return NamedMatrix(coefficients, rownames=variables, colnames=component_names(k))


def contributions(eigenvectors: np.ndarray,
                  k: Optional[int] = None,
                  variables: Optional[Sequence[Any]] = None) -> NamedMatrix:
    """
    Percentage contribution of each variable to each component.

    Every column sums to 100.
    """
    eigenvectors = np.asarray(eigenvectors, dtype=float)
    n_comps = eigenvectors.shape[1]
    k = n_comps if k is None else check_component_count(k, n_comps)
    return NamedMatrix(100.0 * eigenvectors[:, :k] ** 2,
                       rownames=variables,
                       colnames=component_names(k))


def cos2(correlation_loadings: NamedMatrix) -> NamedMatrix:
    """
    Squared variable-component correlations (quality of representation).

    Args:
        correlation_loadings: Output of loadings() with scale='correlation'

    Returns:
        NamedMatrix with the same names
    """
    return NamedMatrix(correlation_loadings.values ** 2,
                       rownames=correlation_loadings.rownames(),
                       colnames=correlation_loadings.colnames())


def reconstruct(score_matrix: Union[NamedMatrix, np.ndarray], eigenvectors: np.ndarray) -> np.ndarray:
    """
    Map scores back into the standardized variable space.

    With all components this recovers the standardized data exactly, up to
    floating-point error.

    Args:
        score_matrix: Scores for the first k components
        eigenvectors: Eigenvectors as columns

    Returns:
        Array of reconstructed standardized observations
    """
    values = _as_array(score_matrix)
    k = values.shape[1]
    return values @ np.asarray(eigenvectors, dtype=float)[:, :k].T


def n_components_for(variance_table: pd.DataFrame, threshold: float) -> int:
    """
    Smallest number of components whose cumulative proportion reaches threshold.

    Args:
        variance_table: Output of variance_explained()
        threshold: Target cumulative proportion in (0, 1]

    Returns:
        Number of components
    """
    if not 0 < threshold <= 1:
        raise ValueError(f"Threshold must be in (0, 1], got {threshold}")

    cumulative = variance_table['cumulative_proportion'].to_numpy()
    # Tolerate round-off in the last cumulative value
    reached = np.nonzero(cumulative >= threshold - 1e-12)[0]
    if len(reached) == 0:
        return len(cumulative)
    return int(reached[0]) + 1


def kaiser_count(eigenvalues: Sequence[float]) -> int:
    """Number of eigenvalues greater than 1 (Kaiser criterion)."""
    return int(np.sum(np.asarray(eigenvalues, dtype=float) > 1.0))


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class PCAResult:
    """Outputs of one principal component analysis."""
    variables: Tuple[Any, ...]
    observations: Tuple[Any, ...]
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    scores: NamedMatrix
    loadings: NamedMatrix
    loadings_scale: str
    n_components: int
    groups: Optional[Tuple[Any, ...]] = None
    correlation: Optional[NamedMatrix] = field(default=None, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'eigenvalues', _frozen(self.eigenvalues))
        object.__setattr__(self, 'eigenvectors', _frozen(self.eigenvectors))
        object.__setattr__(self, 'variables', tuple(self.variables))
        object.__setattr__(self, 'observations', tuple(self.observations))
        if self.groups is not None:
            object.__setattr__(self, 'groups', tuple(self.groups))
        # Fails early on eigenvalues with no variance to explain
        variance_explained(self.eigenvalues)

    @property
    def variance(self) -> pd.DataFrame:
        """Importance table, rebuilt from the frozen eigenvalues on each access."""
        return variance_explained(self.eigenvalues)

    @property
    def component_names(self) -> List[str]:
        return component_names(self.n_components)

    def proportions(self) -> np.ndarray:
        return self.variance['proportion'].to_numpy()

    def cumulative_proportions(self) -> np.ndarray:
        return self.variance['cumulative_proportion'].to_numpy()

    def group_scores(self) -> pd.DataFrame:
        """
        Scores as a DataFrame, with a 'group' column when labels are present.
        """
        frame = self.scores.matrix
        if self.groups is not None:
            frame['group'] = list(self.groups)
        return frame

    def group_centroids(self) -> pd.DataFrame:
        """
        Mean score of each group on each retained component.
        """
        if self.groups is None:
            raise ValueError("Result has no group labels")
        return self.group_scores().groupby('group', sort=True)[self.component_names].mean()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result to plain Python types for JSON export.
        """
        return {
            'variables': list(self.variables),
            'observations': list(self.observations),
            'groups': None if self.groups is None else list(self.groups),
            'n_components': self.n_components,
            'eigenvalues': self.eigenvalues.tolist(),
            'eigenvectors': self.eigenvectors.tolist(),
            'proportion': self.proportions().tolist(),
            'cumulative_proportion': self.cumulative_proportions().tolist(),
            'scores': self.scores.values.tolist(),
            'loadings': self.loadings.values.tolist(),
            'loadings_scale': self.loadings_scale,
        }


def pca(nmat: NamedMatrix,
        n_comps: int = 2,
        method: str = 'jacobi',
        max_sweeps: int = DEFAULT_MAX_SWEEPS,
        tol: float = DEFAULT_TOLERANCE,
        loadings_scale: str = 'correlation') -> PCAResult:
    """
    Run a correlation-matrix PCA on a feature matrix.

    Args:
        nmat: Feature matrix, rows = observations, columns = variables
        n_comps: Number of components to keep for scores and loadings
        method: Eigensolver, 'jacobi' or 'lapack'
        max_sweeps: Sweep bound for the Jacobi solver
        tol: Convergence tolerance for the Jacobi solver
        loadings_scale: 'correlation' or 'raw'

    Returns:
        PCAResult
    """
    n_comps = check_component_count(n_comps, nmat.shape[1])
    if loadings_scale not in LOADINGS_SCALES:
        raise ValueError(f"Unknown loadings scale: {loadings_scale}")

    standardized = standardize(nmat)
    corr = correlation_matrix(standardized)
    logger.debug("Correlation matrix computed")
    eigenvalues, eigenvectors = decompose(corr, method=method, max_sweeps=max_sweeps, tol=tol)
    logger.debug(f"Eigendecomposition ({method}) completed; leading eigenvalue {eigenvalues[0]:.4f}")

    return PCAResult(
        variables=standardized.colnames(),
        observations=standardized.rownames(),
        groups=standardized.groups(),
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        scores=scores(standardized, eigenvectors, n_comps),
        loadings=loadings(eigenvectors, eigenvalues, n_comps,
                          scale=loadings_scale, variables=standardized.colnames()),
        loadings_scale=loadings_scale,
        n_components=n_comps,
        correlation=corr,
    )
