"""
Error types raised by the ecopca math module.
"""

from typing import Any, Optional


class PCAError(Exception):
    """Base class for every error raised while running an analysis."""


class DegenerateInputError(PCAError):
    """
    The input cannot support an eigenanalysis.

    Raised for zero-variance columns and for a total variance of zero.
    """

    def __init__(self, message: str, column: Optional[Any] = None):
        super().__init__(message)
        self.column = column


class NumericalConvergenceError(PCAError):
    """The eigensolver did not converge within its iteration bound."""

    def __init__(self, message: str, iterations: Optional[int] = None):
        super().__init__(message)
        self.iterations = iterations


class InvalidComponentCountError(PCAError, ValueError):
    """Requested number of components is outside [1, number of variables]."""

    def __init__(self, k: Any, n_variables: int):
        super().__init__(
            f"Number of components must be between 1 and {n_variables}, got {k}"
        )
        self.k = k
        self.n_variables = n_variables
