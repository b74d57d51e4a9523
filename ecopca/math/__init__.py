"""
Numerical core of ecopca: feature matrices, standardization and PCA.
"""

from ecopca.math.errors import (
    PCAError, DegenerateInputError, NumericalConvergenceError, InvalidComponentCountError
)
from ecopca.math.named_matrix import NamedMatrix, create_named_matrix, validate_feature_matrix
from ecopca.math.prepare import (
    StandardizedMatrix, standardize, apply_standardization,
    correlation_matrix, covariance_matrix
)
from ecopca.math.pca import (
    PCAResult, pca, decompose, jacobi_eigen, variance_explained,
    scores, loadings, contributions, cos2, reconstruct
)
