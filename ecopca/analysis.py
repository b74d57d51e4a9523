"""
Analysis runner for ecopca.

Ties matrix preparation, eigendecomposition and result derivation together
for one analysis run, reading its settings from the configuration.
"""

import logging
import time
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from ecopca.components.config import Config, ConfigManager
from ecopca.math.named_matrix import NamedMatrix, validate_feature_matrix
from ecopca.math.pca import PCAResult, check_component_count, pca

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def configure_logging(config: Optional[Config] = None) -> int:
    """
    Set up logging at the level named by the configuration.

    The level is also applied to the package logger, so it takes effect
    when the root logger already has handlers.

    Args:
        config: Configuration (defaults to the shared configuration)

    Returns:
        The numeric level applied
    """
    config = config or ConfigManager.get_config()
    level = config.get('logging.python-level', logging.WARNING)
    setup_logging(logging.getLevelName(level))
    logging.getLogger('ecopca').setLevel(level)
    return level


class Analysis:
    """
    Runs principal component analyses with a fixed configuration.

    An Analysis keeps no state between runs, so one instance can serve
    concurrent callers.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize the analysis.

        Args:
            config: Configuration (defaults to the shared configuration)
        """
        self.config = config or ConfigManager.get_config()

    @property
    def n_comps(self) -> int:
        return self.config.get('pca.n-comps', 2)

    def run(self, nmat: NamedMatrix, n_comps: Optional[int] = None) -> PCAResult:
        """
        Run the full analysis on a feature matrix.

        Args:
            nmat: Feature matrix, rows = observations, columns = variables
            n_comps: Components to keep (defaults to the configured value)

        Returns:
            PCAResult
        """
        n_comps = self.n_comps if n_comps is None else n_comps
        method = self.config.get('pca.method', 'jacobi')
        max_sweeps = int(self.config.get('pca.max-sweeps', 100))
        tol = float(self.config.get('pca.tolerance', 1e-12))
        scale = self.config.get('pca.loadings-scale', 'correlation')

        start_time = time.time()
        n_rows, n_cols = nmat.shape

        try:
            n_comps = check_component_count(n_comps, n_cols)
            validate_feature_matrix(nmat)
            logger.info(f"Running PCA on {n_rows} observations of {n_cols} variables, keeping {n_comps} components")

            result = pca(nmat, n_comps, method=method, max_sweeps=max_sweeps,
                         tol=tol, loadings_scale=scale)
        except Exception as e:
            logger.error(f"PCA failed after {time.time() - start_time:.2f}s: {e}")
            raise

        cumulative = result.variance['cumulative_proportion'].iloc[n_comps - 1]
        logger.info(f"[{time.time() - start_time:.2f}s] PCA completed; "
                    f"first {n_comps} components explain {cumulative:.1%} of variance")
        return result


def to_named_matrix(data: Union[NamedMatrix, pd.DataFrame, Mapping[Any, Sequence[float]]],
                    rownames: Optional[Sequence[Any]] = None,
                    groups: Optional[Sequence[Any]] = None) -> NamedMatrix:
    """
    Convert supported input forms to a NamedMatrix.

    Args:
        data: NamedMatrix, DataFrame, or mapping of variable name to values
        rownames: Optional observation names
        groups: Optional group label per observation

    Returns:
        NamedMatrix
    """
    if isinstance(data, NamedMatrix):
        if rownames is None and groups is None:
            return data
        return NamedMatrix(data.matrix,
                           rownames=rownames,
                           groups=groups if groups is not None else data.groups())
    if isinstance(data, pd.DataFrame):
        return NamedMatrix(data, rownames=rownames, groups=groups)
    if isinstance(data, Mapping):
        return NamedMatrix.from_columns(data, rownames=rownames, groups=groups)
    raise TypeError(f"Unsupported input type: {type(data).__name__}")


def run_analysis(data: Union[NamedMatrix, pd.DataFrame, Mapping[Any, Sequence[float]]],
                 n_comps: Optional[int] = None,
                 config: Optional[Config] = None,
                 groups: Optional[Sequence[Any]] = None,
                 rownames: Optional[Sequence[Any]] = None) -> PCAResult:
    """
    Run a principal component analysis on tabular data.

    Args:
        data: NamedMatrix, DataFrame, or mapping of variable name to values
        n_comps: Components to keep (defaults to the configured value)
        config: Configuration (defaults to the shared configuration)
        groups: Optional group label per observation
        rownames: Optional observation names

    Returns:
        PCAResult
    """
    nmat = to_named_matrix(data, rownames=rownames, groups=groups)
    return Analysis(config).run(nmat, n_comps)
