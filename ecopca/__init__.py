"""
Ecopca package for principal component analysis of ecological microsite data.

Standardizes a table of site measurements, builds its correlation matrix and
extracts the principal components, their importances, scores and loadings.
"""

__version__ = '0.1.0'

from ecopca.components.config import Config, ConfigManager
from ecopca.math.named_matrix import NamedMatrix
from ecopca.math.pca import PCAResult, pca
from ecopca.analysis import Analysis, configure_logging, run_analysis
