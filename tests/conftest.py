"""
Pytest configuration and fixtures for ecopca tests.
"""

import sys
import os

import numpy as np
import pytest

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ecopca.components.config import ConfigManager
from ecopca.math.named_matrix import NamedMatrix

MICROSITE_VARIABLES = [
    'grass_cover', 'subshrub_cover', 'shrub_cover', 'tree_cover',
    'density', 'height_cv', 'bare_soil', 'mulch_cover'
]


@pytest.fixture
def microsite_matrix():
    """
    Synthetic microsite survey: 40 sites, 8 variables driven by two latent
    gradients, half of the sites labelled as feeding sites.
    """
    rng = np.random.default_rng(42)
    n_sites = 40
    woodiness = rng.normal(size=n_sites)
    openness = rng.normal(size=n_sites)
    # Measurement noise at roughly 10% of each variable's signal
    noise_scale = np.array([1.0, 0.4, 0.8, 0.5, 3.0, 0.01, 0.9, 0.4])
    noise = rng.normal(size=(n_sites, len(MICROSITE_VARIABLES))) * noise_scale

    data = np.column_stack([
        40 + 10 * openness,          # grass_cover (%)
        15 + 4 * woodiness,          # subshrub_cover (%)
        20 + 8 * woodiness,          # shrub_cover (%)
        10 + 5 * woodiness,          # tree_cover (%)
        120 + 30 * woodiness,        # density (stem count)
        0.4 + 0.1 * woodiness,       # height_cv
        30 - 9 * openness,           # bare_soil (%)
        12 + 3 * (woodiness - openness),  # mulch_cover (%)
    ]) + noise

    groups = ['feeding site'] * (n_sites // 2) + ['random site'] * (n_sites // 2)
    rownames = [f"site{i + 1}" for i in range(n_sites)]
    return NamedMatrix(data, rownames=rownames, colnames=MICROSITE_VARIABLES, groups=groups)


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Give every test a fresh shared configuration."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()
