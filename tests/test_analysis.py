"""
Tests for the analysis runner.
"""

import logging
import threading

import pytest
import numpy as np
import pandas as pd

from ecopca.analysis import Analysis, configure_logging, run_analysis, to_named_matrix
from ecopca.components.config import Config, ConfigManager
from ecopca.math.errors import DegenerateInputError, InvalidComponentCountError
from ecopca.math.named_matrix import NamedMatrix
from ecopca.math.pca import pca


class TestToNamedMatrix:
    """Tests for input conversion."""

    def test_mapping(self):
        nmat = to_named_matrix({'grass': [1.0, 2.0], 'tree': [3.0, 1.0]},
                               rownames=['s1', 's2'], groups=['feeding', 'random'])

        assert nmat.colnames() == ['grass', 'tree']
        assert nmat.rownames() == ['s1', 's2']
        assert nmat.groups() == ['feeding', 'random']

    def test_dataframe(self):
        df = pd.DataFrame({'grass': [1.0, 2.0]}, index=['s1', 's2'])
        assert to_named_matrix(df).rownames() == ['s1', 's2']

    def test_named_matrix_passthrough(self, microsite_matrix):
        assert to_named_matrix(microsite_matrix) is microsite_matrix

    def test_named_matrix_with_groups(self, microsite_matrix):
        relabeled = to_named_matrix(microsite_matrix, groups=['x'] * 40)

        assert relabeled.groups() == ['x'] * 40
        assert microsite_matrix.groups()[0] == 'feeding site'

    def test_unsupported(self):
        with pytest.raises(TypeError):
            to_named_matrix([[1.0, 2.0]])


class TestAnalysis:
    """Tests for the Analysis class."""

    def test_matches_pipeline(self, microsite_matrix):
        """Test that a run gives the same result as the pca function."""
        result = Analysis(Config()).run(microsite_matrix)
        expected = pca(microsite_matrix, n_comps=2)

        assert result.n_components == 2
        assert np.array_equal(result.eigenvalues, expected.eigenvalues)
        assert np.array_equal(result.scores.values, expected.scores.values)

    def test_configured_settings(self, microsite_matrix):
        """Test that components, solver and loadings scale come from configuration."""
        config = Config({'pca': {'n-comps': 3, 'method': 'lapack', 'loadings-scale': 'raw'}})
        result = Analysis(config).run(microsite_matrix)

        assert result.n_components == 3
        assert result.loadings_scale == 'raw'
        assert np.allclose(np.sum(result.loadings.values ** 2, axis=0), 1.0)

    def test_explicit_component_count(self, microsite_matrix):
        result = Analysis(Config()).run(microsite_matrix, n_comps=4)
        assert result.scores.shape == (40, 4)

    def test_invalid_component_count_is_logged(self, microsite_matrix, caplog):
        with caplog.at_level(logging.ERROR, logger='ecopca.analysis'):
            with pytest.raises(InvalidComponentCountError):
                Analysis(Config()).run(microsite_matrix, n_comps=9)

        assert 'PCA failed' in caplog.text

    def test_degenerate_input(self):
        nmat = NamedMatrix.from_columns({'grass': [1.0, 2.0, 3.0], 'tree': [0.0, 0.0, 0.0]})

        with pytest.raises(DegenerateInputError):
            Analysis(Config()).run(nmat, n_comps=1)

    def test_concurrent_runs(self, microsite_matrix):
        """Test that one Analysis can serve several threads."""
        analysis = Analysis(Config())
        results = [None] * 4

        def worker(i):
            results[i] = analysis.run(microsite_matrix)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        for result in results[1:]:
            assert np.array_equal(result.eigenvectors, results[0].eigenvectors)


class TestRunAnalysis:
    """Tests for the run_analysis helper."""

    def test_mapping_input(self):
        """Test a small survey given as variable columns with site labels."""
        data = {
            'grass_cover': [55.0, 40.0, 20.0, 65.0, 35.0, 10.0],
            'shrub_cover': [5.0, 15.0, 30.0, 2.0, 20.0, 45.0],
            'bare_soil': [30.0, 35.0, 40.0, 25.0, 38.0, 40.0],
        }
        groups = ['feeding site', 'feeding site', 'feeding site',
                  'random site', 'random site', 'random site']
        result = run_analysis(data, n_comps=2, config=Config(), groups=groups)

        assert result.variables == ('grass_cover', 'shrub_cover', 'bare_soil')
        assert result.groups == tuple(groups)
        assert np.isclose(result.eigenvalues.sum(), 3.0)
        assert list(result.group_centroids().index) == ['feeding site', 'random site']

    def test_shared_config(self, microsite_matrix):
        """Test that the shared configuration is used by default."""
        ConfigManager.get_config({'pca': {'n-comps': 1}})
        result = run_analysis(microsite_matrix)

        assert result.n_components == 1


class TestConfigureLogging:
    """Tests for configuration-driven logging."""

    def test_level_from_config(self):
        """Test that the configured level reaches the package logger."""
        package_logger = logging.getLogger('ecopca')
        try:
            level = configure_logging(Config({'logging': {'level': 'debug'}}))

            assert level == logging.DEBUG
            assert package_logger.level == logging.DEBUG
            assert logging.getLogger('ecopca.math.pca').isEnabledFor(logging.DEBUG)
        finally:
            package_logger.setLevel(logging.NOTSET)

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv('LOG_LEVEL', raising=False)
        package_logger = logging.getLogger('ecopca')
        try:
            assert configure_logging(Config()) == logging.WARNING
        finally:
            package_logger.setLevel(logging.NOTSET)

    def test_stage_messages(self, microsite_matrix, caplog):
        """Test that each pipeline stage is logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger='ecopca'):
            Analysis(Config({'pca': {'method': 'jacobi'}})).run(microsite_matrix)

        assert 'Standardized 40 observations' in caplog.text
        assert 'Correlation matrix computed' in caplog.text
        assert 'Eigendecomposition (jacobi) completed' in caplog.text
        assert 'PCA completed' in caplog.text
