"""
Tests for the NamedMatrix module.
"""

import pytest
import numpy as np
import pandas as pd

from ecopca.math.named_matrix import (
    IndexHash, NamedMatrix, create_named_matrix, validate_feature_matrix
)


class TestIndexHash:
    """Tests for the IndexHash class."""

    def test_lookup(self):
        """Test looking up names by index."""
        idx = IndexHash(['a', 'b', 'c'])

        assert idx.get_names() == ['a', 'b', 'c']
        assert idx.index('b') == 1
        assert idx.index('z') is None
        assert 'c' in idx
        assert len(idx) == 3

    def test_subset_keeps_requested_order(self):
        """Test that subsets only keep known names."""
        idx = IndexHash(['a', 'b', 'c'])
        subset = idx.subset(['c', 'x', 'a'])

        assert subset.get_names() == ['c', 'a']

    def test_duplicate_names(self):
        """Test that duplicate names are rejected."""
        with pytest.raises(ValueError):
            IndexHash(['a', 'a'])


class TestNamedMatrix:
    """Tests for the NamedMatrix class."""

    def test_init_from_array(self):
        """Test creating a matrix from a numpy array."""
        nmat = NamedMatrix(np.array([[1.0, 2.0], [3.0, 4.0]]),
                           rownames=['s1', 's2'], colnames=['grass', 'shrub'])

        assert nmat.shape == (2, 2)
        assert nmat.rownames() == ['s1', 's2']
        assert nmat.colnames() == ['grass', 'shrub']
        assert nmat.groups() is None
        assert np.array_equal(nmat.values, [[1.0, 2.0], [3.0, 4.0]])

    def test_default_names(self):
        """Test that rows and columns default to positional names."""
        nmat = create_named_matrix([[1, 2, 3], [4, 5, 6]])

        assert nmat.rownames() == [0, 1]
        assert nmat.colnames() == [0, 1, 2]

    def test_init_from_dataframe(self):
        """Test that DataFrame labels are kept."""
        df = pd.DataFrame({'grass': [1.0, 2.0], 'tree': [3.0, 5.0]}, index=['s1', 's2'])
        nmat = NamedMatrix(df)

        assert nmat.rownames() == ['s1', 's2']
        assert nmat.colnames() == ['grass', 'tree']

    def test_from_columns(self):
        """Test building a matrix from a mapping of variables."""
        nmat = NamedMatrix.from_columns(
            {'grass': [10, 20, 30], 'shrub': [1, 2, 4]},
            groups=['feeding', 'random', 'random']
        )

        assert nmat.colnames() == ['grass', 'shrub']
        assert np.array_equal(nmat.get_col_by_name('shrub'), [1.0, 2.0, 4.0])
        assert nmat.groups() == ['feeding', 'random', 'random']

    def test_from_columns_unequal_lengths(self):
        """Test that ragged columns are rejected."""
        with pytest.raises(ValueError, match="same length"):
            NamedMatrix.from_columns({'grass': [1, 2, 3], 'shrub': [1, 2]})

    def test_group_length_mismatch(self):
        """Test that group labels must match the number of rows."""
        with pytest.raises(ValueError):
            NamedMatrix(np.ones((3, 2)), groups=['a', 'b'])

    def test_values_are_copies(self):
        """Test that modifying returned values leaves the matrix unchanged."""
        nmat = NamedMatrix(np.array([[1.0, 2.0], [3.0, 4.0]]))
        values = nmat.values
        values[0, 0] = 100.0

        assert nmat.values[0, 0] == 1.0

    def test_get_by_name(self):
        """Test row and column access by name."""
        nmat = NamedMatrix(np.array([[1.0, 2.0], [3.0, 4.0]]),
                           rownames=['s1', 's2'], colnames=['grass', 'shrub'])

        assert np.array_equal(nmat.get_row_by_name('s2'), [3.0, 4.0])
        assert np.array_equal(nmat.get_col_by_name('grass'), [1.0, 3.0])

        with pytest.raises(KeyError):
            nmat.get_row_by_name('s9')
        with pytest.raises(KeyError):
            nmat.get_col_by_name('tree')

    def test_rowname_subset_carries_groups(self):
        """Test that row subsets keep each row's group label."""
        nmat = NamedMatrix(np.arange(6.0).reshape(3, 2),
                           rownames=['s1', 's2', 's3'],
                           groups=['feeding', 'random', 'feeding'])
        subset = nmat.rowname_subset(['s3', 's2'])

        assert subset.rownames() == ['s3', 's2']
        assert subset.groups() == ['feeding', 'random']
        assert np.array_equal(subset.values, [[4.0, 5.0], [2.0, 3.0]])

    def test_colname_subset(self):
        """Test column subsets."""
        nmat = NamedMatrix(np.arange(6.0).reshape(2, 3), colnames=['a', 'b', 'c'])
        subset = nmat.colname_subset(['c', 'a', 'missing'])

        assert subset.colnames() == ['c', 'a']
        assert np.array_equal(subset.values, [[2.0, 0.0], [5.0, 3.0]])


class TestValidateFeatureMatrix:
    """Tests for feature matrix validation."""

    def test_valid_matrix(self):
        """Test that complete numeric data passes."""
        nmat = NamedMatrix(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert validate_feature_matrix(nmat) is nmat

    def test_missing_values(self):
        """Test that NaN values are rejected with the column name."""
        nmat = NamedMatrix(np.array([[1.0, np.nan], [3.0, 4.0]]), colnames=['grass', 'shrub'])

        with pytest.raises(ValueError, match="shrub"):
            validate_feature_matrix(nmat)

    def test_non_numeric(self):
        """Test that non-numeric columns are rejected."""
        df = pd.DataFrame({'grass': [1.0, 2.0], 'site_type': ['feeding', 'random']})

        with pytest.raises(ValueError, match="site_type"):
            validate_feature_matrix(NamedMatrix(df))

    def test_empty(self):
        """Test that empty matrices are rejected."""
        with pytest.raises(ValueError, match="empty"):
            validate_feature_matrix(NamedMatrix(np.zeros((0, 3))))
