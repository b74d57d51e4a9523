"""
Named Matrix implementation for the ecopca math module.

This module provides a data structure for matrices with named rows and columns,
used to carry microsite observations (rows) against measured variables (columns)
together with an optional group label per observation.
"""

import numpy as np
import pandas as pd
from typing import List, Dict, Union, Optional, Tuple, Any, Sequence, Mapping


class IndexHash:
    """
    Maintains an ordered index of names with fast lookup.
    """

    def __init__(self, names: Optional[Sequence[Any]] = None):
        """
        Initialize an IndexHash with optional initial names.

        Args:
            names: Optional list of initial names
        """
        self._names = [] if names is None else list(names)
        self._index_hash = {name: idx for idx, name in enumerate(self._names)}
        if len(self._index_hash) != len(self._names):
            raise ValueError("Names must be unique")

    def get_names(self) -> List[Any]:
        """Return the ordered list of names."""
        return self._names.copy()

    def index(self, name: Any) -> Optional[int]:
        """
        Get the index for a given name, or None if not found.

        Args:
            name: The name to look up

        Returns:
            The index if found, None otherwise
        """
        return self._index_hash.get(name)

    def subset(self, names: Sequence[Any]) -> 'IndexHash':
        """
        Create a subset of the index with only the specified names.

        Args:
            names: List of names to include in the subset

        Returns:
            A new IndexHash containing only the specified names
        """
        valid_names = [name for name in names if name in self._index_hash]
        return IndexHash(valid_names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: Any) -> bool:
        return name in self._index_hash


class NamedMatrix:
    """
    A matrix with named rows and columns.

    Rows are observations, columns are variables. Instances are never mutated
    after construction: every operation returns a new NamedMatrix. An optional
    group label per row is carried alongside the data for downstream grouping;
    numeric code never reads it.
    """

    def __init__(self,
                 matrix: Union[np.ndarray, pd.DataFrame, List[List[Any]]],
                 rownames: Optional[Sequence[Any]] = None,
                 colnames: Optional[Sequence[Any]] = None,
                 groups: Optional[Sequence[Any]] = None):
        """
        Initialize a NamedMatrix.

        Args:
            matrix: Matrix data (numpy array, nested lists or pandas DataFrame)
            rownames: List of row names
            colnames: List of column names
            groups: Optional group label per row
        """
        if isinstance(matrix, pd.DataFrame):
            frame = matrix.copy()
            if rownames is not None:
                frame.index = list(rownames)
            if colnames is not None:
                frame.columns = list(colnames)
        else:
            data = np.asarray(matrix)
            if data.ndim == 1:
                data = data.reshape(-1, 1) if data.size else data.reshape(0, 0)
            if data.ndim != 2:
                raise ValueError(f"Matrix must be two-dimensional, got {data.ndim} dimensions")
            rows = list(rownames) if rownames is not None else list(range(data.shape[0]))
            cols = list(colnames) if colnames is not None else list(range(data.shape[1]))
            frame = pd.DataFrame(data, index=rows, columns=cols)

        self._row_index = IndexHash(frame.index)
        self._col_index = IndexHash(frame.columns)
        self._matrix = frame

        if groups is None:
            self._groups = None
        else:
            self._groups = tuple(groups)
            if len(self._groups) != frame.shape[0]:
                raise ValueError(
                    f"Got {len(self._groups)} group labels for {frame.shape[0]} rows"
                )

    @classmethod
    def from_columns(cls,
                     columns: Mapping[Any, Sequence[float]],
                     rownames: Optional[Sequence[Any]] = None,
                     groups: Optional[Sequence[Any]] = None) -> 'NamedMatrix':
        """
        Create a NamedMatrix from a mapping of variable name to observations.

        Args:
            columns: Ordered mapping of variable name to a sequence of values
            rownames: Optional observation names
            groups: Optional group label per observation

        Returns:
            A new NamedMatrix with one column per mapping entry
        """
        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"All columns must have the same length, got {lengths}")
        frame = pd.DataFrame({name: list(values) for name, values in columns.items()})
        return cls(frame, rownames=rownames, groups=groups)

    @property
    def matrix(self) -> pd.DataFrame:
        """Get a copy of the underlying DataFrame."""
        return self._matrix.copy()

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a numpy array of floats."""
        return self._matrix.to_numpy(dtype=float, copy=True)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._matrix.shape

    def rownames(self) -> List[Any]:
        """Get the list of row names."""
        return self._row_index.get_names()

    def colnames(self) -> List[Any]:
        """Get the list of column names."""
        return self._col_index.get_names()

    def groups(self) -> Optional[List[Any]]:
        """Get the group labels, or None when the matrix has none."""
        return None if self._groups is None else list(self._groups)

    def get_row_by_name(self, row_name: Any) -> np.ndarray:
        """
        Get a row of the matrix by name.

        Args:
            row_name: The name of the row

        Returns:
            The row as a numpy array
        """
        idx = self._row_index.index(row_name)
        if idx is None:
            raise KeyError(f"Row name '{row_name}' not found")
        return self.values[idx]

    def get_col_by_name(self, col_name: Any) -> np.ndarray:
        """
        Get a column of the matrix by name.

        Args:
            col_name: The name of the column

        Returns:
            The column as a numpy array
        """
        idx = self._col_index.index(col_name)
        if idx is None:
            raise KeyError(f"Column name '{col_name}' not found")
        return self.values[:, idx]

    def rowname_subset(self, rownames: Sequence[Any]) -> 'NamedMatrix':
        """
        Create a subset of the matrix with only the specified rows.

        Group labels follow their rows.

        Args:
            rownames: List of row names to include

        Returns:
            A new NamedMatrix with only the specified rows
        """
        valid_rows = self._row_index.subset(rownames).get_names()
        groups = None
        if self._groups is not None:
            groups = [self._groups[self._row_index.index(row)] for row in valid_rows]
        return NamedMatrix(self._matrix.loc[valid_rows], groups=groups)

    def colname_subset(self, colnames: Sequence[Any]) -> 'NamedMatrix':
        """
        Create a subset of the matrix with only the specified columns.

        Args:
            colnames: List of column names to include

        Returns:
            A new NamedMatrix with only the specified columns
        """
        valid_cols = self._col_index.subset(colnames).get_names()
        return NamedMatrix(self._matrix[valid_cols], groups=self._groups)

    def __repr__(self) -> str:
        return f"NamedMatrix(rows={len(self._row_index)}, cols={len(self._col_index)})"

    def __str__(self) -> str:
        return (f"NamedMatrix with {len(self._row_index)} rows and "
                f"{len(self._col_index)} columns\n{self._matrix}")


def validate_feature_matrix(nmat: NamedMatrix) -> NamedMatrix:
    """
    Check that a NamedMatrix is a complete numeric feature matrix.

    Args:
        nmat: NamedMatrix to check

    Returns:
        The same NamedMatrix, for chaining

    Raises:
        ValueError: If the matrix is empty, or a column is non-numeric or
            holds missing or infinite values
    """
    n_rows, n_cols = nmat.shape
    if n_rows == 0 or n_cols == 0:
        raise ValueError(f"Feature matrix is empty ({n_rows} rows, {n_cols} columns)")

    frame = nmat.matrix
    for col in frame.columns:
        series = frame[col]
        if not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
            raise ValueError(f"Column '{col}' is not numeric (dtype {series.dtype})")
        if not np.all(np.isfinite(series.to_numpy(dtype=float))):
            raise ValueError(f"Column '{col}' contains missing or infinite values")

    return nmat


def create_named_matrix(matrix_data: Union[np.ndarray, List[List[Any]]],
                        rownames: Optional[Sequence[Any]] = None,
                        colnames: Optional[Sequence[Any]] = None,
                        groups: Optional[Sequence[Any]] = None) -> NamedMatrix:
    """
    Create a NamedMatrix from data.

    Args:
        matrix_data: Matrix data (numpy array or nested lists)
        rownames: List of row names
        colnames: List of column names
        groups: Optional group label per row

    Returns:
        A new NamedMatrix
    """
    if not isinstance(matrix_data, np.ndarray):
        matrix_data = np.array(matrix_data)
    return NamedMatrix(matrix_data, rownames, colnames, groups)
