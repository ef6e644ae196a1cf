"""Input coercion and validation shared by the scoring and smoothing engines.

All checks run before any chunk is dispatched. Inputs are never modified:
transposition, densification and column selection always produce new
objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import sparse

from ..exceptions import ConfigurationError, DataShapeError

CELLS_BY_FEATURES = "cells_by_features"
FEATURES_BY_CELLS = "features_by_cells"


@dataclass
class ExpressionInput:
    """Validated expression matrix in cells x features orientation.

    Attributes
    ----------
    matrix : np.ndarray or sparse.csr_matrix
        Expression values, shape (n_cells, n_features).
    feature_names : List[str]
        One name per column.
    cell_names : pd.Index
        One label per row, in input order.
    """

    matrix: Union[np.ndarray, sparse.csr_matrix]
    feature_names: List[str]
    cell_names: pd.Index

    @property
    def n_cells(self) -> int:
        return self.matrix.shape[0]

    @property
    def n_features(self) -> int:
        return self.matrix.shape[1]


def _is_anndata(obj: Any) -> bool:
    return hasattr(obj, "X") and hasattr(obj, "var_names") and hasattr(obj, "obs_names")


def coerce_expression_matrix(
    matrix: Any,
    feature_names: Optional[Sequence[str]] = None,
    cell_names: Optional[Sequence[str]] = None,
    orientation: str = CELLS_BY_FEATURES,
    layer: Optional[str] = None,
) -> ExpressionInput:
    """Validate an expression matrix and bring it to cells x features.

    Parameters
    ----------
    matrix : array-like, sparse matrix, DataFrame or AnnData
        Expression values. For a DataFrame, the index and columns provide
        the names along the declared orientation. An AnnData is read
        (never written) from X or the given layer.
    feature_names : Sequence[str], optional
        Feature names; required length equals the feature axis.
    cell_names : Sequence[str], optional
        Cell labels; required length equals the cell axis.
    orientation : str
        "cells_by_features" or "features_by_cells".
    layer : str, optional
        AnnData layer to read instead of X.

    Returns
    -------
    ExpressionInput

    Raises
    ------
    ConfigurationError
        If the orientation or layer is unknown.
    DataShapeError
        If the matrix is not 2-D, is empty, contains negative or
        non-finite values, or the names do not match its shape.
    """
    if orientation not in (CELLS_BY_FEATURES, FEATURES_BY_CELLS):
        raise ConfigurationError(
            f"orientation must be '{CELLS_BY_FEATURES}' or '{FEATURES_BY_CELLS}', got '{orientation}'"
        )

    row_names = col_names = None
    if _is_anndata(matrix):
        if layer is not None and layer not in matrix.layers:
            raise ConfigurationError(
                f"Layer '{layer}' not found. Available layers: {list(matrix.layers.keys())}"
            )
        values = matrix.layers[layer] if layer is not None else matrix.X
        row_names, col_names = list(matrix.obs_names), list(matrix.var_names)
    elif isinstance(matrix, pd.DataFrame):
        values = matrix.to_numpy()
        row_names, col_names = list(matrix.index), list(matrix.columns)
    else:
        values = matrix

    if sparse.issparse(values):
        values = sparse.csr_matrix(values)
    else:
        values = np.asarray(values)
        if values.dtype == object or not np.issubdtype(values.dtype, np.number):
            raise DataShapeError(f"Expression matrix must be numeric, got dtype {values.dtype}")

    if values.ndim != 2:
        raise DataShapeError(f"Expression matrix must be 2-D, got {values.ndim} dimension(s)")

    if orientation == FEATURES_BY_CELLS:
        values = values.T.tocsr() if sparse.issparse(values) else values.T
        row_names, col_names = col_names, row_names

    n_cells, n_features = values.shape
    if n_cells == 0 or n_features == 0:
        raise DataShapeError(f"Expression matrix is empty: shape {values.shape}")

    stored = values.data if sparse.issparse(values) else values
    if not np.all(np.isfinite(stored)):
        raise DataShapeError("Expression matrix contains NaN or infinite values")
    if np.any(stored < 0):
        raise DataShapeError("Expression matrix contains negative values")

    if feature_names is None:
        feature_names = col_names if col_names is not None else [f"feature_{i}" for i in range(n_features)]
    if cell_names is None:
        cell_names = row_names if row_names is not None else [f"cell_{i}" for i in range(n_cells)]

    feature_names = [str(name) for name in feature_names]
    if len(feature_names) != n_features:
        raise DataShapeError(
            f"Got {len(feature_names)} feature names for {n_features} features "
            f"(orientation='{orientation}')"
        )
    if len(cell_names) != n_cells:
        raise DataShapeError(
            f"Got {len(cell_names)} cell names for {n_cells} cells (orientation='{orientation}')"
        )

    return ExpressionInput(matrix=values, feature_names=feature_names, cell_names=pd.Index(cell_names))


def coerce_embedding(
    embedding: Any,
    embedding_dims: Optional[int] = None,
    n_cells: Optional[int] = None,
) -> np.ndarray:
    """Validate an embedding and select its leading coordinate columns.

    Parameters
    ----------
    embedding : array-like or DataFrame
        Coordinates, shape (n_cells, n_dims).
    embedding_dims : int, optional
        Number of leading dimensions to keep (None = all).
    n_cells : int, optional
        Expected number of rows.

    Returns
    -------
    np.ndarray
        Float64 copy of shape (n_cells, min(n_dims, embedding_dims)).
    """
    values = embedding.to_numpy() if isinstance(embedding, pd.DataFrame) else embedding
    if sparse.issparse(values):
        values = values.toarray()
    values = np.array(values, dtype=np.float64, copy=True)

    if values.ndim != 2:
        raise DataShapeError(f"Embedding must be 2-D, got {values.ndim} dimension(s)")
    if values.shape[0] == 0 or values.shape[1] == 0:
        raise DataShapeError(f"Embedding is empty: shape {values.shape}")
    if not np.all(np.isfinite(values)):
        raise DataShapeError("Embedding contains NaN or infinite values")
    if n_cells is not None and values.shape[0] != n_cells:
        raise DataShapeError(
            f"Embedding has {values.shape[0]} rows but {n_cells} cells were expected"
        )

    if embedding_dims is not None:
        if embedding_dims < 1:
            raise ConfigurationError(f"embedding_dims must be positive, got {embedding_dims}")
        values = values[:, :embedding_dims]

    return values
