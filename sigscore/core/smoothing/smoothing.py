"""Weighted neighbor averaging of per-cell values."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
import pandas as pd
from scipy import sparse

from ...exceptions import DataShapeError
from .neighbors import NeighborGraph


def _as_frame(values: Any, name: Optional[str] = None) -> pd.DataFrame:
    if isinstance(values, pd.DataFrame):
        return values
    if isinstance(values, pd.Series):
        return values.to_frame(name=name or values.name or "value")
    if sparse.issparse(values):
        values = values.toarray()
    array = np.asarray(values)
    if array.ndim == 1:
        return pd.DataFrame({name or "value": array})
    if array.ndim == 2:
        columns = [name] if name and array.shape[1] == 1 else None
        return pd.DataFrame(array, columns=columns)
    raise DataShapeError(f"Values must be 1-D or 2-D, got {array.ndim} dimensions")


def smooth_values(
    values: Any,
    graph: NeighborGraph,
    suffix: str = "_kNN",
    up_only: bool = False,
    name: Optional[str] = None,
) -> pd.DataFrame:
    """Replace each cell's value by the weighted mean over its neighbors.

    Parameters
    ----------
    values : Series, DataFrame or array-like
        One or more per-cell columns with one row per graph node. Not
        modified.
    graph : NeighborGraph
        Neighbor graph built on the same cells in the same order.
    suffix : str
        Appended to every output column name.
    up_only : bool
        If True, return max(original, smoothed) per entry.
    name : str, optional
        Column name for unnamed 1-D input (default "value").

    Returns
    -------
    pd.DataFrame
        Smoothed columns named "<column><suffix>", same index as the input.

    Raises
    ------
    DataShapeError
        If the number of rows differs from the number of graph nodes or the
        values are not numeric.
    """
    frame = _as_frame(values, name=name)
    if frame.shape[0] != graph.n_cells:
        raise DataShapeError(
            f"Values have {frame.shape[0]} rows but the neighbor graph has {graph.n_cells} cells"
        )

    try:
        original = frame.to_numpy(dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise DataShapeError(f"Values must be numeric: {e}") from e

    smoothed = np.asarray(graph.to_sparse() @ original)
    if up_only:
        smoothed = np.maximum(original, smoothed)

    columns = [f"{col}{suffix}" for col in frame.columns]
    return pd.DataFrame(smoothed, index=frame.index, columns=columns)
