"""File loaders and writers used by the command-line interface.

Delimited text tables are read with pandas (first column = row labels,
tab-separated for .tsv/.txt, comma-separated otherwise). ``.h5ad`` files
are opened with anndata and only read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TAB_SUFFIXES = (".tsv", ".txt", ".tab")


def _separator(path: Path) -> str:
    return "\t" if path.suffix.lower() in TAB_SUFFIXES else ","


def _is_h5ad(path: Path) -> bool:
    return path.suffix.lower() == ".h5ad"


def read_table(path: PathLike) -> pd.DataFrame:
    """Read a delimited table whose first column holds the row labels.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the table has no data columns.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    df = pd.read_csv(path, sep=_separator(path), index_col=0)
    if df.shape[1] == 0:
        raise ValueError(f"Table {path} has no data columns")
    df.index = df.index.astype(str)
    return df


def load_matrix(path: PathLike) -> Any:
    """Load an expression matrix from a delimited table or an .h5ad file.

    Returns
    -------
    pd.DataFrame or anndata.AnnData
        A DataFrame for text tables, the AnnData object for .h5ad files.
    """
    path = Path(path)
    if _is_h5ad(path):
        import anndata

        if not path.exists():
            raise FileNotFoundError(f"AnnData file not found: {path}")
        adata = anndata.read_h5ad(path)
        logger.info("Loaded %s: %d cells x %d features", path, adata.n_obs, adata.n_vars)
        return adata

    df = read_table(path)
    logger.info("Loaded %s: %d rows x %d columns", path, df.shape[0], df.shape[1])
    return df


def load_embedding(path: PathLike, obsm_key: Optional[str] = None) -> pd.DataFrame:
    """Load cell coordinates from a delimited table or an .h5ad obsm entry.

    Parameters
    ----------
    path : PathLike
        Table with one row per cell, or an .h5ad file.
    obsm_key : str, optional
        Key in ``adata.obsm`` (required for .h5ad input, e.g. "X_pca").

    Returns
    -------
    pd.DataFrame
        Coordinates indexed by cell name.
    """
    path = Path(path)
    if not _is_h5ad(path):
        return read_table(path)

    if obsm_key is None:
        raise ConfigurationError("An obsm key is required to read an embedding from .h5ad")
    adata = load_matrix(path)
    if obsm_key not in adata.obsm:
        raise ConfigurationError(
            f"obsm key '{obsm_key}' not found. Available keys: {list(adata.obsm.keys())}"
        )
    coords = adata.obsm[obsm_key]
    if isinstance(coords, pd.DataFrame):
        return coords.set_axis(adata.obs_names.astype(str), axis=0)
    columns = [f"{obsm_key}_{i + 1}" for i in range(coords.shape[1])]
    return pd.DataFrame(coords, index=adata.obs_names.astype(str), columns=columns)


def write_table(df: pd.DataFrame, path: PathLike) -> Path:
    """Write a DataFrame with its index, creating the parent directory."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, sep=_separator(output_path), index=True)
    return output_path
