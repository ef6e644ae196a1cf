"""Per-cell feature ranking restricted to the top max_rank features.

Each cell is ranked independently: features are ordered by descending
value, ties receive the average of the ranks they span, and every feature
outside the top max_rank (including all zero-valued features) shares the
rank max_rank + 1. Only non-zero entries are sorted, and cells with more
than max_rank non-zero values are first partitioned so that only the
candidates at or above the max_rank-th largest value are ranked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from scipy import sparse
from scipy.stats import rankdata

logger = logging.getLogger(__name__)

MatrixLike = Union[np.ndarray, sparse.spmatrix]


@dataclass
class RankMatrix:
    """Sparse per-cell ranks for one block of cells.

    Stored entries are average ranks in [1, max_rank]. Implicit (unstored)
    entries stand for the below-cutoff rank max_rank + 1.

    Attributes
    ----------
    ranks : sparse.csr_matrix
        Matrix of shape (n_cells, n_features).
    max_rank : int
        Rank cutoff used to build the matrix.
    """

    ranks: sparse.csr_matrix
    max_rank: int

    @property
    def n_cells(self) -> int:
        return self.ranks.shape[0]

    @property
    def n_features(self) -> int:
        return self.ranks.shape[1]

    @property
    def below_cutoff_rank(self) -> int:
        return self.max_rank + 1

    def feature_ranks(self, feature_idx: Sequence[int]) -> np.ndarray:
        """Dense ranks of the selected features, shape (n_cells, len(feature_idx)).

        Below-cutoff features are filled with max_rank + 1.
        """
        idx = np.asarray(feature_idx, dtype=np.intp)
        if idx.size == 0:
            return np.empty((self.n_cells, 0), dtype=np.float64)
        dense = self.ranks[:, idx].toarray().astype(np.float64)
        dense[dense == 0] = self.below_cutoff_rank
        return dense

    def to_dense(self) -> np.ndarray:
        """Full dense rank matrix with below-cutoff entries filled in."""
        return self.feature_ranks(np.arange(self.n_features))


def _rank_row(values: np.ndarray, max_rank: int) -> tuple:
    """Rank one cell's non-zero values.

    Returns
    -------
    tuple
        (positions into values, ranks) for entries ranked within max_rank.
    """
    nonzero = np.flatnonzero(values)
    if nonzero.size == 0:
        return nonzero, np.empty(0, dtype=np.float64)

    vals = values[nonzero]
    if vals.size > max_rank:
        # Everything strictly below the max_rank-th largest value cannot
        # reach a rank <= max_rank.
        kth = np.partition(vals, vals.size - max_rank)[vals.size - max_rank]
        candidates = vals >= kth
        nonzero = nonzero[candidates]
        vals = vals[candidates]

    ranks = rankdata(-vals, method="average")
    keep = ranks <= max_rank
    return nonzero[keep], ranks[keep]


def rank_matrix(matrix: MatrixLike, max_rank: int) -> RankMatrix:
    """Rank features within each cell of a cells x features matrix.

    Parameters
    ----------
    matrix : np.ndarray or sparse matrix
        Non-negative expression values, shape (n_cells, n_features).
        Never modified.
    max_rank : int
        Rank cutoff; features ranked beyond it share rank max_rank + 1.

    Returns
    -------
    RankMatrix
        Sparse rank matrix of the same shape.
    """
    if max_rank <= 0:
        raise ValueError(f"max_rank must be positive, got {max_rank}")

    csr = sparse.csr_matrix(matrix)
    n_cells, n_features = csr.shape

    rows = []
    cols = []
    data = []
    for i in range(n_cells):
        start, stop = csr.indptr[i], csr.indptr[i + 1]
        positions, ranks = _rank_row(csr.data[start:stop], max_rank)
        if positions.size == 0:
            continue
        rows.append(np.full(positions.size, i, dtype=np.intp))
        cols.append(csr.indices[start:stop][positions])
        data.append(ranks)

    if data:
        ranks_csr = sparse.csr_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
            shape=(n_cells, n_features),
            dtype=np.float64,
        )
    else:
        ranks_csr = sparse.csr_matrix((n_cells, n_features), dtype=np.float64)

    logger.debug(
        "Ranked %d cells x %d features (max_rank=%d, %d ranked entries)",
        n_cells,
        n_features,
        max_rank,
        ranks_csr.nnz,
    )
    return RankMatrix(ranks=ranks_csr, max_rank=max_rank)
