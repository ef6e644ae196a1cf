"""Mann-Whitney U based signature scoring.

For a feature set of size n with per-cell ranks r (ranks beyond the cutoff
clipped to max_rank), the score is the normalized U statistic:

    U   = sum(r) - n * (n + 1) / 2
    AUC = 1 - U / (n * (max_rank - n))

AUC is 1 when the set occupies the top n ranks of the cell and 0 when every
member lies below the rank cutoff. When n >= max_rank the denominator falls
back to n * max_rank.

Signatures with negative markers combine both statistics:

    score = clip(AUC_positive - negative_weight * AUC_negative, 0, 1)
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .ranking import RankMatrix
from .signatures import ResolvedSignature


def u_statistic(ranks: np.ndarray, max_rank: int) -> np.ndarray:
    """Normalized Mann-Whitney U statistic per cell.

    Parameters
    ----------
    ranks : np.ndarray
        Ranks of the set's features, shape (n_cells, n). Below-cutoff
        features carry max_rank + 1.
    max_rank : int
        Rank cutoff used to build the ranks.

    Returns
    -------
    np.ndarray
        Scores in [0, 1], shape (n_cells,).
    """
    n_cells, n = ranks.shape
    if n == 0:
        return np.zeros(n_cells, dtype=np.float64)

    clipped = np.minimum(ranks, max_rank)
    u_value = clipped.sum(axis=1) - n * (n + 1) / 2.0
    denom = n * (max_rank - n) if n < max_rank else n * max_rank
    auc = 1.0 - u_value / denom

    auc[np.all(ranks > max_rank, axis=1)] = 0.0
    return np.clip(auc, 0.0, 1.0)


def score_signature(
    rank_matrix: RankMatrix,
    signature: ResolvedSignature,
    negative_weight: float = 1.0,
) -> np.ndarray:
    """Score every cell of a rank matrix against one resolved signature.

    Parameters
    ----------
    rank_matrix : RankMatrix
        Ranks for a block of cells.
    signature : ResolvedSignature
        Signature with column indices into the rank matrix.
    negative_weight : float
        Penalty multiplier for the negative-marker statistic.

    Returns
    -------
    np.ndarray
        Scores in [0, 1], shape (n_cells,). All zeros when the signature
        has no usable positive feature.
    """
    if signature.is_empty:
        return np.zeros(rank_matrix.n_cells, dtype=np.float64)

    max_rank = rank_matrix.max_rank
    score = u_statistic(rank_matrix.feature_ranks(signature.positive_idx), max_rank)

    if signature.negative_idx and negative_weight > 0:
        neg_score = u_statistic(rank_matrix.feature_ranks(signature.negative_idx), max_rank)
        score = np.clip(score - negative_weight * neg_score, 0.0, 1.0)

    return score


def count_below_cutoff(rank_matrix: RankMatrix, signature: ResolvedSignature) -> int:
    """Number of cells in which every positive feature lies below the cutoff."""
    if signature.is_empty:
        return rank_matrix.n_cells
    ranks = rank_matrix.feature_ranks(signature.positive_idx)
    return int(np.all(ranks > rank_matrix.max_rank, axis=1).sum())


def score_signatures(
    rank_matrix: RankMatrix,
    signatures: Sequence[ResolvedSignature],
    negative_weight: float = 1.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Score a block of cells against several signatures.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (scores of shape (n_cells, n_signatures),
         below-cutoff cell counts of shape (n_signatures,))
    """
    scores = np.zeros((rank_matrix.n_cells, len(signatures)), dtype=np.float64)
    below_cutoff = np.zeros(len(signatures), dtype=np.int64)

    for j, sig in enumerate(signatures):
        scores[:, j] = score_signature(rank_matrix, sig, negative_weight)
        below_cutoff[j] = count_below_cutoff(rank_matrix, sig)

    return scores, below_cutoff
