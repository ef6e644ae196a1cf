"""Unit tests for per-cell ranking."""

import numpy as np
import pytest
from scipy import sparse

from sigscore.core.scoring import RankMatrix, rank_matrix


class TestRankMatrix:
    """Tests for rank_matrix."""

    def test_descending_ranks(self):
        """Highest value gets rank 1."""
        ranks = rank_matrix(np.array([[1.0, 3.0, 2.0]]), max_rank=3).to_dense()
        np.testing.assert_array_equal(ranks, [[3.0, 1.0, 2.0]])

    def test_ties_get_average_rank(self):
        """Tied values share the mean of the ranks they span."""
        ranks = rank_matrix(np.array([[5.0, 5.0, 5.0, 5.0]]), max_rank=4).to_dense()
        np.testing.assert_array_equal(ranks, [[2.5, 2.5, 2.5, 2.5]])

    def test_zeros_below_cutoff(self):
        """Zero-valued features are never ranked."""
        ranks = rank_matrix(np.array([[10.0, 0.0, 0.0, 5.0]]), max_rank=4)
        np.testing.assert_array_equal(ranks.to_dense(), [[1.0, 5.0, 5.0, 2.0]])
        assert ranks.ranks.nnz == 2

    def test_cutoff_applies(self):
        """Features past max_rank share rank max_rank + 1."""
        ranks = rank_matrix(np.array([[4.0, 3.0, 2.0, 1.0]]), max_rank=2).to_dense()
        np.testing.assert_array_equal(ranks, [[1.0, 2.0, 3.0, 3.0]])

    def test_tie_straddling_cutoff(self):
        """A tie whose average rank exceeds max_rank falls below the cutoff."""
        # 9 at rank 1, the three 5s span ranks 2-4 (mean 3)
        ranks = rank_matrix(np.array([[9.0, 5.0, 5.0, 5.0]]), max_rank=2).to_dense()
        np.testing.assert_array_equal(ranks, [[1.0, 3.0, 3.0, 3.0]])

        # max_rank=3 keeps the tie (mean 3 <= 3)
        ranks = rank_matrix(np.array([[9.0, 5.0, 5.0, 5.0]]), max_rank=3).to_dense()
        np.testing.assert_array_equal(ranks, [[1.0, 3.0, 3.0, 3.0]])

    def test_partition_matches_full_sort(self):
        """Partitioned ranking equals full ranking for the kept features."""
        from scipy.stats import rankdata

        rng = np.random.default_rng(0)
        row = rng.permutation(np.arange(1, 101)).astype(float)
        ranks = rank_matrix(row[np.newaxis, :], max_rank=10).to_dense()[0]

        full = rankdata(-row, method="average")
        expected = np.where(full <= 10, full, 11)
        np.testing.assert_array_equal(ranks, expected)

    def test_cells_independent(self):
        """Each row is ranked on its own values."""
        matrix = np.array([[1.0, 2.0], [2.0, 1.0]])
        ranks = rank_matrix(matrix, max_rank=2).to_dense()
        np.testing.assert_array_equal(ranks, [[2.0, 1.0], [1.0, 2.0]])

    def test_sparse_equals_dense(self, sparse_counts):
        """Sparse and dense inputs give identical ranks."""
        counts, _, _ = sparse_counts
        from_sparse = rank_matrix(counts, max_rank=15).to_dense()
        from_dense = rank_matrix(counts.toarray(), max_rank=15).to_dense()
        np.testing.assert_array_equal(from_sparse, from_dense)

    def test_input_not_modified(self):
        """The input matrix is left untouched."""
        matrix = np.array([[3.0, 0.0, 1.0]])
        original = matrix.copy()
        rank_matrix(matrix, max_rank=2)
        np.testing.assert_array_equal(matrix, original)

    def test_invalid_max_rank(self):
        """max_rank must be positive."""
        with pytest.raises(ValueError, match="max_rank must be positive"):
            rank_matrix(np.ones((1, 2)), max_rank=0)

    def test_explicit_zeros_in_sparse(self):
        """Explicitly stored zeros are treated like implicit zeros."""
        matrix = sparse.csr_matrix(
            (np.array([0.0, 2.0]), np.array([0, 1]), np.array([0, 2])), shape=(1, 3)
        )
        ranks = rank_matrix(matrix, max_rank=3).to_dense()
        np.testing.assert_array_equal(ranks, [[4.0, 1.0, 4.0]])


class TestRankMatrixContainer:
    """Tests for the RankMatrix dataclass."""

    def test_feature_ranks_fill(self):
        """Unstored entries read back as max_rank + 1."""
        rm = RankMatrix(ranks=sparse.csr_matrix(np.array([[1.0, 0.0]])), max_rank=5)
        np.testing.assert_array_equal(rm.feature_ranks([1, 0]), [[6.0, 1.0]])
        assert rm.below_cutoff_rank == 6

    def test_feature_ranks_empty(self):
        """Empty feature selections give an (n_cells, 0) array."""
        rm = RankMatrix(ranks=sparse.csr_matrix((3, 2)), max_rank=5)
        assert rm.feature_ranks([]).shape == (3, 0)
