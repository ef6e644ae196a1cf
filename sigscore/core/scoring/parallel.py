"""Chunked, optionally parallel signature scoring.

Instead of ranking the whole dataset at once, cells are split into
contiguous chunks and each chunk is processed independently:
1. Copy the chunk's rows into a work item owned by one worker
2. Rank features within each cell of the chunk
3. Score all signatures on the chunk's ranks
4. Reassemble chunk results by chunk index (not completion order)

With n_workers > 1 chunks are distributed over a fixed joblib pool
(loky backend). The first failing chunk raises ChunkExecutionError; no
new chunks are dispatched after it and no partial result is returned.
Sequential runs stop at the failing chunk. In the pool, joblib aborts
the remaining tasks and the loky executor may terminate workers that are
still busy instead of letting them finish; their results are discarded.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from scipy import sparse

from ...exceptions import ChunkExecutionError
from .ranking import RankMatrix, rank_matrix
from .scoring import score_signatures
from .signatures import ResolvedSignature

MatrixLike = Union[np.ndarray, sparse.spmatrix]


@dataclass
class ChunkWorkItem:
    """Rows of one chunk, owned exclusively by the worker processing it."""

    chunk_index: int
    start: int
    stop: int
    matrix: MatrixLike  # (stop - start, n_features) copy of the input rows

    @property
    def n_cells(self) -> int:
        return self.stop - self.start


@dataclass
class ChunkResult:
    """Scores for one chunk of cells."""

    chunk_index: int
    start: int
    stop: int
    scores: np.ndarray  # (n_cells, n_signatures)
    below_cutoff: np.ndarray  # (n_signatures,)
    timing_seconds: float = 0.0


def plan_chunks(n_cells: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Split range(n_cells) into contiguous (start, stop) blocks."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [(start, min(start + chunk_size, n_cells)) for start in range(0, n_cells, chunk_size)]


def extract_work_items(matrix: MatrixLike, chunk_size: int) -> Iterator[ChunkWorkItem]:
    """Yield one work item per chunk with a private copy of its rows.

    Items are produced lazily so that only dispatched chunks are copied.
    """
    for chunk_index, (start, stop) in enumerate(plan_chunks(matrix.shape[0], chunk_size)):
        if sparse.issparse(matrix):
            rows = sparse.csr_matrix(matrix[start:stop], copy=True)
        else:
            rows = np.array(matrix[start:stop], copy=True)
        yield ChunkWorkItem(chunk_index=chunk_index, start=start, stop=stop, matrix=rows)


def worker_score_chunk(
    work_item: ChunkWorkItem,
    signatures: Sequence[ResolvedSignature],
    max_rank: int,
    negative_weight: float,
) -> ChunkResult:
    """Rank and score a single chunk.

    This function is designed to be called via joblib. Any error is
    re-raised as ChunkExecutionError carrying the chunk index.
    """
    start_time = time.time()
    try:
        ranks = rank_matrix(work_item.matrix, max_rank)
        scores, below_cutoff = score_signatures(ranks, signatures, negative_weight)
    except Exception as e:
        raise ChunkExecutionError(work_item.chunk_index, f"{type(e).__name__}: {e}") from e

    return ChunkResult(
        chunk_index=work_item.chunk_index,
        start=work_item.start,
        stop=work_item.stop,
        scores=scores,
        below_cutoff=below_cutoff,
        timing_seconds=time.time() - start_time,
    )


def worker_rank_chunk(work_item: ChunkWorkItem, max_rank: int) -> Tuple[int, RankMatrix]:
    """Rank a single chunk (worker function for joblib)."""
    try:
        return work_item.chunk_index, rank_matrix(work_item.matrix, max_rank)
    except Exception as e:
        raise ChunkExecutionError(work_item.chunk_index, f"{type(e).__name__}: {e}") from e


def run_chunks(
    matrix: MatrixLike,
    signatures: Sequence[ResolvedSignature],
    max_rank: int = 1500,
    chunk_size: int = 1000,
    n_workers: int = 1,
    negative_weight: float = 1.0,
    logger: Optional[logging.Logger] = None,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """Score all cells of a matrix chunk by chunk.

    Parameters
    ----------
    matrix : np.ndarray or sparse matrix
        Cells x features expression matrix. Never modified.
    signatures : Sequence[ResolvedSignature]
        Signatures resolved against the matrix columns.
    max_rank : int
        Rank cutoff per cell.
    chunk_size : int
        Cells per chunk.
    n_workers : int
        Parallel workers (1 = sequential, -1 = all cores).
    negative_weight : float
        Penalty multiplier for negative markers.
    logger : logging.Logger, optional
        Logger for progress tracking

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, int]
        (scores of shape (n_cells, n_signatures), below-cutoff cell counts
        per signature, number of chunks)

    Raises
    ------
    ChunkExecutionError
        If any chunk fails.
    """
    _logger = logger or logging.getLogger(__name__)

    n_cells = matrix.shape[0]
    n_chunks = len(plan_chunks(n_cells, chunk_size))
    _logger.info(
        "Scoring %d cells in %d chunks (chunk_size=%d, n_workers=%d)",
        n_cells, n_chunks, chunk_size, n_workers
    )

    start_time = time.time()
    work_items = extract_work_items(matrix, chunk_size)

    if n_workers == 1:
        results = [
            worker_score_chunk(item, signatures, max_rank, negative_weight)
            for item in work_items
        ]
    else:
        results = Parallel(n_jobs=n_workers, backend="loky", verbose=0)(
            delayed(worker_score_chunk)(item, signatures, max_rank, negative_weight)
            for item in work_items
        )

    _logger.info("Chunk scoring completed in %.2f seconds", time.time() - start_time)

    return (*_merge_results(results, n_cells, len(signatures), _logger), n_chunks)


def _merge_results(
    results: List[ChunkResult],
    n_cells: int,
    n_signatures: int,
    logger: logging.Logger,
) -> Tuple[np.ndarray, np.ndarray]:
    """Reassemble chunk results in original cell order."""
    scores = np.zeros((n_cells, n_signatures), dtype=np.float64)
    below_cutoff = np.zeros(n_signatures, dtype=np.int64)

    covered = 0
    for result in sorted(results, key=lambda r: r.chunk_index):
        scores[result.start:result.stop] = result.scores
        below_cutoff += result.below_cutoff
        covered += result.stop - result.start
        logger.debug(
            "  Chunk %d: cells %d-%d (%.2f sec)",
            result.chunk_index, result.start, result.stop, result.timing_seconds
        )

    if covered != n_cells:
        raise RuntimeError(f"Chunk results cover {covered} of {n_cells} cells")

    return scores, below_cutoff


def rank_chunks(
    matrix: MatrixLike,
    max_rank: int = 1500,
    chunk_size: int = 1000,
    n_workers: int = 1,
    logger: Optional[logging.Logger] = None,
) -> RankMatrix:
    """Rank a whole matrix chunk by chunk and stack the results.

    Returns
    -------
    RankMatrix
        Ranks for all cells in input order.
    """
    _logger = logger or logging.getLogger(__name__)
    start_time = time.time()
    work_items = extract_work_items(matrix, chunk_size)

    if n_workers == 1:
        results = [worker_rank_chunk(item, max_rank) for item in work_items]
    else:
        results = Parallel(n_jobs=n_workers, backend="loky", verbose=0)(
            delayed(worker_rank_chunk)(item, max_rank) for item in work_items
        )

    blocks = [ranks.ranks for _, ranks in sorted(results, key=lambda r: r[0])]
    if blocks:
        stacked = sparse.vstack(blocks, format="csr")
    else:
        stacked = sparse.csr_matrix(matrix.shape, dtype=np.float64)

    _logger.info(
        "Ranked %d cells in %d chunks in %.2f seconds",
        matrix.shape[0], len(blocks), time.time() - start_time
    )
    return RankMatrix(ranks=stacked, max_rank=max_rank)
