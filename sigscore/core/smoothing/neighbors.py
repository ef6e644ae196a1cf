"""k-nearest-neighbor graph construction over a cell embedding.

Neighbors are found with Euclidean distance and never include the cell
itself. Each cell's neighbors are ordered by distance, ties by ascending
cell index, and carry kernel weights that sum to 1.

Two search methods are available:
- "exact": chunked brute-force distances (pairwise_distances_chunked),
  memory bounded by scikit-learn's working_memory
- "tree": scikit-learn NearestNeighbors index
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np
from scipy import sparse
from scipy.spatial.distance import cdist
from sklearn.metrics import pairwise_distances_chunked
from sklearn.neighbors import NearestNeighbors

from ...exceptions import ConfigurationError
from ..validation import coerce_embedding
from .config import VALID_KERNELS, VALID_METHODS

logger = logging.getLogger(__name__)


@dataclass
class NeighborGraph:
    """Weighted kNN graph.

    Attributes
    ----------
    indices : np.ndarray
        Neighbor cell indices, shape (n_cells, k).
    distances : np.ndarray
        Euclidean distances to the neighbors, shape (n_cells, k).
    weights : np.ndarray
        Normalized neighbor weights, shape (n_cells, k); rows sum to 1.
    kernel : str
        Kernel used to derive the weights.
    """

    indices: np.ndarray
    distances: np.ndarray
    weights: np.ndarray
    kernel: str = "gaussian"

    @property
    def n_cells(self) -> int:
        return self.indices.shape[0]

    @property
    def k(self) -> int:
        return self.indices.shape[1]

    def to_sparse(self) -> sparse.csr_matrix:
        """Return the (n_cells, n_cells) row-stochastic weight matrix."""
        n, k = self.indices.shape
        indptr = np.arange(0, n * k + 1, k)
        matrix = sparse.csr_matrix(
            (self.weights.ravel(), self.indices.ravel(), indptr), shape=(n, n)
        )
        matrix.sort_indices()
        return matrix


def _order_neighbors(
    embedding: np.ndarray,
    indices: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Recompute exact distances and sort each row by (distance, index)."""
    diffs = embedding[indices] - embedding[:, np.newaxis, :]
    distances = np.sqrt(np.einsum("ijk,ijk->ij", diffs, diffs))

    order = np.empty_like(indices)
    for row in range(indices.shape[0]):
        order[row] = np.lexsort((indices[row], distances[row]))
    indices = np.take_along_axis(indices, order, axis=1)
    distances = np.take_along_axis(distances, order, axis=1)
    return indices, distances


def _exact_neighbors(embedding: np.ndarray, k: int) -> np.ndarray:
    """Brute-force neighbor search, one block of rows at a time."""

    def reduce_func(dist_chunk: np.ndarray, start: int) -> np.ndarray:
        stop = start + dist_chunk.shape[0]
        # difference-based distances keep exactly tied points tied
        exact = cdist(embedding[start:stop], embedding, metric="sqeuclidean")
        rows = np.arange(exact.shape[0])
        exact[rows, start + rows] = np.inf
        # stable sort keeps ascending index order among equal distances
        return np.argsort(exact, axis=1, kind="stable")[:, :k]

    blocks = list(
        pairwise_distances_chunked(embedding, reduce_func=reduce_func, metric="euclidean")
    )
    return np.vstack(blocks)


def _tree_neighbors(embedding: np.ndarray, k: int) -> np.ndarray:
    nn = NearestNeighbors(n_neighbors=k, metric="euclidean")
    nn.fit(embedding)
    # Querying without X excludes each point from its own neighbors
    _, indices = nn.kneighbors()
    return indices


def kernel_weights(distances: np.ndarray, kernel: str = "gaussian", decay: float = 0.1) -> np.ndarray:
    """Convert sorted neighbor distances to normalized weights.

    Parameters
    ----------
    distances : np.ndarray
        Distances of shape (n_cells, k), ascending within each row.
    kernel : str
        "gaussian": exp(-(d / sigma)^2) with sigma the row's k-th distance.
        "inverse_distance": 1 / d; zero-distance neighbors share the weight.
        "decay": (1 - decay)^i for the i-th nearest neighbor.
        "uniform": equal weights.
    decay : float
        Decay rate for the "decay" kernel.

    Returns
    -------
    np.ndarray
        Weights of the same shape, each row summing to 1. Rows whose
        distances are all zero receive uniform weights.
    """
    if kernel not in VALID_KERNELS:
        raise ConfigurationError(f"kernel must be one of {VALID_KERNELS}, got '{kernel}'")

    n, k = distances.shape
    if kernel == "uniform":
        raw = np.ones((n, k))
    elif kernel == "decay":
        raw = np.tile((1.0 - decay) ** np.arange(k), (n, 1))
    elif kernel == "gaussian":
        sigma = distances[:, -1:]
        with np.errstate(divide="ignore", invalid="ignore"):
            raw = np.exp(-np.square(distances / sigma))
        raw[sigma[:, 0] == 0] = 1.0
    else:
        zero = distances == 0
        with np.errstate(divide="ignore"):
            raw = 1.0 / distances
        has_zero = zero.any(axis=1)
        raw[has_zero] = zero[has_zero].astype(np.float64)

    return raw / raw.sum(axis=1, keepdims=True)


def build_neighbor_graph(
    embedding: Any,
    k: int = 10,
    kernel: str = "gaussian",
    embedding_dims: Optional[int] = None,
    method: str = "exact",
    decay: float = 0.1,
) -> NeighborGraph:
    """Build a weighted kNN graph from cell coordinates.

    Parameters
    ----------
    embedding : array-like or DataFrame
        Cell coordinates, shape (n_cells, n_dims). Not modified.
    k : int
        Neighbors per cell; must satisfy 1 <= k < n_cells.
    kernel : str
        Distance-to-weight kernel (see kernel_weights).
    embedding_dims : int, optional
        Number of leading coordinate columns to use.
    method : str
        "exact" or "tree".
    decay : float
        Decay rate for the "decay" kernel.

    Returns
    -------
    NeighborGraph

    Raises
    ------
    ConfigurationError
        If k is out of range or the kernel/method is unknown.
    DataShapeError
        If the embedding is not a finite 2-D array.
    """
    if method not in VALID_METHODS:
        raise ConfigurationError(f"method must be one of {VALID_METHODS}, got '{method}'")
    if kernel not in VALID_KERNELS:
        raise ConfigurationError(f"kernel must be one of {VALID_KERNELS}, got '{kernel}'")

    coords = coerce_embedding(embedding, embedding_dims=embedding_dims)
    n_cells = coords.shape[0]
    if k < 1 or k >= n_cells:
        raise ConfigurationError(
            f"k must satisfy 1 <= k < n_cells; got k={k} for {n_cells} cells"
        )

    start_time = time.time()
    if method == "exact":
        indices = _exact_neighbors(coords, k)
    else:
        indices = _tree_neighbors(coords, k)

    indices, distances = _order_neighbors(coords, indices.astype(np.intp))
    weights = kernel_weights(distances, kernel=kernel, decay=decay)

    logger.info(
        "Built %d-NN graph on %d cells x %d dims (%s, %s kernel) in %.2f seconds",
        k, n_cells, coords.shape[1], method, kernel, time.time() - start_time
    )
    return NeighborGraph(indices=indices, distances=distances, weights=weights, kernel=kernel)
