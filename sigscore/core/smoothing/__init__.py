"""kNN smoothing of per-cell values.

Builds a k-nearest-neighbor graph over a low-dimensional embedding and
replaces each cell's value by the kernel-weighted mean of its neighbors.

Example Usage
-------------
>>> from sigscore.core.smoothing import SmoothingEngine, SmoothingConfig
>>> engine = SmoothingEngine(SmoothingConfig(k=10, kernel="gaussian"))
>>> graph = engine.build_graph(pca_coords)
>>> smoothed = engine.smooth(result.scores, graph=graph)
"""

from .config import SmoothingConfig, VALID_KERNELS, VALID_METHODS
from .neighbors import NeighborGraph, build_neighbor_graph, kernel_weights
from .smoothing import smooth_values
from .engine import SmoothingEngine, SmoothingResult, smooth_cells

__all__ = [
    "SmoothingConfig",
    "VALID_KERNELS",
    "VALID_METHODS",
    "NeighborGraph",
    "build_neighbor_graph",
    "kernel_weights",
    "smooth_values",
    "SmoothingEngine",
    "SmoothingResult",
    "smooth_cells",
]
