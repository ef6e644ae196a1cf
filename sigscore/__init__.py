"""sigscore: rank-based per-cell signature scoring for single-cell data.

This package provides tools for:
- Scoring cells against marker signatures with a Mann-Whitney U statistic
  on per-cell feature ranks (robust to library size, no normalization)
- Positive and negative markers within one signature
- Chunked, optionally parallel execution over large matrices
- kNN smoothing of scores or features over a cell embedding

Example usage:
    >>> from sigscore import ScoringEngine, SmoothingEngine
    >>>
    >>> result = ScoringEngine().run(X, {"Tcell": ["CD3D", "CD3E", "CD19-"]},
    ...                              feature_names=genes)
    >>> smoothed = SmoothingEngine().smooth(result.scores, embedding=pca)
"""

__version__ = "0.1.0"

from .exceptions import (
    SigscoreError,
    ConfigurationError,
    DataShapeError,
    ChunkExecutionError,
    MissingFeatureWarning,
)
from .config import load_config
from .core.scoring import (
    ScoringConfig,
    ScoringEngine,
    ScoringResult,
    Signature,
    load_signatures,
    parse_signatures,
    score_cells,
)
from .core.smoothing import (
    NeighborGraph,
    SmoothingConfig,
    SmoothingEngine,
    SmoothingResult,
    build_neighbor_graph,
    smooth_cells,
    smooth_values,
)

__all__ = [
    "__version__",
    # Errors
    "SigscoreError",
    "ConfigurationError",
    "DataShapeError",
    "ChunkExecutionError",
    "MissingFeatureWarning",
    # Config
    "load_config",
    "ScoringConfig",
    "SmoothingConfig",
    # Scoring
    "ScoringEngine",
    "ScoringResult",
    "Signature",
    "load_signatures",
    "parse_signatures",
    "score_cells",
    # Smoothing
    "NeighborGraph",
    "SmoothingEngine",
    "SmoothingResult",
    "build_neighbor_graph",
    "smooth_cells",
    "smooth_values",
]
