"""SmoothingEngine - kNN smoothing of scores and features.

Coordinates:
- Neighbor graph construction from an embedding
- Weighted neighbor averaging of score or feature columns
- Missing-feature reporting for feature smoothing
"""

from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import sparse

from ...exceptions import ConfigurationError, DataShapeError, MissingFeatureWarning
from ..validation import coerce_expression_matrix
from .config import SmoothingConfig
from .neighbors import NeighborGraph, build_neighbor_graph
from .smoothing import smooth_values


@dataclass
class SmoothingResult:
    """Result from kNN smoothing.

    Attributes
    ----------
    smoothed : pd.DataFrame
        Smoothed columns, same index as the input values
    graph : NeighborGraph
        Graph used for smoothing (reusable for further columns)
    missing_features : List[str]
        Requested features absent from the matrix (feature smoothing only)
    execution_time_seconds : float
        Total execution time
    config : SmoothingConfig
        Configuration used for the run
    """

    smoothed: pd.DataFrame
    graph: NeighborGraph
    missing_features: List[str] = field(default_factory=list)
    execution_time_seconds: float = 0.0
    config: SmoothingConfig = field(default_factory=SmoothingConfig)

    def summary_dict(self) -> Dict[str, Any]:
        """Return summary dictionary for YAML/JSON export."""
        return {
            "n_cells": self.graph.n_cells,
            "k": self.graph.k,
            "kernel": self.graph.kernel,
            "columns": list(self.smoothed.columns),
            "missing_features": list(self.missing_features),
            "execution_time_seconds": round(self.execution_time_seconds, 2),
            "config": self.config.to_dict(),
        }


class SmoothingEngine:
    """Smooth per-cell values over a kNN graph of an embedding.

    Example:
        >>> engine = SmoothingEngine(SmoothingConfig(k=15, embedding_dims=20))
        >>> result = engine.run(scores, embedding=pca_coords)
        >>> result.smoothed["Tcell_kNN"]
    """

    def __init__(
        self,
        config: Optional[SmoothingConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or SmoothingConfig()
        self.logger = logger or logging.getLogger(__name__)

    def build_graph(self, embedding: Any) -> NeighborGraph:
        """Build the neighbor graph for an embedding with the configured options."""
        cfg = self.config
        return build_neighbor_graph(
            embedding,
            k=cfg.k,
            kernel=cfg.kernel,
            embedding_dims=cfg.embedding_dims,
            method=cfg.method,
            decay=cfg.decay,
        )

    def _resolve_graph(
        self,
        n_rows: int,
        graph: Optional[NeighborGraph],
        embedding: Any,
    ) -> NeighborGraph:
        if graph is None and embedding is None:
            raise ConfigurationError("Either a neighbor graph or an embedding is required")
        if graph is None:
            if np.shape(embedding)[0] != n_rows:
                raise DataShapeError(
                    f"Embedding has {np.shape(embedding)[0]} rows but values have {n_rows} rows"
                )
            graph = self.build_graph(embedding)
        return graph

    def smooth(
        self,
        values: Any,
        graph: Optional[NeighborGraph] = None,
        embedding: Any = None,
        name: Optional[str] = None,
    ) -> pd.DataFrame:
        """Smooth one or more columns; builds the graph from embedding if needed."""
        return self.run(values, graph=graph, embedding=embedding, name=name).smoothed

    def run(
        self,
        values: Any,
        graph: Optional[NeighborGraph] = None,
        embedding: Any = None,
        name: Optional[str] = None,
    ) -> SmoothingResult:
        """Smooth per-cell columns over the kNN graph.

        Args:
            values: Series, DataFrame or array with one row per cell
            graph: Precomputed neighbor graph
            embedding: Coordinates to build the graph from when graph is None
            name: Column name for unnamed 1-D values

        Returns:
            SmoothingResult with the smoothed columns and the graph used

        Raises:
            ConfigurationError: Neither graph nor embedding given, or bad k
            DataShapeError: Row counts of values and graph/embedding differ
        """
        start_time = time.time()
        n_rows = values.shape[0] if hasattr(values, "shape") else len(values)
        graph = self._resolve_graph(n_rows, graph, embedding)

        smoothed = smooth_values(
            values,
            graph,
            suffix=self.config.suffix,
            up_only=self.config.up_only,
            name=name,
        )
        elapsed = time.time() - start_time
        self.logger.info(
            "Smoothed %d column(s) over %d cells (k=%d) in %.2f sec",
            smoothed.shape[1], graph.n_cells, graph.k, elapsed
        )
        return SmoothingResult(
            smoothed=smoothed,
            graph=graph,
            execution_time_seconds=elapsed,
            config=self.config,
        )

    def smooth_features(
        self,
        matrix: Any,
        features: Sequence[str],
        graph: Optional[NeighborGraph] = None,
        embedding: Any = None,
        feature_names: Optional[Sequence[str]] = None,
        cell_names: Optional[Sequence[str]] = None,
    ) -> SmoothingResult:
        """Smooth raw feature columns selected by name.

        Requested features absent from the matrix are skipped with a
        MissingFeatureWarning; if none is present, ConfigurationError is
        raised.
        """
        data = coerce_expression_matrix(matrix, feature_names=feature_names, cell_names=cell_names)
        position = {name: i for i, name in enumerate(data.feature_names)}

        found = [f for f in dict.fromkeys(features) if f in position]
        missing = [f for f in dict.fromkeys(features) if f not in position]
        if missing:
            message = f"{len(missing)} requested feature(s) not found in matrix: {missing}"
            warnings.warn(message, MissingFeatureWarning, stacklevel=2)
            self.logger.warning("%s", message)
        if not found:
            raise ConfigurationError(f"None of the requested features are present: {list(features)}")

        columns = data.matrix[:, [position[f] for f in found]]
        if sparse.issparse(columns):
            columns = columns.toarray()
        values = pd.DataFrame(columns, index=data.cell_names, columns=found)

        result = self.run(values, graph=graph, embedding=embedding)
        result.missing_features = missing
        return result


def smooth_cells(
    values: Any,
    embedding: Any,
    logger: Optional[logging.Logger] = None,
    **options: Any,
) -> pd.DataFrame:
    """Functional entry point: smooth columns over a kNN graph of embedding.

    Options are the SmoothingConfig fields (k, embedding_dims, kernel,
    decay, method, up_only, suffix). Unknown options raise
    ConfigurationError.
    """
    config = SmoothingConfig.from_dict(options)
    return SmoothingEngine(config, logger=logger).smooth(values, embedding=embedding)
