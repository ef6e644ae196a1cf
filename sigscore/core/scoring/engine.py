"""ScoringEngine - main orchestrator for signature scoring.

Coordinates the scoring pipeline:
- Input validation (matrix shape, orientation, values)
- Signature parsing and resolution against feature names
- Chunked rank transform and Mann-Whitney U scoring
- Diagnostics (missing features, below-cutoff cells)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..validation import coerce_expression_matrix
from .config import ScoringConfig
from .parallel import rank_chunks, run_chunks
from .ranking import RankMatrix
from .scoring import score_signatures
from .signatures import (
    ResolvedSignature,
    Signature,
    SignatureSpec,
    parse_signatures,
    resolve_signatures,
)

SignatureInput = Union[Mapping[str, SignatureSpec], Sequence[Signature]]


@dataclass
class ScoringResult:
    """Result from signature scoring.

    Attributes
    ----------
    scores : pd.DataFrame
        Cells x signatures score table, values in [0, 1], rows in input order
    missing_features : Dict[str, List[str]]
        Per signature, feature identifiers absent from the matrix
    below_cutoff : Dict[str, int]
        Per signature, number of cells whose positive features all lie
        below the rank cutoff
    empty_signatures : List[str]
        Signatures with no usable positive feature (scored 0 everywhere)
    n_chunks : int
        Number of chunks processed
    execution_time_seconds : float
        Total execution time
    config : ScoringConfig
        Configuration used for the run
    """

    scores: pd.DataFrame
    missing_features: Dict[str, List[str]] = field(default_factory=dict)
    below_cutoff: Dict[str, int] = field(default_factory=dict)
    empty_signatures: List[str] = field(default_factory=list)
    n_chunks: int = 0
    execution_time_seconds: float = 0.0
    config: ScoringConfig = field(default_factory=ScoringConfig)

    @property
    def n_cells(self) -> int:
        return self.scores.shape[0]

    def summary_dict(self) -> Dict[str, Any]:
        """Return summary dictionary for YAML/JSON export."""
        return {
            "n_cells": self.n_cells,
            "n_signatures": self.scores.shape[1],
            "n_chunks": self.n_chunks,
            "execution_time_seconds": round(self.execution_time_seconds, 2),
            "missing_features": {k: list(v) for k, v in self.missing_features.items() if v},
            "below_cutoff": dict(self.below_cutoff),
            "empty_signatures": list(self.empty_signatures),
            "config": self.config.to_dict(),
        }


@dataclass
class RankedDataset:
    """Ranks of a full dataset, reusable across signature batches."""

    ranks: RankMatrix
    feature_names: List[str]
    cell_names: pd.Index


class ScoringEngine:
    """Rank-based signature scoring for single-cell expression matrices.

    Example:
        >>> engine = ScoringEngine(ScoringConfig(max_rank=1500, n_workers=4))
        >>> result = engine.run(
        ...     matrix=X,
        ...     signatures={"Tcell": ["CD3D", "CD3E", "CD19-"]},
        ...     feature_names=gene_names,
        ... )
        >>> result.scores["Tcell"]
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or ScoringConfig()
        self.logger = logger or logging.getLogger(__name__)

    def _prepare(self, signatures: SignatureInput, feature_names: Sequence[str]) -> List[ResolvedSignature]:
        parsed = parse_signatures(signatures)
        return resolve_signatures(parsed, feature_names, logger=self.logger)

    def run(
        self,
        matrix: Any,
        signatures: SignatureInput,
        feature_names: Optional[Sequence[str]] = None,
        cell_names: Optional[Sequence[str]] = None,
        layer: Optional[str] = None,
    ) -> ScoringResult:
        """Score every cell against every signature.

        Args:
            matrix: Expression matrix (ndarray, sparse, DataFrame or AnnData)
            signatures: Mapping name -> definition, or parsed Signatures
            feature_names: Feature names (taken from the matrix if omitted)
            cell_names: Cell labels (taken from the matrix if omitted)
            layer: AnnData layer to read instead of X

        Returns:
            ScoringResult with the score table and diagnostics

        Raises:
            ConfigurationError: Invalid signatures or options
            DataShapeError: Inconsistent matrix shape or names
            ChunkExecutionError: A chunk failed during scoring
        """
        start_time = time.time()
        cfg = self.config

        # Validate everything before dispatching any chunk
        data = coerce_expression_matrix(
            matrix,
            feature_names=feature_names,
            cell_names=cell_names,
            orientation=cfg.orientation,
            layer=layer,
        )
        resolved = self._prepare(signatures, data.feature_names)

        self.logger.info(
            "Scoring %d signatures on %d cells x %d features (max_rank=%d)",
            len(resolved), data.n_cells, data.n_features, cfg.max_rank
        )

        scores, below_cutoff, n_chunks = run_chunks(
            data.matrix,
            resolved,
            max_rank=cfg.max_rank,
            chunk_size=cfg.chunk_size,
            n_workers=cfg.n_workers,
            negative_weight=cfg.negative_weight,
            logger=self.logger,
        )

        result = self._build_result(scores, below_cutoff, resolved, data.cell_names, n_chunks)
        result.execution_time_seconds = time.time() - start_time
        self.logger.info(
            "Scoring complete: %d cells x %d signatures in %.2f sec",
            result.n_cells, len(resolved), result.execution_time_seconds
        )
        return result

    def compute_ranks(
        self,
        matrix: Any,
        feature_names: Optional[Sequence[str]] = None,
        cell_names: Optional[Sequence[str]] = None,
        layer: Optional[str] = None,
    ) -> RankedDataset:
        """Rank a full dataset once for scoring several signature batches."""
        cfg = self.config
        data = coerce_expression_matrix(
            matrix,
            feature_names=feature_names,
            cell_names=cell_names,
            orientation=cfg.orientation,
            layer=layer,
        )
        ranks = rank_chunks(
            data.matrix,
            max_rank=cfg.max_rank,
            chunk_size=cfg.chunk_size,
            n_workers=cfg.n_workers,
            logger=self.logger,
        )
        return RankedDataset(ranks=ranks, feature_names=data.feature_names, cell_names=data.cell_names)

    def score_from_ranks(self, ranked: RankedDataset, signatures: SignatureInput) -> ScoringResult:
        """Score signatures on precomputed ranks.

        The rank cutoff stored in the ranks is used, not config.max_rank.
        """
        start_time = time.time()
        resolved = self._prepare(signatures, ranked.feature_names)
        scores, below_cutoff = score_signatures(
            ranked.ranks, resolved, negative_weight=self.config.negative_weight
        )
        result = self._build_result(scores, below_cutoff, resolved, ranked.cell_names, n_chunks=1)
        result.execution_time_seconds = time.time() - start_time
        return result

    def _build_result(
        self,
        scores: np.ndarray,
        below_cutoff: np.ndarray,
        resolved: Sequence[ResolvedSignature],
        cell_names: pd.Index,
        n_chunks: int,
    ) -> ScoringResult:
        columns = [f"{sig.name}{self.config.score_suffix}" for sig in resolved]
        table = pd.DataFrame(scores, index=cell_names, columns=columns)

        return ScoringResult(
            scores=table,
            missing_features={sig.name: list(sig.missing) for sig in resolved},
            below_cutoff={sig.name: int(n) for sig, n in zip(resolved, below_cutoff)},
            empty_signatures=[sig.name for sig in resolved if sig.is_empty],
            n_chunks=n_chunks,
            config=self.config,
        )


def score_cells(
    matrix: Any,
    signatures: SignatureInput,
    feature_names: Optional[Sequence[str]] = None,
    cell_names: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
    **options: Any,
) -> ScoringResult:
    """Functional entry point: score signatures with keyword options.

    Options are the ScoringConfig fields (max_rank, chunk_size, n_workers,
    negative_weight, score_suffix, orientation). Unknown options raise
    ConfigurationError.
    """
    config = ScoringConfig.from_dict(options)
    return ScoringEngine(config, logger=logger).run(
        matrix, signatures, feature_names=feature_names, cell_names=cell_names
    )
