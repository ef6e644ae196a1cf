"""Rank-based signature scoring.

Scores every cell against one or more feature signatures with a
Mann-Whitney U statistic computed on per-cell feature ranks. Cells are
processed in contiguous chunks, optionally in parallel.

Example Usage
-------------
>>> from sigscore.core.scoring import ScoringEngine, ScoringConfig
>>> engine = ScoringEngine(ScoringConfig(max_rank=1500, n_workers=4))
>>> result = engine.run(matrix, {"Tcell": ["CD3D", "CD3E", "CD19-"]},
...                     feature_names=genes)
>>> result.scores.head()
"""

# Configuration
from .config import ScoringConfig, VALID_ORIENTATIONS

# Signatures
from .signatures import (
    Sign,
    SignatureFeature,
    Signature,
    ResolvedSignature,
    parse_feature_token,
    parse_signature,
    parse_signatures,
    load_signatures,
    resolve_signatures,
)

# Ranking and scoring
from .ranking import RankMatrix, rank_matrix
from .scoring import u_statistic, score_signature, score_signatures, count_below_cutoff

# Chunked execution
from .parallel import (
    ChunkWorkItem,
    ChunkResult,
    plan_chunks,
    run_chunks,
    rank_chunks,
)

# Engine
from .engine import ScoringEngine, ScoringResult, RankedDataset, score_cells

__all__ = [
    # Config
    "ScoringConfig",
    "VALID_ORIENTATIONS",
    # Signatures
    "Sign",
    "SignatureFeature",
    "Signature",
    "ResolvedSignature",
    "parse_feature_token",
    "parse_signature",
    "parse_signatures",
    "load_signatures",
    "resolve_signatures",
    # Ranking / scoring
    "RankMatrix",
    "rank_matrix",
    "u_statistic",
    "score_signature",
    "score_signatures",
    "count_below_cutoff",
    # Chunked execution
    "ChunkWorkItem",
    "ChunkResult",
    "plan_chunks",
    "run_chunks",
    "rank_chunks",
    # Engine
    "ScoringEngine",
    "ScoringResult",
    "RankedDataset",
    "score_cells",
]
