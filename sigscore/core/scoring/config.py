"""Configuration for signature scoring.

Provides the ScoringConfig dataclass controlling:
- Rank cutoff per cell (max_rank)
- Chunking and parallel execution (chunk_size, n_workers)
- Penalty strength of negative markers (negative_weight)
- Output column naming (score_suffix)
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict
import logging

import yaml

from ...exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_ORIENTATIONS = ("cells_by_features", "features_by_cells")


@dataclass
class ScoringConfig:
    """Configuration for rank-based signature scoring.

    Attributes
    ----------
    max_rank : int
        Features ranked below this position in a cell share the rank
        max_rank + 1. Lower values are faster but ignore weakly expressed
        markers.
    chunk_size : int
        Number of cells ranked and scored together by one worker.
    n_workers : int
        Parallel workers; 1 runs sequentially, -1 uses all cores.
    negative_weight : float
        Multiplier applied to the negative-marker statistic before it is
        subtracted from the positive statistic.
    score_suffix : str
        Suffix appended to signature names to form score column names.
    orientation : str
        "cells_by_features" (default) or "features_by_cells".
    """

    max_rank: int = 1500
    chunk_size: int = 1000
    n_workers: int = 1
    negative_weight: float = 1.0
    score_suffix: str = ""
    orientation: str = "cells_by_features"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.max_rank <= 0:
            raise ConfigurationError(f"max_rank must be positive, got {self.max_rank}")
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.n_workers == 0 or self.n_workers < -1:
            raise ConfigurationError(
                f"n_workers must be >= 1 or -1 (all cores), got {self.n_workers}"
            )
        if self.negative_weight < 0:
            raise ConfigurationError(
                f"negative_weight must be non-negative, got {self.negative_weight}"
            )
        if self.orientation not in VALID_ORIENTATIONS:
            raise ConfigurationError(
                f"orientation must be one of {VALID_ORIENTATIONS}, got '{self.orientation}'"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringConfig":
        """Create ScoringConfig from dictionary.

        Raises
        ------
        ConfigurationError
            If the dictionary contains keys that are not scoring options.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown scoring option(s): {unknown}. Valid options: {sorted(known)}"
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "ScoringConfig":
        """Load configuration from the 'scoring' section of a YAML file.

        A file without a 'scoring' section is read as a flat mapping of
        scoring options.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        logger.info("Loaded scoring config from %s", path)
        if "scoring" in data or "smoothing" in data:
            data = data.get("scoring") or {}
        return cls.from_dict(data)

    @classmethod
    def default(cls) -> "ScoringConfig":
        """Return default configuration."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "max_rank": self.max_rank,
            "chunk_size": self.chunk_size,
            "n_workers": self.n_workers,
            "negative_weight": self.negative_weight,
            "score_suffix": self.score_suffix,
            "orientation": self.orientation,
        }
