"""Configuration for neighbor-graph smoothing.

Provides the SmoothingConfig dataclass controlling:
- Neighborhood size and embedding columns (k, embedding_dims)
- Neighbor search strategy (method)
- Distance-to-weight kernel (kernel, decay)
- Output naming and monotone smoothing (suffix, up_only)
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional
import logging

import yaml

from ...exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_KERNELS = ("gaussian", "inverse_distance", "decay", "uniform")
VALID_METHODS = ("exact", "tree")


@dataclass
class SmoothingConfig:
    """Configuration for kNN smoothing.

    Attributes
    ----------
    k : int
        Number of neighbors per cell (self excluded). Must be smaller than
        the number of cells.
    embedding_dims : int, optional
        Leading embedding columns used for distances (None = all).
    kernel : str
        Weighting of neighbors: "gaussian", "inverse_distance", "decay" or
        "uniform".
    decay : float
        Per-position weight decay for the "decay" kernel, in (0, 1).
    method : str
        "exact" (chunked brute force) or "tree" (scikit-learn NearestNeighbors).
    up_only : bool
        Keep max(original, smoothed) so smoothing never lowers a value.
    suffix : str
        Suffix appended to column names of smoothed values.
    """

    k: int = 10
    embedding_dims: Optional[int] = None
    kernel: str = "gaussian"
    decay: float = 0.1
    method: str = "exact"
    up_only: bool = False
    suffix: str = "_kNN"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.k < 1:
            raise ConfigurationError(f"k must be >= 1, got {self.k}")
        if self.embedding_dims is not None and self.embedding_dims < 1:
            raise ConfigurationError(
                f"embedding_dims must be positive, got {self.embedding_dims}"
            )
        if self.kernel not in VALID_KERNELS:
            raise ConfigurationError(
                f"kernel must be one of {VALID_KERNELS}, got '{self.kernel}'"
            )
        if not 0 < self.decay < 1:
            raise ConfigurationError(f"decay must be in (0, 1), got {self.decay}")
        if self.method not in VALID_METHODS:
            raise ConfigurationError(
                f"method must be one of {VALID_METHODS}, got '{self.method}'"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SmoothingConfig":
        """Create SmoothingConfig from dictionary.

        Raises
        ------
        ConfigurationError
            If the dictionary contains keys that are not smoothing options.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown smoothing option(s): {unknown}. Valid options: {sorted(known)}"
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "SmoothingConfig":
        """Load configuration from the 'smoothing' section of a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        logger.info("Loaded smoothing config from %s", path)
        if "scoring" in data or "smoothing" in data:
            data = data.get("smoothing") or {}
        return cls.from_dict(data)

    @classmethod
    def default(cls) -> "SmoothingConfig":
        """Return default configuration."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "k": self.k,
            "embedding_dims": self.embedding_dims,
            "kernel": self.kernel,
            "decay": self.decay,
            "method": self.method,
            "up_only": self.up_only,
            "suffix": self.suffix,
        }
