"""Combined configuration file loading.

A sigscore YAML file holds an optional ``scoring:`` section and an
optional ``smoothing:`` section::

    scoring:
      max_rank: 1500
      n_workers: 4
    smoothing:
      k: 15
      kernel: gaussian
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple, Union

import yaml

from .core.scoring.config import ScoringConfig
from .core.smoothing.config import SmoothingConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SECTIONS = ("scoring", "smoothing")


def load_config(path: Union[str, Path]) -> Tuple[ScoringConfig, SmoothingConfig]:
    """Load scoring and smoothing configuration from one YAML file.

    Missing sections fall back to defaults. Unknown top-level sections or
    options raise ConfigurationError.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        raise ConfigurationError(f"Unknown config section(s): {unknown}. Valid sections: {list(SECTIONS)}")

    scoring = ScoringConfig.from_dict(data.get("scoring") or {})
    smoothing = SmoothingConfig.from_dict(data.get("smoothing") or {})
    logger.info("Loaded config from %s", path)
    return scoring, smoothing
