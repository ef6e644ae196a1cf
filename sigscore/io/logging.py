"""Run logs and run records for sigscore commands.

A run can log to a timestamped file; every run writes a YAML record next
to its output table (``scores.csv`` -> ``scores_run.yaml``) holding the
inputs, the configuration and the result diagnostics.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

PathLike = Union[str, Path]

PACKAGE_LOGGER = "sigscore"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_timestamped_log_path(log_path: PathLike) -> Path:
    """Insert a timestamp before the suffix (score.log -> score_20251209_080530.log)."""
    log_path = Path(log_path)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix or '.log'}"


def get_logger(
    log_path: PathLike,
    level: int = logging.INFO,
    timestamped: bool = True,
    name: str = PACKAGE_LOGGER,
) -> Tuple[logging.Logger, Path]:
    """Route a sigscore logger (and its module children) to a log file.

    Module loggers such as ``sigscore.core.smoothing.neighbors`` propagate
    to the package logger, so their messages land in the same file as the
    engine's. Handlers from an earlier call are closed and replaced.

    Parameters
    ----------
    log_path : PathLike
        Base path for the log file.
    level : int
        Logging level (default: INFO).
    timestamped : bool
        If True, add a timestamp to the filename so earlier runs are kept.
        If False, an existing file at log_path is replaced.
    name : str
        Logger to attach the file to (default: the package logger).

    Returns
    -------
    Tuple[logging.Logger, Path]
        (logger, actual_log_path)
    """
    log_path = Path(log_path)
    if timestamped:
        actual_log_path = get_timestamped_log_path(log_path)
    else:
        actual_log_path = log_path
        actual_log_path.unlink(missing_ok=True)
    actual_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler = logging.FileHandler(actual_log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    return logger, actual_log_path


def log_yaml(log_path: PathLike, record: Mapping[str, Any]) -> Path:
    """Append record as one ``---``-terminated YAML document.

    A file holding several documents reads back with ``yaml.safe_load_all``.
    """
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    yaml_text = yaml.safe_dump(dict(record), sort_keys=False).rstrip("\n")
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"{yaml_text}\n---\n")
    return path


def run_record_path(output_path: PathLike) -> Path:
    """Path of the run record written beside an output table."""
    output_path = Path(output_path)
    return output_path.with_name(f"{output_path.stem}_run.yaml")


def write_run_record(
    output_path: PathLike,
    result: Any,
    inputs: Optional[Mapping[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> Path:
    """Write the run record of a ScoringResult or SmoothingResult.

    The record is ``result.summary_dict()`` preceded by the package version
    and the input paths.
    """
    from sigscore import __version__

    record: Dict[str, Any] = {
        "sigscore_version": __version__,
        "inputs": {key: str(value) for key, value in (inputs or {}).items()},
    }
    record.update(result.summary_dict())

    path = log_yaml(run_record_path(output_path), record)
    if logger is not None:
        logger.info("Run record written to %s", path)
    return path
