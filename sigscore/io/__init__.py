"""I/O utilities for sigscore.

Provides run logging, run records and table/AnnData loaders.
"""

from .logging import (
    get_logger,
    get_timestamped_log_path,
    log_yaml,
    run_record_path,
    write_run_record,
)
from .tables import load_embedding, load_matrix, read_table, write_table

__all__ = [
    # Logging
    "get_logger",
    "get_timestamped_log_path",
    "log_yaml",
    "run_record_path",
    "write_run_record",
    # Tables
    "load_embedding",
    "load_matrix",
    "read_table",
    "write_table",
]
