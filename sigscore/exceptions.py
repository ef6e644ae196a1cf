"""Error and warning types raised by sigscore.

Configuration and shape problems are detected before any chunk work is
dispatched. Missing features are recoverable and reported as warnings.
"""

from __future__ import annotations


class SigscoreError(Exception):
    """Base class for all sigscore errors."""


class ConfigurationError(SigscoreError, ValueError):
    """Invalid option value, unknown option, or unusable signature definition."""


class DataShapeError(SigscoreError, ValueError):
    """Input matrix, feature names, embedding or values have inconsistent shapes."""


class ChunkExecutionError(SigscoreError, RuntimeError):
    """A worker failed while scoring one chunk of cells.

    Attributes
    ----------
    chunk_index : int
        Position of the failing chunk in the chunk sequence.
    detail : str
        Type and message of the underlying error.
    """

    def __init__(self, chunk_index: int, detail: str):
        # args must rebuild the instance when unpickled from a worker
        super().__init__(chunk_index, detail)
        self.chunk_index = chunk_index
        self.detail = detail

    def __str__(self) -> str:
        return f"Chunk {self.chunk_index} failed: {self.detail}"


class MissingFeatureWarning(UserWarning):
    """A signature references features absent from the expression matrix."""
