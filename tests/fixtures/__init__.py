"""Test fixtures for sigscore.

Provides mock data generators and test utilities.
"""

from .mock_data import (
    create_minimal_expression_matrix,
    create_sparse_counts,
    create_program_signatures,
    create_embedding,
    create_square_embedding,
    create_mock_adata,
)

__all__ = [
    "create_minimal_expression_matrix",
    "create_sparse_counts",
    "create_program_signatures",
    "create_embedding",
    "create_square_embedding",
    "create_mock_adata",
]
