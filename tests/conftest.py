"""Pytest configuration and shared fixtures for sigscore tests."""

import sys
from pathlib import Path

import pytest
import numpy as np
import pandas as pd

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Import mock data generators
from tests.fixtures import (
    create_minimal_expression_matrix,
    create_sparse_counts,
    create_program_signatures,
    create_embedding,
    create_square_embedding,
    create_mock_adata,
)


# ============================================================================
# Expression Fixtures
# ============================================================================


@pytest.fixture
def minimal_matrix() -> pd.DataFrame:
    """3 cells x 4 features (cellA, cellB, cellC / f1..f4)."""
    return create_minimal_expression_matrix()


@pytest.fixture
def sparse_counts():
    """Sparse 200 x 60 counts with three marker programs."""
    return create_sparse_counts(n_cells=200, n_features=60, n_programs=3)


@pytest.fixture
def program_signatures() -> dict:
    """Signatures for the three marker programs of sparse_counts."""
    return create_program_signatures(n_programs=3)


@pytest.fixture
def mock_adata():
    """Mock AnnData with sparse X, a 'counts' layer and obsm['X_pca']."""
    return create_mock_adata()


# ============================================================================
# Embedding Fixtures
# ============================================================================


@pytest.fixture
def square_embedding() -> np.ndarray:
    """Unit square corners."""
    return create_square_embedding()


@pytest.fixture
def rectangle_embedding() -> np.ndarray:
    """2 x 1 rectangle corners: short sides have length 1, long sides 2."""
    return create_square_embedding(width=2.0, height=1.0)


@pytest.fixture
def random_embedding() -> np.ndarray:
    """200 cells in 5 dimensions."""
    return create_embedding(n_cells=200, n_dims=5)


# ============================================================================
# File Fixtures
# ============================================================================


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def signature_yaml(tmp_path) -> Path:
    """Signature file in token-list format."""
    import yaml

    signatures = {
        "Program_0": ["Gene_0", "Gene_1", "Gene_2", "Gene_3", "Gene_4"],
        "Program_1": {"positive": ["Gene_5", "Gene_6", "Gene_7"], "negative": ["Gene_0"]},
        "Mixed": ["Gene_10", "Gene_11", "Gene_0-"],
    }

    path = tmp_path / "signatures.yaml"
    with open(path, "w") as f:
        yaml.dump(signatures, f)

    return path


@pytest.fixture
def sample_config(tmp_path) -> Path:
    """Configuration file with scoring and smoothing sections."""
    import yaml

    config = {
        "scoring": {
            "max_rank": 20,
            "chunk_size": 50,
            "negative_weight": 0.5,
        },
        "smoothing": {
            "k": 5,
            "kernel": "uniform",
        },
    }

    path = tmp_path / "sigscore.yaml"
    with open(path, "w") as f:
        yaml.dump(config, f)

    return path
