"""Unit tests for I/O utilities."""

import logging

import numpy as np
import pandas as pd
import pytest
import yaml

from sigscore import __version__
from sigscore.core.smoothing import SmoothingConfig, SmoothingEngine
from sigscore.exceptions import ConfigurationError
from sigscore.io import (
    get_logger,
    get_timestamped_log_path,
    load_embedding,
    load_matrix,
    log_yaml,
    read_table,
    run_record_path,
    write_run_record,
    write_table,
)


@pytest.fixture
def file_logger(tmp_output_dir):
    """File logger on a private name, detached again after the test."""
    logger, path = get_logger(tmp_output_dir / "run.log", timestamped=False, name="tests.io_run")
    yield logger, path
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


class TestLogging:
    """Tests for run logs and run records."""

    def test_timestamped_path(self, tmp_path):
        """A timestamp is inserted before the suffix."""
        path = get_timestamped_log_path(tmp_path / "score.log")
        assert path.parent == tmp_path
        assert path.name.startswith("score_")
        assert path.suffix == ".log"

    def test_get_logger_writes_file(self, file_logger):
        """Messages go to the returned log file with the logger name."""
        logger, path = file_logger
        logger.info("ranked %d cells", 12)
        for handler in logger.handlers:
            handler.flush()
        assert "| INFO | tests.io_run | ranked 12 cells" in path.read_text()

    def test_child_loggers_reach_file(self, file_logger):
        """Module loggers below the configured name share its file."""
        logger, path = file_logger
        logging.getLogger("tests.io_run.neighbors").info("built 5-NN graph")
        for handler in logger.handlers:
            handler.flush()
        assert "tests.io_run.neighbors | built 5-NN graph" in path.read_text()

    def test_log_yaml_documents(self, tmp_path):
        """Each record is a separate YAML document."""
        path = tmp_path / "record.yaml"
        log_yaml(path, {"n_cells": 3})
        log_yaml(path, {"n_cells": 4})
        docs = [d for d in yaml.safe_load_all(path.read_text()) if d is not None]
        assert docs == [{"n_cells": 3}, {"n_cells": 4}]

    def test_run_record_path(self, tmp_path):
        """The record sits beside the output table."""
        assert run_record_path(tmp_path / "scores.csv") == tmp_path / "scores_run.yaml"

    def test_write_run_record(self, tmp_path, square_embedding):
        """Records hold the version, the inputs and the result summary."""
        result = SmoothingEngine(SmoothingConfig(k=2, kernel="uniform")).run(
            np.arange(4.0), embedding=square_embedding
        )
        path = write_run_record(
            tmp_path / "smoothed.csv", result, inputs={"embedding": tmp_path / "emb.csv"}
        )
        record = next(yaml.safe_load_all(path.read_text()))
        assert record["sigscore_version"] == __version__
        assert record["inputs"] == {"embedding": str(tmp_path / "emb.csv")}
        assert record["n_cells"] == 4
        assert record["config"]["kernel"] == "uniform"


class TestTables:
    """Tests for table loading and writing."""

    def test_csv_round_trip(self, tmp_path, minimal_matrix):
        """Written tables read back with names intact."""
        path = write_table(minimal_matrix, tmp_path / "out" / "matrix.csv")
        df = read_table(path)
        assert list(df.index) == ["cellA", "cellB", "cellC"]
        assert list(df.columns) == ["f1", "f2", "f3", "f4"]
        np.testing.assert_array_equal(df.to_numpy(), minimal_matrix.to_numpy())

    def test_tsv(self, tmp_path, minimal_matrix):
        """.tsv files are tab-separated."""
        path = write_table(minimal_matrix, tmp_path / "matrix.tsv")
        assert "\t" in path.read_text().splitlines()[0]
        assert read_table(path).shape == (3, 4)

    def test_missing_table(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_table(tmp_path / "absent.csv")

    def test_load_matrix_csv(self, tmp_path, minimal_matrix):
        """Text matrices load as DataFrames."""
        path = write_table(minimal_matrix, tmp_path / "matrix.csv")
        assert isinstance(load_matrix(path), pd.DataFrame)

    def test_load_matrix_h5ad(self, tmp_path, mock_adata):
        """.h5ad files load as AnnData."""
        path = tmp_path / "data.h5ad"
        mock_adata.write_h5ad(path)
        adata = load_matrix(path)
        assert adata.shape == mock_adata.shape

    def test_load_embedding_h5ad(self, tmp_path, mock_adata):
        """Embeddings are read from obsm."""
        path = tmp_path / "data.h5ad"
        mock_adata.write_h5ad(path)
        coords = load_embedding(path, obsm_key="X_pca")
        assert coords.shape == (mock_adata.n_obs, 10)
        assert list(coords.index) == list(mock_adata.obs_names)

    def test_load_embedding_h5ad_requires_key(self, tmp_path, mock_adata):
        """An obsm key is required for .h5ad embeddings."""
        path = tmp_path / "data.h5ad"
        mock_adata.write_h5ad(path)
        with pytest.raises(ConfigurationError, match="obsm key"):
            load_embedding(path)
        with pytest.raises(ConfigurationError, match="not found"):
            load_embedding(path, obsm_key="X_umap")
