"""Command-line interface for sigscore.

Provides the ``score`` and ``smooth`` commands.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from sigscore import __version__
from sigscore.exceptions import SigscoreError


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Setup logging for CLI commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger("sigscore")


def _run_logger(ctx: click.Context, log_file: Optional[str]) -> logging.Logger:
    """Console logger, or a timestamped file logger when --log-file is given."""
    if not log_file:
        return ctx.obj["logger"]

    from sigscore.io import get_logger

    level = logging.DEBUG if ctx.obj["debug"] else logging.INFO
    logger, actual_path = get_logger(log_file, level=level)
    click.echo(f"Logging to: {actual_path}")
    return logger


def _overrides(**options: Any) -> Dict[str, Any]:
    """Keep only the options given on the command line."""
    return {key: value for key, value in options.items() if value is not None}


@click.group()
@click.version_option(version=__version__, prog_name="sigscore")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """sigscore: rank-based signature scoring for single-cell data.

    Examples:

        # Score signatures on a cells x genes table
        sigscore score --matrix counts.csv --signatures markers.yaml --out scores.csv

        # Score an AnnData layer with 4 workers
        sigscore score --matrix data.h5ad --layer counts --signatures markers.yaml \\
            --n-workers 4 --out scores.csv

        # Smooth scores over a PCA embedding
        sigscore smooth --values scores.csv --embedding data.h5ad --obsm-key X_pca \\
            --k 10 --out smoothed.csv
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["logger"] = setup_logging(verbose, debug)


@cli.command()
@click.option("--matrix", "-m", "matrix_path", required=True, type=click.Path(exists=True),
              help="Expression matrix: CSV/TSV (first column = cell names) or .h5ad")
@click.option("--signatures", "-s", "signatures_path", required=True, type=click.Path(exists=True),
              help="Signature file (YAML or JSON)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output score table (CSV/TSV)")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Configuration file (YAML, 'scoring' section)")
@click.option("--layer", help="AnnData layer to score instead of X")
@click.option("--max-rank", type=int, help="Rank cutoff per cell [1500]")
@click.option("--chunk-size", type=int, help="Cells per chunk [1000]")
@click.option("--n-workers", type=int, help="Parallel workers, -1 = all cores [1]")
@click.option("--negative-weight", type=float, help="Weight of negative markers [1.0]")
@click.option("--score-suffix", help="Suffix appended to score column names")
@click.option("--orientation", type=click.Choice(["cells_by_features", "features_by_cells"]),
              help="Matrix orientation [cells_by_features]")
@click.option("--log-file", type=click.Path(), help="Write a timestamped log file")
@click.pass_context
def score(
    ctx: click.Context,
    matrix_path: str,
    signatures_path: str,
    output_path: str,
    config: Optional[str],
    layer: Optional[str],
    max_rank: Optional[int],
    chunk_size: Optional[int],
    n_workers: Optional[int],
    negative_weight: Optional[float],
    score_suffix: Optional[str],
    orientation: Optional[str],
    log_file: Optional[str],
) -> None:
    """Score every cell against every signature.

    Writes the score table and a YAML run record (<out>_run.yaml) with the
    configuration and diagnostics.
    """
    logger = _run_logger(ctx, log_file)

    # Import here to avoid slow startup
    from sigscore.core.scoring import ScoringConfig, ScoringEngine, load_signatures
    from sigscore.io import load_matrix, write_run_record, write_table

    try:
        options = ScoringConfig.from_yaml(Path(config)).to_dict() if config else {}
        options.update(_overrides(
            max_rank=max_rank,
            chunk_size=chunk_size,
            n_workers=n_workers,
            negative_weight=negative_weight,
            score_suffix=score_suffix,
            orientation=orientation,
        ))
        cfg = ScoringConfig.from_dict(options)

        signatures = load_signatures(signatures_path, logger=logger)
        matrix = load_matrix(matrix_path)
        result = ScoringEngine(cfg, logger=logger).run(matrix, signatures, layer=layer)
    except SigscoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    out = write_table(result.scores, output_path)
    write_run_record(
        out, result, inputs={"matrix": matrix_path, "signatures": signatures_path}, logger=logger
    )

    for name, missing in result.missing_features.items():
        if missing:
            click.echo(f"Warning: {name}: {len(missing)} feature(s) not found", err=True)
    click.echo(f"Scored {result.n_cells} cells x {result.scores.shape[1]} signatures")
    click.echo(f"Output saved to: {out}")


@cli.command()
@click.option("--values", "values_path", required=True, type=click.Path(exists=True),
              help="Per-cell values to smooth: CSV/TSV (first column = cell names)")
@click.option("--embedding", "-e", "embedding_path", required=True, type=click.Path(exists=True),
              help="Embedding: CSV/TSV (first column = cell names) or .h5ad")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output table of smoothed values (CSV/TSV)")
@click.option("--obsm-key", help="obsm key holding the embedding in an .h5ad file (e.g. X_pca)")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Configuration file (YAML, 'smoothing' section)")
@click.option("--columns", multiple=True, help="Columns to smooth (default: all)")
@click.option("--k", "k", type=int, help="Neighbors per cell [10]")
@click.option("--kernel", type=click.Choice(["gaussian", "inverse_distance", "decay", "uniform"]),
              help="Neighbor weighting kernel [gaussian]")
@click.option("--embedding-dims", type=int, help="Leading embedding dimensions to use [all]")
@click.option("--decay", type=float, help="Decay rate for the decay kernel [0.1]")
@click.option("--method", type=click.Choice(["exact", "tree"]), help="Neighbor search [exact]")
@click.option("--suffix", help="Suffix of smoothed column names [_kNN]")
@click.option("--up-only", is_flag=True, help="Never lower a value when smoothing")
@click.option("--log-file", type=click.Path(), help="Write a timestamped log file")
@click.pass_context
def smooth(
    ctx: click.Context,
    values_path: str,
    embedding_path: str,
    output_path: str,
    obsm_key: Optional[str],
    config: Optional[str],
    columns: Tuple[str, ...],
    k: Optional[int],
    kernel: Optional[str],
    embedding_dims: Optional[int],
    decay: Optional[float],
    method: Optional[str],
    suffix: Optional[str],
    up_only: bool,
    log_file: Optional[str],
) -> None:
    """Smooth per-cell values over a kNN graph of an embedding.

    Rows of the values and the embedding are matched by cell name when both
    tables carry the same names, otherwise by position.
    """
    logger = _run_logger(ctx, log_file)

    from sigscore.core.smoothing import SmoothingConfig, SmoothingEngine
    from sigscore.io import load_embedding, read_table, write_run_record, write_table

    try:
        options = SmoothingConfig.from_yaml(Path(config)).to_dict() if config else {}
        options.update(_overrides(
            k=k,
            kernel=kernel,
            embedding_dims=embedding_dims,
            decay=decay,
            method=method,
            suffix=suffix,
            up_only=up_only or None,
        ))
        cfg = SmoothingConfig.from_dict(options)

        values = read_table(values_path)
        if columns:
            unknown = [c for c in columns if c not in values.columns]
            if unknown:
                raise click.BadParameter(f"columns not found in values: {unknown}", param_hint="--columns")
            values = values[list(columns)]

        embedding = load_embedding(embedding_path, obsm_key=obsm_key)
        if set(values.index) == set(embedding.index) and embedding.index.is_unique:
            embedding = embedding.loc[values.index]
        else:
            logger.info("Cell names differ between values and embedding; matching rows by position")

        result = SmoothingEngine(cfg, logger=logger).run(values, embedding=embedding)
    except SigscoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    out = write_table(result.smoothed, output_path)
    write_run_record(
        out, result, inputs={"values": values_path, "embedding": embedding_path}, logger=logger
    )

    click.echo(f"Smoothed {result.smoothed.shape[1]} column(s) over {result.graph.n_cells} cells")
    click.echo(f"Output saved to: {out}")


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
