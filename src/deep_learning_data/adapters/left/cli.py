from __future__ import annotations

import logging
from pathlib import Path

import inject
import numpy as np
import typer

from deep_learning_data.adapters.left.inject_config import configure_injections
from deep_learning_data.adapters.right.data_sources.npz import NpzDataSource
from deep_learning_data.core.domain.commands.data import DataConfig, GetDataPathCommand
from deep_learning_data.core.domain.entities.preprocess import Binarize, MinMaxScale, Standardize
from deep_learning_data.core.domain.errors.data import DataError
from deep_learning_data.core.use_cases.get_data_path import GetDataPathUseCase

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log preprocessing and download steps"),
) -> None:
    """Fetch data files and inspect preprocessed data sources."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def fetch(
    name: str = typer.Option(..., help="Data source name, e.g. mnist. Files go to DATA_DIR/NAME/"),
    url: str = typer.Option(..., help="Where to download the file from if it is not found locally"),
    data_dir: str = typer.Option("", help="Data root (default: $DEEP_LEARNING_DATA_DIR or ~/.cache/deep_learning_data)"),
    decompress_file: str = typer.Option("", help="Decompress the download unless DATA_DIR/NAME/<this> exists"),
) -> None:
    """Check locally for a data file, download/decompress it if missing, print its path."""

    config = DataConfig.from_env()
    if data_dir:
        config = DataConfig(
            data_dir=Path(data_dir).expanduser(),
            download_timeout=config.download_timeout,
            chunk_size=config.chunk_size,
        )
    configure_injections(data_config=config)
    use_case = inject.instance(GetDataPathUseCase)

    try:
        path = use_case.run(
            GetDataPathCommand(
                name=name,
                url=url,
                data_dir=config.data_dir,
                decompress_file=decompress_file or None,
            )
        )
    except DataError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(str(path))


@app.command()
def describe(
    npz_path: str = typer.Option(..., help="Path to .npz with x_train/y_train, x_valid/y_valid, x_test/y_test"),
    preprocess: str = typer.Option("none", help="Input preprocessing: none | standardize | minmax | binarize"),
    threshold: float = typer.Option(0.5, help="Threshold when --preprocess binarize"),
    image_axes: str = typer.Option("", help="Axis layout of the inputs, e.g. bchw (default: inferred)"),
) -> None:
    """Load an .npz data source, fit preprocessing on train, print per-set summaries."""

    preprocess = preprocess.lower().strip()
    if preprocess == "none":
        input_preprocess = None
    elif preprocess == "standardize":
        input_preprocess = Standardize()
    elif preprocess == "minmax":
        input_preprocess = MinMaxScale(0.0, 1.0)
    elif preprocess == "binarize":
        input_preprocess = Binarize(threshold)
    else:
        raise typer.BadParameter("preprocess must be one of: none, standardize, minmax, binarize")

    try:
        source = NpzDataSource(path=npz_path, input_preprocess=input_preprocess, image_axes=image_axes or None)
    except DataError as e:
        raise typer.BadParameter(str(e)) from e

    typer.echo(f"Data source: {source.name()}")
    typer.echo(f"Info: {source.info()}")
    if source.image_axes():
        typer.echo(f"Image size: {source.image_size()} ({source.image_axes()})")
    else:
        typer.echo(f"Feature size: {source.feature_size()}")

    for role, dataset in source.sets().items():
        x = dataset.inputs().data()
        kind = "supervised" if dataset.is_supervised else "unsupervised"
        typer.echo(
            f"{role}: n={dataset.sample_count()} ({kind}) "
            f"mean={float(np.mean(x)):.4f} std={float(np.std(x)):.4f} "
            f"min={float(np.min(x)):.4f} max={float(np.max(x)):.4f}"
        )


if __name__ == "__main__":
    app()
