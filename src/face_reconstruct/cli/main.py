"""
Command-Line Interface
======================

Single responsibility: Provide a CLI for reconstruction exports.
"""

import click
from pathlib import Path
import sys
import torch

from face_reconstruct.core.blendshape_io import load_blendshapes
from face_reconstruct.core.exceptions import FaceReconstructError
from face_reconstruct.core.validator import validate_device
from face_reconstruct.pipeline import ExportConfig, load_calibrations, run_export_pipeline
from face_reconstruct.tracking import RecordedEngine
from face_reconstruct.utils.logging import PACKAGE_LOGGER, get_logger, setup_logger

logger = get_logger(__name__)


@click.command()
@click.argument('model')
@click.argument('frames', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '-m', '--model-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=Path('model'),
    show_default=True,
    help='Directory containing <MODEL>.bs and <MODEL>.obj'
)
@click.option(
    '-o', '--output',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Output directory (default: model directory)'
)
@click.option(
    '--calibration',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='JSON file with extra static-vertex calibrations'
)
@click.option(
    '--attempts',
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help='Face detection attempts before giving up'
)
@click.option(
    '--reference-model',
    default='shape_0',
    show_default=True,
    help='Model whose triangles keep their winding'
)
@click.option(
    '--strict-faces',
    is_flag=True,
    help='Fail on faces that are neither triangles nor quads'
)
@click.option(
    '--gpu/--cpu',
    default=False,
    help='Deform on GPU (default: CPU)'
)
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write a DEBUG session log to this file'
)
@click.option(
    '-q', '--quiet',
    is_flag=True,
    help='Suppress output'
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Logging level (default: INFO)'
)
def export(model, frames, model_dir, output, calibration, attempts, reference_model,
           strict_faces, gpu, log_file, quiet, log_level):
    """
    Reconstruct MODEL from recorded tracker output and write an OBJ.

    FRAMES is a JSON recording of tracker results; the first usable frame
    is exported to <MODEL>-output.obj.

    \b
    Examples:
        face-reconstruct export Man frame.json
        face-reconstruct export OldMan frame.json -m assets/model -o out/
        face-reconstruct export Child frame.json --calibration child.json
    """
    verbose = not quiet
    setup_logger(PACKAGE_LOGGER, verbose=verbose, log_level=log_level)

    try:
        calibrations = load_calibrations(calibration) if calibration else None
        config = ExportConfig(
            model_name=model,
            model_dir=model_dir,
            output_dir=output,
            device=validate_device('cuda' if gpu else 'cpu'),
            max_detection_attempts=attempts,
            reference_model=reference_model,
            strict_faces=strict_faces,
            verbose=verbose,
            log_level=log_level.upper(),
            log_file=log_file,
            **({'calibrations': calibrations} if calibrations is not None else {})
        )
    except FaceReconstructError as e:
        click.secho(f"\n✗ Configuration error: {e}", fg='red', bold=True)
        sys.exit(1)

    try:
        engine = RecordedEngine.from_json(frames)
        output_path = run_export_pipeline(config, engine)
        if verbose:
            click.secho(f"✓ Success! Mesh saved to: {output_path}", fg='green', bold=True)
    except KeyboardInterrupt:
        click.echo()
        click.secho("\n✗ Interrupted by user", fg='yellow')
        sys.exit(130)
    except FaceReconstructError as e:
        click.secho(f"✗ Error: {e}", fg='red', bold=True)
        if log_level.upper() == 'DEBUG':
            logger.exception("Export failed")
        sys.exit(1)


@click.command()
@click.argument('database', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(database):
    """
    Print the header and extents of a blendshape database.

    \b
    Examples:
        face-reconstruct inspect model/Man.bs
    """
    try:
        db = load_blendshapes(database)
    except FaceReconstructError as e:
        click.secho(f"✗ Error: {e}", fg='red', bold=True)
        sys.exit(1)

    click.echo(f"File: {database}")
    click.echo(f"Version: {db.version:g}")
    click.echo(f"Shapes: {db.shape_count} (base + {db.expression_count} expressions)")
    click.echo(f"Vertices: {db.vertex_count:,}")

    if db.vertex_count:
        lo = db.base_vertices.min(dim=0).values.tolist()
        hi = db.base_vertices.max(dim=0).values.tolist()
        click.echo(f"Base bounds: min={[round(v, 4) for v in lo]} max={[round(v, 4) for v in hi]}")

        if db.expression_count:
            magnitude = torch.linalg.vector_norm(db.delta_shapes, dim=2).amax(dim=1)
            click.echo(f"Largest delta per shape: max={magnitude.max().item():.4f}, "
                       f"mean={magnitude.mean().item():.4f}")


@click.group()
@click.version_option(version='1.0.0', prog_name='face-reconstruct')
def cli():
    """
    Face Reconstruct - rebuild posed face meshes from tracker output.

    \b
    Examples:
        # Export the first usable recorded frame onto the 'Man' model
        face-reconstruct export Man frame.json

        # Show what a blendshape database contains
        face-reconstruct inspect model/Man.bs

    \b
    For more help on a specific command:
        face-reconstruct export --help
        face-reconstruct inspect --help
    """
    pass


# Register commands
cli.add_command(export)
cli.add_command(inspect)


def main():
    """Entry point for console_scripts."""
    cli()


if __name__ == '__main__':
    main()
