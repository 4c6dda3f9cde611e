"""CLI entry point for the vidroi client."""

import json
import logging
from pathlib import Path

import typer

app = typer.Typer(name="vidroi", help="Draw regions over a video and submit them for analysis.")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Logging level (default from config)"),
):
    """Configure logging for every command."""
    from vidroi.config import settings

    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def probe(video_path: Path = typer.Argument(..., help="Path to a video file")):
    """Print the intrinsic frame size of a video."""
    from vidroi.source import probe_video_size

    size = probe_video_size(video_path)
    if size is None:
        typer.echo(f"[probe] {video_path.name}: dimensions unknown")
        raise typer.Exit(1)
    typer.echo(f"[probe] {video_path.name}: {size}")


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", help="HTTP port (default from config)"),
):
    """Launch the browser drawing UI."""
    from vidroi.config import settings
    from vidroi.web.app import create_app

    flask_app = create_app()
    flask_app.run(host=host or settings.web_host, port=port or settings.web_port, threaded=True)


@app.command()
def draw(video_path: Path = typer.Argument(..., help="Path to a video file")):
    """Draw regions in a desktop window, submit, and play the result."""
    from vidroi.desktop import run_desktop

    try:
        outcome = run_desktop(video_path)
    except RuntimeError as e:
        typer.echo(f"[draw] {e}")
        raise typer.Exit(1)
    if outcome.result_url:
        typer.echo(f"[draw] Processed video → {outcome.result_url}")
    elif outcome.error:
        typer.echo(f"[draw] {outcome.error}")
        raise typer.Exit(1)


@app.command()
def submit(
    video_path: Path = typer.Argument(..., help="Path to a video file"),
    polygons: str = typer.Option(
        ..., "--polygons", help="JSON list of polygons of [x, y] pairs, in canvas pixels",
    ),
    canvas: str = typer.Option(None, "--canvas", help="Canvas size WxH the polygons were drawn on"),
    video_size: str = typer.Option(None, "--video-size", help="Override intrinsic video size WxH"),
    service_url: str = typer.Option(None, "--service-url", help="Analysis service base URL"),
):
    """Submit a video and canvas-space polygons without a UI."""
    from vidroi.config import settings
    from vidroi.errors import DimensionUnavailable, SubmissionError, ValidationFailed
    from vidroi.geometry import Size, parse_size, polygons_from_pairs
    from vidroi.source import VideoSource
    from vidroi.submission import SubmissionPipeline

    if not video_path.exists():
        typer.echo(f"[submit] Video not found: {video_path}")
        raise typer.Exit(1)

    try:
        polys = polygons_from_pairs(json.loads(polygons))
        canvas_size = (
            parse_size(canvas) if canvas
            else Size(settings.default_canvas_width, settings.default_canvas_height)
        )
        override = parse_size(video_size) if video_size else None
    except ValueError as e:
        typer.echo(f"[submit] Invalid argument: {e}")
        raise typer.Exit(2)

    pipeline = SubmissionPipeline(base_url=service_url)
    with VideoSource() as source:
        source.select(video_path)
        vsize = override or source.intrinsic_size() or Size(0, 0)
        try:
            result = pipeline.submit(source, polys, canvas_size, vsize)
        except ValidationFailed as e:
            typer.echo(f"[submit] {e}")
            raise typer.Exit(2)
        except DimensionUnavailable as e:
            typer.echo(f"[submit] Not ready: {e}")
            raise typer.Exit(2)
        except SubmissionError as e:
            typer.echo(f"[submit] Failed: {e}")
            raise typer.Exit(1)

    url = pipeline.result_url(result)
    if not pipeline.check_retrievable(url):
        typer.echo("[submit] Warning: processed video not retrievable yet")
    typer.echo(f"[submit] {result.resource_id} → {url}")


if __name__ == "__main__":
    app()
