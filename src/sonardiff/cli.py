"""Main CLI dispatcher for sonardiff."""

import asyncio
import base64
import logging
import mimetypes
import sys
from pathlib import Path

import click
from rich.logging import RichHandler
from rich.markup import escape

from sonardiff.core.csv_codec import export_filename, load_report, save_report
from sonardiff.core.errors import AnalysisError
from sonardiff.core.models import FullReport
from sonardiff.core.settings import clear_api_key, get_global_env_file, save_api_key, settings
from sonardiff.display.console import console
from sonardiff.display.formatters import display_analysis_cost, display_full_report
from sonardiff.services.analysis_service import analyze_screenshots


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def load_history(path: Path) -> FullReport:
    """Load a history CSV, exiting with a message when it is not UTF-8 text."""
    try:
        return load_report(path)
    except UnicodeDecodeError:
        console.print(f"[red]Not a UTF-8 text file: {escape(str(path))}[/red]")
        sys.exit(1)


def encode_image_file(path: Path) -> str:
    """Read an image file into a base64 data URI."""
    media_type, _ = mimetypes.guess_type(path.name)
    if not media_type or not media_type.startswith("image/"):
        media_type = "image/png"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


@click.group()
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Sonardiff - SonarCloud dashboard screenshot analyzer.

    Extracts project quality metrics from screenshots, diffs them against a
    saved history CSV, and exports the combined history.
    """
    configure_logging(debug or settings.debug_mode)


@cli.command("analyze")
@click.argument("images", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--baseline",
    "-b",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="History CSV to compare against and extend",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the merged history (default: sonar-analysis-<date>.csv)",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the default-named history export (default: current directory)",
)
@click.option("--api-key", envvar="OPENAI_API_KEY", help="OpenAI API key (default: configured key)")
def analyze(
    images: tuple[Path, ...],
    baseline: Path | None,
    output: Path | None,
    output_dir: Path | None,
    api_key: str | None,
) -> None:
    """Analyze SonarCloud screenshots, scrolled captures of one page in order."""
    if output and output_dir:
        raise click.UsageError("--output and --output-dir are mutually exclusive")

    api_key = api_key or settings.openai_api_key
    if not api_key:
        console.print("[red]No API key configured.[/red] Run 'sonardiff config set-api-key' or pass --api-key.")
        sys.exit(1)

    baseline_report = load_history(baseline) if baseline else None
    if baseline_report is not None and not baseline_report.analysis_reports:
        console.print(
            f"[yellow]No analysis sections found in {escape(str(baseline))}, running without comparison[/yellow]"
        )

    payloads = [encode_image_file(path) for path in images]
    console.print(f"[bold]Analyzing {len(payloads)} screenshot(s)[/bold]")

    try:
        result = asyncio.run(analyze_screenshots(payloads, api_key, baseline=baseline_report))
    except AnalysisError as e:
        console.print(f"[red]Analysis failed: {escape(e.message)}[/red]")
        sys.exit(1)

    if output is None:
        output_dir = output_dir or Path.cwd()
        output_dir.mkdir(parents=True, exist_ok=True)
        output = output_dir / export_filename()
    save_report(result.report, output)
    console.print(f"[green]✓ History saved to {escape(str(output))}[/green]\n")

    display_full_report(result.report, latest_only=True)
    display_analysis_cost(result.cost)


@cli.command("show")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--latest", is_flag=True, default=False, help="Show only the newest analysis and diff")
def show(csv_file: Path, latest: bool) -> None:
    """Display a saved analysis history."""
    display_full_report(load_history(csv_file), latest_only=latest)


@cli.group()
def config() -> None:
    """Manage the stored API key."""
    pass


@config.command("show")
def config_show() -> None:
    """Show the active configuration."""
    key_state = "[green]configured[/green]" if settings.has_api_key else "[red]not set[/red]"
    console.print(f"API key: {key_state}")
    console.print(f"Extraction model: {settings.extraction_model}")
    console.print(f"Comparison model: {settings.comparison_model}")
    console.print(f"Config file: {get_global_env_file()}")


@config.command("set-api-key")
@click.argument("api_key")
def config_set_api_key(api_key: str) -> None:
    """Store an OpenAI API key in the global config file."""
    if not api_key.strip():
        console.print("[red]API key must not be empty[/red]")
        sys.exit(1)
    path = save_api_key(api_key)
    console.print(f"[green]✓ API key saved to {escape(str(path))}[/green]")


@config.command("clear-api-key")
def config_clear_api_key() -> None:
    """Remove the stored API key."""
    if clear_api_key():
        console.print("[green]✓ API key removed[/green]")
    else:
        console.print("[yellow]No stored API key found[/yellow]")


if __name__ == "__main__":
    cli()
