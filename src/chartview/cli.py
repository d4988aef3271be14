"""
chartview CLI

Commands:
- serve: Run the HTTP server
- get-file: Print one file of a chart
- files: List the files of a chart
- charts: List the charts of an index repository
- versions: List the versions of a chart
- set-flags: Render key=value pairs as --set flags
- cache-check: Evaluate the freshness of a served response
"""
from __future__ import annotations

import logging
from typing import List

import typer

from .cli_context import CLIContext
from .convert import convert
from .freshness import check_url, load_evaluator
from .models import ChartFile
from .operations import run_and_exit
from .operations.printers import print_file, print_freshness, print_names
from .set_flags import render_set_flags

app = typer.Typer(name="chartview", help="Resolve, fetch and serve Helm chart files")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Interface to bind (default: CHARTVIEW_HOST or 0.0.0.0)"),
    port: int = typer.Option(None, "--port", help="Port to bind (default: CHARTVIEW_PORT or 4000)"),
) -> None:
    """Run the HTTP server."""

    def _serve() -> None:
        import uvicorn

        from .api import create_app

        context = CLIContext.from_env()
        settings = context.settings
        _configure_logging(settings.log_level)
        app_ = create_app(context.service, settings)
        uvicorn.run(
            app_,
            host=host or settings.listen_host,
            port=port or settings.listen_port,
            log_level=settings.log_level.lower(),
        )

    run_and_exit(_serve)


@app.command("get-file")
def get_file(
    url: str = typer.Argument(..., help="Repository URL (https:// or oci://)"),
    name: str = typer.Argument(..., help="Chart name"),
    path: str = typer.Argument(..., help="File path inside the chart, e.g. values.yaml"),
    version: str = typer.Option("", "--version", help="Exact version or semver range (default: latest)"),
    fmt: str = typer.Option("", "--format", help="Output format: yaml, json or keep"),
) -> None:
    """Print one file of a chart."""

    def _get_file() -> None:
        context = CLIContext.from_env()
        chart_file = context.service.get_file(url, name, version, path)
        body, _ = convert(chart_file.name, chart_file.data, fmt)
        print_file(ChartFile(name=chart_file.name, data=body))

    run_and_exit(_get_file)


@app.command()
def files(
    url: str = typer.Argument(..., help="Repository URL (https:// or oci://)"),
    name: str = typer.Argument(..., help="Chart name"),
    version: str = typer.Option("", "--version", help="Exact version or semver range (default: latest)"),
) -> None:
    """List the files of a chart."""

    def _files() -> None:
        context = CLIContext.from_env()
        print_names(context.service.list_files(url, name, version))

    run_and_exit(_files)


@app.command()
def charts(
    url: str = typer.Argument(..., help="Index repository URL"),
) -> None:
    """List the charts of an index repository."""

    def _charts() -> None:
        context = CLIContext.from_env()
        print_names(context.service.list_charts(url), empty_message="No charts found")

    run_and_exit(_charts)


@app.command()
def versions(
    url: str = typer.Argument(..., help="Repository URL (https:// or oci://)"),
    name: str = typer.Argument(..., help="Chart name"),
) -> None:
    """List the versions of a chart, newest first."""

    def _versions() -> None:
        context = CLIContext.from_env()
        print_names(context.service.list_versions(url, name), empty_message="No versions found")

    run_and_exit(_versions)


@app.command("set-flags")
def set_flags(
    pairs: List[str] = typer.Argument(..., help="key=value pairs"),
) -> None:
    """Render key=value pairs as --set flags for a package manager command line."""

    def _set_flags() -> None:
        values = {}
        for pair in pairs:
            key, sep, value = pair.partition("=")
            if not sep or not key:
                raise ValueError(f"expected key=value, got {pair!r}")
            values[key] = value
        typer.echo(render_set_flags(values))

    run_and_exit(_set_flags)


@app.command("cache-check")
def cache_check(
    url: str = typer.Argument(..., help="URL to GET, e.g. a /packageview/files/... endpoint"),
    evaluator: str = typer.Option(
        ..., "--evaluator", envvar="CHARTVIEW_FRESHNESS_EVALUATOR",
        help="Freshness evaluator as module:attr",
    ),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds"),
) -> None:
    """GET a URL and report whether and until when its response may be cached."""

    def _cache_check() -> None:
        result = check_url(url, load_evaluator(evaluator), timeout_s=timeout)
        print_freshness(result)

    run_and_exit(_cache_check)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
