"""
Human-readable output formatting.

Centralizes CLI output so commands stay thin.
"""
from __future__ import annotations

import sys
from typing import List

import typer

from ..freshness import FreshnessResult
from ..models import ChartFile


def print_names(names: List[str], empty_message: str = "(none)") -> None:
    """Print one name per line."""
    if not names:
        typer.echo(empty_message, err=True)
        return
    for name in names:
        typer.echo(name)


def print_file(chart_file: ChartFile) -> None:
    """Write raw file content to stdout."""
    sys.stdout.buffer.write(chart_file.data)
    sys.stdout.flush()


def print_freshness(result: FreshnessResult) -> None:
    """Print a freshness verdict."""
    typer.echo(f"Cacheable: {'yes' if result.cacheable else 'no'}")
    typer.echo(f"Reasons to not cache: {', '.join(result.reasons) or '(none)'}")
    typer.echo(f"Warnings: {', '.join(result.warnings) or '(none)'}")
    expiration = result.expiration.isoformat() if result.expiration else "(none)"
    typer.echo(f"Expiration: {expiration}")
