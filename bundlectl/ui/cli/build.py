"""
CLI command for building applications (experimental).

Only registered when experimental commands are enabled.
"""

from __future__ import annotations

import sys

import click


@click.command("build")
@click.argument("app_name", required=False, default="")
def build(app_name: str) -> None:
    """Build an invocation image for an application (experimental)."""
    click.secho("⚠️  build is not implemented yet", fg="yellow", err=True)
    sys.exit(1)
