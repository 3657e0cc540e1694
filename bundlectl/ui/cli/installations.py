"""
CLI command for listing installations.
"""

from __future__ import annotations

import json
import sys

import click

STATUS_COLORS = {"succeeded": "green", "failed": "red", "indeterminate": "yellow"}


@click.command("ls")
@click.option(
    "--target-context",
    "target_context",
    default="",
    help="Context whose installations are listed (default: current context).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def ls(ctx: click.Context, target_context: str, as_json: bool) -> None:
    """List the installations of a target context."""
    from bundlectl.core.config.loader import ConfigError
    from bundlectl.core.errors import InstallError
    from bundlectl.core.use_cases.installations import list_installations

    try:
        result = list_installations(target_context, config_dir=ctx.obj.get("config_dir"))
    except (InstallError, ConfigError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.installations and not result.unreadable:
        if not ctx.obj.get("quiet"):
            click.echo(f"No installations on context {result.target_context!r}.")
        return

    for claim in result.installations:
        bundle = claim.bundle
        label = f"{bundle.name} {bundle.version}".strip() if bundle else "-"
        click.echo(f"  {claim.installation:<30} {label:<30} ", nl=False)
        click.secho(claim.status, fg=STATUS_COLORS.get(claim.status, "white"))
    for name, error in sorted(result.unreadable.items()):
        click.secho(f"  {name:<30} unreadable: {error}", fg="red", err=True)
