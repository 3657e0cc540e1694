"""
CLI command for installing applications.

Thin wrapper over ``bundlectl.core.use_cases.install``.
"""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from bundlectl.ui.cli.options import (
    credential_flags,
    credential_options,
    parameters_flags,
    parameters_options,
    pull_flags,
    pull_options,
    registry_flags,
    registry_options,
)

LONG_HELP = """Install an application.

By default, the application definition in the current directory is
installed. APP_NAME can also be:

\b
- a path to an application directory
- a path to a bundle definition (bundle.json, bundle.yml) or packed app (.tgz)
- a registry reference (repo/name:tag)

\b
Examples:
  bundlectl install ./myapp --name myinstallation --target-context mycontext
  bundlectl install myrepo/myapp:mytag --pull --name myinstallation
  bundlectl install bundle.json --credential-set mycredentials.yml
"""


@click.command("install", help=LONG_HELP, short_help="Install an application.")
@click.argument("app_name", required=False, default="")
@parameters_flags
@credential_flags
@registry_flags
@pull_flags
@click.option(
    "--orchestrator",
    type=click.Choice(["swarm", "kubernetes"]),
    default=None,
    help="Orchestrator to install on (default: from the target context, else swarm).",
)
@click.option(
    "--kubernetes-namespace",
    default=None,
    help="Kubernetes namespace to install into (default: from the target context).",
)
@click.option(
    "--name",
    "installation_name",
    default="",
    help="Installation name (defaults to the application name).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    app_name: str,
    orchestrator: str | None,
    kubernetes_namespace: str | None,
    installation_name: str,
    as_json: bool,
    **flags: Any,
) -> None:
    from bundlectl.core.config.loader import ConfigError
    from bundlectl.core.errors import InstallError
    from bundlectl.core.use_cases.install import InstallOptions, run_install

    opts = InstallOptions(
        parameters=parameters_options(flags),
        credentials=credential_options(flags),
        registry=registry_options(flags),
        pull=pull_options(flags),
        orchestrator=orchestrator or "",
        kubernetes_namespace=kubernetes_namespace or "",
        installation_name=installation_name,
    )

    # Keep stdout clean for the JSON document
    out = sys.stderr if as_json else sys.stdout

    try:
        result = run_install(
            app_name or "",
            opts,
            config_dir=ctx.obj.get("config_dir"),
            out=out,
            on_warning=lambda w: click.secho(w, fg="yellow", err=True),
        )
    except (InstallError, ConfigError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    bundle = result.bundle
    version = f" {bundle.version}" if bundle and bundle.version else ""
    click.secho(
        f"✅ Installed {result.installation!r}{version} on context {result.target_context!r}",
        fg="green",
    )
