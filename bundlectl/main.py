"""
bundlectl: CLI entrypoint.

Usage:
    bundlectl --help
    bundlectl install ./myapp --name myinstallation
    bundlectl ls
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from bundlectl import __version__
from bundlectl.core.observability.logging_config import setup_logging


def create_cli(experimental: bool = False) -> click.Group:
    """Build the command tree.

    Experimental commands are only registered when ``experimental`` is set.
    """

    @click.group()
    @click.version_option(version=__version__, prog_name="bundlectl")
    @click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
    @click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
    @click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
    @click.option(
        "--config-dir",
        "config_dir",
        type=click.Path(file_okay=False),
        default=None,
        help="Configuration directory (default: $BUNDLECTL_CONFIG or ~/.bundlectl).",
    )
    @click.pass_context
    def cli(
        ctx: click.Context,
        verbose: bool,
        quiet: bool,
        debug: bool,
        config_dir: str | None,
    ) -> None:
        """bundlectl: install packaged applications on a target context."""
        ctx.ensure_object(dict)
        ctx.obj["verbose"] = verbose
        ctx.obj["quiet"] = quiet
        ctx.obj["debug"] = debug
        ctx.obj["config_dir"] = Path(config_dir) if config_dir else None

        # ── Logging setup (once, at process start) ──────────────
        if debug:
            level = "DEBUG"
        elif verbose:
            level = "INFO"
        elif quiet:
            level = "ERROR"
        else:
            level = os.environ.get("BUNDLECTL_LOG_LEVEL", "WARNING")

        setup_logging(
            level=level,
            log_file=os.environ.get("BUNDLECTL_LOG_FILE"),
            log_file_level=os.environ.get("BUNDLECTL_LOG_FILE_LEVEL"),
            quiet_third_party=not debug,
        )

    from bundlectl.ui.cli.install import install
    from bundlectl.ui.cli.installations import ls

    cli.add_command(install)
    cli.add_command(install, name="deploy")
    cli.add_command(ls)

    if experimental:
        from bundlectl.ui.cli.build import build

        cli.add_command(build)

    return cli


cli = create_cli()


def _config_dir_from_args(args: list[str]) -> Path | None:
    """The ``--config-dir`` given on the command line, if any.

    Parsed without invoking the group, so experimental gating reads
    the same configuration the command will.
    """
    with cli.make_context("bundlectl", list(args), resilient_parsing=True) as ctx:
        value = ctx.params.get("config_dir")
    return Path(value) if value else None


def main(args: list[str] | None = None) -> None:
    """Console script entrypoint."""
    from bundlectl.core.config.loader import ConfigError, experimental_enabled, load_settings

    if args is None:
        args = sys.argv[1:]
    try:
        settings = load_settings(_config_dir_from_args(args))
    except ConfigError:
        # Reported again by whichever command reads the settings
        settings = None
    create_cli(experimental=experimental_enabled(settings))(args=args, obj={})


if __name__ == "__main__":
    main()
