"""
Install option groups: one flag-registration decorator per group.

Each ``*_flags`` decorator adds a group's click options to a command;
the matching ``*_options`` function pops those values back out of the
command's keyword arguments into the group's dataclass.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import click

from bundlectl.core.use_cases.install import (
    CredentialOptions,
    ParametersOptions,
    PullOptions,
    RegistryOptions,
)

F = Callable[..., Any]


# ── Parameters ──────────────────────────────────────────────────


def parameters_flags(f: F) -> F:
    f = click.option(
        "--set",
        "-s",
        "overrides",
        multiple=True,
        metavar="KEY=VALUE",
        help="Override a parameter value (repeatable).",
    )(f)
    f = click.option(
        "--parameters-file",
        "parameters_files",
        multiple=True,
        type=click.Path(dir_okay=False),
        help="YAML file of parameter values (repeatable, later files win).",
    )(f)
    return f


def parameters_options(flags: dict[str, Any]) -> ParametersOptions:
    return ParametersOptions(
        parameters_files=list(flags.pop("parameters_files", ()) or ()),
        overrides=list(flags.pop("overrides", ()) or ()),
    )


# ── Credentials ─────────────────────────────────────────────────


def credential_flags(f: F) -> F:
    f = click.option(
        "--with-registry-auth",
        "send_registry_auth",
        is_flag=True,
        help="Forward registry credentials to the invocation image.",
    )(f)
    f = click.option(
        "--credential-set",
        "credential_sets",
        multiple=True,
        metavar="NAME_OR_FILE",
        help="Credential set name, or path to a credential set file (repeatable).",
    )(f)
    f = click.option(
        "--target-context",
        "target_context",
        default="",
        help="Context on which the application is installed (default: current context).",
    )(f)
    return f


def credential_options(flags: dict[str, Any]) -> CredentialOptions:
    return CredentialOptions(
        target_context=flags.pop("target_context", "") or "",
        credential_sets=list(flags.pop("credential_sets", ()) or ()),
        send_registry_auth=bool(flags.pop("send_registry_auth", False)),
    )


# ── Registry ────────────────────────────────────────────────────


def registry_flags(f: F) -> F:
    return click.option(
        "--insecure-registries",
        "insecure_registries",
        multiple=True,
        metavar="HOST",
        help="Registry host to reach over plain HTTP (repeatable).",
    )(f)


def registry_options(flags: dict[str, Any]) -> RegistryOptions:
    return RegistryOptions(insecure_registries=list(flags.pop("insecure_registries", ()) or ()))


# ── Pull ────────────────────────────────────────────────────────


def pull_flags(f: F) -> F:
    return click.option(
        "--pull",
        "pull",
        is_flag=True,
        help="Pull the bundle from the registry when it is not in the local store.",
    )(f)


def pull_options(flags: dict[str, Any]) -> PullOptions:
    return PullOptions(pull=bool(flags.pop("pull", False)))
