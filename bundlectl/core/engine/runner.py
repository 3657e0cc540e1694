"""
Action runner: hand a claim to the execution driver.

Maps merged parameters and resolved credentials to their destinations
in the invocation image, dispatches the operation through the driver
registry and records the outcome on the claim. No retries: a failed
run is final for this invocation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, TextIO

from bundlectl.adapters.registry import DriverRegistry
from bundlectl.core.engine.credentials import ResolvedCredentials
from bundlectl.core.engine.target import Target
from bundlectl.core.models.claim import (
    ACTION_INSTALL,
    STATUS_FAILED,
    STATUS_SUCCEEDED,
    Claim,
)
from bundlectl.core.models.operation import BindMount, Operation, Receipt

logger = logging.getLogger(__name__)

_ENV_UNSAFE = re.compile(r"[^A-Z0-9_]")


def parameter_env_name(name: str) -> str:
    """Default env var for a parameter without a destination: CNAB_P_<NAME>."""
    return "CNAB_P_" + _ENV_UNSAFE.sub("_", name.upper())


def render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_operation(
    claim: Claim,
    creds: ResolvedCredentials,
    target: Target,
    bind_mount: BindMount | None = None,
    action: str = ACTION_INSTALL,
) -> Operation:
    """Build the driver operation for a claim."""
    bundle = claim.bundle
    if bundle is None or not bundle.invocation_images:
        raise ValueError(f"claim {claim.installation!r} has no bundle to run")

    environment: dict[str, str] = {
        "CNAB_ACTION": action,
        "CNAB_INSTALLATION_NAME": claim.installation,
        "CNAB_REVISION": claim.revision,
        "CNAB_BUNDLE_NAME": bundle.name,
        "CNAB_BUNDLE_VERSION": bundle.version,
    }
    files: dict[str, str] = {}
    secrets: list[str] = []

    for name, value in sorted(claim.parameters.items()):
        definition = bundle.parameters[name]
        rendered = render_value(value)
        if definition.path:
            files[definition.path] = rendered
        if definition.env or not definition.path:
            environment[definition.env or parameter_env_name(name)] = rendered

    # Only credentials the bundle asks for reach the image
    for name, requirement in sorted(bundle.credentials.items()):
        if name not in creds.values:
            continue
        value = creds.values[name]
        if requirement.env:
            environment[requirement.env] = value
            secrets.append(requirement.env)
        if requirement.path:
            files[requirement.path] = value
            secrets.append(requirement.path)

    docker_host = target.context.docker_host
    if target.orchestrator != "kubernetes" and not docker_host.startswith("unix://"):
        environment["DOCKER_HOST"] = docker_host

    return Operation(
        action=action,
        installation=claim.installation,
        revision=claim.revision,
        bundle_name=bundle.name,
        image=bundle.invocation_images[0],
        environment=environment,
        files=files,
        bind_mounts=[bind_mount] if bind_mount else [],
        secrets=secrets,
        target_context=target.name,
        docker_host=docker_host,
    )


def run_action(
    claim: Claim,
    creds: ResolvedCredentials,
    drivers: DriverRegistry,
    driver_name: str,
    out: TextIO,
    target: Target,
    bind_mount: BindMount | None = None,
    action: str = ACTION_INSTALL,
) -> Receipt:
    """Run an action for a claim and record the outcome on it.

    The claim's result becomes succeeded, or failed with the driver's
    diagnostic output as message. Never raises for driver failures.
    """
    operation = build_operation(claim, creds, target, bind_mount=bind_mount, action=action)
    logger.info("Running %s for %s with driver %s", action, claim.installation, driver_name)

    receipt = drivers.execute(driver_name, operation, out)

    if receipt.ok:
        claim.update(action, STATUS_SUCCEEDED)
    else:
        claim.update(action, STATUS_FAILED, receipt.error or "")
    logger.info("%s %s → %s", action, claim.installation, claim.status)
    return receipt
