"""
Install use case: install a bundle and record the installation.

This is the top-level orchestrator for ``bundlectl install``:

    resolve target → resolve + validate bundle → guard existing record
      → build claim → merge parameters/credentials → run action
      → persist claim (always) → report

Everything up to the action is side-effect free: a failure there
leaves no record behind. Once the driver has run, the claim is stored
whatever the outcome, so a failed install can be retried over and a
successful one is never lost track of.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

from bundlectl.adapters.registry import DriverRegistry
from bundlectl.core.config.loader import default_config_dir, load_settings
from bundlectl.core.engine.credentials import (
    prepare_credential_set,
    validate_credentials,
    with_named_credential_sets,
    with_registry_auth_credential,
    with_target_context_credential,
)
from bundlectl.core.engine.guard import check_existing_installation
from bundlectl.core.engine.parameters import (
    merge_bundle_parameters,
    with_command_line_parameters,
    with_file_parameters,
    with_orchestrator_parameters,
    with_send_registry_auth,
)
from bundlectl.core.engine.resolver import resolve_bundle
from bundlectl.core.engine.runner import run_action
from bundlectl.core.engine.target import required_bind_mount, resolve_target
from bundlectl.core.errors import ActionError, PersistenceError
from bundlectl.core.models.bundle import Bundle, validate_bundle
from bundlectl.core.models.claim import (
    ACTION_INSTALL,
    STATUS_INDETERMINATE,
    Claim,
    new_claim,
)
from bundlectl.core.models.operation import Receipt
from bundlectl.core.models.settings import Settings
from bundlectl.core.observability.logging_config import quiet_output
from bundlectl.core.persistence.audit import AuditEntry
from bundlectl.core.persistence.stores import Stores, prepare_stores
from bundlectl.core.services.registry_client import HttpRegistryClient, RegistryClient

logger = logging.getLogger(__name__)


# ── Options ─────────────────────────────────────────────────────


@dataclass
class ParametersOptions:
    parameters_files: list[str] = field(default_factory=list)
    overrides: list[str] = field(default_factory=list)


@dataclass
class CredentialOptions:
    target_context: str = ""
    credential_sets: list[str] = field(default_factory=list)
    send_registry_auth: bool = False


@dataclass
class RegistryOptions:
    insecure_registries: list[str] = field(default_factory=list)


@dataclass
class PullOptions:
    pull: bool = False


@dataclass
class InstallOptions:
    """Everything ``bundlectl install`` accepts, grouped by concern."""

    parameters: ParametersOptions = field(default_factory=ParametersOptions)
    credentials: CredentialOptions = field(default_factory=CredentialOptions)
    registry: RegistryOptions = field(default_factory=RegistryOptions)
    pull: PullOptions = field(default_factory=PullOptions)
    orchestrator: str = ""
    kubernetes_namespace: str = ""
    installation_name: str = ""


# ── Result ──────────────────────────────────────────────────────


@dataclass
class InstallResult:
    """Result of a successful install."""

    claim: Claim
    receipt: Receipt
    target_context: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def installation(self) -> str:
        return self.claim.installation

    @property
    def bundle(self) -> Bundle | None:
        return self.claim.bundle

    def to_dict(self) -> dict[str, Any]:
        bundle = self.claim.bundle
        return {
            "installation": self.claim.installation,
            "revision": self.claim.revision,
            "target_context": self.target_context,
            "status": self.claim.status,
            "bundle": {"name": bundle.name, "version": bundle.version} if bundle else None,
            "parameters": self.claim.parameters,
            "duration_ms": self.receipt.duration_ms,
            "warnings": self.warnings,
        }


# ── Flow ────────────────────────────────────────────────────────


def run_install(
    app_name: str,
    opts: InstallOptions,
    config_dir: Path | None = None,
    settings: Settings | None = None,
    drivers: DriverRegistry | None = None,
    registry_client: RegistryClient | None = None,
    out: TextIO | None = None,
    on_warning: Callable[[str], None] | None = None,
) -> InstallResult:
    """Install an application.

    Args:
        app_name: App name as given by the user (may be empty).
        opts: Install options.
        config_dir: Config directory (default: BUNDLECTL_CONFIG or ~/.bundlectl).
        settings: Pre-loaded settings (default: loaded from config_dir).
        drivers: Driver registry (default: all built-in drivers).
        registry_client: Registry client for pulls (default: HTTP client).
        out: Sink for driver output (default: stdout).
        on_warning: Called with each warning as soon as it is raised,
            so it reaches the user even if the action then fails.

    Returns:
        InstallResult for the succeeded installation.

    Raises:
        InstallError: Any subclass, see bundlectl.core.errors.
        ConfigError: If the configuration file is invalid.
    """
    with quiet_output():
        if config_dir is None:
            config_dir = default_config_dir()
        if settings is None:
            settings = load_settings(config_dir)

        # ── Target ───────────────────────────────────────────────
        target = resolve_target(
            opts.credentials.target_context,
            settings,
            orchestrator=opts.orchestrator,
            kubernetes_namespace=opts.kubernetes_namespace,
        )
        bind_mount = required_bind_mount(target)

        if registry_client is None:
            registry_client = HttpRegistryClient(
                insecure_registries=[
                    *settings.insecure_registries,
                    *opts.registry.insecure_registries,
                ],
                auths=settings.registry_auths,
            )
        stores = prepare_stores(config_dir, target.name, registry_client)

        # ── Bundle ───────────────────────────────────────────────
        bundle = resolve_bundle(app_name, stores.bundles, pull=opts.pull.pull)
        validate_bundle(bundle)

        # ── Guard ────────────────────────────────────────────────
        installation_name = opts.installation_name or bundle.name
        existing = stores.installations.read(installation_name)
        warnings: list[str] = []
        warning = check_existing_installation(installation_name, existing)
        if warning:
            warnings.append(warning)
            if on_warning is not None:
                on_warning(warning)

        claim = new_claim(installation_name)
        claim.bundle = bundle
        claim.bundle_reference = app_name
        claim.target_context = target.name

        # ── Configuration ────────────────────────────────────────
        merge_bundle_parameters(
            claim,
            with_file_parameters(opts.parameters.parameters_files),
            with_command_line_parameters(opts.parameters.overrides),
            with_orchestrator_parameters(target.orchestrator, target.kubernetes_namespace),
            with_send_registry_auth(opts.credentials.send_registry_auth),
        )
        creds = prepare_credential_set(
            bundle,
            with_named_credential_sets(stores.credentials, opts.credentials.credential_sets),
            with_target_context_credential(target.context, target.orchestrator),
            with_registry_auth_credential(
                opts.credentials.send_registry_auth, settings.registry_auths
            ),
        )
        validate_credentials(creds, bundle)

        if drivers is None:
            from bundlectl.adapters import default_registry

            drivers = default_registry()

        # ── Action + persistence ─────────────────────────────────
        try:
            receipt = run_action(
                claim,
                creds,
                drivers,
                settings.driver,
                out or sys.stdout,
                target,
                bind_mount=bind_mount,
            )
        except KeyboardInterrupt:
            claim.update(
                ACTION_INSTALL, STATUS_INDETERMINATE, "interrupted while the driver was running"
            )
            _persist(stores, claim)
            _audit(stores, claim, settings.driver, None, ["interrupted"])
            raise

        persistence_error = _persist(stores, claim)
        errors = [receipt.error] if receipt.error else []
        if persistence_error is not None:
            errors.append(str(persistence_error))
        _audit(stores, claim, settings.driver, receipt, errors, persisted=persistence_error is None)

        if receipt.failed:
            raise ActionError(
                installation_name, receipt.error or "", persistence_error=persistence_error
            )
        if persistence_error is not None:
            raise persistence_error

        logger.info("Installed %s (revision %s)", installation_name, claim.revision)
        return InstallResult(
            claim=claim,
            receipt=receipt,
            target_context=target.name,
            warnings=warnings,
        )


def _persist(stores: Stores, claim: Claim) -> PersistenceError | None:
    """Store the claim, returning the failure instead of raising it."""
    try:
        stores.installations.store(claim)
    except PersistenceError as e:
        logger.error("%s", e)
        return e
    return None


def _audit(
    stores: Stores,
    claim: Claim,
    driver: str,
    receipt: Receipt | None,
    errors: list[str],
    persisted: bool = True,
) -> None:
    bundle = claim.bundle
    stores.audit.write(
        AuditEntry(
            installation=claim.installation,
            revision=claim.revision,
            target_context=claim.target_context,
            action=claim.result.action,
            bundle=bundle.name if bundle else "",
            bundle_version=bundle.version if bundle else "",
            bundle_reference=claim.bundle_reference,
            status=claim.status,
            driver=driver,
            duration_ms=receipt.duration_ms if receipt else 0,
            persisted=persisted,
            errors=errors,
        )
    )
