"""
Store layout: where each store lives under the config directory.

    <config dir>/
        bundles/                          shared bundle cache
        installations/<context>/          claims + audit.ndjson
        credentials/<context>/            credential sets

Installations and credentials are scoped per target context: the same
installation name can exist independently on two runtimes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from bundlectl.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditWriter
from bundlectl.core.persistence.bundle_store import BundleStore
from bundlectl.core.persistence.credential_store import CredentialStore
from bundlectl.core.persistence.installation_store import InstallationStore
from bundlectl.core.services.registry_client import RegistryClient

BUNDLES_DIR = "bundles"
INSTALLATIONS_DIR = "installations"
CREDENTIALS_DIR = "credentials"


@dataclass
class Stores:
    """The stores an install works against."""

    bundles: BundleStore
    installations: InstallationStore
    credentials: CredentialStore
    audit: AuditWriter


def prepare_stores(
    config_dir: Path,
    target_context: str,
    registry: RegistryClient | None = None,
) -> Stores:
    """Build the stores for a target context. Directories are created lazily on write."""
    installations_root = config_dir / INSTALLATIONS_DIR / target_context
    return Stores(
        bundles=BundleStore(config_dir / BUNDLES_DIR, registry=registry),
        installations=InstallationStore(installations_root),
        credentials=CredentialStore(config_dir / CREDENTIALS_DIR / target_context),
        audit=AuditWriter(installations_root / DEFAULT_AUDIT_FILE),
    )
