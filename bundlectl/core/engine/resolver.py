"""
Reference resolver: turn an app name into a concrete bundle.

The app name given on the command line can be:
    - empty: the application definition in the current directory
    - a path to a bundle file (.json/.yml) or packed app (.tgz)
    - a path to an application directory
    - a registry reference (repo/name:tag)

Registry references are served from the local bundle store first and
only pulled when missing and pulling is enabled.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from bundlectl.core.errors import ResolutionError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.reference import parse_reference
from bundlectl.core.persistence.bundle_store import BundleStore

logger = logging.getLogger(__name__)


class NameKind(enum.Enum):
    EMPTY = "empty"
    FILE = "file"
    DIR = "dir"
    REFERENCE = "reference"


def classify_app_name(name: str) -> NameKind:
    """Decide what kind of app name this is by probing the filesystem."""
    if not name:
        return NameKind.EMPTY
    path = Path(name)
    try:
        if path.is_dir():
            return NameKind.DIR
        if path.exists():
            return NameKind.FILE
    except OSError:
        pass
    return NameKind.REFERENCE


def resolve_bundle(name: str, bundle_store: BundleStore, pull: bool = False) -> Bundle:
    """Resolve an app name to a bundle.

    Args:
        name: App name as typed by the user (may be empty).
        bundle_store: Local cache and on-disk loaders.
        pull: Allow pulling a registry reference missing from the cache.

    Raises:
        ResolutionError: If the name cannot be resolved or loaded.
    """
    kind = classify_app_name(name)
    logger.debug("App name %r resolved as %s", name, kind.value)

    if kind is NameKind.FILE:
        if pull:
            raise ResolutionError(f"{name}: cannot pull when referencing a file based app")
        return bundle_store.load_file(Path(name))

    if kind in (NameKind.DIR, NameKind.EMPTY):
        if pull:
            raise ResolutionError(f"{name or '.'}: cannot pull when referencing a directory based app")
        return bundle_store.load_dir(Path(name) if name else Path.cwd())

    try:
        ref = parse_reference(name)
    except ValueError as e:
        raise ResolutionError(f"could not resolve bundle {name!r}: {e}") from e

    bundle = bundle_store.lookup_local(ref)
    if bundle is not None:
        return bundle

    if not pull:
        raise ResolutionError(
            f"{ref}: not found in the local bundle store, use --pull to fetch it from the registry"
        )
    return bundle_store.pull(ref)
