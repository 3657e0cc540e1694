"""
Bundle store: local bundle cache plus loaders for on-disk bundles.

Pulled bundles are cached as JSON under the store root, keyed by
reference:

    <root>/<registry>/<repository>/_tags/<tag>.json
    <root>/<registry>/<repository>/_digests/<algorithm>/<hex>.json

The cache is disposable: a corrupt entry is a miss, not an error.
"""

from __future__ import annotations

import json
import logging
import tarfile
import tempfile
from pathlib import Path
from typing import Any

import yaml

from bundlectl.core.errors import ResolutionError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.reference import Reference
from bundlectl.core.persistence.atomic import atomic_write_text
from bundlectl.core.services.registry_client import RegistryClient

logger = logging.getLogger(__name__)

BUNDLE_FILES = ("bundle.yml", "bundle.yaml", "bundle.json")
PARAMETERS_FILE = "parameters.yml"
ARCHIVE_SUFFIXES = (".tgz", ".tar.gz")


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys: {"a": {"b": 1}} → {"a.b": 1}."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten(value, full))
        else:
            flat[full] = value
    return flat


def _read_document(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ResolutionError(f"Cannot read {path}: {e}") from e

    try:
        if path.suffix == ".json":
            return json.loads(raw)
        return yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ResolutionError(f"Cannot parse {path}: {e}") from e


def _bundle_from_data(data: Any, origin: str) -> Bundle:
    if not isinstance(data, dict):
        raise ResolutionError(f"Expected a mapping in {origin}, got {type(data).__name__}")
    try:
        return Bundle.model_validate(data)
    except ValueError as e:
        raise ResolutionError(f"Invalid bundle definition in {origin}: {e}") from e


class BundleStore:
    """Local bundle cache, backed by a registry client for pulls."""

    def __init__(self, root: Path, registry: RegistryClient | None = None):
        self._root = root
        self._registry = registry

    @property
    def root(self) -> Path:
        return self._root

    # ── Cache ───────────────────────────────────────────────────

    def path_for(self, ref: Reference) -> Path:
        base = self._root / ref.registry / ref.repository
        if ref.digest:
            algorithm, _, hexdigest = ref.digest.partition(":")
            return base / "_digests" / algorithm / f"{hexdigest}.json"
        return base / "_tags" / f"{ref.tag}.json"

    def lookup_local(self, ref: Reference) -> Bundle | None:
        """Return the cached bundle for a reference, or None on a miss."""
        path = self.path_for(ref)
        if not path.is_file():
            logger.debug("Bundle %s not in local store", ref)
            return None
        try:
            bundle = Bundle.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring corrupt cached bundle %s: %s", path, e)
            return None
        logger.debug("Bundle %s found in local store", ref)
        return bundle

    def save(self, ref: Reference, bundle: Bundle) -> None:
        """Cache a bundle under its reference."""
        content = json.dumps(bundle.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
        try:
            atomic_write_text(self.path_for(ref), content, prefix=".bundle_")
        except OSError as e:
            logger.warning("Cannot cache bundle %s: %s", ref, e)

    def pull(self, ref: Reference) -> Bundle:
        """Pull a bundle from its registry and cache it.

        Raises:
            ResolutionError: If no registry client is configured or the
                pull fails.
        """
        if self._registry is None:
            raise ResolutionError(f"Cannot pull {ref}: no registry client configured")
        logger.info("Pulling bundle %s", ref)
        bundle = self._registry.pull(ref)
        self.save(ref, bundle)
        return bundle

    # ── On-disk bundles ─────────────────────────────────────────

    def load_file(self, path: Path) -> Bundle:
        """Load a bundle definition file (.json, .yml, .yaml) or packed archive."""
        if path.name.endswith(ARCHIVE_SUFFIXES):
            return self.load_archive(path)
        if path.suffix not in (".json", ".yml", ".yaml"):
            raise ResolutionError(
                f"{path}: unsupported file type (expected a bundle .json/.yml or a .tgz archive)"
            )
        return _bundle_from_data(_read_document(path), str(path))

    def load_dir(self, path: Path) -> Bundle:
        """Load an unpacked application directory.

        The directory holds one of bundle.yml, bundle.yaml or bundle.json.
        An optional parameters.yml overrides declared parameter defaults;
        nested keys are flattened to dotted parameter names.
        """
        if not path.is_dir():
            raise ResolutionError(f"{path}: not a directory")

        for name in BUNDLE_FILES:
            candidate = path / name
            if candidate.is_file():
                break
        else:
            raise ResolutionError(
                f"{path}: no application definition found (expected one of {', '.join(BUNDLE_FILES)})"
            )

        data = _read_document(candidate)
        bundle = _bundle_from_data(data, str(candidate))

        params_path = path / PARAMETERS_FILE
        if params_path.is_file():
            overrides = _read_document(params_path) or {}
            if not isinstance(overrides, dict):
                raise ResolutionError(f"Expected a mapping in {params_path}")
            bundle = _apply_default_overrides(bundle, flatten(overrides), params_path)

        logger.debug("Loaded application %s from %s", bundle.name, path)
        return bundle

    def load_archive(self, path: Path) -> Bundle:
        """Extract a packed application (.tgz) and load it as a directory."""
        with tempfile.TemporaryDirectory(prefix="bundlectl-") as tmp:
            try:
                with tarfile.open(path, "r:gz") as tar:
                    tar.extractall(tmp, filter="data")
            except (OSError, tarfile.TarError) as e:
                raise ResolutionError(f"Cannot extract {path}: {e}") from e

            root = Path(tmp)
            if not any((root / name).is_file() for name in BUNDLE_FILES):
                children = [p for p in root.iterdir() if p.is_dir()]
                if len(children) == 1:
                    root = children[0]
            return self.load_dir(root)


def _apply_default_overrides(bundle: Bundle, overrides: dict[str, Any], origin: Path) -> Bundle:
    unknown = sorted(set(overrides) - set(bundle.parameters))
    if unknown:
        raise ResolutionError(
            f"{origin}: parameter(s) {', '.join(unknown)} not declared in the bundle"
        )
    parameters = {
        name: definition.model_copy(update={"default": overrides[name]})
        if name in overrides
        else definition
        for name, definition in bundle.parameters.items()
    }
    return bundle.model_copy(update={"parameters": parameters})
