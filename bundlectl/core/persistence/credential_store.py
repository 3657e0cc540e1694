"""
Credential store: named credential sets stored as YAML.

Each set lives at <root>/<name>.yaml. The store only holds where
values come from (env vars, files, literals); values are resolved at
install time.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from bundlectl.core.errors import CredentialError
from bundlectl.core.models.credentials import CredentialSet

logger = logging.getLogger(__name__)


def load_credential_set(path: Path) -> CredentialSet:
    """Load a credential set from a YAML file.

    Raises:
        CredentialError: If the file is unreadable or not a valid set.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise CredentialError(f"Cannot load credential set from {path}: {e}") from e

    if not isinstance(data, dict):
        raise CredentialError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    data.setdefault("name", path.stem)

    try:
        return CredentialSet.model_validate(data)
    except ValueError as e:
        raise CredentialError(f"Invalid credential set in {path}: {e}") from e


class CredentialStore:
    """Read credential sets by name."""

    def __init__(self, root: Path):
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise CredentialError(f"invalid credential set name {name!r}")
        return self._root / f"{name}.yaml"

    def read(self, name: str) -> CredentialSet:
        """Load a credential set by name.

        Raises:
            CredentialError: If the set does not exist or is invalid.
        """
        path = self.path_for(name)
        if not path.is_file():
            raise CredentialError(f"credential set {name!r} not found in {self._root}")
        logger.debug("Reading credential set %s from %s", name, path)
        return load_credential_set(path)

    def list(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(p.stem for p in self._root.glob("*.yaml") if p.is_file())
